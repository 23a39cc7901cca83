"""
test_clone_many.py - End-to-end clone scenarios

One origin, many clones, listed through every enumeration entry point.
"""

import pytest

from nftclone import TokenNotFound, TokenAlreadyExists, events_in

from tests.contract_helpers import DEPOSIT, ctx, one_yocto


CLONE_IDS = [str(i) for i in range(2, 12)]


@pytest.fixture
def cloned(runtime, origin_contract):
    """Origin "1" owned by alice with ten clones "2".."11" owned by bob."""
    for token_id in CLONE_IDS:
        runtime.call(origin_contract.internal_clone_mint, ctx("alice", DEPOSIT), token_id, "1", "bob")
    return origin_contract


class TestCloneMany:
    """Ten clones of one origin."""

    def test_clone_count(self, cloned):
        assert cloned.nft_clone_count("1") == 10

    def test_supplies(self, cloned):
        assert cloned.nft_total_supply() == 11
        assert cloned.nft_supply_for_owner("alice") == 1
        assert cloned.nft_supply_for_owner("bob") == 10
        assert cloned.nft_supply_for_owner("carol") == 0

    def test_every_clone_resolves_to_origin(self, cloned, origin_metadata):
        for token_id in CLONE_IDS:
            token = cloned.nft_token(token_id)
            assert token.owner_id == "bob"
            assert token.metadata == origin_metadata
            assert cloned.nft_clone_origin(token_id) == "1"

    def test_only_origin_has_metadata_record(self, cloned):
        store = cloned.nft.token_metadata_by_id
        assert [t for t in ["1"] + CLONE_IDS if store.contains_key(t)] == ["1"]

    def test_owner_listing(self, cloned):
        alice = cloned.nft_tokens_for_owner("alice")
        assert len(alice) == 1
        assert alice[0].owner_id == "alice"
        assert alice[0].metadata.title == "title"

        bob = cloned.nft_tokens_for_owner("bob")
        assert sorted(t.token_id for t in bob) == sorted(CLONE_IDS)
        assert all(t.metadata.description == "description" for t in bob)

    def test_global_listing_in_mint_order(self, cloned):
        tokens = cloned.nft_tokens()
        assert [t.token_id for t in tokens] == ["1"] + CLONE_IDS
        assert all(t.metadata.title == "title" for t in tokens)

    def test_global_pages_cover_index_once(self, cloned):
        pages = [cloned.nft_tokens(from_index=i, limit=3) for i in range(0, 11, 3)]
        ids = [t.token_id for page in pages for t in page]
        assert ids == ["1"] + CLONE_IDS

    def test_unknown_token(self, cloned):
        with pytest.raises(TokenNotFound):
            cloned.nft_token("999")

    def test_one_mint_event_per_token(self, runtime, cloned):
        minted = [e["data"][0]["token_ids"][0] for e in events_in(runtime.logs, "nft_mint")]
        assert minted == ["1"] + CLONE_IDS

    def test_registry_lists_in_key_order(self, cloned):
        clone_ids = [clone_id for clone_id, _ in cloned.clone_registry.items()]
        assert clone_ids == sorted(CLONE_IDS)


class TestCloneLifecycle:
    """Clones move between owners like any other token."""

    def test_clone_handed_on(self, runtime, cloned, origin_metadata):
        runtime.call(cloned.nft_transfer, one_yocto("bob"), "carol", "5")
        assert cloned.nft_supply_for_owner("bob") == 9
        carol = cloned.nft_tokens_for_owner("carol")
        assert [t.token_id for t in carol] == ["5"]
        assert carol[0].metadata == origin_metadata

    def test_failed_clone_in_batch_leaves_others(self, runtime, cloned):
        with pytest.raises(TokenAlreadyExists):
            runtime.call(cloned.internal_clone_mint, ctx("alice", DEPOSIT), "5", "1", "bob")
        assert cloned.nft_clone_count("1") == 10
        assert cloned.nft_total_supply() == 11
