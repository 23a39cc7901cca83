"""
Clone Conformance Tests

INVARIANTS:

    ∀ clone c of origin o:
        metadata store has no record for c
        resolve(c) = stored metadata of o
        c never appears as an origin

    ∀ origin o:
        clone_count(o) = number of successful clone mints from o
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from nftclone import Runtime, TokenMetadata, NftError

from tests.contract_helpers import DEPOSIT, CONTRACT_ACCOUNT, make_contract, ctx


titles = st.text(min_size=1, max_size=20)

# Small id pool so requests collide: minted, unminted and self references
token_ids = st.sampled_from([str(i) for i in range(6)])

# Sequence of (origin index, owner) clone requests over three origins
clone_plans = st.lists(
    st.tuples(st.integers(min_value=0, max_value=2), st.sampled_from(["bob", "carol", "dave"])),
    max_size=15,
)


def _build(origin_titles, plan):
    runtime = Runtime(CONTRACT_ACCOUNT, verbose=False)
    contract = make_contract(runtime)
    origins = []
    for i, title in enumerate(origin_titles):
        origin_id = f"origin-{i}"
        contract.nft.internal_mint(origin_id, "alice", TokenMetadata(title=title))
        origins.append(origin_id)
    clones = []
    for n, (origin_index, owner) in enumerate(plan):
        clone_id = f"clone-{n}"
        runtime.call(
            contract.internal_clone_mint, ctx("alice", DEPOSIT),
            clone_id, origins[origin_index], owner,
        )
        clones.append((clone_id, origins[origin_index], owner))
    return contract, origins, clones


class TestCloneProperties:
    """Property-based clone invariants."""

    @given(st.lists(titles, min_size=3, max_size=3), clone_plans)
    @settings(max_examples=40)
    def test_clones_resolve_to_origin_metadata(self, origin_titles, plan):
        """
        PROPERTY: Every clone shows its origin's metadata and stores none itself.
        """
        contract, _, clones = _build(origin_titles, plan)
        store = contract.nft.token_metadata_by_id
        for clone_id, origin_id, owner in clones:
            token = contract.nft_token(clone_id)
            assert token.owner_id == owner
            assert token.metadata == store.get(origin_id)
            assert not store.contains_key(clone_id)

    @given(st.lists(titles, min_size=3, max_size=3), clone_plans)
    @settings(max_examples=40)
    def test_counts_match_successful_mints(self, origin_titles, plan):
        """
        PROPERTY: clone_count(o) equals the number of clones registered against o.
        """
        contract, origins, clones = _build(origin_titles, plan)
        for origin_id in origins:
            expected = sum(1 for _, o, _ in clones if o == origin_id)
            assert contract.nft_clone_count(origin_id) == expected
        assert sum(contract.nft_clone_count(o) for o in origins) == len(contract.clone_registry)

    @given(st.lists(st.tuples(token_ids, token_ids), max_size=20))
    @settings(max_examples=80)
    def test_registry_is_single_depth(self, requests):
        """
        PROPERTY: No registered origin is itself registered as a clone,
        whatever order ids are cloned from and minted in.
        """
        runtime = Runtime(CONTRACT_ACCOUNT, verbose=False)
        contract = make_contract(runtime)
        contract.nft.internal_mint("0", "alice", TokenMetadata(title="root"))
        for token_id, origin_id in requests:
            try:
                runtime.call(contract.internal_clone_mint, ctx("alice", DEPOSIT), token_id, origin_id, "bob")
            except NftError:
                pass

        for clone_id, origin_id in contract.clone_registry.items():
            assert clone_id != origin_id
            assert not contract.clone_registry.is_clone(origin_id)
            assert contract.nft_clone_count(clone_id) == 0
            assert contract.nft_token(clone_id).metadata == contract.resolve_metadata(origin_id)

    @given(st.lists(titles, min_size=3, max_size=3), clone_plans)
    @settings(max_examples=20)
    def test_supply_counts_every_token_once(self, origin_titles, plan):
        """
        PROPERTY: Total supply equals the sum of per-owner supplies.
        """
        contract, origins, clones = _build(origin_titles, plan)
        owners = {"alice", "bob", "carol", "dave"}
        assert contract.nft_total_supply() == len(origins) + len(clones)
        assert sum(contract.nft_supply_for_owner(o) for o in owners) == contract.nft_total_supply()
