"""
Atomicity Conformance Tests

INVARIANT: Calls are all-or-nothing.

    ∀ call C executed through Runtime.call:
        C returns ⟹ all of its writes, logs and refunds are kept
        C raises ⟹ storage, usage, logs and refunds equal their state before C

The clone mint writes and deletes a placeholder metadata record, bumps a
counter and registers the clone. None of it may survive a failed mint.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nftclone import (
    Runtime, TokenMetadata, NftError, NestedCloneError, InsufficientDeposit,
)

from tests.contract_helpers import (
    DEPOSIT, CONTRACT_ACCOUNT, make_contract, ctx, one_yocto, runtime_state,
)


ORIGIN = TokenMetadata(title="origin", media="ipfs://origin")


def _contract_with_clones(num_clones: int):
    runtime = Runtime(CONTRACT_ACCOUNT, verbose=False)
    contract = make_contract(runtime)
    contract.nft.internal_mint("o", "alice", ORIGIN)
    for i in range(num_clones):
        runtime.call(contract.internal_clone_mint, ctx("alice", DEPOSIT), f"c{i}", "o", "bob")
    return runtime, contract


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(
        st.integers(min_value=0, max_value=5),
        st.integers(min_value=0, max_value=DEPOSIT),
    )
    @settings(max_examples=50)
    def test_underfunded_clone_leaves_no_trace(self, num_clones, deposit):
        """
        PROPERTY: A clone mint either succeeds completely or changes nothing.
        """
        runtime, contract = _contract_with_clones(num_clones)
        before = runtime_state(runtime)

        try:
            runtime.call(contract.internal_clone_mint, ctx("alice", deposit), "new", "o", "bob")
        except InsufficientDeposit:
            assert runtime_state(runtime) == before
            assert contract.nft_clone_count("o") == num_clones
            assert contract.nft_clone_origin("new") is None
        else:
            assert contract.nft_clone_count("o") == num_clones + 1
            assert contract.nft_token("new").metadata == ORIGIN
        assert not contract.nft.token_metadata_by_id.contains_key("new")

    @given(st.integers(min_value=1, max_value=5), st.data())
    @settings(max_examples=30)
    def test_any_rejected_clone_is_invisible(self, num_clones, data):
        """
        PROPERTY: Re-using a minted id or cloning a clone reverts the whole call.
        """
        runtime, contract = _contract_with_clones(num_clones)
        minted = ["o"] + [f"c{i}" for i in range(num_clones)]
        token_id = data.draw(st.sampled_from(minted + ["fresh"]))
        origin_id = data.draw(st.sampled_from(minted))
        before = runtime_state(runtime)

        if token_id == "fresh" and origin_id == "o":
            return
        with pytest.raises(NftError):
            runtime.call(contract.internal_clone_mint, ctx("alice", DEPOSIT), token_id, origin_id, "bob")
        assert runtime_state(runtime) == before


class TestAtomicityExamples:
    """Explicit atomicity examples."""

    def test_nested_clone_rolls_back_after_validation(self):
        runtime, contract = _contract_with_clones(1)
        before = runtime_state(runtime)
        with pytest.raises(NestedCloneError):
            runtime.call(contract.internal_clone_mint, ctx("alice", DEPOSIT), "x", "c0", "bob")
        assert runtime_state(runtime) == before

    def test_refund_not_sent_for_failed_mint(self):
        runtime, contract = _contract_with_clones(0)
        with pytest.raises(InsufficientDeposit):
            runtime.call(contract.internal_clone_mint, ctx("alice", 10), "x", "o", "bob")
        assert runtime.transfers == []

    def test_failed_transfer_keeps_approvals(self):
        """A rejected transfer must not drop the approvals it read."""
        runtime, contract = _contract_with_clones(1)
        runtime.call(contract.nft_approve, ctx("bob", DEPOSIT), "c0", "market")
        before = runtime_state(runtime)
        with pytest.raises(NftError):
            runtime.call(contract.nft_transfer, one_yocto("mallory"), "carol", "c0")
        assert runtime_state(runtime) == before
        assert contract.nft_is_approved("c0", "market", 1)
