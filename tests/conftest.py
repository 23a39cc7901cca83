"""
conftest.py - Shared pytest fixtures for token ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Quiet runtimes
- Clone contracts and plain ledgers with every extension enabled
- A contract with origin token "1" already minted
"""

import pytest

from nftclone import Runtime, TokenMetadata

from tests.contract_helpers import CONTRACT_ACCOUNT, make_contract, make_ledger


@pytest.fixture
def runtime():
    """Quiet runtime with empty storage."""
    return Runtime(CONTRACT_ACCOUNT, verbose=False)


@pytest.fixture
def contract(runtime):
    """Clone contract with every ledger extension enabled."""
    return make_contract(runtime)


@pytest.fixture
def ledger(runtime):
    """Plain ledger with every extension enabled."""
    return make_ledger(runtime)


@pytest.fixture
def origin_metadata():
    return TokenMetadata(title="title", description="description")


@pytest.fixture
def origin_contract(contract, origin_metadata):
    """Clone contract with origin "1" minted to alice."""
    contract.nft.internal_mint("1", "alice", origin_metadata)
    return contract
