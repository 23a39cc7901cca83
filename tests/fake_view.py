"""
fake_view.py - Test Helper for TokenIndexView

Provides a minimal TokenIndexView implementation for testing the pure
enumeration functions without storage or a ledger.
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Tuple

from nftclone import EnumerationExtensionDisabled, TokenMetadata


class FakeView:
    """
    Minimal TokenIndexView implementation backed by plain lists and dicts.

    Example:
        view = FakeView(
            owners=[("1", "alice"), ("2", "bob")],
            metadata={"1": TokenMetadata(title="one")},
        )

        view.owner_token_count("bob")
        # Returns: 1
    """

    def __init__(
        self,
        owners: List[Tuple[str, str]],
        metadata: Optional[Dict[str, TokenMetadata]] = None,
        approvals: Optional[Dict[str, Dict[str, int]]] = None,
        per_owner_index: bool = True,
    ):
        self._owners = list(owners)
        self._metadata = metadata or {}
        self._approvals = approvals
        self._per_owner_index = per_owner_index

    def total_token_count(self) -> int:
        return len(self._owners)

    def iter_owned_tokens(self) -> Iterator[Tuple[str, str]]:
        return iter(self._owners)

    def owner_token_count(self, account_id: str) -> int:
        if not self._per_owner_index:
            raise EnumerationExtensionDisabled("no per-owner index")
        return sum(1 for _, owner in self._owners if owner == account_id)

    def iter_owner_tokens(self, account_id: str) -> Iterator[str]:
        return (token_id for token_id, owner in self._owners if owner == account_id)

    def metadata_for(self, token_id: str) -> Optional[TokenMetadata]:
        return self._metadata.get(token_id)

    def approved_account_ids(self, token_id: str) -> Optional[Dict[str, int]]:
        if self._approvals is None:
            return None
        return dict(self._approvals.get(token_id, {}))
