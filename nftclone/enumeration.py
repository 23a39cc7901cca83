"""
enumeration.py - Paginated Token Listing

Pure functions over a read-only TokenIndexView:
1. enum_get_token() - Assemble one Token from an index entry
2. nft_tokens() - Page through the global ownership index
3. nft_tokens_for_owner() - Page through one owner's token set

Ordering is exactly the index order of the view; nothing is re-sorted.
Pagination is stateless, so repeated calls against unchanged state return
identical pages. Metadata comes from view.metadata_for(), which is where a
clone ledger applies origin resolution.
"""

from __future__ import annotations
from itertools import islice
from typing import Iterable, List, Optional, TypeVar

from .core import (
    AccountId, TokenId, Token, TokenIndexView,
    InvalidLimit, OutOfRange,
)


T = TypeVar("T")


def enum_get_token(view: TokenIndexView, owner_id: AccountId, token_id: TokenId) -> Token:
    """Build the Token for an index entry with the view's metadata and approvals."""
    return Token(
        token_id=token_id,
        owner_id=owner_id,
        metadata=view.metadata_for(token_id),
        approved_account_ids=view.approved_account_ids(token_id),
    )


def _start_index(from_index: Optional[int]) -> int:
    start = from_index if from_index is not None else 0
    if start < 0:
        raise OutOfRange(f"from_index must be non-negative, got {start}")
    return start


def _check_limit(limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    if limit == 0:
        raise InvalidLimit("Cannot provide limit of 0.")
    if limit < 0:
        raise InvalidLimit(f"limit must be positive, got {limit}")
    return limit


def _page(items: Iterable[T], start: int, limit: Optional[int]) -> Iterable[T]:
    stop = None if limit is None else start + limit
    return islice(items, start, stop)


def nft_tokens(
    view: TokenIndexView,
    from_index: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Token]:
    """
    List tokens from the global ownership index.

    Args:
        view: Read-only index access
        from_index: Number of entries to skip (default 0)
        limit: Maximum number of entries (default unbounded)

    Returns:
        Up to limit tokens, starting at from_index

    Raises:
        OutOfRange: If from_index exceeds the total token count
        InvalidLimit: If limit is 0
    """
    start = _start_index(from_index)
    if view.total_token_count() < start:
        raise OutOfRange("Out of bounds, please use a smaller from_index.")
    limit = _check_limit(limit)
    return [
        enum_get_token(view, owner_id, token_id)
        for token_id, owner_id in _page(view.iter_owned_tokens(), start, limit)
    ]


def nft_tokens_for_owner(
    view: TokenIndexView,
    account_id: AccountId,
    from_index: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Token]:
    """
    List the tokens held by one account.

    An account without tokens yields an empty list whatever the pagination
    arguments. Otherwise from_index must point at an existing entry.

    Raises:
        EnumerationExtensionDisabled: If the view has no per-owner index
        InvalidLimit: If limit is 0
        OutOfRange: If from_index is not below the owner's token count
    """
    owned = view.owner_token_count(account_id)
    if owned == 0:
        return []
    limit = _check_limit(limit)
    start = _start_index(from_index)
    if owned <= start:
        raise OutOfRange("Out of bounds, please use a smaller from_index.")
    return [
        enum_get_token(view, account_id, token_id)
        for token_id in _page(view.iter_owner_tokens(account_id), start, limit)
    ]
