"""
clone.py - Cloneable Token Ledger

A clone is a token that shares the metadata of an earlier "origin" token
instead of storing its own copy. This module provides:

1. CloneRegistry - clone id -> origin id, insert-only, key-ordered
2. CloneCounter - origin id -> number of clones minted from it
3. NonFungibleTokenClone - composes a NonFungibleToken with the two maps:
   - internal_clone_mint(): two-phase clone mint
   - resolve_metadata(): one-hop metadata indirection
   - nft_token() and enumeration with resolved metadata
   - transfer and approval calls forwarded to the ledger unchanged

Two-phase mint:
    The ledger refuses to mint without metadata while its metadata store is
    enabled, yet a clone must hold no metadata record of its own. The clone
    is therefore minted with an all-empty placeholder record which is
    deleted again before the call returns. Under Runtime.call the whole
    sequence commits or rolls back as one unit, so the placeholder is never
    observable from outside.

Invariants:
    - A clone id never has a record in the metadata store.
    - An origin id never appears as a key in CloneRegistry (single-depth).
    - CloneCounter values only grow, by exactly 1 per successful clone mint.
"""

from __future__ import annotations
from typing import Iterator, List, Optional, Tuple

from .core import (
    AccountId, TokenId, ApprovedAccountIds, CallContext,
    Token, TokenMetadata, StoragePrefix, prefix_bytes,
    TokenNotFound, TokenAlreadyExists, MetadataExtensionDisabled,
    NestedCloneError,
)
from .events import NftMint
from .ledger import NonFungibleToken
from .runtime import PromiseResult, Runtime
from .storage import LookupMap, Storage, TreeMap
from . import enumeration


class CloneRegistry:
    """
    Insert-only mapping from clone id to origin id.

    An id without an entry is its own origin.
    """

    def __init__(self, storage: Storage, prefix: bytes):
        self._by_clone = TreeMap(storage, prefix)

    def register(self, clone_id: TokenId, origin_id: TokenId) -> None:
        if clone_id in self._by_clone:
            raise TokenAlreadyExists(f"Token {clone_id} is already registered as a clone")
        self._by_clone.insert(clone_id, origin_id)

    def get(self, token_id: TokenId) -> Optional[TokenId]:
        return self._by_clone.get(token_id)

    def is_clone(self, token_id: TokenId) -> bool:
        return token_id in self._by_clone

    def resolve_origin(self, token_id: TokenId) -> TokenId:
        """Return the registered origin of token_id, or token_id itself."""
        origin_id = self._by_clone.get(token_id)
        return token_id if origin_id is None else origin_id

    def items(self) -> Iterator[Tuple[TokenId, TokenId]]:
        """Yield (clone_id, origin_id) pairs in ascending clone id order."""
        return self._by_clone.items()

    def __len__(self) -> int:
        return len(self._by_clone)


class CloneCounter:
    """Number of clones minted per origin id. Absent means 0."""

    def __init__(self, storage: Storage, prefix: bytes):
        self._by_origin = LookupMap(storage, prefix)

    def get(self, origin_id: TokenId) -> int:
        return self._by_origin.get(origin_id) or 0

    def increment(self, origin_id: TokenId) -> int:
        count = self.get(origin_id) + 1
        self._by_origin.insert(origin_id, count)
        return count


class NonFungibleTokenClone:
    """
    Token ledger with metadata-sharing clones.

    Holds a NonFungibleToken by composition and forwards the standard token
    operations to it. Every read path resolves clone metadata through the
    origin. Implements the TokenIndexView protocol for enumeration.

    Example:
        runtime = Runtime("nft.example", verbose=False)
        contract = NonFungibleTokenClone(
            runtime,
            StorageKey.NON_FUNGIBLE_TOKEN,
            "nft.example",
            token_metadata_prefix=StorageKey.TOKEN_METADATA,
            enumeration_prefix=StorageKey.ENUMERATION,
            approval_prefix=StorageKey.APPROVAL,
            clone_prefix=StorageKey.CLONE_ORIGIN,
            clone_count_prefix=StorageKey.CLONE_COUNT,
        )
        contract.nft.internal_mint("1", "alice", TokenMetadata(title="Sunrise"))
        ctx = CallContext("alice", attached_deposit=10**24)
        runtime.call(contract.internal_clone_mint, ctx, "2", "1", "bob")
        contract.nft_token("2").metadata.title   # "Sunrise"
    """

    def __init__(
        self,
        runtime: Runtime,
        owner_by_id_prefix: StoragePrefix,
        owner_id: AccountId,
        token_metadata_prefix: Optional[StoragePrefix],
        enumeration_prefix: Optional[StoragePrefix],
        approval_prefix: Optional[StoragePrefix],
        clone_prefix: StoragePrefix,
        clone_count_prefix: StoragePrefix,
    ):
        self.runtime = runtime
        self.nft = NonFungibleToken(
            runtime,
            owner_by_id_prefix,
            owner_id,
            token_metadata_prefix,
            enumeration_prefix,
            approval_prefix,
        )
        self.clone_registry = CloneRegistry(runtime.storage, prefix_bytes(clone_prefix))
        self.clone_counter = CloneCounter(runtime.storage, prefix_bytes(clone_count_prefix))

    # ========================================================================
    # MINT
    # ========================================================================

    def nft_mint(
        self,
        ctx: CallContext,
        token_id: TokenId,
        token_owner_id: AccountId,
        token_metadata: TokenMetadata,
    ) -> Token:
        """Mint an origin token with its own metadata, refunding unused deposit to the caller."""
        token = self.nft.internal_mint_with_refund(
            token_id,
            token_owner_id,
            token_metadata,
            refund_id=ctx.predecessor_account_id,
            attached_deposit=ctx.attached_deposit,
        )
        NftMint(owner_id=token.owner_id, token_ids=(token.token_id,)).emit(self.runtime)
        return token

    def internal_clone_mint(
        self,
        ctx: CallContext,
        token_id: TokenId,
        clone_from_id: TokenId,
        token_owner_id: AccountId,
    ) -> Token:
        """
        Mint token_id as a clone of clone_from_id, owned by token_owner_id.

        Storage used by the mint is charged against ctx.attached_deposit and
        the remainder refunded to ctx.predecessor_account_id.

        Returns:
            The token as minted by the ledger. Its metadata is the empty
            placeholder; use nft_token() for the resolved record.

        Raises:
            MetadataExtensionDisabled: If the ledger has no metadata store
            NestedCloneError: If clone_from_id is itself a clone, equals token_id,
                or token_id has already been cloned from
            TokenAlreadyExists: If token_id is already minted
            InsufficientDeposit: If the deposit does not cover the storage used
        """
        metadata_by_id = self.nft.token_metadata_by_id
        if metadata_by_id is None:
            raise MetadataExtensionDisabled("Token metadata extension must be used to clone.")
        if self.clone_registry.is_clone(clone_from_id):
            raise NestedCloneError(
                f"Token {clone_from_id} is a clone of "
                f"{self.clone_registry.get(clone_from_id)}; clone from the origin instead"
            )
        if clone_from_id == token_id:
            raise NestedCloneError(f"Token {token_id} cannot be cloned from itself")
        # Every id ever cloned from has a counter entry, minted or not.
        if self.clone_counter.get(token_id) > 0:
            raise NestedCloneError(
                f"Token {token_id} is already an origin of "
                f"{self.clone_counter.get(token_id)} clone(s) and cannot become a clone"
            )

        # The ledger will not mint without metadata.
        token = self.nft.internal_mint_with_refund(
            token_id,
            token_owner_id,
            TokenMetadata.empty(),
            refund_id=ctx.predecessor_account_id,
            attached_deposit=ctx.attached_deposit,
        )
        metadata_by_id.remove(token_id)

        count = self.clone_counter.increment(clone_from_id)
        self.clone_registry.register(token_id, clone_from_id)

        NftMint(owner_id=token.owner_id, token_ids=(token.token_id,)).emit(self.runtime)
        if self.runtime.verbose:
            print(f"✓ CLONED: {token_id} <- {clone_from_id} (clone #{count}) owner={token_owner_id}")
        return token

    # ========================================================================
    # METADATA RESOLUTION
    # ========================================================================

    def resolve_metadata(self, token_id: TokenId) -> Optional[TokenMetadata]:
        """
        Return the metadata record that describes token_id.

        Clones read their origin's record; every other id reads its own.
        None means the resolved id has no record.

        Raises:
            MetadataExtensionDisabled: If the ledger has no metadata store
        """
        metadata_by_id = self.nft.token_metadata_by_id
        if metadata_by_id is None:
            raise MetadataExtensionDisabled("Token not found within metadata")
        return metadata_by_id.get(self.clone_registry.resolve_origin(token_id))

    def nft_clone_origin(self, token_id: TokenId) -> Optional[TokenId]:
        """Return the origin token_id was cloned from, or None for non-clones."""
        return self.clone_registry.get(token_id)

    def nft_clone_count(self, token_id: TokenId) -> int:
        """Return how many clones were minted from token_id."""
        return self.clone_counter.get(token_id)

    # ========================================================================
    # CORE
    # ========================================================================

    def nft_transfer(
        self,
        ctx: CallContext,
        receiver_id: AccountId,
        token_id: TokenId,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> None:
        self.nft.nft_transfer(ctx, receiver_id, token_id, approval_id, memo)

    def nft_transfer_call(
        self,
        ctx: CallContext,
        receiver_id: AccountId,
        token_id: TokenId,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        msg: str = "",
    ) -> bool:
        return self.nft.nft_transfer_call(ctx, receiver_id, token_id, approval_id, memo, msg)

    def nft_token(self, token_id: TokenId) -> Optional[Token]:
        """
        Return token_id with its resolved metadata.

        Raises:
            TokenNotFound: If token_id was never minted
            MetadataExtensionDisabled: If the ledger has no metadata store
        """
        base = self.nft.nft_token(token_id)
        if base is None:
            raise TokenNotFound("Token does not exist")
        return Token(
            token_id=base.token_id,
            owner_id=base.owner_id,
            metadata=self.resolve_metadata(token_id),
            approved_account_ids=base.approved_account_ids,
        )

    # ========================================================================
    # APPROVAL MANAGEMENT
    # ========================================================================

    def nft_approve(
        self,
        ctx: CallContext,
        token_id: TokenId,
        account_id: AccountId,
        msg: Optional[str] = None,
    ) -> Optional[PromiseResult]:
        return self.nft.nft_approve(ctx, token_id, account_id, msg)

    def nft_revoke(self, ctx: CallContext, token_id: TokenId, account_id: AccountId) -> None:
        self.nft.nft_revoke(ctx, token_id, account_id)

    def nft_revoke_all(self, ctx: CallContext, token_id: TokenId) -> None:
        self.nft.nft_revoke_all(ctx, token_id)

    def nft_is_approved(
        self,
        token_id: TokenId,
        approved_account_id: AccountId,
        approval_id: Optional[int] = None,
    ) -> bool:
        return self.nft.nft_is_approved(token_id, approved_account_id, approval_id)

    # ========================================================================
    # ENUMERATION
    # ========================================================================

    # TokenIndexView

    def total_token_count(self) -> int:
        return self.nft.total_token_count()

    def iter_owned_tokens(self) -> Iterator[Tuple[TokenId, AccountId]]:
        return self.nft.iter_owned_tokens()

    def owner_token_count(self, account_id: AccountId) -> int:
        return self.nft.owner_token_count(account_id)

    def iter_owner_tokens(self, account_id: AccountId) -> Iterator[TokenId]:
        return self.nft.iter_owner_tokens(account_id)

    def metadata_for(self, token_id: TokenId) -> Optional[TokenMetadata]:
        # Listing tolerates a missing metadata store and shows no metadata.
        metadata_by_id = self.nft.token_metadata_by_id
        if metadata_by_id is None:
            return None
        return metadata_by_id.get(self.clone_registry.resolve_origin(token_id))

    def approved_account_ids(self, token_id: TokenId) -> Optional[ApprovedAccountIds]:
        return self.nft.approved_account_ids(token_id)

    def nft_total_supply(self) -> int:
        return self.nft.nft_total_supply()

    def nft_tokens(self, from_index: Optional[int] = None, limit: Optional[int] = None) -> List[Token]:
        return enumeration.nft_tokens(self, from_index, limit)

    def nft_supply_for_owner(self, account_id: AccountId) -> int:
        return self.nft.nft_supply_for_owner(account_id)

    def nft_tokens_for_owner(
        self,
        account_id: AccountId,
        from_index: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Token]:
        return enumeration.nft_tokens_for_owner(self, account_id, from_index, limit)
