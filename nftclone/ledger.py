"""
ledger.py - Non-Fungible Token Ledger

NonFungibleToken is the ownership ledger the clone core builds on. It owns:

    - The ownership index (token id -> owner), iterated in mint order
    - The metadata store (token id -> TokenMetadata), optional
    - The per-owner token sets used by enumeration, optional
    - Approval management (token id -> approved accounts), optional

Key responsibilities:
    - Mint, with metadata mandatory whenever the metadata store is enabled
    - Charge the storage a mint or approval used against the attached
      deposit and refund the remainder
    - Transfer and transfer-with-callback, including resolution of a
      receiver that asks for the token back
    - Approve, revoke, revoke-all and approval checks

All state lives in the Runtime's Storage under the prefixes given at
construction. Every failure raises; rollback is the Runtime's job.
"""

from __future__ import annotations
import hashlib
from typing import Iterable, Iterator, List, Optional, Tuple

from .core import (
    # Types
    AccountId, TokenId, ApprovedAccountIds, CallContext,
    Token, TokenMetadata, StoragePrefix, prefix_bytes,
    # Constants
    ONE_YOCTO,
    # Exceptions
    NftError, TokenNotFound, TokenAlreadyExists, MetadataRequired,
    InsufficientDeposit, InvalidDeposit, Unauthorized, NotApproved,
    ApprovalIdMismatch, SameOwner, ApprovalExtensionDisabled,
    EnumerationExtensionDisabled,
)
from .events import NftMint, NftTransfer
from .runtime import PromiseResult, Runtime
from .storage import INTERNAL_TAG, LookupMap, UnorderedMap, UnorderedSet
from . import enumeration


# ============================================================================
# DEPOSIT HELPERS
# ============================================================================

def assert_one_yocto(ctx: CallContext) -> None:
    """Require exactly one yocto attached as confirmation of a state change."""
    if ctx.attached_deposit != ONE_YOCTO:
        raise InvalidDeposit("Requires attached deposit of exactly 1 yoctoNEAR")


def assert_at_least_one_yocto(ctx: CallContext) -> None:
    if ctx.attached_deposit < ONE_YOCTO:
        raise InvalidDeposit("Requires attached deposit of at least 1 yoctoNEAR")


def bytes_for_approved_account_id(account_id: AccountId) -> int:
    """Storage taken by one approval entry: the account id, its length prefix and the u64 id."""
    return len(account_id.encode("utf-8")) + 4 + 8


def refund_deposit_to_account(
    runtime: Runtime,
    storage_used: int,
    account_id: AccountId,
    attached_deposit: int,
) -> None:
    """
    Charge storage_used bytes against the attached deposit and refund the rest.

    Raises:
        InsufficientDeposit: If the deposit does not cover the storage
    """
    required_cost = runtime.storage_byte_cost * storage_used
    if required_cost > attached_deposit:
        raise InsufficientDeposit(f"Must attach {required_cost} yoctoNEAR to cover storage")
    refund = attached_deposit - required_cost
    if refund > 1:
        runtime.transfer(account_id, refund)


def refund_approved_account_ids(
    runtime: Runtime,
    account_id: AccountId,
    approved_account_ids: Iterable[AccountId],
) -> None:
    """Return the storage cost of released approval entries to account_id."""
    storage_released = sum(bytes_for_approved_account_id(a) for a in approved_account_ids)
    if storage_released > 0:
        runtime.transfer(account_id, runtime.storage_byte_cost * storage_released)


# ============================================================================
# LEDGER
# ============================================================================

class NonFungibleToken:
    """
    Ownership ledger for non-fungible tokens with optional extensions.

    Implements the TokenIndexView protocol with direct metadata lookups, so
    the enumeration functions can list its tokens as stored.

    Example:
        runtime = Runtime("nft.example", verbose=False)
        nft = NonFungibleToken(
            runtime,
            StorageKey.NON_FUNGIBLE_TOKEN,
            "nft.example",
            token_metadata_prefix=StorageKey.TOKEN_METADATA,
            enumeration_prefix=StorageKey.ENUMERATION,
            approval_prefix=StorageKey.APPROVAL,
        )
        nft.internal_mint("1", "alice", TokenMetadata(title="Sunrise"))
    """

    def __init__(
        self,
        runtime: Runtime,
        owner_by_id_prefix: StoragePrefix,
        owner_id: AccountId,
        token_metadata_prefix: Optional[StoragePrefix] = None,
        enumeration_prefix: Optional[StoragePrefix] = None,
        approval_prefix: Optional[StoragePrefix] = None,
    ):
        """
        Create a ledger over the runtime's storage.

        Args:
            runtime: Host runtime providing storage, logs and transfers
            owner_by_id_prefix: Prefix of the ownership index
            owner_id: Account that owns the token contract
            token_metadata_prefix: Prefix of the metadata store (None disables it)
            enumeration_prefix: Prefix of the per-owner token sets (None disables it)
            approval_prefix: Prefix of approval management (None disables it)
        """
        storage = runtime.storage
        self.runtime = runtime
        self.owner_id = owner_id
        self.owner_by_id = UnorderedMap(storage, prefix_bytes(owner_by_id_prefix))

        self.token_metadata_by_id: Optional[LookupMap] = None
        if token_metadata_prefix is not None:
            self.token_metadata_by_id = LookupMap(
                storage,
                prefix_bytes(token_metadata_prefix),
                to_json=TokenMetadata.to_dict,
                from_json=TokenMetadata.from_dict,
            )

        # Values are the hex prefixes of each owner's UnorderedSet
        self.tokens_per_owner: Optional[LookupMap] = None
        if enumeration_prefix is not None:
            self.tokens_per_owner = LookupMap(storage, prefix_bytes(enumeration_prefix))

        self.approvals_by_id: Optional[LookupMap] = None
        self.next_approval_id_by_id: Optional[LookupMap] = None
        if approval_prefix is not None:
            approvals = prefix_bytes(approval_prefix)
            self.approvals_by_id = LookupMap(storage, approvals)
            self.next_approval_id_by_id = LookupMap(storage, approvals + INTERNAL_TAG + b"n")

    # ========================================================================
    # PER-OWNER INDEX
    # ========================================================================

    def _owner_set_prefix(self, account_id: AccountId) -> bytes:
        account_hash = hashlib.sha256(account_id.encode("utf-8")).digest()
        return self.tokens_per_owner.prefix + INTERNAL_TAG + b"s" + account_hash

    def _tokens_of(self, account_id: AccountId) -> Optional[UnorderedSet]:
        set_prefix = self.tokens_per_owner.get(account_id)
        if set_prefix is None:
            return None
        return UnorderedSet(self.runtime.storage, bytes.fromhex(set_prefix))

    def _add_to_owner(self, account_id: AccountId, token_id: TokenId) -> None:
        token_set = self._tokens_of(account_id)
        if token_set is None:
            set_prefix = self._owner_set_prefix(account_id)
            self.tokens_per_owner.insert(account_id, set_prefix.hex())
            token_set = UnorderedSet(self.runtime.storage, set_prefix)
        token_set.insert(token_id)

    # ========================================================================
    # MINT
    # ========================================================================

    def internal_mint(
        self,
        token_id: TokenId,
        token_owner_id: AccountId,
        token_metadata: Optional[TokenMetadata],
    ) -> Token:
        """Mint without charging storage, then emit an nft_mint event."""
        token = self.internal_mint_with_refund(token_id, token_owner_id, token_metadata)
        NftMint(owner_id=token.owner_id, token_ids=(token.token_id,)).emit(self.runtime)
        return token

    def internal_mint_with_refund(
        self,
        token_id: TokenId,
        token_owner_id: AccountId,
        token_metadata: Optional[TokenMetadata],
        refund_id: Optional[AccountId] = None,
        attached_deposit: int = 0,
    ) -> Token:
        """
        Create a token record.

        If refund_id is given, the storage the mint used is charged against
        attached_deposit and any remainder is transferred to refund_id.
        No event is emitted; callers emit their own.

        Raises:
            MetadataRequired: If the metadata store is enabled and no metadata is given
            TokenAlreadyExists: If token_id is already minted
            InsufficientDeposit: If attached_deposit does not cover the storage used
        """
        initial_storage_usage = self.runtime.storage_usage() if refund_id is not None else None

        if self.token_metadata_by_id is not None and token_metadata is None:
            raise MetadataRequired("Must provide metadata")
        if token_id in self.owner_by_id:
            raise TokenAlreadyExists("token_id must be unique")

        self.owner_by_id.insert(token_id, token_owner_id)

        if self.token_metadata_by_id is not None and token_metadata is not None:
            self.token_metadata_by_id.insert(token_id, token_metadata)

        if self.tokens_per_owner is not None:
            self._add_to_owner(token_owner_id, token_id)

        approved_account_ids = None
        if self.approvals_by_id is not None:
            approved_account_ids = self.approvals_by_id.get(token_id) or {}

        if refund_id is not None:
            storage_used = self.runtime.storage_usage() - initial_storage_usage
            refund_deposit_to_account(self.runtime, storage_used, refund_id, attached_deposit)

        return Token(
            token_id=token_id,
            owner_id=token_owner_id,
            metadata=token_metadata,
            approved_account_ids=approved_account_ids,
        )

    # ========================================================================
    # TRANSFER
    # ========================================================================

    def internal_transfer_unguarded(
        self,
        token_id: TokenId,
        from_id: AccountId,
        to_id: AccountId,
    ) -> None:
        """Move ownership and per-owner index entries without any checks."""
        self.owner_by_id.insert(token_id, to_id)

        if self.tokens_per_owner is not None:
            owner_tokens = self._tokens_of(from_id)
            if owner_tokens is None:
                raise NftError("Unable to access tokens per owner in unguarded call.")
            owner_tokens.remove(token_id)
            if owner_tokens.is_empty():
                self.tokens_per_owner.remove(from_id)
            self._add_to_owner(to_id, token_id)

    def internal_transfer(
        self,
        sender_id: AccountId,
        receiver_id: AccountId,
        token_id: TokenId,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> Tuple[AccountId, Optional[ApprovedAccountIds]]:
        """
        Transfer a token on behalf of sender_id.

        The sender must be the owner or hold an approval. Approvals are
        cleared by the transfer and returned so a callback can restore them.

        Returns:
            (previous owner, approvals the token had before the transfer)
        """
        owner_id = self.owner_by_id.get(token_id)
        if owner_id is None:
            raise TokenNotFound("Token not found")

        approved_account_ids = None
        if self.approvals_by_id is not None:
            approved_account_ids = self.approvals_by_id.remove(token_id)

        sender_id_authorized = None
        if sender_id != owner_id:
            if approved_account_ids is None:
                raise Unauthorized("Unauthorized")
            actual_approval_id = approved_account_ids.get(sender_id)
            if actual_approval_id is None:
                raise NotApproved("Sender not approved")
            if approval_id is not None and approval_id != actual_approval_id:
                raise ApprovalIdMismatch(
                    f"The actual approval_id {actual_approval_id} is different "
                    f"from the given approval_id {approval_id}"
                )
            sender_id_authorized = sender_id

        if owner_id == receiver_id:
            raise SameOwner("Current and next owner must differ")

        self.internal_transfer_unguarded(token_id, owner_id, receiver_id)
        NftTransfer(
            old_owner_id=owner_id,
            new_owner_id=receiver_id,
            token_ids=(token_id,),
            authorized_id=sender_id_authorized,
            memo=memo,
        ).emit(self.runtime)
        return owner_id, approved_account_ids

    def nft_transfer(
        self,
        ctx: CallContext,
        receiver_id: AccountId,
        token_id: TokenId,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> None:
        assert_one_yocto(ctx)
        self.internal_transfer(ctx.predecessor_account_id, receiver_id, token_id, approval_id, memo)

    def nft_transfer_call(
        self,
        ctx: CallContext,
        receiver_id: AccountId,
        token_id: TokenId,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        msg: str = "",
    ) -> bool:
        """
        Transfer a token and notify the receiver contract.

        The receiver's nft_on_transfer returns True to hand the token back.
        A missing or failing receiver also gets the token handed back.

        Returns:
            True if the receiver kept the token, False if it was returned
        """
        assert_one_yocto(ctx)
        sender_id = ctx.predecessor_account_id
        previous_owner_id, old_approvals = self.internal_transfer(
            sender_id, receiver_id, token_id, approval_id, memo
        )
        receiver_ctx = CallContext(
            predecessor_account_id=self.runtime.current_account_id,
            signer_account_id=ctx.signer_account_id,
        )
        result = self.runtime.call_contract(
            receiver_id, "nft_on_transfer", receiver_ctx,
            sender_id, previous_owner_id, token_id, msg,
        )
        return self.nft_resolve_transfer(
            previous_owner_id, receiver_id, token_id, old_approvals, result
        )

    def nft_resolve_transfer(
        self,
        previous_owner_id: AccountId,
        receiver_id: AccountId,
        token_id: TokenId,
        approved_account_ids: Optional[ApprovedAccountIds],
        receiver_result: PromiseResult,
    ) -> bool:
        """
        Settle a transfer-with-callback once the receiver has answered.

        The token goes back to previous_owner_id when the receiver failed,
        answered anything but False, and still owns the token. Approvals the
        previous owner had are then restored.
        """
        if receiver_result.is_successful and isinstance(receiver_result.value, bool):
            must_revert = receiver_result.value
        else:
            must_revert = True
        if not must_revert:
            return True

        current_owner = self.owner_by_id.get(token_id)
        if current_owner is None:
            if approved_account_ids is not None:
                refund_approved_account_ids(self.runtime, previous_owner_id, approved_account_ids)
            return True
        if current_owner != receiver_id:
            # The receiver already passed the token on.
            return True

        self.internal_transfer_unguarded(token_id, receiver_id, previous_owner_id)

        if self.approvals_by_id is not None:
            receiver_approvals = self.approvals_by_id.get(token_id)
            if receiver_approvals:
                refund_approved_account_ids(self.runtime, receiver_id, receiver_approvals)
            if approved_account_ids is not None:
                self.approvals_by_id.insert(token_id, approved_account_ids)
            else:
                self.approvals_by_id.remove(token_id)

        NftTransfer(
            old_owner_id=receiver_id,
            new_owner_id=previous_owner_id,
            token_ids=(token_id,),
        ).emit(self.runtime)
        return False

    # ========================================================================
    # APPROVAL MANAGEMENT
    # ========================================================================

    def _require_approvals(self) -> LookupMap:
        if self.approvals_by_id is None:
            raise ApprovalExtensionDisabled("NFT does not support Approval Management")
        return self.approvals_by_id

    def _require_owner(self, ctx: CallContext, token_id: TokenId) -> AccountId:
        owner_id = self.owner_by_id.get(token_id)
        if owner_id is None:
            raise TokenNotFound("Token not found")
        if ctx.predecessor_account_id != owner_id:
            raise Unauthorized("Predecessor must be token owner.")
        return owner_id

    def nft_approve(
        self,
        ctx: CallContext,
        token_id: TokenId,
        account_id: AccountId,
        msg: Optional[str] = None,
    ) -> Optional[PromiseResult]:
        """
        Grant account_id the right to transfer token_id.

        Each approval gets a fresh id. A new entry's storage is charged
        against the attached deposit. With msg, the approved account's
        nft_on_approve is called and its result returned.
        """
        assert_at_least_one_yocto(ctx)
        approvals_by_id = self._require_approvals()
        owner_id = self._require_owner(ctx, token_id)

        approved_account_ids = approvals_by_id.get(token_id) or {}
        approval_id = self.next_approval_id_by_id.get(token_id) or 1
        old_approval_id = approved_account_ids.get(account_id)
        approved_account_ids[account_id] = approval_id
        approvals_by_id.insert(token_id, approved_account_ids)
        self.next_approval_id_by_id.insert(token_id, approval_id + 1)

        storage_used = bytes_for_approved_account_id(account_id) if old_approval_id is None else 0
        refund_deposit_to_account(
            self.runtime, storage_used, ctx.predecessor_account_id, ctx.attached_deposit
        )

        if msg is None:
            return None
        approver_ctx = CallContext(
            predecessor_account_id=self.runtime.current_account_id,
            signer_account_id=ctx.signer_account_id,
        )
        return self.runtime.call_contract(
            account_id, "nft_on_approve", approver_ctx, token_id, owner_id, approval_id, msg
        )

    def nft_revoke(self, ctx: CallContext, token_id: TokenId, account_id: AccountId) -> None:
        assert_one_yocto(ctx)
        approvals_by_id = self._require_approvals()
        self._require_owner(ctx, token_id)

        approved_account_ids = approvals_by_id.get(token_id)
        if approved_account_ids is None or account_id not in approved_account_ids:
            return
        del approved_account_ids[account_id]
        refund_approved_account_ids(self.runtime, ctx.predecessor_account_id, [account_id])
        if approved_account_ids:
            approvals_by_id.insert(token_id, approved_account_ids)
        else:
            approvals_by_id.remove(token_id)

    def nft_revoke_all(self, ctx: CallContext, token_id: TokenId) -> None:
        assert_one_yocto(ctx)
        approvals_by_id = self._require_approvals()
        self._require_owner(ctx, token_id)

        approved_account_ids = approvals_by_id.get(token_id)
        if approved_account_ids:
            refund_approved_account_ids(
                self.runtime, ctx.predecessor_account_id, approved_account_ids
            )
            approvals_by_id.remove(token_id)

    def nft_is_approved(
        self,
        token_id: TokenId,
        approved_account_id: AccountId,
        approval_id: Optional[int] = None,
    ) -> bool:
        if token_id not in self.owner_by_id:
            raise TokenNotFound("Token not found")
        if self.approvals_by_id is None:
            return False
        approved_account_ids = self.approvals_by_id.get(token_id)
        if approved_account_ids is None:
            return False
        actual_approval_id = approved_account_ids.get(approved_account_id)
        if actual_approval_id is None:
            return False
        if approval_id is not None:
            return actual_approval_id == approval_id
        return True

    # ========================================================================
    # VIEWS
    # ========================================================================

    def nft_token(self, token_id: TokenId) -> Optional[Token]:
        """Return the stored token record, or None if token_id was never minted."""
        owner_id = self.owner_by_id.get(token_id)
        if owner_id is None:
            return None
        return Token(
            token_id=token_id,
            owner_id=owner_id,
            metadata=self.metadata_for(token_id),
            approved_account_ids=self.approved_account_ids(token_id),
        )

    # TokenIndexView

    def total_token_count(self) -> int:
        return len(self.owner_by_id)

    def iter_owned_tokens(self) -> Iterator[Tuple[TokenId, AccountId]]:
        return self.owner_by_id.items()

    def owner_token_count(self, account_id: AccountId) -> int:
        if self.tokens_per_owner is None:
            raise EnumerationExtensionDisabled(
                "Could not find tokens_per_owner when calling a method on the "
                "enumeration standard."
            )
        token_set = self._tokens_of(account_id)
        return 0 if token_set is None else len(token_set)

    def iter_owner_tokens(self, account_id: AccountId) -> Iterator[TokenId]:
        token_set = self._tokens_of(account_id)
        return iter(()) if token_set is None else iter(token_set)

    def metadata_for(self, token_id: TokenId) -> Optional[TokenMetadata]:
        if self.token_metadata_by_id is None:
            return None
        return self.token_metadata_by_id.get(token_id)

    def approved_account_ids(self, token_id: TokenId) -> Optional[ApprovedAccountIds]:
        if self.approvals_by_id is None:
            return None
        return self.approvals_by_id.get(token_id) or {}

    # Enumeration

    def nft_total_supply(self) -> int:
        return self.total_token_count()

    def nft_tokens(self, from_index: Optional[int] = None, limit: Optional[int] = None) -> List[Token]:
        return enumeration.nft_tokens(self, from_index, limit)

    def nft_supply_for_owner(self, account_id: AccountId) -> int:
        return self.owner_token_count(account_id)

    def nft_tokens_for_owner(
        self,
        account_id: AccountId,
        from_index: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Token]:
        return enumeration.nft_tokens_for_owner(self, account_id, from_index, limit)
