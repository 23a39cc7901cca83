"""
Core types for the cloneable non-fungible token ledger.

This module provides the foundational data structures and protocols:
1. Protocols: TokenIndexView for read-only access to the ownership index
2. Immutable data structures: CallContext, TokenMetadata, Token
3. Exceptions: NftError and domain-specific error types
4. Type aliases: TokenId, AccountId, ApprovedAccountIds
5. Storage prefixes: StorageKey

Nothing in this module touches storage. Stateful behaviour lives in
storage.py, ledger.py and clone.py.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import (
    Dict, Iterator, Optional, Any, Protocol, Tuple, Union, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Cost of one byte of persisted state, in yocto units (10^19 = 1e-5 NEAR).
STORAGE_BYTE_COST = 10 ** 19

# Fixed per-record overhead charged on top of key and value length.
RECORD_OVERHEAD_BYTES = 40

# Smallest deposit unit. State-changing token calls require exactly this much
# attached as a confirmation signal from a full-access key.
ONE_YOCTO = 1

# Event standard emitted in EVENT_JSON log lines.
NFT_STANDARD_NAME = "nep171"
NFT_STANDARD_VERSION = "1.0.0"


# ============================================================================
# TYPE ALIASES
# ============================================================================

TokenId = str
AccountId = str

# Mapping from approved account to the approval id it was granted with.
ApprovedAccountIds = Dict[AccountId, int]


# ============================================================================
# STORAGE PREFIXES
# ============================================================================

class StorageKey(Enum):
    """
    Single-byte prefixes for the persisted namespaces.

    The ledger owns the first four, the clone core owns the last two.
    Any bytes value can be used as a prefix instead; keeping the namespaces
    apart is the caller's responsibility.
    """
    NON_FUNGIBLE_TOKEN = b"\x00"
    TOKEN_METADATA = b"\x01"
    ENUMERATION = b"\x02"
    APPROVAL = b"\x03"
    CLONE_ORIGIN = b"\x04"
    CLONE_COUNT = b"\x05"


StoragePrefix = Union[StorageKey, bytes, str]


def prefix_bytes(prefix: StoragePrefix) -> bytes:
    """Normalise a StorageKey, bytes or str prefix to raw bytes."""
    if isinstance(prefix, StorageKey):
        return prefix.value
    if isinstance(prefix, bytes):
        return prefix
    if isinstance(prefix, str):
        return prefix.encode("utf-8")
    raise TypeError(f"Unsupported storage prefix type: {type(prefix).__name__}")


# ============================================================================
# EXCEPTIONS
# ============================================================================

class NftError(Exception):
    """Base exception for all token ledger errors."""
    pass


class TokenNotFound(NftError):
    """Raised when a token id has no record in the ownership index."""
    pass


class ConfigurationError(NftError):
    """Raised when an operation needs a ledger extension that was not configured."""
    pass


class MetadataExtensionDisabled(ConfigurationError):
    """Raised when the ledger was built without a metadata store."""
    pass


class EnumerationExtensionDisabled(ConfigurationError):
    """Raised when the ledger was built without a per-owner token index."""
    pass


class ApprovalExtensionDisabled(ConfigurationError):
    """Raised when the ledger was built without approval management."""
    pass


class InvalidArgument(NftError):
    """Base class for rejected caller arguments."""
    pass


class OutOfRange(InvalidArgument):
    """Raised when a pagination start index lies beyond the collection."""
    pass


class InvalidLimit(InvalidArgument):
    """Raised when a pagination limit of zero is given."""
    pass


class TokenAlreadyExists(NftError):
    """Raised when minting or registering an id that is already taken."""
    pass


class MetadataRequired(NftError):
    """Raised when minting without metadata while the metadata store is enabled."""
    pass


class InsufficientDeposit(NftError):
    """Raised when the attached deposit does not cover the storage a call used."""
    pass


class InvalidDeposit(NftError):
    """Raised when a call does not carry the one-yocto confirmation deposit."""
    pass


class Unauthorized(NftError):
    """Raised when the caller is neither the token owner nor approved for it."""
    pass


class NotApproved(Unauthorized):
    """Raised when a non-owner sender has no approval for the token."""
    pass


class ApprovalIdMismatch(Unauthorized):
    """Raised when the approval id given with a transfer is stale."""
    pass


class SameOwner(InvalidArgument):
    """Raised when a transfer names the current owner as receiver."""
    pass


class NestedCloneError(InvalidArgument):
    """Raised when a clone is requested from a token that is itself a clone."""
    pass


# ============================================================================
# CALL CONTEXT
# ============================================================================

@dataclass(frozen=True, slots=True)
class CallContext:
    """
    Explicit execution context of a single call.

    Attributes:
        predecessor_account_id: Account that invoked the call. Storage refunds
            and ownership checks are attributed to it.
        signer_account_id: Account that signed the originating transaction
            (defaults to the predecessor).
        attached_deposit: Deposit attached to the call, in yocto units.
    """
    predecessor_account_id: AccountId
    signer_account_id: Optional[AccountId] = None
    attached_deposit: int = 0

    def __post_init__(self):
        if not self.predecessor_account_id or not self.predecessor_account_id.strip():
            raise ValueError("CallContext predecessor_account_id cannot be empty")
        if self.signer_account_id is None:
            object.__setattr__(self, 'signer_account_id', self.predecessor_account_id)
        if not isinstance(self.attached_deposit, int) or isinstance(self.attached_deposit, bool):
            raise ValueError(
                f"attached_deposit must be int, got {type(self.attached_deposit).__name__}"
            )
        if self.attached_deposit < 0:
            raise ValueError(f"attached_deposit cannot be negative, got {self.attached_deposit}")


# ============================================================================
# TOKEN DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """
    Descriptive metadata of a token.

    All fields are optional. A metadata record with every field unset is the
    placeholder the clone mint writes and immediately deletes.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    media: Optional[str] = None
    media_hash: Optional[str] = None
    copies: Optional[int] = None
    issued_at: Optional[str] = None
    expires_at: Optional[str] = None
    starts_at: Optional[str] = None
    updated_at: Optional[str] = None
    extra: Optional[str] = None
    reference: Optional[str] = None
    reference_hash: Optional[str] = None

    @classmethod
    def empty(cls) -> TokenMetadata:
        """Return a metadata record with every field unset."""
        return cls()

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TokenMetadata:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown metadata fields: {sorted(unknown)}")
        return cls(**data)


@dataclass(frozen=True, slots=True)
class Token:
    """
    User-facing token record.

    Attributes:
        token_id: Unique token identifier.
        owner_id: Current owner.
        metadata: Metadata as stored or resolved; None when there is none.
        approved_account_ids: Approvals keyed by account, or None when the
            ledger has no approval management.
    """
    token_id: TokenId
    owner_id: AccountId
    metadata: Optional[TokenMetadata] = None
    approved_account_ids: Optional[ApprovedAccountIds] = field(default=None)

    def __repr__(self) -> str:
        title = self.metadata.title if self.metadata else None
        return f"Token({self.token_id} owner={self.owner_id} title={title!r})"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenIndexView(Protocol):
    """
    Read-only interface to the ownership index, used by enumeration.

    Functions accepting a TokenIndexView declare their read-only intent.
    NonFungibleToken implements it with direct metadata lookups,
    NonFungibleTokenClone implements it with clone-origin resolution.
    """

    def total_token_count(self) -> int:
        """Return the number of tokens in the global ownership index."""
        ...

    def iter_owned_tokens(self) -> Iterator[Tuple[TokenId, AccountId]]:
        """Yield (token_id, owner_id) pairs in ownership index order."""
        ...

    def owner_token_count(self, account_id: AccountId) -> int:
        """
        Return the number of tokens held by an account.

        Raises EnumerationExtensionDisabled if there is no per-owner index.
        """
        ...

    def iter_owner_tokens(self, account_id: AccountId) -> Iterator[TokenId]:
        """Yield the token ids held by an account in per-owner index order."""
        ...

    def metadata_for(self, token_id: TokenId) -> Optional[TokenMetadata]:
        """
        Return the metadata to show for a token, or None.

        Never raises, also when the view has no metadata store.
        """
        ...

    def approved_account_ids(self, token_id: TokenId) -> Optional[ApprovedAccountIds]:
        """Return the approvals of a token, or None without approval management."""
        ...
