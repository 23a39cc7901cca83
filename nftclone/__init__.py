"""
nftclone - Non-Fungible Token Ledger with Metadata-Sharing Clones

A token ledger whose clones reuse the metadata of an origin token instead of
storing a copy.

Usage:
    from nftclone import (
        Runtime, NonFungibleTokenClone, StorageKey, TokenMetadata, CallContext,
    )

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

    # Mint an origin with metadata, then a clone that shares it
    contract.nft.internal_mint("1", "alice", TokenMetadata(title="Sunrise"))
    ctx = CallContext("alice", attached_deposit=10**24)
    runtime.call(contract.internal_clone_mint, ctx, "2", "1", "bob")

    contract.nft_token("2").metadata.title   # "Sunrise"
    contract.nft_clone_count("1")            # 1
"""

# Core types
from .core import (
    TokenIndexView,
    CallContext,
    TokenMetadata,
    Token,
    StorageKey,
    TokenId,
    AccountId,
    ApprovedAccountIds,
    prefix_bytes,
    NftError,
    TokenNotFound,
    ConfigurationError,
    MetadataExtensionDisabled,
    EnumerationExtensionDisabled,
    ApprovalExtensionDisabled,
    InvalidArgument,
    OutOfRange,
    InvalidLimit,
    TokenAlreadyExists,
    MetadataRequired,
    InsufficientDeposit,
    InvalidDeposit,
    Unauthorized,
    NotApproved,
    ApprovalIdMismatch,
    SameOwner,
    NestedCloneError,
    STORAGE_BYTE_COST,
    RECORD_OVERHEAD_BYTES,
    ONE_YOCTO,
)

# Storage
from .storage import (
    Storage,
    LookupMap,
    TreeMap,
    Vector,
    UnorderedMap,
    UnorderedSet,
)

# Runtime
from .runtime import (
    Runtime,
    PromiseResult,
    PromiseStatus,
    Transfer,
)

# Events
from .events import (
    NftMint,
    NftTransfer,
    format_event,
    parse_event,
    events_in,
)

# Ledger
from .ledger import NonFungibleToken

# Clones
from .clone import (
    CloneRegistry,
    CloneCounter,
    NonFungibleTokenClone,
)

# Enumeration
from .enumeration import (
    enum_get_token,
    nft_tokens,
    nft_tokens_for_owner,
)

__all__ = [
    # Core
    'TokenIndexView', 'CallContext', 'TokenMetadata', 'Token', 'StorageKey',
    'TokenId', 'AccountId', 'ApprovedAccountIds', 'prefix_bytes',
    'NftError', 'TokenNotFound', 'ConfigurationError', 'MetadataExtensionDisabled',
    'EnumerationExtensionDisabled', 'ApprovalExtensionDisabled',
    'InvalidArgument', 'OutOfRange', 'InvalidLimit',
    'TokenAlreadyExists', 'MetadataRequired', 'InsufficientDeposit', 'InvalidDeposit',
    'Unauthorized', 'NotApproved', 'ApprovalIdMismatch', 'SameOwner', 'NestedCloneError',
    'STORAGE_BYTE_COST', 'RECORD_OVERHEAD_BYTES', 'ONE_YOCTO',
    # Storage
    'Storage', 'LookupMap', 'TreeMap', 'Vector', 'UnorderedMap', 'UnorderedSet',
    # Runtime
    'Runtime', 'PromiseResult', 'PromiseStatus', 'Transfer',
    # Events
    'NftMint', 'NftTransfer', 'format_event', 'parse_event', 'events_in',
    # Ledger
    'NonFungibleToken',
    # Clones
    'CloneRegistry', 'CloneCounter', 'NonFungibleTokenClone',
    # Enumeration
    'enum_get_token', 'nft_tokens', 'nft_tokens_for_owner',
]

__version__ = '1.0.0'
