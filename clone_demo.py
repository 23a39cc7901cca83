#!/usr/bin/env python3
"""
clone_demo.py - Interactive Tutorial: Tokens That Share Metadata

Walks through the clone ledger one step at a time. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The runtime, the contract, the first origin token
  4-6:  Clones       - Minting clones, metadata resolution, storage refunds
  7-9:  Guarantees   - Rejected clones, atomic rollback, paginated listing

Run:
    python clone_demo.py           # Interactive mode (press Enter for each step)
    python clone_demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from nftclone import (
    # Host and contract
    Runtime, NonFungibleTokenClone, StorageKey,
    # Types
    CallContext, TokenMetadata,
    # Constants
    STORAGE_BYTE_COST,
    # Events
    events_in,
    # Exceptions
    NftError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    contract_account: str = "nft.clone"
    origin_owner: str = "alice"
    clone_owner: str = "bob"
    num_clones: int = 10
    deposit: int = 10 ** 24
    page_size: int = 4


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_runtime() -> Runtime:
    step_header(1, "The Runtime",
        "The runtime owns storage, logs and refunds, and runs each call atomically.")

    print(f">>> runtime = Runtime({CONFIG.contract_account!r}, verbose=True)")
    runtime = Runtime(CONFIG.contract_account, verbose=True)

    section_header("Initial State")
    print(f"Storage records:  {len(runtime.storage)}")
    print(f"Storage usage:    {runtime.storage_usage()} bytes")
    print(f"Byte cost:        {runtime.storage_byte_cost} yocto")
    return runtime


def step_02_contract(runtime: Runtime) -> NonFungibleTokenClone:
    step_header(2, "The Clone Contract",
        "Every namespace of the contract lives under its own storage prefix.")

    contract = NonFungibleTokenClone(
        runtime,
        StorageKey.NON_FUNGIBLE_TOKEN,
        CONFIG.contract_account,
        token_metadata_prefix=StorageKey.TOKEN_METADATA,
        enumeration_prefix=StorageKey.ENUMERATION,
        approval_prefix=StorageKey.APPROVAL,
        clone_prefix=StorageKey.CLONE_ORIGIN,
        clone_count_prefix=StorageKey.CLONE_COUNT,
    )
    for key in StorageKey:
        print(f"  {key.name:<20} prefix={key.value!r}")
    return contract


def step_03_origin(runtime: Runtime, contract: NonFungibleTokenClone) -> TokenMetadata:
    step_header(3, "Minting the Origin",
        "An origin token carries its own metadata record.")

    metadata = TokenMetadata(
        title="Sunrise over the harbour",
        description="The first light of the year",
        media="ipfs://sunrise",
        copies=CONFIG.num_clones + 1,
    )
    ctx = CallContext(CONFIG.origin_owner, attached_deposit=CONFIG.deposit)
    runtime.call(contract.nft_mint, ctx, "1", CONFIG.origin_owner, metadata)

    section_header("Origin")
    print(contract.nft_token("1"))
    print(f"Storage usage:    {runtime.storage_usage()} bytes")
    return metadata


# ============================================================================
# PHASE 2: CLONES (Steps 4-6)
# ============================================================================

def step_04_clone(runtime: Runtime, contract: NonFungibleTokenClone):
    step_header(4, "Minting Clones",
        "A clone is a full token whose metadata lives only on its origin.")

    usage_before = runtime.storage_usage()
    ctx = CallContext(CONFIG.origin_owner, attached_deposit=CONFIG.deposit)
    for i in range(2, CONFIG.num_clones + 2):
        runtime.call(contract.internal_clone_mint, ctx, str(i), "1", CONFIG.clone_owner)

    section_header("Bookkeeping")
    print(f"Clones of 1:      {contract.nft_clone_count('1')}")
    print(f"Origin of 2:      {contract.nft_clone_origin('2')}")
    print(f"Total supply:     {contract.nft_total_supply()}")
    per_clone = (runtime.storage_usage() - usage_before) // CONFIG.num_clones
    print(f"Bytes per clone:  {per_clone}")


def step_05_resolution(contract: NonFungibleTokenClone, metadata: TokenMetadata):
    step_header(5, "Metadata Resolution",
        "Reading a clone follows one hop to its origin's record.")

    clone = contract.nft_token("2")
    print(clone)
    print(f"Same record as origin: {clone.metadata == metadata}")
    has_record = contract.nft.token_metadata_by_id.contains_key("2")
    print(f"Clone has own record:  {has_record}")


def step_06_refunds(runtime: Runtime):
    step_header(6, "Storage Refunds",
        "Each mint is charged for the bytes it wrote; the rest goes back to the caller.")

    refunded = runtime.refunds_to(CONFIG.origin_owner)
    mints = len(events_in(runtime.logs, "nft_mint"))
    charged = mints * CONFIG.deposit - refunded
    print(f"Mints:             {mints}")
    print(f"Deposited:         {mints * CONFIG.deposit} yocto")
    print(f"Refunded:          {refunded} yocto")
    print(f"Charged:           {charged} yocto ({charged // STORAGE_BYTE_COST} bytes)")


# ============================================================================
# PHASE 3: GUARANTEES (Steps 7-9)
# ============================================================================

def step_07_rejections(runtime: Runtime, contract: NonFungibleTokenClone):
    step_header(7, "Rejected Clones",
        "Clones of clones and re-used ids are refused.")

    ctx = CallContext(CONFIG.origin_owner, attached_deposit=CONFIG.deposit)
    for token_id, origin_id in [("100", "2"), ("3", "1")]:
        try:
            runtime.call(contract.internal_clone_mint, ctx, token_id, origin_id, "carol")
        except NftError as e:
            print(f"  {type(e).__name__}: {e}")


def step_08_atomicity(runtime: Runtime, contract: NonFungibleTokenClone):
    step_header(8, "Atomic Rollback",
        "An underfunded clone leaves no placeholder, counter bump or registry entry.")

    before = (runtime.storage_usage(), len(runtime.logs), contract.nft_clone_count("1"))
    try:
        runtime.call(contract.internal_clone_mint, CallContext("carol", attached_deposit=1),
                     "200", "1", "carol")
    except NftError as e:
        print(f"  {type(e).__name__}: {e}")
    after = (runtime.storage_usage(), len(runtime.logs), contract.nft_clone_count("1"))
    print(f"\n(usage, logs, clone count) before: {before}")
    print(f"(usage, logs, clone count) after:  {after}")


def step_09_listing(contract: NonFungibleTokenClone):
    step_header(9, "Paginated Listing",
        "Listings follow mint order and show every clone with its origin's metadata.")

    start = 0
    while start < contract.nft_total_supply():
        page = contract.nft_tokens(from_index=start, limit=CONFIG.page_size)
        print(f"  [{start:>2}..] " + ", ".join(f"{t.token_id}:{t.owner_id}" for t in page))
        start += CONFIG.page_size

    section_header(f"Tokens of {CONFIG.origin_owner}")
    for token in contract.nft_tokens_for_owner(CONFIG.origin_owner):
        print(f"  {token}")


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       NFT CLONES - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    runtime = step_01_runtime()
    wait_for_enter()

    contract = step_02_contract(runtime)
    wait_for_enter()

    metadata = step_03_origin(runtime, contract)
    wait_for_enter()

    step_04_clone(runtime, contract)
    wait_for_enter()

    step_05_resolution(contract, metadata)
    wait_for_enter()

    step_06_refunds(runtime)
    wait_for_enter()

    step_07_rejections(runtime, contract)
    wait_for_enter()

    step_08_atomicity(runtime, contract)
    wait_for_enter()

    step_09_listing(contract)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See nftclone/clone.py for the two-phase clone mint
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
