"""
runtime.py - Host Runtime for Token Contracts

The Runtime plays the role of the execution host around the token ledger:

    - Owns the Storage every collection writes to
    - Executes calls atomically (all state changes commit or none do)
    - Collects log lines (including EVENT_JSON events) and outgoing transfers
    - Hosts receiver contracts for cross-contract callbacks
    - Reports storage usage and the per-byte storage cost

Contract code never catches its own failures to repair state. A call that
raises is rolled back here, as a unit, before the exception propagates.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .core import AccountId, CallContext, STORAGE_BYTE_COST
from .storage import Storage


class PromiseStatus(Enum):
    """
    Outcome of a cross-contract call.

    SUCCESSFUL: The receiver method returned; its value is carried along.
    FAILED: No contract or method at the receiver, or the method raised.
    """
    SUCCESSFUL = "successful"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PromiseResult:
    status: PromiseStatus
    value: Any = None

    @property
    def is_successful(self) -> bool:
        return self.status == PromiseStatus.SUCCESSFUL


@dataclass(frozen=True, slots=True)
class Transfer:
    """An outgoing balance transfer, e.g. a storage deposit refund."""
    receiver_id: AccountId
    amount: int

    def __post_init__(self):
        if not self.receiver_id or not self.receiver_id.strip():
            raise ValueError("Transfer receiver_id cannot be empty")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")


@dataclass(frozen=True, slots=True)
class RuntimeSnapshot:
    """Restorable copy of everything a call can change."""
    storage: Dict[bytes, bytes]
    log_count: int
    transfer_count: int


class Runtime:
    """
    Single-threaded execution host.

    Thread Safety:
        Not thread-safe. One Runtime serializes all calls against its storage.

    Example:
        runtime = Runtime("nft.example", verbose=False)
        contract = NonFungibleTokenClone(runtime, ...)
        ctx = CallContext("alice", attached_deposit=10**24)
        runtime.call(contract.internal_clone_mint, ctx, "2", "1", "bob")
    """

    def __init__(
        self,
        current_account_id: AccountId = "nft.clone",
        storage: Optional[Storage] = None,
        storage_byte_cost: int = STORAGE_BYTE_COST,
        verbose: bool = True,
    ):
        """
        Create a runtime.

        Args:
            current_account_id: Account the token contract is deployed at
            storage: Backing store (default: a new empty Storage)
            storage_byte_cost: Price of one stored byte in yocto units
            verbose: Print logs, transfers and reverted calls (default: True)
        """
        self.current_account_id = current_account_id
        self.storage = storage if storage is not None else Storage()
        self.storage_byte_cost = storage_byte_cost
        self.verbose = verbose
        self.logs: List[str] = []
        self.transfers: List[Transfer] = []
        self._contracts: Dict[AccountId, Any] = {}

    # ========================================================================
    # ENVIRONMENT
    # ========================================================================

    def storage_usage(self) -> int:
        """Bytes currently charged for persisted state."""
        return self.storage.usage()

    def log(self, message: str) -> None:
        self.logs.append(message)
        if self.verbose:
            print(f"📝 {message}")

    def transfer(self, receiver_id: AccountId, amount: int) -> None:
        """Queue an outgoing transfer (rolled back with the call on failure)."""
        self.transfers.append(Transfer(receiver_id, amount))
        if self.verbose:
            print(f"💸 Transfer {amount} -> {receiver_id}")

    def deploy(self, account_id: AccountId, contract: Any) -> None:
        """Host a receiver contract at account_id for cross-contract calls."""
        if account_id in self._contracts:
            raise ValueError(f"Account {account_id} already has a contract")
        self._contracts[account_id] = contract

    def contract_at(self, account_id: AccountId) -> Optional[Any]:
        return self._contracts.get(account_id)

    # ========================================================================
    # ATOMIC EXECUTION
    # ========================================================================

    def snapshot(self) -> RuntimeSnapshot:
        return RuntimeSnapshot(
            storage=self.storage.snapshot(),
            log_count=len(self.logs),
            transfer_count=len(self.transfers),
        )

    def restore(self, snapshot: RuntimeSnapshot) -> None:
        self.storage.restore(snapshot.storage)
        del self.logs[snapshot.log_count:]
        del self.transfers[snapshot.transfer_count:]

    def call(self, method: Callable[..., Any], ctx: CallContext, *args, **kwargs) -> Any:
        """
        Execute method(ctx, *args, **kwargs) as one atomic unit.

        If the method raises, storage, logs and transfers are restored to
        their state before the call and the exception is re-raised.

        Returns:
            Whatever the method returns
        """
        snapshot = self.snapshot()
        try:
            return method(ctx, *args, **kwargs)
        except Exception as exc:
            self.restore(snapshot)
            if self.verbose:
                name = getattr(method, "__name__", repr(method))
                print(f"✗ REVERTED: {name}: {exc}")
            raise

    def call_contract(
        self,
        account_id: AccountId,
        method_name: str,
        ctx: CallContext,
        *args,
        **kwargs,
    ) -> PromiseResult:
        """
        Invoke a method on a hosted contract as a nested atomic call.

        A failing receiver is rolled back on its own and reported as a FAILED
        result; it never reverts the caller's state.
        """
        contract = self._contracts.get(account_id)
        method = getattr(contract, method_name, None) if contract is not None else None
        if method is None:
            self.log(f"Cross-contract call failed: {account_id}.{method_name} does not exist")
            return PromiseResult(PromiseStatus.FAILED)
        try:
            value = self.call(method, ctx, *args, **kwargs)
        except Exception as exc:
            self.log(f"Cross-contract call failed: {account_id}.{method_name}: {exc}")
            return PromiseResult(PromiseStatus.FAILED)
        return PromiseResult(PromiseStatus.SUCCESSFUL, value)

    def refunds_to(self, account_id: AccountId) -> int:
        """Total amount transferred to an account so far."""
        return sum(t.amount for t in self.transfers if t.receiver_id == account_id)
