"""
events.py - Token Event Log Records

Mint and transfer notifications are written to the runtime log as single
lines of the form:

    EVENT_JSON:{"standard":"nep171","version":"1.0.0","event":"nft_mint","data":[...]}

Events are observability only; emitting one never changes ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import json

from .core import AccountId, TokenId, NFT_STANDARD_NAME, NFT_STANDARD_VERSION


EVENT_JSON_PREFIX = "EVENT_JSON:"


def format_event(event: str, data: List[Dict[str, Any]]) -> str:
    """Build the EVENT_JSON log line for an event name and its data entries."""
    payload = {
        "standard": NFT_STANDARD_NAME,
        "version": NFT_STANDARD_VERSION,
        "event": event,
        "data": data,
    }
    return EVENT_JSON_PREFIX + json.dumps(payload, separators=(",", ":"))


def parse_event(line: str) -> Optional[Dict[str, Any]]:
    """Decode an EVENT_JSON log line; return None for ordinary log lines."""
    if not line.startswith(EVENT_JSON_PREFIX):
        return None
    return json.loads(line[len(EVENT_JSON_PREFIX):])


def events_in(logs: List[str], event: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the decoded events among logs, optionally filtered by event name."""
    decoded = (parse_event(line) for line in logs)
    return [e for e in decoded if e is not None and (event is None or e["event"] == event)]


@dataclass(frozen=True, slots=True)
class NftMint:
    """Notification that tokens were minted to an owner."""
    owner_id: AccountId
    token_ids: Tuple[TokenId, ...]
    memo: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"owner_id": self.owner_id, "token_ids": list(self.token_ids)}
        if self.memo is not None:
            data["memo"] = self.memo
        return data

    def emit(self, runtime) -> None:
        runtime.log(format_event("nft_mint", [self.to_dict()]))


@dataclass(frozen=True, slots=True)
class NftTransfer:
    """
    Notification that tokens changed owner.

    authorized_id is set when an approved account, not the owner, moved them.
    """
    old_owner_id: AccountId
    new_owner_id: AccountId
    token_ids: Tuple[TokenId, ...]
    authorized_id: Optional[AccountId] = None
    memo: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "old_owner_id": self.old_owner_id,
            "new_owner_id": self.new_owner_id,
            "token_ids": list(self.token_ids),
        }
        if self.authorized_id is not None:
            data["authorized_id"] = self.authorized_id
        if self.memo is not None:
            data["memo"] = self.memo
        return data

    def emit(self, runtime) -> None:
        runtime.log(format_event("nft_transfer", [self.to_dict()]))
