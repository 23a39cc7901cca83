"""
storage.py - Prefix-Addressed Key-Value Storage and Persistent Collections

All persisted state of the token ledger lives in a single Storage instance:
a flat mapping from bytes keys to bytes values. Collections address their
records under a caller-supplied prefix, so several independent namespaces
share one store without knowing about each other.

Key layout:
    - Collection entries: prefix + utf-8(key)
    - Collection internals: prefix + 0xFF + tag

0xFF never occurs in UTF-8 text, so an internal sub-namespace can never be
hit by a user key written under the same prefix.

Values are canonical JSON (sorted keys, compact separators). Storage usage
is the byte length of every key and value plus a fixed per-record overhead,
which is what storage deposits are charged against.
"""

from __future__ import annotations
import json
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .core import RECORD_OVERHEAD_BYTES


# Separator for collection-internal sub-namespaces.
INTERNAL_TAG = b"\xff"


def _identity(value: Any) -> Any:
    """Identity codec used when a collection stores plain JSON values."""
    return value


def encode_value(value: Any) -> bytes:
    """Serialize a JSON-compatible value to canonical bytes."""
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_value(raw: bytes) -> Any:
    """Inverse of encode_value()."""
    return json.loads(raw.decode("utf-8"))


def _record_size(key: bytes, value: bytes) -> int:
    return len(key) + len(value) + RECORD_OVERHEAD_BYTES


class Storage:
    """
    Flat bytes-to-bytes store with usage accounting and snapshots.

    Snapshots are cheap shallow copies: keys and values are immutable bytes.

    Thread Safety:
        Not thread-safe. Calls are serialized by the Runtime.
    """

    def __init__(self):
        self._data: Dict[bytes, bytes] = {}
        self._usage: int = 0

    def read(self, key: bytes) -> Optional[bytes]:
        return self._data.get(key)

    def has_key(self, key: bytes) -> bool:
        return key in self._data

    def write(self, key: bytes, value: bytes) -> Optional[bytes]:
        """Write a record and return the value it replaced, if any."""
        old = self._data.get(key)
        if old is not None:
            self._usage -= _record_size(key, old)
        self._data[key] = value
        self._usage += _record_size(key, value)
        return old

    def remove(self, key: bytes) -> Optional[bytes]:
        """Remove a record and return its value, if it existed."""
        old = self._data.pop(key, None)
        if old is not None:
            self._usage -= _record_size(key, old)
        return old

    def keys_with_prefix(self, prefix: bytes) -> List[bytes]:
        """Return all keys starting with prefix, in byte order."""
        return sorted(k for k in self._data if k.startswith(prefix))

    def usage(self) -> int:
        """Total bytes charged for the stored records."""
        return self._usage

    def __len__(self) -> int:
        return len(self._data)

    def snapshot(self) -> Dict[bytes, bytes]:
        return dict(self._data)

    def restore(self, snapshot: Dict[bytes, bytes]) -> None:
        self._data = dict(snapshot)
        self._usage = sum(_record_size(k, v) for k, v in self._data.items())


# ============================================================================
# COLLECTIONS
# ============================================================================

class LookupMap:
    """
    Non-iterable persistent map from str keys to values.

    Args:
        storage: Backing store
        prefix: Namespace prefix for this map's records
        to_json: Converts a value into a JSON-compatible object before writing
        from_json: Converts a decoded JSON object back into a value
    """

    def __init__(
        self,
        storage: Storage,
        prefix: bytes,
        to_json: Optional[Callable[[Any], Any]] = None,
        from_json: Optional[Callable[[Any], Any]] = None,
    ):
        self.storage = storage
        self.prefix = prefix
        self._to_json = to_json or _identity
        self._from_json = from_json or _identity

    def _raw_key(self, key: str) -> bytes:
        return self.prefix + key.encode("utf-8")

    def _load(self, raw: Optional[bytes]) -> Any:
        if raw is None:
            return None
        return self._from_json(decode_value(raw))

    def get(self, key: str) -> Any:
        return self._load(self.storage.read(self._raw_key(key)))

    def contains_key(self, key: str) -> bool:
        return self.storage.has_key(self._raw_key(key))

    def __contains__(self, key: str) -> bool:
        return self.contains_key(key)

    def insert(self, key: str, value: Any) -> Any:
        """Store value under key and return the previous value, if any."""
        raw = encode_value(self._to_json(value))
        return self._load(self.storage.write(self._raw_key(key), raw))

    def remove(self, key: str) -> Any:
        """Delete key and return the removed value, if any."""
        return self._load(self.storage.remove(self._raw_key(key)))


class TreeMap(LookupMap):
    """
    Persistent map iterated in ascending key order.

    Iteration scans the prefix, so internal sub-namespaces of other
    collections nested under the same prefix are skipped.
    """

    def _own_keys(self) -> Iterator[bytes]:
        start = len(self.prefix)
        for raw_key in self.storage.keys_with_prefix(self.prefix):
            if raw_key[start:start + 1] == INTERNAL_TAG:
                continue
            yield raw_key

    def keys(self) -> Iterator[str]:
        start = len(self.prefix)
        for raw_key in self._own_keys():
            yield raw_key[start:].decode("utf-8")

    def items(self) -> Iterator[Tuple[str, Any]]:
        start = len(self.prefix)
        for raw_key in self._own_keys():
            yield raw_key[start:].decode("utf-8"), self._load(self.storage.read(raw_key))

    def __iter__(self) -> Iterator[str]:
        return self.keys()

    def __len__(self) -> int:
        return sum(1 for _ in self._own_keys())


class Vector:
    """
    Persistent growable array.

    The length lives in its own record (absent means empty); element i is
    stored under prefix + 8-byte big-endian i.
    """

    def __init__(
        self,
        storage: Storage,
        prefix: bytes,
        to_json: Optional[Callable[[Any], Any]] = None,
        from_json: Optional[Callable[[Any], Any]] = None,
    ):
        self.storage = storage
        self.prefix = prefix
        self._len_key = prefix + INTERNAL_TAG
        self._to_json = to_json or _identity
        self._from_json = from_json or _identity

    def _index_key(self, index: int) -> bytes:
        return self.prefix + index.to_bytes(8, "big")

    def __len__(self) -> int:
        raw = self.storage.read(self._len_key)
        return 0 if raw is None else decode_value(raw)

    def _set_len(self, length: int) -> None:
        if length == 0:
            self.storage.remove(self._len_key)
        else:
            self.storage.write(self._len_key, encode_value(length))

    def is_empty(self) -> bool:
        return len(self) == 0

    def get(self, index: int) -> Any:
        if index < 0 or index >= len(self):
            return None
        return self._from_json(decode_value(self.storage.read(self._index_key(index))))

    def push(self, value: Any) -> None:
        length = len(self)
        self.storage.write(self._index_key(length), encode_value(self._to_json(value)))
        self._set_len(length + 1)

    def replace(self, index: int, value: Any) -> Any:
        """Overwrite element index and return the old element."""
        if index < 0 or index >= len(self):
            raise IndexError(f"Vector index {index} out of bounds")
        old = self.storage.write(self._index_key(index), encode_value(self._to_json(value)))
        return self._from_json(decode_value(old))

    def pop(self) -> Any:
        length = len(self)
        if length == 0:
            return None
        raw = self.storage.remove(self._index_key(length - 1))
        self._set_len(length - 1)
        return self._from_json(decode_value(raw))

    def swap_remove(self, index: int) -> Any:
        """Remove element index by moving the last element into its slot."""
        length = len(self)
        if index < 0 or index >= length:
            raise IndexError(f"Vector index {index} out of bounds")
        if index == length - 1:
            return self.pop()
        last = self.pop()
        return self.replace(index, last)

    def __iter__(self) -> Iterator[Any]:
        for index in range(len(self)):
            yield self.get(index)


class UnorderedMap:
    """
    Iterable persistent map.

    Iteration follows insertion order until the first removal; removal
    swaps the last entry into the freed slot.
    """

    def __init__(
        self,
        storage: Storage,
        prefix: bytes,
        to_json: Optional[Callable[[Any], Any]] = None,
        from_json: Optional[Callable[[Any], Any]] = None,
    ):
        self.storage = storage
        self.prefix = prefix
        self._index = LookupMap(storage, prefix + INTERNAL_TAG + b"i")
        self._keys = Vector(storage, prefix + INTERNAL_TAG + b"k")
        self._values = Vector(storage, prefix + INTERNAL_TAG + b"v", to_json, from_json)

    def __len__(self) -> int:
        return len(self._keys)

    def is_empty(self) -> bool:
        return len(self) == 0

    def get(self, key: str) -> Any:
        index = self._index.get(key)
        if index is None:
            return None
        return self._values.get(index)

    def __contains__(self, key: str) -> bool:
        return self._index.contains_key(key)

    def insert(self, key: str, value: Any) -> Any:
        index = self._index.get(key)
        if index is None:
            self._index.insert(key, len(self._keys))
            self._keys.push(key)
            self._values.push(value)
            return None
        return self._values.replace(index, value)

    def remove(self, key: str) -> Any:
        index = self._index.remove(key)
        if index is None:
            return None
        last_index = len(self._keys) - 1
        if index != last_index:
            moved_key = self._keys.get(last_index)
            self._index.insert(moved_key, index)
        self._keys.swap_remove(index)
        return self._values.swap_remove(index)

    def keys(self) -> Iterator[str]:
        return iter(self._keys)

    def items(self) -> Iterator[Tuple[str, Any]]:
        for index in range(len(self)):
            yield self._keys.get(index), self._values.get(index)

    def __iter__(self) -> Iterator[str]:
        return self.keys()


class UnorderedSet:
    """Iterable persistent set of str elements with swap-remove semantics."""

    def __init__(self, storage: Storage, prefix: bytes):
        self.storage = storage
        self.prefix = prefix
        self._index = LookupMap(storage, prefix + INTERNAL_TAG + b"i")
        self._elements = Vector(storage, prefix + INTERNAL_TAG + b"e")

    def __len__(self) -> int:
        return len(self._elements)

    def is_empty(self) -> bool:
        return len(self) == 0

    def contains(self, element: str) -> bool:
        return self._index.contains_key(element)

    def __contains__(self, element: str) -> bool:
        return self.contains(element)

    def insert(self, element: str) -> bool:
        """Add element; return False if it was already present."""
        if self._index.contains_key(element):
            return False
        self._index.insert(element, len(self._elements))
        self._elements.push(element)
        return True

    def remove(self, element: str) -> bool:
        """Remove element; return False if it was not present."""
        index = self._index.remove(element)
        if index is None:
            return False
        last_index = len(self._elements) - 1
        if index != last_index:
            moved = self._elements.get(last_index)
            self._index.insert(moved, index)
        self._elements.swap_remove(index)
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self._elements)
