"""
Key-value storage abstraction read by the storage collectors.

Backends such as etcd or a Tarantool config storage implement Storage; the
collectors only need a prefix range query and a single-key read. Keys and
values are raw bytes. Every entry carries the backend's modification
revision so collectors can report which version of the data they saw.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import threading as _threading


@_dataclasses.dataclass(frozen=True, slots=True)
class KeyValue:
    """
    One storage entry.

    Attributes:
        key: Raw key.
        value: Raw value; may be empty.
        mod_revision: Revision at which the entry was last modified.
    """

    key: bytes
    value: bytes
    mod_revision: int = 0


class Storage(_abc.ABC):
    """
    Abstract key-value backend.

    Implementations raise StorageError when the backend cannot answer.
    """

    @_abc.abstractmethod
    def range(self, prefix: bytes) -> list[KeyValue]:
        """Return every entry whose key starts with prefix, ordered by key."""
        ...

    @_abc.abstractmethod
    def get(self, key: bytes) -> KeyValue | None:
        """Return the entry stored at key, or None if there is none."""
        ...


class MemoryStorage(Storage):
    """
    Thread-safe in-memory Storage.

    Each put() advances a store-wide revision counter, as etcd does, and
    stamps the written entry with it.

    Example:
        >>> s = MemoryStorage()
        >>> s.put("/config/app", "port: 8080")
        1
        >>> [kv.key for kv in s.range(b"/config/")]
        [b'/config/app']
    """

    def __init__(self) -> None:
        self._lock = _threading.Lock()
        self._data: dict[bytes, KeyValue] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Revision of the most recent write."""
        with self._lock:
            return self._revision

    def put(self, key: bytes | str, value: bytes | str) -> int:
        """Store value at key and return the new revision."""
        raw_key = key.encode() if isinstance(key, str) else key
        raw_value = value.encode() if isinstance(value, str) else value
        with self._lock:
            self._revision += 1
            self._data[raw_key] = KeyValue(raw_key, raw_value, self._revision)
            return self._revision

    def delete(self, key: bytes | str) -> bool:
        raw_key = key.encode() if isinstance(key, str) else key
        with self._lock:
            if self._data.pop(raw_key, None) is None:
                return False
            self._revision += 1
            return True

    def range(self, prefix: bytes) -> list[KeyValue]:
        with self._lock:
            return [self._data[key] for key in sorted(self._data) if key.startswith(prefix)]

    def get(self, key: bytes) -> KeyValue | None:
        with self._lock:
            return self._data.get(key)

