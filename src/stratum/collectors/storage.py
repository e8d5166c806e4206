"""
Collectors backed by a key-value Storage.

StorageCollector reads every key under a prefix. Each value is a document
(YAML by default) that is parsed and grafted into the tree at the key's
path, so with prefix "/config/" the key "/config/instances/i001" holding
"memory: 1G" yields instances/i001/memory = "1G". The collector's revision
becomes the highest mod_revision seen by the last read.

StorageSource is a DataSource for a single key, for use with
SourceCollector.
"""

from __future__ import annotations

import logging as _logging
import threading as _threading

import stratum.collectors._base as _base
import stratum.collectors.source as source_mod
import stratum.errors as errors
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.storage as storage
import stratum.tree as tree

_logger = _logging.getLogger(__name__)

STORAGE_NAME = "storage"


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode() if isinstance(value, str) else value


def _graft(root: tree.Node, path: keypath.KeyPath, subtree: tree.Node) -> None:
    """Copy every leaf of subtree into root below path, keeping ranges."""
    for leaf in tree.leaf_paths(subtree):
        original = subtree.get(leaf)
        node = root.set(path + leaf, original.value)
        node.range = original.range


class StorageCollector(_base.TreeCollector):
    """
    Streams the documents stored under a key prefix.

    Keys with empty values or documents without keys are skipped, as are
    values the format cannot parse (a warning is logged). Skipped keys
    still count towards the revision. A failing range query raises SourceError
    from read(), which the merger reports as a collector error.
    """

    def __init__(
        self,
        backend: storage.Storage,
        prefix: bytes | str = b"",
        format_: source_mod.Format | None = None,
    ) -> None:
        """
        Args:
            backend: Storage to query.
            prefix: Key prefix to read; it is stripped to form paths.
            format_: Document format; defaults to YamlFormat(keep_order=False).
        """
        super().__init__(name=STORAGE_NAME, source_type=meta.SourceType.STORAGE)
        self._storage = backend
        self._prefix = _as_bytes(prefix)
        self._format = format_ if format_ is not None else source_mod.YamlFormat(keep_order=False)
        self._delimiter = keypath.DELIMITER

    def with_delimiter(self, delimiter: str) -> StorageCollector:
        """Separator between path segments in storage keys (default "/")."""
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self._delimiter = delimiter
        return self

    def _build_tree(self) -> tree.Node:
        try:
            entries = self._storage.range(self._prefix)
        except errors.StorageError as e:
            raise errors.SourceError(self.name, f"storage range query failed: {e}") from e

        root = tree.Node()
        if not entries:
            return root

        max_revision = 0
        for entry in entries:
            max_revision = max(max_revision, entry.mod_revision)
            key = entry.key.decode("utf-8", "replace")
            if not entry.value:
                continue
            try:
                subtree = self._format.parse(entry.value, key)
            except errors.SourceError as e:
                _logger.warning("Skipping storage key %s: %s", key, e)
                continue
            if subtree.is_leaf():
                continue

            relative = entry.key.removeprefix(self._prefix).decode("utf-8", "replace")
            _graft(root, keypath.KeyPath.parse(relative, self._delimiter), subtree)

        self._revision = str(max_revision)
        _logger.debug(
            "Read %d storage key(s) under %r at revision %s", len(entries), self._prefix, self._revision
        )
        return root


class StorageSource(source_mod.DataSource):
    """A single storage key as a DataSource. The key is not parsed as a path."""

    def __init__(self, backend: storage.Storage, key: bytes | str) -> None:
        self._storage = backend
        self._key = _as_bytes(key)
        self._revision = ""
        self._lock = _threading.Lock()

    @property
    def name(self) -> str:
        return STORAGE_NAME

    @property
    def source_type(self) -> meta.SourceType:
        return meta.SourceType.STORAGE

    @property
    def revision(self) -> str:
        with self._lock:
            return self._revision

    def fetch(self) -> bytes:
        """
        Read the key.

        Returns:
            The stored value; empty when the key holds an empty value.

        Raises:
            SourceError: If the storage fails or the key does not exist.
        """
        try:
            entry = self._storage.get(self._key)
        except errors.StorageError as e:
            raise errors.SourceError(self.name, f"storage fetch failed: {e}") from e
        if entry is None:
            raise errors.SourceError(self.name, f"storage key not found: {self._key.decode('utf-8', 'replace')}")

        with self._lock:
            self._revision = str(entry.mod_revision)
        return entry.value
