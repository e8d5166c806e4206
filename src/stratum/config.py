"""
Read access to a built configuration, and guarded runtime modification.

Config wraps a merged tree and never changes it, so one instance can be
shared between threads. MutableConfig adds Set/Merge/Update/Delete: every
mutation holds an exclusive lock while it runs and re-validates the whole
tree, restoring the previous state when validation fails. Reads on a
MutableConfig take a shared lock.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import threading as _threading
import typing as _typing

import stratum.errors as errors
import stratum.inheritance as inheritance
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.tree as tree
import stratum.utils.locking as locking
import stratum.validator as validator

_logger = _logging.getLogger(__name__)

MODIFIED_SOURCE = "modified"


class Config:
    """
    Read-only view of a configuration tree.

    Paths may be given as KeyPath, a "/"-separated string or a sequence of
    segments. A Config whose root is None (left behind by a failed build)
    reports every key as missing.
    """

    def __init__(
        self,
        root: tree.Node | None,
        *,
        resolver: inheritance.Resolver | None = None,
    ) -> None:
        self._root = root
        self._resolver = resolver if resolver is not None else inheritance.Resolver()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._root!r})"

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, tuple, list)):
            return False
        return self._node(keypath.as_key_path(path)) is not None

    def _node(self, path: keypath.KeyPath) -> tree.Node | None:
        if self._root is None:
            return None
        return self._root.get(path)

    def _detach(self, node: tree.Node) -> tree.Node:
        """Node handed to callers; Config can share its immutable tree."""
        return node

    # =========================================================================
    # Point queries
    # =========================================================================

    def get(self, path: keypath.PathLike, type_: _typing.Any = None) -> _typing.Any:
        """
        Return the value at path.

        Internal nodes are returned as nested dicts. The result is a copy;
        changing it does not affect the configuration.

        Args:
            path: Location of the value.
            type_: Optional type to validate and convert the value with
                (see tree.Value.get).

        Raises:
            KeyNotFoundError: If nothing exists at path.
            pydantic.ValidationError: If the value does not fit type_.
        """
        value = self.lookup(path)
        if value is None:
            raise errors.KeyNotFoundError(keypath.as_key_path(path))
        return value.get(type_)

    def lookup(self, path: keypath.PathLike) -> tree.NodeValue | None:
        """Return a value accessor for path, or None if it does not exist."""
        key = keypath.as_key_path(path)
        node = self._node(key)
        if node is None:
            return None
        return tree.NodeValue(self._detach(node), key)

    def stat(self, path: keypath.PathLike) -> meta.MetaInfo | None:
        """Return provenance for path without reading the value."""
        value = self.lookup(path)
        return value.meta() if value is not None else None

    # =========================================================================
    # Traversal
    # =========================================================================

    def walk(
        self,
        path: keypath.PathLike | None = None,
        depth: int = -1,
        cancel: _threading.Event | None = None,
    ) -> _abc.Iterator[tree.Value]:
        """
        Iterate over leaf values below path.

        Args:
            path: Start of the traversal (root when empty or None).
            depth: Maximum number of levels to descend, counting the start
                node. Zero or negative means unbounded. A depth of 1 yields
                nothing unless the start node is itself a leaf.
            cancel: Stops the iteration once set.

        Raises:
            PathNotFoundError: Immediately, if path does not exist.
        """
        key = keypath.as_key_path(path)
        start = self._node(key)
        if start is None:
            raise errors.PathNotFoundError(key)
        if not key and start.is_leaf():
            # an empty tree has no leaves; its root is not a value
            return iter(())
        return tree.walk(self._detach(start), key, depth, cancel)

    def slice(self, path: keypath.PathLike | None) -> Config:
        """
        Return a Config rooted at path.

        Raises:
            PathNotFoundError: If path does not exist.
        """
        key = keypath.as_key_path(path)
        if not key:
            root = self._detach(self._root) if self._root is not None else None
            return Config(root, resolver=self._resolver)
        node = self._node(key)
        if node is None:
            raise errors.PathNotFoundError(key)
        return Config(self._detach(node))

    def to_dict(self) -> dict[str, _typing.Any]:
        """Plain nested copy of the whole configuration."""
        if self._root is None or self._root.is_leaf():
            return {}
        return self._root.to_python()

    # =========================================================================
    # Inheritance
    # =========================================================================

    def effective(self, path: keypath.PathLike) -> Config:
        """
        Resolve the effective configuration of a leaf entity.

        If path has the shape of a registered hierarchy, the result overlays
        defaults, global, ancestor and entity layers. The entity itself does
        not need to exist. Otherwise the raw subtree at path is returned
        with no inheritance applied.

        Raises:
            PathNotFoundError: If no hierarchy applies and path does not exist.
        """
        key = keypath.as_key_path(path)
        if self._root is None:
            raise errors.PathNotFoundError(key)

        resolved = self._resolver.resolve(self._root, key)
        if resolved is not None:
            return Config(resolved)

        node = self._root.get(key)
        if node is None:
            raise errors.PathNotFoundError(key)
        return Config(self._detach(node))

    def effective_all(self) -> dict[str, Config]:
        """
        Resolve every leaf entity of every registered hierarchy.

        Returns:
            Full leaf path string ("groups/g/replicasets/r/instances/i") to
            its effective Config, in tree order.

        Raises:
            NoInheritanceError: If no hierarchy was registered.
        """
        if not self._resolver:
            raise errors.NoInheritanceError()
        if self._root is None:
            return {}

        results: dict[str, Config] = {}
        for path in self._resolver.leaf_paths(self._root):
            resolved = self._resolver.resolve(self._root, path)
            if resolved is not None:
                results[str(path)] = Config(resolved)
        return results


class MutableConfig(Config):
    """
    Config that can be changed at runtime.

    Every write stamps touched nodes with source "modified"
    (SourceType.MODIFIED) and a revision counter that increases by one per
    successful mutation. The whole tree is re-validated after each mutation;
    if validation fails the tree is restored and ConfigValidationError is
    raised. A write that raises part way through is undone as well.
    """

    def __init__(
        self,
        root: tree.Node | None,
        *,
        resolver: inheritance.Resolver | None = None,
        validators: _abc.Sequence[validator.Validator] = (),
    ) -> None:
        super().__init__(root, resolver=resolver)
        self._validators = list(validators)
        self._lock = locking.ReadWriteLock()
        self._revision = 0

    @property
    def revision(self) -> int:
        """Number of successful mutations so far."""
        with self._lock.read():
            return self._revision

    # =========================================================================
    # Locked reads
    # =========================================================================

    def _detach(self, node: tree.Node) -> tree.Node:
        # readers get a copy so later writes cannot race them
        return node.clone()

    def __contains__(self, path: object) -> bool:
        with self._lock.read():
            return super().__contains__(path)

    def lookup(self, path: keypath.PathLike) -> tree.NodeValue | None:
        with self._lock.read():
            return super().lookup(path)

    def walk(
        self,
        path: keypath.PathLike | None = None,
        depth: int = -1,
        cancel: _threading.Event | None = None,
    ) -> _abc.Iterator[tree.Value]:
        with self._lock.read():
            return super().walk(path, depth, cancel)

    def slice(self, path: keypath.PathLike | None) -> Config:
        with self._lock.read():
            return super().slice(path)

    def to_dict(self) -> dict[str, _typing.Any]:
        with self._lock.read():
            return super().to_dict()

    def effective(self, path: keypath.PathLike) -> Config:
        with self._lock.read():
            return super().effective(path)

    def effective_all(self) -> dict[str, Config]:
        with self._lock.read():
            return super().effective_all()

    # =========================================================================
    # Mutations
    # =========================================================================

    def set(self, path: keypath.PathLike, value: _typing.Any) -> None:
        """
        Merge value at path using the default merge rules.

        Raises:
            ConfigValidationError: If the result is invalid; nothing changes.
        """
        key = keypath.as_key_path(path)
        with self._lock.write():
            self._mutate(lambda root, stamp: tree.merge_value(root, key, value, stamp))

    def merge(self, other: Config) -> None:
        """
        Apply every leaf of other, overriding existing values.

        Raises:
            ConfigValidationError: If the result is invalid; nothing changes.
        """
        leaves = _leaves_of(other)
        with self._lock.write():
            self._mutate(lambda root, stamp: _apply(root, leaves, stamp, only_existing=False))

    def update(self, other: Config) -> None:
        """
        Apply the leaves of other whose paths already exist here.

        Raises:
            ConfigValidationError: If the result is invalid; nothing changes.
        """
        leaves = _leaves_of(other)
        with self._lock.write():
            self._mutate(lambda root, stamp: _apply(root, leaves, stamp, only_existing=True))

    def delete(self, path: keypath.PathLike) -> bool:
        """
        Remove the node at path.

        Returns:
            True if something was removed.

        Raises:
            ConfigValidationError: If the result is invalid; nothing changes.
        """
        key = keypath.as_key_path(path)
        removed = False

        def remove(root: tree.Node, stamp: tree.Stamp) -> None:
            nonlocal removed
            removed = root.delete(key)

        with self._lock.write():
            self._mutate(remove)
        return removed

    def _mutate(self, change: _typing.Callable[[tree.Node, tree.Stamp], object]) -> None:
        """Apply change to the tree and validate; must hold the write lock."""
        if self._root is None:
            self._root = tree.Node()

        snapshot = self._root.clone()
        stamp = tree.Stamp(
            source=MODIFIED_SOURCE,
            source_type=meta.SourceType.MODIFIED,
            revision=str(self._revision + 1),
        )
        try:
            change(self._root, stamp)
        except BaseException:
            self._root = snapshot
            raise

        found = validator.run_validators(self._validators, self._root)
        if found:
            self._root = snapshot
            _logger.warning("Rolled back configuration change: %d validation error(s)", len(found))
            raise errors.ConfigValidationError(found)

        self._revision += 1


def _leaves_of(other: Config) -> list[tuple[keypath.KeyPath, _typing.Any]]:
    try:
        return [(value.meta().key, value.get()) for value in other.walk()]
    except errors.PathNotFoundError:
        return []


def _apply(
    root: tree.Node,
    leaves: _abc.Iterable[tuple[keypath.KeyPath, _typing.Any]],
    stamp: tree.Stamp,
    *,
    only_existing: bool,
) -> None:
    for path, raw in leaves:
        if only_existing and root.get(path) is None:
            continue
        tree.merge_value(root, path, raw, stamp)
