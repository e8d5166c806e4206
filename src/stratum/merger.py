"""
Merge engine: folds one collector at a time into a configuration tree.

A Merger creates a MergerContext per collector, merges each value the
collector streams, and finally asks the context to commit child ordering.

Ordering rules:
- Only collectors with keep_order record ordering.
- For every value at a non-empty path, the leaf key is recorded under its
  parent, in first-seen order.
- When the collector is drained, each recorded parent is reordered once.
  A parent whose order was already fixed by an earlier ordered collector
  keeps its order; values are still overwritten normally.
"""

from __future__ import annotations

import abc as _abc
import logging as _logging
import threading as _threading
import typing as _typing

import stratum.collector as collector_mod
import stratum.errors as errors
import stratum.keypath as keypath
import stratum.tree as tree

_logger = _logging.getLogger(__name__)


class MergerContext(_abc.ABC):
    """Per-collector merge state."""

    @property
    @_abc.abstractmethod
    def collector(self) -> collector_mod.Collector: ...

    @_abc.abstractmethod
    def record_ordering(self, parent: keypath.KeyPath | None, child: str) -> None:
        """Note that child was written under parent (None means the root)."""
        ...

    @_abc.abstractmethod
    def apply_ordering(self, root: tree.Node) -> None:
        """Commit recorded ordering to the tree."""
        ...


class Merger(_abc.ABC):
    """Strategy for folding collector values into a tree."""

    @_abc.abstractmethod
    def create_context(self, collector: collector_mod.Collector) -> MergerContext: ...

    @_abc.abstractmethod
    def merge_value(
        self,
        ctx: MergerContext,
        root: tree.Node,
        path: keypath.KeyPath,
        value: _typing.Any,
    ) -> None:
        """
        Merge one value.

        Raises:
            Exception: Any error is collected by merge_collector and reported
                in a CollectorError; it does not stop the batch.
        """
        ...


class DefaultMergerContext(MergerContext):
    """Context of the DefaultMerger. Tracks ordering only for ordered collectors."""

    def __init__(self, collector: collector_mod.Collector) -> None:
        self._collector = collector
        self._orders: dict[keypath.KeyPath, list[str]] | None = {} if collector.keep_order else None

    @property
    def collector(self) -> collector_mod.Collector:
        return self._collector

    @property
    def recorded(self) -> dict[keypath.KeyPath, list[str]]:
        """Recorded ordering, parent path to child keys (empty if untracked)."""
        return dict(self._orders or {})

    def record_ordering(self, parent: keypath.KeyPath | None, child: str) -> None:
        if self._orders is None:
            return
        keys = self._orders.setdefault(parent if parent is not None else keypath.KeyPath(), [])
        if child not in keys:
            keys.append(child)

    def apply_ordering(self, root: tree.Node) -> None:
        if not self._orders:
            return

        for parent_path, ordered_keys in self._orders.items():
            parent = root.get(parent_path)
            if parent is None or parent.order_set:
                continue
            parent.reorder_children(ordered_keys)
            parent.order_set = True
            _logger.debug(
                "Fixed child order of '%s' from collector %s", parent_path, self._collector.name
            )


class DefaultMerger(Merger):
    """
    Type-aware merge with last-writer-wins semantics.

    Holds no state of its own, so a single instance can be shared.
    """

    def create_context(self, collector: collector_mod.Collector) -> MergerContext:
        return DefaultMergerContext(collector)

    def merge_value(
        self,
        ctx: MergerContext,
        root: tree.Node,
        path: keypath.KeyPath,
        value: _typing.Any,
    ) -> None:
        source = ctx.collector
        stamp = tree.Stamp(source=source.name, source_type=source.source, revision=source.revision)
        tree.merge_value(root, path, value, stamp)

        if source.keep_order and len(path) > 0:
            ctx.record_ordering(path.parent(), path.leaf())


DEFAULT_MERGER: Merger = DefaultMerger()


def merge_collector(
    root: tree.Node,
    collector: collector_mod.Collector,
    merger: Merger | None = None,
    cancel: _threading.Event | None = None,
) -> int:
    """
    Drain a collector into the tree.

    Errors for individual values do not stop the pass. They are collected
    and raised together once the collector is exhausted.

    Args:
        root: Tree to merge into.
        collector: Source of values.
        merger: Merge strategy (DEFAULT_MERGER when None).
        cancel: Cancellation token passed to collector.read().

    Returns:
        Number of values merged successfully.

    Raises:
        CollectorError: If any value failed, read() itself raised, or committing
            the order failed.
    """
    merger = merger if merger is not None else DEFAULT_MERGER
    ctx = merger.create_context(collector)
    failures: list[Exception] = []
    merged = 0

    values = iter(collector.read(cancel))
    while True:
        try:
            value = next(values)
        except StopIteration:
            break
        except Exception as e:
            # the source itself failed; nothing more can be read from it
            failures.append(errors.MergeError(f"read collector: {e}"))
            break

        info = value.meta()
        path = keypath.as_key_path(info.key)

        try:
            raw = value.get()
        except Exception as e:
            failures.append(errors.MergeError(f"failed to get raw value for key {path}: {e}", path))
            continue

        try:
            merger.merge_value(ctx, root, path, raw)
        except Exception as e:
            failures.append(errors.MergeError(f"merge value at {path}: {e}", path))
            continue

        if info.range is not None:
            node = root.get(path)
            if node is not None:
                node.range = info.range
        merged += 1

    try:
        ctx.apply_ordering(root)
    except Exception as e:
        failures.append(errors.MergeError(f"apply ordering: {e}"))

    if failures:
        _logger.warning(
            "Collector %s failed with %d error(s) after %d value(s)",
            collector.name,
            len(failures),
            merged,
        )
        raise errors.CollectorError(collector.name, failures)

    _logger.debug("Merged %d value(s) from collector %s", merged, collector.name)
    return merged
