"""
Shared plumbing for the bundled collectors.

BaseCollector stores the provenance every collector declares and offers
fluent setters for it. TreeCollector builds an internal tree from its data
and streams that tree's leaves.
"""

from __future__ import annotations

import abc as _abc
import collections.abc as _cabc
import threading as _threading
import typing as _typing

import stratum.collector as collector
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.tree as tree


class BaseCollector(collector.Collector):
    """Collector with settable name, source type, revision and ordering."""

    def __init__(
        self,
        *,
        name: str,
        source_type: meta.SourceType = meta.SourceType.UNKNOWN,
        revision: str = "",
        keep_order: bool = False,
    ) -> None:
        self._name = name
        self._source_type = source_type
        self._revision = revision
        self._keep_order = keep_order

    @property
    def name(self) -> str:
        return self._name

    @property
    def source(self) -> meta.SourceType:
        return self._source_type

    @property
    def revision(self) -> str:
        return self._revision

    @property
    def keep_order(self) -> bool:
        return self._keep_order

    def with_name(self, name: str) -> _typing.Self:
        self._name = name
        return self

    def with_source_type(self, source_type: meta.SourceType) -> _typing.Self:
        self._source_type = source_type
        return self

    def with_revision(self, revision: str) -> _typing.Self:
        self._revision = revision
        return self

    def with_keep_order(self, keep: bool = True) -> _typing.Self:
        self._keep_order = keep
        return self


class TreeCollector(BaseCollector):
    """Collector whose values are the leaves of a tree it builds."""

    @_abc.abstractmethod
    def _build_tree(self) -> tree.Node:
        """Return the data as a tree. Called once per read()."""
        ...

    def read(self, cancel: _threading.Event | None = None) -> _cabc.Iterator[tree.Value]:
        root = self._build_tree()
        if root.is_leaf():
            # no data; a value at the empty path would wipe the whole tree
            return
        yield from tree.walk(root, keypath.KeyPath(), -1, cancel)
