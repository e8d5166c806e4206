"""
Value accessors handed out by collectors and Config lookups.

A Value pairs raw data with its provenance. Typed extraction is delegated to
pydantic: ``value.get(int)`` or ``value.get(MyModel)`` validates (and, in lax
mode, coerces) the raw data through a TypeAdapter.
"""

from __future__ import annotations

import abc as _abc
import collections.abc as _cabc
import functools as _functools
import threading as _threading
import typing as _typing

import pydantic as _pydantic

import stratum.keypath as keypath
import stratum.meta as meta
import stratum.tree._node as _node


@_functools.lru_cache(maxsize=256)
def _adapter(type_: _typing.Any) -> _pydantic.TypeAdapter[_typing.Any]:
    return _pydantic.TypeAdapter(type_)


def convert(raw: _typing.Any, type_: _typing.Any) -> _typing.Any:
    """
    Validate raw data against type_.

    Raises:
        pydantic.ValidationError: If raw cannot be converted.
    """
    return _adapter(type_).validate_python(raw)


class Value(_abc.ABC):
    """A single configuration value with provenance."""

    @_abc.abstractmethod
    def get(self, type_: _typing.Any = None) -> _typing.Any:
        """
        Extract the value.

        Args:
            type_: Optional target type. When given, the raw value is
                validated and converted with pydantic.

        Returns:
            A private copy of the raw value, or the converted value.
        """
        ...

    @_abc.abstractmethod
    def meta(self) -> meta.MetaInfo:
        """Provenance of this value."""
        ...


class NodeValue(Value):
    """Value backed by a tree node. Internal nodes read as nested dicts."""

    __slots__ = ("_node", "_path")

    def __init__(self, node: _node.Node, path: keypath.KeyPath) -> None:
        self._node = node
        self._path = path

    def __repr__(self) -> str:
        return f"NodeValue({str(self._path)!r}, source={self._node.source!r})"

    @property
    def path(self) -> keypath.KeyPath:
        return self._path

    def get(self, type_: _typing.Any = None) -> _typing.Any:
        raw = self._node.to_python()
        if type_ is None:
            return raw
        return convert(raw, type_)

    def meta(self) -> meta.MetaInfo:
        return meta.MetaInfo(
            key=self._path,
            source=meta.SourceInfo(name=self._node.source, type=self._node.source_type),
            revision=self._node.revision,
            range=self._node.range,
        )


def is_cancelled(cancel: _threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def walk(
    node: _node.Node,
    prefix: keypath.KeyPath,
    depth: int = -1,
    cancel: _threading.Event | None = None,
) -> _cabc.Iterator[NodeValue]:
    """
    Lazily yield leaf values under node, depth-first in child order.

    Args:
        node: Starting node.
        prefix: Path of the starting node; yielded keys extend it.
        depth: Levels to descend. Each level consumes one unit and descent
            stops when it reaches zero. Zero or negative means unbounded.
        cancel: When set, iteration stops before the next value or descent.
    """
    if depth <= 0:
        depth = -1
    yield from _walk(node, prefix, depth, cancel)


def _walk(
    node: _node.Node,
    prefix: keypath.KeyPath,
    depth: int,
    cancel: _threading.Event | None,
) -> _cabc.Iterator[NodeValue]:
    if depth == 0 or is_cancelled(cancel):
        return

    if node.is_leaf():
        yield NodeValue(node, prefix)
        return

    for key, child in node.children():
        if is_cancelled(cancel):
            return
        yield from _walk(child, prefix.append(key), depth - 1, cancel)
