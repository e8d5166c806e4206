"""Collector over an in-memory nested mapping."""

from __future__ import annotations

import collections.abc as _cabc
import typing as _typing

import stratum.collectors._base as _base
import stratum.keypath as keypath
import stratum.tree as tree


class MapCollector(_base.TreeCollector):
    """
    Streams the leaves of a nested mapping.

    Nested mappings become path segments; every other value (including
    lists) is a leaf. Empty nested mappings contribute nothing. With
    keep_order, the mapping's insertion order is the order recorded for
    each level.

    Example:
        >>> c = MapCollector({"server": {"port": 8080}}).with_name("defaults")
        >>> [str(v.meta().key) for v in c.read()]
        ['server/port']
    """

    def __init__(self, data: _cabc.Mapping[str, _typing.Any]) -> None:
        super().__init__(name="map")
        self._data = data

    def _build_tree(self) -> tree.Node:
        root = tree.Node()
        _flatten(root, keypath.KeyPath(), self._data)
        return root


def _flatten(root: tree.Node, prefix: keypath.KeyPath, data: _cabc.Mapping[_typing.Any, _typing.Any]) -> None:
    for key, value in data.items():
        path = prefix.append(str(key))
        if isinstance(value, _cabc.Mapping):
            _flatten(root, path, value)
        else:
            root.set(path, value)
