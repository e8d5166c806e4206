"""
Default type-aware merge of incoming values into a tree.

The shape of the incoming value decides what happens to the existing node:

- A mapping merges key by key. A leaf becomes an internal node, and existing
  children that the mapping does not mention are kept.
- Anything else (scalars, lists, None) replaces the node wholesale. Children
  are dropped and lists are never merged element-wise.
"""

from __future__ import annotations

import collections.abc as _abc
import copy as _copy
import dataclasses as _dataclasses
import typing as _typing

import stratum.meta as meta
import stratum.tree._node as _node


@_dataclasses.dataclass(frozen=True, slots=True)
class Stamp:
    """Provenance written onto every node a merge touches."""

    source: str = ""
    source_type: meta.SourceType = meta.SourceType.UNKNOWN
    revision: str = ""

    def apply(self, node: _node.Node) -> None:
        node.source = self.source
        node.source_type = self.source_type
        node.revision = self.revision


def merge_value(
    root: _node.Node,
    path: _abc.Sequence[str],
    value: _typing.Any,
    stamp: Stamp,
) -> _node.Node:
    """
    Merge value into the tree at path.

    Intermediate nodes are created as needed; an intermediate leaf that held
    a value is converted to an internal node.

    Args:
        root: Tree root.
        path: Location of the value. The empty path merges into root.
        value: Incoming raw value.
        stamp: Provenance to record on touched nodes.

    Returns:
        The node at path.
    """
    node = root
    for segment in path:
        child = node.child(segment)
        if child is None:
            child = _node.Node()
            node.set_child(segment, child)
        node = child

    _merge_node_value(node, value, stamp)
    return node


def _merge_node_value(node: _node.Node, value: _typing.Any, stamp: Stamp) -> None:
    if isinstance(value, _abc.Mapping):
        if node.is_leaf():
            node.clear_children()
            node.value = None
        _merge_mapping(node, value, stamp)
    else:
        node.clear_children()
        node.value = _copy.deepcopy(value)
        node.range = None

    stamp.apply(node)


def _merge_mapping(node: _node.Node, mapping: _abc.Mapping[_typing.Any, _typing.Any], stamp: Stamp) -> None:
    for key, item in mapping.items():
        key = str(key)
        child = node.child(key)
        if child is None:
            child = _node.Node()
            node.set_child(key, child)
        _merge_node_value(child, item, stamp)
