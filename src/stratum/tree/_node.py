"""
Ordered configuration tree nodes.

A Node is either a leaf holding a value or an internal node holding named
children, never both. Children keep insertion order; replacing an existing
child keeps its position. A leaf whose value is None represents an explicit
null.
"""

from __future__ import annotations

import collections.abc as _abc
import copy as _copy
import typing as _typing

import stratum.keypath as keypath
import stratum.meta as meta


class Node:
    """
    A vertex in the configuration tree.

    Attributes:
        value: Leaf value. Always None for internal nodes.
        source: Name of the collector that last wrote this node.
        source_type: Type of that collector.
        revision: Revision token of that collector.
        range: Location of the value in its source document, if known.
        order_set: True once an ordered collector has fixed child order.
    """

    __slots__ = ("value", "source", "source_type", "revision", "range", "order_set", "_children")

    def __init__(
        self,
        value: _typing.Any = None,
        *,
        source: str = "",
        source_type: meta.SourceType = meta.SourceType.UNKNOWN,
        revision: str = "",
        range: meta.Range | None = None,
    ) -> None:
        self.value = value
        self.source = source
        self.source_type = source_type
        self.revision = revision
        self.range = range
        self.order_set = False
        self._children: dict[str, Node] = {}

    def __repr__(self) -> str:
        if self.is_leaf():
            return f"Node(value={self.value!r}, source={self.source!r})"
        return f"Node(children={list(self._children)!r}, source={self.source!r})"

    # =========================================================================
    # Children
    # =========================================================================

    def is_leaf(self) -> bool:
        return not self._children

    def child(self, key: str) -> Node | None:
        return self._children.get(key)

    def has_child(self, key: str) -> bool:
        return key in self._children

    def set_child(self, key: str, node: Node) -> None:
        """
        Attach node under key.

        An existing child with the same key is replaced in place. Attaching a
        child turns this node into an internal node, so any value is cleared.
        """
        self.value = None
        self._children[key] = node

    def delete_child(self, key: str) -> bool:
        """Remove a child. Returns True if it existed."""
        if key not in self._children:
            return False
        del self._children[key]
        if not self._children:
            self.order_set = False
        return True

    def clear_children(self) -> None:
        """Drop all children and forget any fixed ordering."""
        self._children = {}
        self.order_set = False

    def children_keys(self) -> list[str]:
        return list(self._children)

    def children(self) -> list[tuple[str, Node]]:
        """Return (key, child) pairs in order."""
        return list(self._children.items())

    def reorder_children(self, keys: _abc.Iterable[str]) -> None:
        """
        Move the given keys to the front, in the given order.

        Keys that are not children are ignored and only the first occurrence
        of a duplicated key counts. Children not mentioned keep their relative
        order and follow the reordered ones.

        Args:
            keys: Desired leading order of child keys.
        """
        leading: dict[str, Node] = {}
        for key in keys:
            if key in self._children and key not in leading:
                leading[key] = self._children[key]

        trailing = {key: node for key, node in self._children.items() if key not in leading}
        self._children = {**leading, **trailing}

    # =========================================================================
    # Path operations
    # =========================================================================

    def get(self, path: _abc.Sequence[str]) -> Node | None:
        """Return the node at path (self for the empty path), or None."""
        node: Node | None = self
        for segment in path:
            if node is None:
                return None
            node = node.child(segment)
        return node

    def set(self, path: _abc.Sequence[str], value: _typing.Any) -> Node:
        """
        Set a leaf value at path, creating intermediate nodes as needed.

        Intermediate nodes that held a value become internal nodes and the
        terminal node loses any children it had.

        Returns:
            The terminal node.
        """
        node = self
        for segment in path:
            next_node = node.child(segment)
            if next_node is None:
                next_node = Node()
                node.set_child(segment, next_node)
            node = next_node

        node.clear_children()
        node.value = value
        return node

    def delete(self, path: _abc.Sequence[str]) -> bool:
        """Remove the node at path. The empty path cannot be deleted."""
        if not path:
            return False
        parent = self.get(path[:-1])
        if parent is None:
            return False
        return parent.delete_child(path[-1])

    # =========================================================================
    # Copies and conversion
    # =========================================================================

    def clone(self) -> Node:
        """Deep copy of this node and all descendants, including provenance."""
        copy = Node(
            _copy.deepcopy(self.value),
            source=self.source,
            source_type=self.source_type,
            revision=self.revision,
            range=self.range,
        )
        for key, child in self._children.items():
            copy._children[key] = child.clone()
        copy.order_set = self.order_set
        return copy

    def to_python(self) -> _typing.Any:
        """
        Convert to plain Python data.

        Leaves return a deep copy of their value; internal nodes return a
        dict in child order.
        """
        if self.is_leaf():
            return _copy.deepcopy(self.value)
        return {key: child.to_python() for key, child in self._children.items()}

    @classmethod
    def from_python(cls, data: _abc.Mapping[str, _typing.Any]) -> Node:
        """Build a tree from nested mappings; non-mapping values become leaves."""
        root = cls()
        for key, value in data.items():
            if isinstance(value, _abc.Mapping):
                root.set_child(str(key), cls.from_python(value))
            else:
                root.set_child(str(key), cls(_copy.deepcopy(value)))
        return root


def leaf_paths(node: Node, prefix: keypath.KeyPath | None = None) -> _abc.Iterator[keypath.KeyPath]:
    """Yield the path of every leaf under node, depth-first in child order."""
    prefix = prefix if prefix is not None else keypath.KeyPath()
    if node.is_leaf():
        yield prefix
        return
    for key, child in node.children():
        yield from leaf_paths(child, prefix.append(key))
