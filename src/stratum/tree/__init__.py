"""
Ordered configuration tree.

Nodes hold either a value or ordered children. The default merge rules and
the value accessors used by collectors and Config live here too.
"""

from stratum.tree._merge import Stamp, merge_value
from stratum.tree._node import Node, leaf_paths
from stratum.tree._value import NodeValue, Value, convert, is_cancelled, walk

__all__ = [
    "Node",
    "NodeValue",
    "Stamp",
    "Value",
    "convert",
    "is_cancelled",
    "leaf_paths",
    "merge_value",
    "walk",
]
