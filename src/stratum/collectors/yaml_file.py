"""
Collector over YAML documents.

The document is parsed once, when the collector is created, with a loader
that records the source range of every value. Those ranges travel with the
merged values, so validation errors can point at a line and column.

Mappings become nested paths. Scalars keep their YAML type and sequences
stay list values.
"""

from __future__ import annotations

import collections.abc as _cabc
import pathlib as _pathlib
import typing as _typing

import yaml as _yaml

import stratum.collectors._base as _base
import stratum.errors as errors
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.settings as settings
import stratum.tree as tree

# Maps key paths to the source range of the value stored there.
RangeRegistry = dict[tuple[str, ...], meta.Range]


def _mark_range(node: _yaml.Node) -> meta.Range:
    # yaml marks are 0-indexed; ranges are 1-indexed like editors
    return meta.Range(
        start=meta.Position(node.start_mark.line + 1, node.start_mark.column + 1),
        end=meta.Position(node.end_mark.line + 1, node.end_mark.column + 1),
    )


class _RangeTrackingLoader(_yaml.SafeLoader):
    """SafeLoader that records the range of every mapping value by key path."""

    def __init__(self, stream: _typing.Any) -> None:
        super().__init__(stream)
        self.ranges: RangeRegistry = {}
        self._path_stack: list[str] = []

    def construct_mapping(
        self, node: _yaml.MappingNode, deep: bool = False
    ) -> dict[str, _typing.Any]:
        self.flatten_mapping(node)

        result: dict[str, _typing.Any] = {}
        for key_node, value_node in node.value:
            key = str(self.construct_object(key_node, deep=True))

            self._path_stack.append(key)
            self.ranges[tuple(self._path_stack)] = _mark_range(value_node)
            # deep=True builds nested mappings now, while the stack has our prefix
            value = self.construct_object(value_node, deep=True)
            self._path_stack.pop()

            result[key] = value

        return result


def _load(content: str) -> tuple[_typing.Any, RangeRegistry]:
    loader = _RangeTrackingLoader(content)
    try:
        data = loader.get_single_data()
    finally:
        loader.dispose()
    return data, loader.ranges


def _build(
    node: tree.Node, prefix: keypath.KeyPath, data: _cabc.Mapping[str, _typing.Any], ranges: RangeRegistry
) -> None:
    for key, value in data.items():
        path = prefix.append(key)
        if isinstance(value, _cabc.Mapping):
            _build(node, path, value, ranges)
            continue
        leaf = node.set(path, value)
        leaf.range = ranges.get(tuple(path))


def parse_yaml(content: str, source: str) -> tree.Node:
    """
    Parse a YAML document into a tree with source ranges on every leaf.

    Raises:
        SourceError: If the YAML is malformed or its top level is not a
            mapping. An empty document gives an empty tree.
    """
    try:
        data, ranges = _load(content)
    except _yaml.YAMLError as e:
        raise errors.SourceError(source, f"failed to parse YAML: {e}") from e

    root = tree.Node()
    if data is None:
        return root
    if not isinstance(data, _cabc.Mapping):
        raise errors.SourceError(
            source, f"top-level YAML value must be a mapping, got {type(data).__name__}"
        )
    _build(root, keypath.KeyPath(), data, ranges)
    return root


class YamlCollector(_base.TreeCollector):
    """
    Streams the leaves of a YAML document.

    Example:
        >>> c = YamlCollector("server:\\n  port: 8080\\n")
        >>> [(str(v.meta().key), v.get()) for v in c.read()]
        [('server/port', 8080)]
    """

    def __init__(self, content: str, *, name: str = "yaml") -> None:
        """
        Args:
            content: YAML text.
            name: Collector name, also used in error messages.

        Raises:
            SourceError: If content is not valid YAML or not a mapping.
        """
        defaults = settings.get_settings()
        super().__init__(name=name, source_type=meta.SourceType.FILE, keep_order=defaults.yaml_keep_order)
        self._root = parse_yaml(content, name)

    @classmethod
    def from_file(cls, path: _pathlib.Path | str, *, encoding: str | None = None) -> YamlCollector:
        """
        Read and parse a YAML file. The collector is named after the path.

        Raises:
            SourceError: If the file cannot be read or parsed.
        """
        path = _pathlib.Path(path)
        encoding = encoding or settings.get_settings().file_encoding
        try:
            content = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise errors.SourceError(str(path), f"failed to read file: {e}") from e
        return cls(content, name=str(path))

    def _build_tree(self) -> tree.Node:
        return self._root
