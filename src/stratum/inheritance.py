"""
Hierarchical inheritance of configuration values.

A hierarchy is declared as an ordered list of levels. The first level is
always GLOBAL (the tree root); every following level is a structural key
whose children are named entities:

    levels(GLOBAL, "groups", "replicasets", "instances")

    groups/<group>/replicasets/<replicaset>/instances/<instance>

The effective configuration of a leaf entity overlays, from lowest to
highest priority:

1. Configured defaults
2. The global layer (root keys minus every hierarchy's structural keys)
3. Each ancestor entity's own keys
4. The leaf entity's own keys

How a key from an inner layer combines with the accumulated value is
controlled by a MergeStrategy, which can be set per key path. Keys can be
excluded from inheritance everywhere (with_no_inherit) or only from one
level (with_no_inherit_from).
"""

from __future__ import annotations

import collections.abc as _abc
import copy as _copy
import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import typing as _typing

import stratum.keypath as keypath
import stratum.tree as tree

_logger = _logging.getLogger(__name__)

GLOBAL = ""
"""Sentinel for the root level; must be the first argument of levels()."""

DEFAULTS_SOURCE = "defaults"

# Each level below GLOBAL contributes a structural key and an entity name.
_SEGMENTS_PER_LEVEL = 2


class MergeStrategy(_enum.Enum):
    """How an inner layer's value combines with the inherited one."""

    REPLACE = "replace"
    """Inner value wins outright. The default for every key."""

    APPEND = "append"
    """Lists are concatenated, outer first. Other values fall back to REPLACE."""

    DEEP = "deep"
    """Mappings merge recursively, inner keys winning. Other values fall back to REPLACE."""


def levels(*names: str) -> tuple[str, ...]:
    """
    Declare the levels of a hierarchy.

    Args:
        names: GLOBAL followed by the structural keys, outermost first.

    Returns:
        The level list, for Builder.with_inheritance().

    Raises:
        ValueError: If names is empty, does not start with GLOBAL, or
            contains another empty or repeated structural key.
    """
    if not names:
        raise ValueError("levels requires at least one argument (GLOBAL)")
    if names[0] != GLOBAL:
        raise ValueError("first argument to levels must be GLOBAL")

    structural = names[1:]
    if any(name == GLOBAL for name in structural):
        raise ValueError("GLOBAL may only appear as the first level")
    if len(set(structural)) != len(structural):
        raise ValueError(f"duplicate level in {list(structural)}")
    return tuple(names)


def parse_config_key(key: str | _abc.Sequence[str]) -> keypath.KeyPath:
    """
    Parse a configuration key used by inheritance options.

    "/" separates segments. A key without "/" is split on "." instead, so
    "snapshot.dir" and "snapshot/dir" name the same path.
    """
    if not isinstance(key, str):
        return keypath.KeyPath(key)
    if "/" in key:
        return keypath.KeyPath.parse(key, "/")
    return keypath.KeyPath.parse(key, ".")


# =============================================================================
# Configuration
# =============================================================================


@_dataclasses.dataclass
class InheritanceConfig:
    """
    Full inheritance configuration of one hierarchy.

    Attributes:
        levels: GLOBAL followed by the structural keys.
        defaults: Lowest-priority values for every resolved entity.
        no_inherit: Key prefixes never propagated from any outer level.
        no_inherit_from: Level index to key prefixes not propagated from it.
        merge_strategies: Key path to the strategy used for it.
    """

    levels: tuple[str, ...]
    defaults: _abc.Mapping[str, _typing.Any] | None = None
    no_inherit: list[keypath.KeyPath] = _dataclasses.field(default_factory=list)
    no_inherit_from: dict[int, list[keypath.KeyPath]] = _dataclasses.field(default_factory=dict)
    merge_strategies: dict[keypath.KeyPath, MergeStrategy] = _dataclasses.field(default_factory=dict)

    @property
    def structural_keys(self) -> tuple[str, ...]:
        return self.levels[1:]

    def level_index(self, level: str) -> int | None:
        try:
            return self.levels.index(level)
        except ValueError:
            return None

    def exclusions_for(self, level_idx: int) -> list[keypath.KeyPath]:
        """Key prefixes that must not be inherited from the given level."""
        return self.no_inherit + self.no_inherit_from.get(level_idx, [])

    def strategy_for(self, path: keypath.KeyPath) -> tuple[MergeStrategy, bool]:
        """Return (strategy, explicitly_registered) for a key path."""
        strategy = self.merge_strategies.get(path)
        if strategy is None:
            return MergeStrategy.REPLACE, False
        return strategy, True

    def has_sub_strategies(self, path: keypath.KeyPath) -> bool:
        """True if a strategy is registered strictly below path."""
        return any(len(key) > len(path) and key.has_prefix(path) for key in self.merge_strategies)

    def match(
        self, root: tree.Node, path: keypath.KeyPath
    ) -> list[tree.Node | None] | None:
        """
        Match a leaf-entity path against this hierarchy.

        Returns:
            One node per level, root first, or None if the path does not
            have this hierarchy's shape. Entities missing from the tree are
            None, as is every level below them.
        """
        expected_len = (len(self.levels) - 1) * _SEGMENTS_PER_LEVEL
        if len(path) != expected_len:
            return None

        layers: list[tree.Node | None] = [root]
        current: tree.Node | None = root

        for level_idx in range(1, len(self.levels)):
            offset = (level_idx - 1) * _SEGMENTS_PER_LEVEL
            structural_key, name = path[offset], path[offset + 1]
            if structural_key != self.levels[level_idx]:
                return None

            if current is not None:
                container = current.child(structural_key)
                current = container.child(name) if container is not None else None
            layers.append(current)

        return layers


InheritanceOption = _typing.Callable[[InheritanceConfig], None]


def with_defaults(defaults: _abc.Mapping[str, _typing.Any]) -> InheritanceOption:
    """Values applied beneath every other layer of each resolved entity."""

    def apply(config: InheritanceConfig) -> None:
        config.defaults = _copy.deepcopy(dict(defaults))

    return apply


def with_no_inherit(*keys: str) -> InheritanceOption:
    """
    Never propagate these key prefixes down the hierarchy.

    A key marked this way only takes effect at the entity that sets it.
    """

    def apply(config: InheritanceConfig) -> None:
        config.no_inherit.extend(parse_config_key(key) for key in keys)

    return apply


def with_no_inherit_from(level: str, *keys: str) -> InheritanceOption:
    """
    Do not propagate these key prefixes from one specific level.

    The same keys set at other levels still inherit normally.

    Raises:
        ValueError: When applied, if level is not part of the hierarchy.
    """

    def apply(config: InheritanceConfig) -> None:
        level_idx = config.level_index(level)
        if level_idx is None:
            raise ValueError(f"level {level!r} not found in hierarchy {list(config.levels)}")
        config.no_inherit_from.setdefault(level_idx, []).extend(
            parse_config_key(key) for key in keys
        )

    return apply


def with_inherit_merge(key: str, strategy: MergeStrategy) -> InheritanceOption:
    """
    Set the merge strategy for a key path.

    A strategy on a nested path ("credentials/users") overrides the strategy
    of a registered ancestor ("credentials") for that sub-path only.
    """
    if not isinstance(strategy, MergeStrategy):
        raise TypeError(f"strategy must be a MergeStrategy, got {strategy!r}")

    def apply(config: InheritanceConfig) -> None:
        config.merge_strategies[parse_config_key(key)] = strategy

    return apply


def build_config(
    level_names: _abc.Sequence[str], options: _abc.Iterable[InheritanceOption] = ()
) -> InheritanceConfig:
    """Create an InheritanceConfig and apply options in order."""
    config = InheritanceConfig(levels=levels(*level_names))
    for option in options:
        option(config)
    return config


# =============================================================================
# Resolution
# =============================================================================


def _is_list_leaf(node: tree.Node | None) -> bool:
    return node is not None and node.is_leaf() and isinstance(node.value, (list, tuple))


def _is_map_node(node: tree.Node | None) -> bool:
    return node is not None and not node.is_leaf()


def _merge_into(
    result: tree.Node, key: str, source: tree.Node, strategy: MergeStrategy
) -> None:
    existing = result.child(key)

    if strategy is MergeStrategy.APPEND:
        if existing is not None and _is_list_leaf(existing) and _is_list_leaf(source):
            existing.value = list(existing.value) + _copy.deepcopy(list(source.value))
            return
    elif strategy is MergeStrategy.DEEP:
        if existing is not None and _is_map_node(existing) and _is_map_node(source):
            _deep_merge(existing, source)
            return

    result.set_child(key, source.clone())


def _deep_merge(dst: tree.Node, src: tree.Node) -> None:
    for key, src_child in src.children():
        dst_child = dst.child(key)
        if dst_child is not None and _is_map_node(dst_child) and _is_map_node(src_child):
            _deep_merge(dst_child, src_child)
        else:
            dst.set_child(key, src_child.clone())


def _merge_with_strategies(
    result: tree.Node,
    key: str,
    source: tree.Node,
    path: keypath.KeyPath,
    inherited: MergeStrategy,
    config: InheritanceConfig,
) -> None:
    strategy, explicit = config.strategy_for(path)
    if not explicit:
        strategy = inherited

    existing = result.child(key)
    if (
        existing is None
        or not config.has_sub_strategies(path)
        or not _is_map_node(existing)
        or not _is_map_node(source)
    ):
        _merge_into(result, key, source, strategy)
        return

    # Nested strategies: walk down so each sub-path gets its own strategy;
    # children without one inherit this level's strategy.
    for child_key, child in source.children():
        _merge_with_strategies(existing, child_key, child, path.append(child_key), strategy, config)


def _prune(node: tree.Node, path: keypath.KeyPath) -> None:
    """Delete path below node, dropping ancestors left without children."""
    if not path:
        return
    head = node.child(path[0])
    if head is None:
        return
    if len(path) == 1:
        node.delete_child(path[0])
        return
    if head.is_leaf():
        return
    _prune(head, keypath.KeyPath(path[1:]))
    if head.is_leaf():
        node.delete_child(path[0])


def _layer_contribution(
    key: str, child: tree.Node, exclusions: _abc.Sequence[keypath.KeyPath]
) -> tree.Node | None:
    """The part of a layer's top-level key that may be inherited, or None."""
    key_path = keypath.KeyPath([key])
    nested: list[keypath.KeyPath] = []
    for excluded in exclusions:
        if not excluded:
            continue
        if key_path.has_prefix(excluded):
            return None
        if excluded[0] == key:
            nested.append(keypath.KeyPath(excluded[1:]))

    if not nested or child.is_leaf():
        return child

    pruned = child.clone()
    for sub_path in nested:
        _prune(pruned, sub_path)
    if pruned.is_leaf():
        return None
    return pruned


def _apply_defaults(result: tree.Node, defaults: _abc.Mapping[str, _typing.Any]) -> None:
    def visit(prefix: keypath.KeyPath, value: _typing.Any) -> None:
        if isinstance(value, _abc.Mapping):
            for child_key, child_value in value.items():
                visit(prefix.append(str(child_key)), child_value)
            return
        node = result.set(prefix, _copy.deepcopy(value))
        node.source = DEFAULTS_SOURCE

    for key, value in defaults.items():
        visit(keypath.KeyPath([str(key)]), value)


def resolve_effective(
    layers: _abc.Sequence[tree.Node | None],
    config: InheritanceConfig,
    global_exclude: _abc.Container[str] = (),
) -> tree.Node:
    """
    Overlay layers, outermost first, into a new tree.

    Args:
        layers: Node per level as returned by InheritanceConfig.match().
        config: The hierarchy's configuration.
        global_exclude: Keys to drop from the global (first) layer, normally
            the structural keys of every registered hierarchy.

    Returns:
        A fresh tree; the input layers are never modified.
    """
    result = tree.Node()
    if config.defaults:
        _apply_defaults(result, config.defaults)

    structural = set(config.structural_keys)
    leaf_idx = len(layers) - 1

    for level_idx, layer in enumerate(layers):
        if layer is None:
            continue
        exclusions = config.exclusions_for(level_idx) if level_idx < leaf_idx else []

        for key, child in layer.children():
            if key in structural or (level_idx == 0 and key in global_exclude):
                continue
            contribution = _layer_contribution(key, child, exclusions)
            if contribution is None:
                continue
            _merge_with_strategies(
                result, key, contribution, keypath.KeyPath([key]), MergeStrategy.REPLACE, config
            )

    return result


class Resolver:
    """Resolves effective configurations across all registered hierarchies."""

    def __init__(self, hierarchies: _abc.Sequence[InheritanceConfig] = ()) -> None:
        self._hierarchies = list(hierarchies)
        self._structural: frozenset[str] = frozenset(
            key for config in self._hierarchies for key in config.structural_keys
        )

    def __bool__(self) -> bool:
        return bool(self._hierarchies)

    @property
    def hierarchies(self) -> list[InheritanceConfig]:
        return list(self._hierarchies)

    def resolve(self, root: tree.Node, path: keypath.KeyPath) -> tree.Node | None:
        """
        Effective tree for a leaf-entity path.

        Returns:
            The resolved tree, or None if no hierarchy matches the path.
        """
        for config in self._hierarchies:
            layers = config.match(root, path)
            if layers is None:
                continue
            _logger.debug("Resolving '%s' through hierarchy %s", path, list(config.levels))
            return resolve_effective(layers, config, self._structural)
        return None

    def leaf_paths(self, root: tree.Node) -> list[keypath.KeyPath]:
        """Every leaf-entity path present in the tree, per hierarchy in order."""
        found: list[keypath.KeyPath] = []
        for config in self._hierarchies:
            frontier: list[tuple[tree.Node, keypath.KeyPath]] = [(root, keypath.KeyPath())]
            for structural_key in config.structural_keys:
                next_frontier: list[tuple[tree.Node, keypath.KeyPath]] = []
                for node, prefix in frontier:
                    container = node.child(structural_key)
                    if container is None or container.is_leaf():
                        continue
                    for name, entity in container.children():
                        next_frontier.append((entity, prefix.append(structural_key, name)))
                frontier = next_frontier
            found.extend(path for _, path in frontier)
        return found
