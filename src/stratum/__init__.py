"""
stratum: layered configuration trees.

Values from several prioritized collectors are merged into one ordered
tree; later collectors win. Multi-level ownership hierarchies (global,
group, replica set, instance, ...) can be resolved into an effective
configuration per leaf entity.

Example:
    >>> import stratum
    >>> import stratum.collectors as collectors
    >>> config, errs = (
    ...     stratum.Builder()
    ...     .add_collector(collectors.MapCollector({"log": {"level": "info"}}))
    ...     .add_collector(collectors.MapCollector({"log": {"level": "debug"}}).with_name("override"))
    ...     .build()
    ... )
    >>> config.get("log/level")
    'debug'
"""

from stratum.errors import (
    BuildCancelledError,
    CollectorError,
    ConfigValidationError,
    KeyNotFoundError,
    MergeError,
    NoInheritanceError,
    PathNotFoundError,
    SchemaError,
    SourceError,
    StorageError,
    StratumError,
)
from stratum.keypath import KeyPath, new_key_path_with_delim
from stratum.meta import MetaInfo, Position, Range, SourceInfo, SourceType
from stratum.builder import Builder
from stratum.collector import Collector
from stratum.config import Config, MutableConfig
from stratum.inheritance import (
    GLOBAL,
    MergeStrategy,
    levels,
    with_defaults,
    with_inherit_merge,
    with_no_inherit,
    with_no_inherit_from,
)
from stratum.storage import KeyValue, MemoryStorage, Storage
from stratum.merger import DEFAULT_MERGER, DefaultMerger, Merger, MergerContext, merge_collector
from stratum.validator import ValidationError, Validator

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_MERGER",
    "GLOBAL",
    "BuildCancelledError",
    "Builder",
    "Collector",
    "CollectorError",
    "Config",
    "ConfigValidationError",
    "DefaultMerger",
    "KeyNotFoundError",
    "KeyPath",
    "KeyValue",
    "MergeError",
    "MergeStrategy",
    "Merger",
    "MergerContext",
    "MemoryStorage",
    "MetaInfo",
    "MutableConfig",
    "NoInheritanceError",
    "PathNotFoundError",
    "Position",
    "Range",
    "SchemaError",
    "SourceError",
    "SourceInfo",
    "SourceType",
    "Storage",
    "StorageError",
    "StratumError",
    "ValidationError",
    "Validator",
    "levels",
    "merge_collector",
    "new_key_path_with_delim",
    "with_defaults",
    "with_inherit_merge",
    "with_no_inherit",
    "with_no_inherit_from",
]
