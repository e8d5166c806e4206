"""
Bundled collectors.

- MapCollector: nested in-memory mappings
- MockCollector: explicit entries, including failing ones
- EnvCollector: environment variables
- YamlCollector: YAML text or files, with source ranges
- StorageCollector: every document under a key-value storage prefix
- SourceCollector: one document from a DataSource (FileSource,
  StorageSource) parsed with a Format (YamlFormat)
"""

from stratum.collectors._base import BaseCollector, TreeCollector
from stratum.collectors.env import EnvCollector
from stratum.collectors.map import MapCollector
from stratum.collectors.mock import MockCollector
from stratum.collectors.source import DataSource, FileSource, Format, SourceCollector, YamlFormat
from stratum.collectors.storage import StorageCollector, StorageSource
from stratum.collectors.yaml_file import YamlCollector, parse_yaml

__all__ = [
    "BaseCollector",
    "DataSource",
    "EnvCollector",
    "FileSource",
    "Format",
    "MapCollector",
    "MockCollector",
    "SourceCollector",
    "StorageCollector",
    "StorageSource",
    "TreeCollector",
    "YamlCollector",
    "YamlFormat",
    "parse_yaml",
]
