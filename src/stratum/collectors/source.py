"""
Collectors assembled from a data source and a format.

A DataSource knows where raw bytes live (a file, a storage key) and what
provenance to report for them. A Format turns those bytes into a tree.
SourceCollector combines one of each, so a new location or a new syntax
only needs one small class:

    >>> c = SourceCollector(FileSource("app.yaml"), YamlFormat())
"""

from __future__ import annotations

import abc as _abc
import logging as _logging
import os as _os
import pathlib as _pathlib

import stratum.collectors._base as _base
import stratum.collectors.yaml_file as yaml_file
import stratum.errors as errors
import stratum.meta as meta
import stratum.settings as settings
import stratum.tree as tree

_logger = _logging.getLogger(__name__)


# =============================================================================
# Data sources
# =============================================================================


class DataSource(_abc.ABC):
    """Where raw configuration bytes come from."""

    @property
    @_abc.abstractmethod
    def name(self) -> str: ...

    @property
    @_abc.abstractmethod
    def source_type(self) -> meta.SourceType: ...

    @property
    @_abc.abstractmethod
    def revision(self) -> str:
        """Revision of the data returned by the last successful fetch()."""
        ...

    @_abc.abstractmethod
    def fetch(self) -> bytes:
        """
        Return the raw document.

        Raises:
            SourceError: If the data cannot be read.
        """
        ...


class FileSource(DataSource):
    """A local file, reported with source name "file"."""

    def __init__(self, path: _pathlib.Path | str | _os.PathLike[str]) -> None:
        self._path = _pathlib.Path(path)

    @property
    def path(self) -> _pathlib.Path:
        return self._path

    @property
    def name(self) -> str:
        return "file"

    @property
    def source_type(self) -> meta.SourceType:
        return meta.SourceType.FILE

    @property
    def revision(self) -> str:
        return ""

    def fetch(self) -> bytes:
        try:
            return self._path.read_bytes()
        except OSError as e:
            raise errors.SourceError(str(self._path), f"failed to read file: {e}") from e


# =============================================================================
# Formats
# =============================================================================


class Format(_abc.ABC):
    """Syntax of a raw document."""

    @property
    @_abc.abstractmethod
    def name(self) -> str: ...

    @property
    @_abc.abstractmethod
    def keep_order(self) -> bool:
        """Whether the document's key order is significant."""
        ...

    @_abc.abstractmethod
    def parse(self, data: bytes, source: str) -> tree.Node:
        """
        Parse a document into a tree.

        Args:
            data: Raw document.
            source: Where the data came from, for error messages.

        Raises:
            SourceError: If the document is malformed.
        """
        ...


class YamlFormat(Format):
    """YAML documents, parsed with source ranges (see parse_yaml)."""

    def __init__(self, *, keep_order: bool | None = None, encoding: str | None = None) -> None:
        """
        Args:
            keep_order: Defaults to the STRATUM_YAML_KEEP_ORDER setting.
            encoding: Defaults to the STRATUM_FILE_ENCODING setting.
        """
        defaults = settings.get_settings()
        self._keep_order = defaults.yaml_keep_order if keep_order is None else keep_order
        self._encoding = encoding or defaults.file_encoding

    @property
    def name(self) -> str:
        return "yaml"

    @property
    def keep_order(self) -> bool:
        return self._keep_order

    def parse(self, data: bytes, source: str) -> tree.Node:
        try:
            text = data.decode(self._encoding)
        except UnicodeDecodeError as e:
            raise errors.SourceError(source, f"failed to decode {self._encoding} text: {e}") from e
        return yaml_file.parse_yaml(text, source)


# =============================================================================
# Collector
# =============================================================================


class SourceCollector(_base.TreeCollector):
    """
    Collector over one document fetched from a DataSource.

    The document is fetched and parsed when the collector is created.
    Name, source type and revision are taken from the data source; key
    ordering from the format.
    """

    def __init__(self, source: DataSource, format_: Format) -> None:
        """
        Raises:
            SourceError: If fetching or parsing fails.
        """
        data = source.fetch()
        self._root = format_.parse(data, source.name)
        super().__init__(
            name=source.name,
            source_type=source.source_type,
            revision=source.revision,
            keep_order=format_.keep_order,
        )
        self._data_source = source
        self._format = format_
        _logger.debug("Loaded %d byte(s) of %s from %s", len(data), format_.name, source.name)

    @property
    def data_source(self) -> DataSource:
        return self._data_source

    @property
    def format(self) -> Format:
        return self._format

    def _build_tree(self) -> tree.Node:
        return self._root
