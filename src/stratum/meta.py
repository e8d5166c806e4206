"""
Provenance metadata attached to configuration values.

Every node in a merged tree remembers which collector wrote it (by name and
source type), the collector's revision, and optionally where in a source
document the value came from.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum

import stratum.keypath as keypath


class SourceType(_enum.IntEnum):
    """Classification of where a value originated."""

    UNKNOWN = 0
    """Source could not be determined."""

    ENV_DEFAULT = 1
    """Default values supplied through environment variables."""

    STORAGE = 2
    """External centralized storage."""

    FILE = 3
    """A local file."""

    ENV = 4
    """Environment variables."""

    MODIFIED = 5
    """Changed at runtime through a MutableConfig."""


@_dataclasses.dataclass(frozen=True, slots=True)
class Position:
    """A 1-indexed line/column location in a source document."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@_dataclasses.dataclass(frozen=True, slots=True)
class Range:
    """Span of a value in a source document."""

    start: Position
    end: Position

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@_dataclasses.dataclass(frozen=True, slots=True)
class SourceInfo:
    name: str = ""
    type: SourceType = SourceType.UNKNOWN


@_dataclasses.dataclass(frozen=True, slots=True)
class MetaInfo:
    """
    Metadata describing a single value.

    Attributes:
        key: Full path of the value in the tree it was read from.
        source: Name and type of the collector that wrote the value.
        revision: Opaque revision token of that collector.
        range: Position in the source document, when known.
    """

    key: keypath.KeyPath
    source: SourceInfo = _dataclasses.field(default_factory=SourceInfo)
    revision: str = ""
    range: Range | None = None
