"""
Exceptions raised by stratum.

Lookup misses (KeyNotFoundError, PathNotFoundError) are ordinary, recoverable
conditions. Errors produced while building a configuration are collected and
returned by Builder.build() instead of being raised.
"""

from __future__ import annotations

import typing as _typing

if _typing.TYPE_CHECKING:
    import stratum.keypath as keypath
    import stratum.validator as validator


class StratumError(Exception):
    """Base class for all stratum errors."""


class KeyNotFoundError(StratumError, KeyError):
    """A point lookup found no node at the requested path."""

    def __init__(self, path: keypath.KeyPath) -> None:
        self.path = path
        super().__init__(f"key not found: {path}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class PathNotFoundError(StratumError, LookupError):
    """A traversal or slice started from a path that does not exist."""

    def __init__(self, path: keypath.KeyPath) -> None:
        self.path = path
        super().__init__(f"path not found: {path}")


class NoInheritanceError(StratumError):
    """effective_all() was called but no hierarchy was registered."""

    def __init__(self) -> None:
        super().__init__("no inheritance hierarchy configured")


class CollectorError(StratumError):
    """
    One or more values from a collector could not be merged.

    Attributes:
        collector_name: Name of the failing collector.
        errors: Every error encountered while draining it, in order.
    """

    def __init__(self, collector_name: str, errors: _typing.Sequence[BaseException]) -> None:
        self.collector_name = collector_name
        self.errors = list(errors)
        joined = "\n".join(str(error) for error in self.errors)
        super().__init__(f"collector {collector_name}: {joined}")


class MergeError(StratumError):
    """A single value could not be extracted from a collector or merged."""

    def __init__(self, message: str, path: keypath.KeyPath | None = None) -> None:
        self.path = path
        super().__init__(message)


class ConfigValidationError(StratumError):
    """The merged tree does not satisfy a validator."""

    def __init__(self, errors: _typing.Sequence[validator.ValidationError]) -> None:
        self.errors = list(errors)
        details = "\n".join(f"  {error}" for error in self.errors)
        super().__init__(f"configuration validation failed:\n{details}")


class SchemaError(StratumError):
    """A validator could not be created from the given schema."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class SourceError(StratumError):
    """A collector could not fetch or parse its data."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Error in source {source}: {message}")


class BuildCancelledError(StratumError):
    """The cancel token was set before every collector was fully merged."""

    def __init__(self, merged: int, total: int) -> None:
        self.merged = merged
        self.total = total
        super().__init__(f"build cancelled after {merged} of {total} collector(s)")


class StorageError(StratumError):
    """A key-value storage backend failed to answer a query."""
