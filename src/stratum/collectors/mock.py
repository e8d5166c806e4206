"""Collector with explicitly listed entries, for tests and examples."""

from __future__ import annotations

import collections.abc as _cabc
import copy as _copy
import dataclasses as _dataclasses
import threading as _threading
import typing as _typing

import stratum.collectors._base as _base
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.tree as tree


@_dataclasses.dataclass(frozen=True, slots=True)
class _Entry:
    path: keypath.KeyPath
    value: _typing.Any = None
    error: BaseException | None = None


class _EntryValue(tree.Value):
    __slots__ = ("_entry", "_collector")

    def __init__(self, entry: _Entry, collector: MockCollector) -> None:
        self._entry = entry
        self._collector = collector

    def get(self, type_: _typing.Any = None) -> _typing.Any:
        if self._entry.error is not None:
            raise self._entry.error
        raw = _copy.deepcopy(self._entry.value)
        return raw if type_ is None else tree.convert(raw, type_)

    def meta(self) -> meta.MetaInfo:
        return meta.MetaInfo(
            key=self._entry.path,
            source=meta.SourceInfo(name=self._collector.name, type=self._collector.source),
            revision=self._collector.revision,
        )


class MockCollector(_base.BaseCollector):
    """
    Streams entries exactly as added, one value per entry.

    Mapping values are passed through unflattened, so the merger sees them
    as whole mappings. with_error() adds an entry whose extraction fails.
    """

    def __init__(self) -> None:
        super().__init__(name="mock")
        self._entries: list[_Entry] = []

    def with_entry(self, path: keypath.PathLike, value: _typing.Any) -> MockCollector:
        self._entries.append(_Entry(keypath.as_key_path(path), value))
        return self

    def with_entries(self, entries: _cabc.Mapping[str, _typing.Any]) -> MockCollector:
        """Add one entry per item; keys are "/"-separated paths."""
        for key, value in entries.items():
            self.with_entry(key, value)
        return self

    def with_error(self, path: keypath.PathLike, error: BaseException) -> MockCollector:
        self._entries.append(_Entry(keypath.as_key_path(path), error=error))
        return self

    def read(self, cancel: _threading.Event | None = None) -> _cabc.Iterator[tree.Value]:
        for entry in list(self._entries):
            if tree.is_cancelled(cancel):
                return
            yield _EntryValue(entry, self)
