"""
Collector interface.

A collector is a prioritized source of configuration values. The Builder
drains collectors one at a time, in the order they were added; later
collectors override earlier ones.
"""

from __future__ import annotations

import abc as _abc
import collections.abc as _cabc
import threading as _threading

import stratum.meta as meta
import stratum.tree as tree


class Collector(_abc.ABC):
    """
    Abstract base class for configuration sources.

    Subclasses must implement:
    - read(): Generator of values, honouring the cancel token
    - name (property): Stable identifier recorded as each value's source
    - source (property): SourceType classification
    - revision (property): Opaque revision token
    - keep_order (property): Whether key order at each level is significant
    """

    @_abc.abstractmethod
    def read(self, cancel: _threading.Event | None = None) -> _cabc.Iterator[tree.Value]:
        """
        Stream the collector's values.

        Args:
            cancel: Optional token. Once set, the iterator must stop
                yielding values.
        """
        ...

    @property
    @_abc.abstractmethod
    def name(self) -> str: ...

    @property
    @_abc.abstractmethod
    def source(self) -> meta.SourceType: ...

    @property
    @_abc.abstractmethod
    def revision(self) -> str: ...

    @property
    @_abc.abstractmethod
    def keep_order(self) -> bool: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
