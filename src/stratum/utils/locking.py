"""
Read/write lock for in-process synchronization.

Any number of readers may hold the lock together; a writer holds it alone.
Waiting writers block new readers so a steady stream of reads cannot starve
mutations.
"""

from __future__ import annotations

import collections.abc as _abc
import contextlib as _contextlib
import threading as _threading


class ReadWriteLock:
    """Shared/exclusive lock. Not reentrant."""

    def __init__(self) -> None:
        self._cond = _threading.Condition(_threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @_contextlib.contextmanager
    def read(self) -> _abc.Iterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @_contextlib.contextmanager
    def write(self) -> _abc.Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()
