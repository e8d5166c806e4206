"""
Key paths addressing locations in a configuration tree.

A KeyPath is an immutable sequence of string segments. Paths are usually
written with "/" as the delimiter ("server/http/port"), but any delimiter can
be used when parsing or formatting. Empty segments are ordinary literal keys:
"a//b" is the three-segment path ("a", "", "b").

Matching supports two wildcards in the pattern:

- ``*`` matches exactly one segment.
- ``**`` matches zero or more segments.

A pattern that runs out before the path still matches, so a pattern also
works as an ancestor filter: ("a", "b") matches ("a", "b", "c", "d").
"""

from __future__ import annotations

import collections.abc as _abc
import typing as _typing

DELIMITER = "/"

SINGLE_WILDCARD = "*"
MULTI_WILDCARD = "**"


class KeyPath(tuple[str, ...]):
    """
    Immutable sequence of key segments.

    ``KeyPath("a/b")`` parses a string with the default delimiter, while
    ``KeyPath(["a", "b"])`` takes segments as given.

    Example:
        >>> path = KeyPath("server/http")
        >>> path.append("port")
        KeyPath('server/http/port')
        >>> path.parent()
        KeyPath('server')
    """

    __slots__ = ()

    def __new__(cls, segments: str | _abc.Iterable[str] = ()) -> KeyPath:
        if isinstance(segments, str):
            return cls.parse(segments)
        return super().__new__(cls, (str(segment) for segment in segments))

    @classmethod
    def parse(cls, text: str, delimiter: str = DELIMITER) -> KeyPath:
        """
        Split text into a path.

        An empty string is the empty path. Leading, trailing and repeated
        delimiters produce empty segments.

        Args:
            text: The string to split.
            delimiter: Segment separator; must be non-empty.

        Raises:
            ValueError: If delimiter is empty.
        """
        if not delimiter:
            raise ValueError("key path delimiter must not be empty")
        if text == "":
            return super().__new__(cls, ())
        return super().__new__(cls, text.split(delimiter))

    def append(self, *segments: str) -> KeyPath:
        """Return a new path with segments added at the end."""
        return KeyPath(tuple(self) + tuple(segments))

    def parent(self) -> KeyPath | None:
        """Return the path without its last segment, or None for paths of length <= 1."""
        if len(self) <= 1:
            return None
        return KeyPath(self[:-1])

    def leaf(self) -> str:
        """Return the last segment, or "" for the empty path."""
        if not self:
            return ""
        return self[-1]

    def equals(self, other: _abc.Sequence[str]) -> bool:
        """Positional equality against any sequence of segments."""
        return tuple(self) == tuple(other)

    def has_empty_segment(self) -> bool:
        return any(segment == "" for segment in self)

    def has_prefix(self, prefix: _abc.Sequence[str]) -> bool:
        """True if the first segments of this path equal prefix."""
        if len(prefix) > len(self):
            return False
        return tuple(self[: len(prefix)]) == tuple(prefix)

    def match(self, pattern: _abc.Sequence[str]) -> bool:
        """
        Match this path against a wildcard pattern.

        Args:
            pattern: Segments where "*" matches one segment and "**" matches
                any number of segments. Other segments, including "", must
                match literally.

        Returns:
            True if the pattern matches the whole path or a prefix of it.
        """
        path_pos = 0
        pattern_pos = 0
        # Position of the last "**" and the path position it is anchored at.
        star_pattern = -1
        star_path = -1

        while path_pos < len(self):
            if pattern_pos == len(pattern):
                return True

            token = pattern[pattern_pos]
            if token == MULTI_WILDCARD:
                star_pattern = pattern_pos
                star_path = path_pos
                pattern_pos += 1
                continue

            if token == SINGLE_WILDCARD or token == self[path_pos]:
                path_pos += 1
                pattern_pos += 1
                continue

            if star_pattern >= 0:
                star_path += 1
                path_pos = star_path
                pattern_pos = star_pattern + 1
                continue

            return False

        return all(token == MULTI_WILDCARD for token in pattern[pattern_pos:])

    def make_string(self, delimiter: str = DELIMITER) -> str:
        return delimiter.join(self)

    def __str__(self) -> str:
        return self.make_string(DELIMITER)

    def __repr__(self) -> str:
        return f"KeyPath({self.make_string(DELIMITER)!r})"

    def __add__(self, other: _typing.Any) -> KeyPath:  # type: ignore[override]
        if isinstance(other, tuple):
            return KeyPath(tuple(self) + tuple(other))
        return NotImplemented


PathLike = KeyPath | str | _abc.Sequence[str]


def as_key_path(path: PathLike | None) -> KeyPath:
    """
    Coerce a string, sequence or None into a KeyPath.

    Strings are parsed with the default delimiter; None is the empty path.
    """
    if path is None:
        return KeyPath()
    if isinstance(path, KeyPath):
        return path
    return KeyPath(path)


def new_key_path_with_delim(text: str, delimiter: str) -> KeyPath:
    """Parse text using a custom delimiter."""
    return KeyPath.parse(text, delimiter)
