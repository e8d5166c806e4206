"""
Collector over environment variables.

Names are mapped to paths by stripping a prefix, lowercasing, and
splitting on a delimiter: with prefix "APP_", APP_SERVER_PORT=8080 becomes
server/port = "8080". Values stay strings; convert them with
Config.get(path, int) or a validator.
"""

from __future__ import annotations

import collections.abc as _cabc
import os as _os

import stratum.collectors._base as _base
import stratum.keypath as keypath
import stratum.meta as meta
import stratum.settings as settings
import stratum.tree as tree

Transform = _cabc.Callable[[str], keypath.PathLike]


class EnvCollector(_base.TreeCollector):
    """
    Streams environment variables as configuration values.

    Prefix and delimiter default to the STRATUM_ENV_PREFIX and
    STRATUM_ENV_DELIMITER settings.
    """

    def __init__(self, environ: _cabc.Mapping[str, str] | None = None) -> None:
        """
        Args:
            environ: Variables to read. Defaults to os.environ at read time.
        """
        defaults = settings.get_settings()
        super().__init__(name="env", source_type=meta.SourceType.ENV)
        self._environ = environ
        self._prefix = defaults.env_prefix
        self._delimiter = defaults.env_delimiter
        self._transform: Transform | None = None

    def with_prefix(self, prefix: str) -> EnvCollector:
        """Only collect variables starting with prefix; the prefix is stripped."""
        self._prefix = prefix
        return self

    def with_delimiter(self, delimiter: str) -> EnvCollector:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self._delimiter = delimiter
        return self

    def with_transform(self, transform: Transform | None) -> EnvCollector:
        """
        Replace the name-to-path mapping.

        Raises:
            ValueError: If transform is None.
        """
        if transform is None:
            raise ValueError("transform function cannot be None")
        self._transform = transform
        return self

    def default_transform(self, name: str) -> keypath.KeyPath:
        """Lowercase name and split on the delimiter, dropping empty parts."""
        parts = [part for part in name.lower().split(self._delimiter) if part]
        return keypath.KeyPath(parts)

    def _strip_prefix(self, name: str) -> str | None:
        if not self._prefix:
            return name
        if name.startswith(self._prefix):
            return name[len(self._prefix) :]
        return None

    def _build_tree(self) -> tree.Node:
        environ = self._environ if self._environ is not None else _os.environ
        transform = self._transform or self.default_transform

        root = tree.Node()
        for name, value in environ.items():
            stripped = self._strip_prefix(name)
            if stripped is None:
                continue
            path = keypath.as_key_path(transform(stripped))
            if not path:
                continue
            root.set(path, value)
        return root
