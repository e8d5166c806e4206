"""
Builder: assembles collectors, merger, validators and inheritance into a Config.

Example:
    >>> import stratum
    >>> import stratum.collectors as collectors
    >>> builder = (
    ...     stratum.Builder()
    ...     .add_collector(collectors.MapCollector({"server": {"port": 8080}}))
    ...     .add_collector(collectors.EnvCollector().with_prefix("APP_"))
    ... )
    >>> config, errs = builder.build()
    >>> config.get("server/port")
    8080

Collectors are merged strictly in the order they were added, so a collector
added later overrides earlier ones. Building stops at the first collector
that reports errors, and validation never runs on a partially merged tree.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import os as _os
import threading as _threading
import typing as _typing

import stratum.collector as collector_mod
import stratum.config as config_mod
import stratum.errors as errors
import stratum.inheritance as inheritance
import stratum.merger as merger_mod
import stratum.tree as tree
import stratum.validator as validator
import stratum.validators.json_schema as json_schema

_logger = _logging.getLogger(__name__)


class Builder:
    """
    Configures and builds a Config.

    Every configuration method returns the builder so calls can be chained.
    """

    def __init__(self) -> None:
        self._collectors: list[collector_mod.Collector] = []
        self._validators: list[validator.Validator] = []
        self._merger: merger_mod.Merger = merger_mod.DEFAULT_MERGER
        self._hierarchies: list[inheritance.InheritanceConfig] = []

    @property
    def collectors(self) -> list[collector_mod.Collector]:
        """Registered collectors, lowest priority first."""
        return list(self._collectors)

    def add_collector(self, collector: collector_mod.Collector) -> Builder:
        """Add a collector with higher priority than all previous ones."""
        self._collectors.append(collector)
        return self

    def with_validator(self, v: validator.Validator) -> Builder:
        """Validate the merged tree with v. Multiple validators all run."""
        self._validators.append(v)
        return self

    def with_json_schema(
        self, schema: _abc.Mapping[str, _typing.Any] | bytes | str | _os.PathLike[str]
    ) -> Builder:
        """
        Validate the merged tree against a JSON Schema.

        Args:
            schema: The schema as a mapping, as JSON/YAML bytes, or the path
                to a schema file.

        Raises:
            SchemaError: If the schema cannot be loaded or is invalid.
        """
        if isinstance(schema, _abc.Mapping):
            v = json_schema.JsonSchemaValidator(schema)
        elif isinstance(schema, bytes):
            v = json_schema.JsonSchemaValidator.from_bytes(schema)
        else:
            v = json_schema.JsonSchemaValidator.from_file(schema)
        return self.with_validator(v)

    def with_merger(self, merger: merger_mod.Merger) -> Builder:
        """Replace the default merge engine."""
        self._merger = merger
        return self

    def with_inheritance(
        self, level_names: _abc.Sequence[str], *options: inheritance.InheritanceOption
    ) -> Builder:
        """
        Register an inheritance hierarchy.

        Several hierarchies can be registered; each path is resolved by the
        first one whose shape it matches.

        Args:
            level_names: Usually the result of inheritance.levels(GLOBAL, ...).
            options: with_defaults, with_no_inherit, with_no_inherit_from,
                with_inherit_merge.

        Raises:
            ValueError: If the levels do not start with GLOBAL or an option
                names an unknown level.
        """
        hierarchy = inheritance.build_config(level_names, options)
        self._hierarchies.append(hierarchy)
        _logger.debug("Registered inheritance hierarchy %s", list(hierarchy.levels))
        return self

    # =========================================================================
    # Building
    # =========================================================================

    def _merge_all(self, cancel: _threading.Event | None) -> tuple[tree.Node | None, list[Exception]]:
        root = tree.Node()
        total = len(self._collectors)
        for merged, source in enumerate(self._collectors):
            if tree.is_cancelled(cancel):
                return None, [self._cancelled(merged, total)]
            try:
                merger_mod.merge_collector(root, source, self._merger, cancel)
            except errors.CollectorError as e:
                return None, [e]
            # a collector stopped by the token returns normally with partial data
            if tree.is_cancelled(cancel):
                return None, [self._cancelled(merged, total)]

        found = validator.run_validators(self._validators, root)
        if found:
            _logger.warning("Configuration failed validation with %d error(s)", len(found))
            return None, [errors.ConfigValidationError(found)]

        return root, []

    @staticmethod
    def _cancelled(merged: int, total: int) -> errors.BuildCancelledError:
        _logger.warning("Build cancelled after %d of %d collector(s)", merged, total)
        return errors.BuildCancelledError(merged, total)

    def _resolver(self) -> inheritance.Resolver:
        return inheritance.Resolver(self._hierarchies)

    def build(self, cancel: _threading.Event | None = None) -> tuple[config_mod.Config, list[Exception]]:
        """
        Merge all collectors and validate the result.

        Args:
            cancel: Passed to every collector; once set, collectors stop
                producing values and the build fails with
                BuildCancelledError instead of validating a partial tree.

        Returns:
            (config, errors). When errors is non-empty the config has no
            tree and every lookup reports not found.
        """
        root, errs = self._merge_all(cancel)
        return config_mod.Config(root, resolver=self._resolver()), errs

    def build_mutable(
        self, cancel: _threading.Event | None = None
    ) -> tuple[config_mod.MutableConfig, list[Exception]]:
        """Like build(), but the result can be modified and keeps the validators."""
        root, errs = self._merge_all(cancel)
        return (
            config_mod.MutableConfig(root, resolver=self._resolver(), validators=self._validators),
            errs,
        )
