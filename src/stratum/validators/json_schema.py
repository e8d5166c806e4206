"""
JSON Schema validation of configuration trees.

Uses jsonschema's Draft 2020-12 validator. Every schema violation becomes a
ValidationError whose code is the failing schema keyword ("type",
"required", "minimum", ...) and whose range points at the offending value
when the tree was read from a document with position tracking.
"""

from __future__ import annotations

import collections.abc as _cabc
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import jsonschema as _jsonschema
import jsonschema.exceptions as _jsonschema_exceptions
import yaml as _yaml

import stratum.errors as errors
import stratum.keypath as keypath
import stratum.tree as tree
import stratum.validator as validator

_logger = _logging.getLogger(__name__)

SCHEMA_TYPE = "jsonschema"


def tree_instance(root: tree.Node) -> _typing.Any:
    """Plain data for a tree; an empty tree validates as an empty object."""
    if root.is_leaf() and root.value is None:
        return {}
    return root.to_python()


class JsonSchemaValidator(validator.Validator):
    """
    Validator backed by a JSON Schema document.

    Example:
        >>> v = JsonSchemaValidator({"type": "object", "required": ["port"]})
        >>> [str(e) for e in v.validate(tree.Node())]
        ["[required] 'port' is a required property"]
    """

    def __init__(self, schema: _cabc.Mapping[str, _typing.Any]) -> None:
        """
        Compile a schema.

        Args:
            schema: JSON Schema as a mapping.

        Raises:
            SchemaError: If the schema itself is invalid.
        """
        if not isinstance(schema, _cabc.Mapping):
            raise errors.SchemaError(
                "failed to create JSON schema validator",
                TypeError(f"schema must be a mapping, got {type(schema).__name__}"),
            )
        try:
            _jsonschema.Draft202012Validator.check_schema(schema)
        except _jsonschema_exceptions.SchemaError as e:
            raise errors.SchemaError("failed to create JSON schema validator", e) from e

        self._schema = dict(schema)
        self._validator = _jsonschema.Draft202012Validator(self._schema)

    @classmethod
    def from_bytes(cls, data: bytes | str) -> JsonSchemaValidator:
        """
        Compile a schema from JSON (or YAML) text.

        Raises:
            SchemaError: If the text cannot be parsed or the schema is invalid.
        """
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
        except UnicodeDecodeError as e:
            raise errors.SchemaError("failed to create JSON schema validator", e) from e
        try:
            schema = _json.loads(text)
        except ValueError:
            try:
                schema = _yaml.safe_load(text)
            except _yaml.YAMLError as e:
                raise errors.SchemaError("failed to create JSON schema validator", e) from e
        return cls(schema)

    @classmethod
    def from_file(cls, path: _pathlib.Path | str) -> JsonSchemaValidator:
        """
        Load and compile a schema file (JSON or YAML).

        Raises:
            SchemaError: If the file cannot be read or holds an invalid schema.
        """
        path = _pathlib.Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise errors.SchemaError(f"failed to read schema file {path}", e) from e
        return cls.from_bytes(data)

    @property
    def schema(self) -> dict[str, _typing.Any]:
        return self._schema

    def schema_type(self) -> str:
        return SCHEMA_TYPE

    def validate(self, root: tree.Node) -> list[validator.ValidationError]:
        instance = tree_instance(root)
        found: list[validator.ValidationError] = []

        for error in sorted(self._validator.iter_errors(instance), key=lambda e: list(map(str, e.path))):
            path = keypath.KeyPath(str(segment) for segment in error.absolute_path)
            found.append(
                validator.ValidationError(
                    path=path,
                    code=str(error.validator),
                    message=error.message,
                    range=validator.range_at(root, path),
                )
            )

        if found:
            _logger.debug("JSON schema validation found %d error(s)", len(found))
        return found
