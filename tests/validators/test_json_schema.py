"""Tests for JSON Schema validation of configuration trees."""

import json as _json
import pathlib as _pathlib

import pytest as _pytest

import stratum
import stratum.collectors as collectors
import stratum.errors as errors
import stratum.keypath as keypath
import stratum.merger as merger
import stratum.meta as meta
import stratum.tree as tree
import stratum.validators.json_schema as json_schema

SCHEMA = {
    "type": "object",
    "required": ["server"],
    "properties": {
        "server": {
            "type": "object",
            "required": ["host"],
            "properties": {
                "host": {"type": "string"},
                "port": {"type": "integer", "minimum": 1024},
            },
        },
        "roles": {"type": "array", "items": {"type": "string"}},
    },
}


def _tree(data: dict) -> tree.Node:
    return tree.Node.from_python(data)


class TestConstruction:
    """Creating validators from schemas."""

    def test_schema_type(self) -> None:
        """The schema language is reported as jsonschema."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        assert v.schema_type() == "jsonschema"
        assert v.schema == SCHEMA

    def test_invalid_schema(self) -> None:
        """Schemas that fail the metaschema raise SchemaError with the cause."""
        with _pytest.raises(errors.SchemaError) as exc_info:
            json_schema.JsonSchemaValidator({"type": "invalid_type"})
        assert str(exc_info.value).startswith("failed to create JSON schema validator: ")
        assert exc_info.value.cause is not None

    def test_non_mapping_schema(self) -> None:
        """A schema must be an object."""
        with _pytest.raises(errors.SchemaError):
            json_schema.JsonSchemaValidator(["not", "a", "schema"])  # type: ignore[arg-type]

    def test_from_bytes_json_and_yaml(self) -> None:
        """Schema text may be JSON or YAML."""
        from_json = json_schema.JsonSchemaValidator.from_bytes(_json.dumps(SCHEMA).encode())
        from_yaml = json_schema.JsonSchemaValidator.from_bytes(b"type: object\nrequired: [server]\n")
        assert from_json.schema == SCHEMA
        assert from_yaml.schema == {"type": "object", "required": ["server"]}

    def test_from_bytes_garbage(self) -> None:
        """Unparseable text raises SchemaError."""
        with _pytest.raises(errors.SchemaError):
            json_schema.JsonSchemaValidator.from_bytes(b"{unclosed: [")

    def test_non_utf8_schema(self, tmp_path: _pathlib.Path) -> None:
        """Undecodable schema bytes raise SchemaError from every entry point."""
        data = "type: object\ndescription: caf\xe9\n".encode("latin-1")
        path = tmp_path / "latin.yaml"
        path.write_bytes(data)

        with _pytest.raises(errors.SchemaError) as exc_info:
            json_schema.JsonSchemaValidator.from_bytes(data)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)
        with _pytest.raises(errors.SchemaError):
            json_schema.JsonSchemaValidator.from_file(path)
        with _pytest.raises(errors.SchemaError):
            stratum.Builder().with_json_schema(path)

    def test_from_file(self, tmp_path: _pathlib.Path) -> None:
        """Schema files are read and compiled."""
        path = tmp_path / "schema.yaml"
        path.write_text("type: object\n")
        assert json_schema.JsonSchemaValidator.from_file(path).schema == {"type": "object"}

    def test_from_missing_file(self, tmp_path: _pathlib.Path) -> None:
        """A missing file raises SchemaError."""
        with _pytest.raises(errors.SchemaError, match="failed to read schema file"):
            json_schema.JsonSchemaValidator.from_file(tmp_path / "missing.json")


class TestValidate:
    """Mapping jsonschema errors to ValidationError."""

    def test_valid(self) -> None:
        """A conforming tree has no errors."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        assert v.validate(_tree({"server": {"host": "h", "port": 8080}, "roles": ["a"]})) == []

    def test_type_error(self) -> None:
        """The failing keyword is the code and the value's path is the path."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        [error] = v.validate(_tree({"server": {"host": "h", "port": "x"}}))
        assert error.path == ("server", "port")
        assert error.code == "type"
        assert "'x' is not of type 'integer'" in error.message
        assert str(error) == f"server/port [type] {error.message}"

    def test_required_points_at_object(self) -> None:
        """A missing property is reported at the object that lacks it."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        [error] = v.validate(_tree({"server": {"port": 8080}}))
        assert error.path == ("server",)
        assert error.code == "required"
        assert error.message == "'host' is a required property"

    def test_empty_tree(self) -> None:
        """An empty tree validates as an empty object."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        [error] = v.validate(tree.Node())
        assert error.path == ()
        assert str(error) == "[required] 'server' is a required property"

    def test_all_errors_sorted_by_path(self) -> None:
        """Every violation is reported, ordered by path."""
        v = json_schema.JsonSchemaValidator(SCHEMA)
        found = v.validate(_tree({"server": {"host": 1, "port": 80}, "roles": ["ok", 2]}))
        assert [(str(e.path), e.code) for e in found] == [
            ("roles/1", "type"),
            ("server/host", "type"),
            ("server/port", "minimum"),
        ]

    def test_error_range_from_yaml(self) -> None:
        """Errors carry the source range of the offending value."""
        root = tree.Node()
        merger.merge_collector(root, collectors.YamlCollector("server:\n  host: h\n  port: 80\n"))

        [error] = json_schema.JsonSchemaValidator(SCHEMA).validate(root)

        assert error.path == keypath.KeyPath("server/port")
        assert error.range == meta.Range(meta.Position(3, 9), meta.Position(3, 11))

    def test_required_range_uses_object(self) -> None:
        """A missing key's range falls back to its nearest existing ancestor."""
        root = tree.Node()
        merger.merge_collector(root, collectors.YamlCollector("server:\n  port: 8080\n"))
        root.child("server").range = meta.Range(meta.Position(2, 3), meta.Position(3, 1))

        [error] = json_schema.JsonSchemaValidator(SCHEMA).validate(root)

        assert error.code == "required"
        assert error.range == meta.Range(meta.Position(2, 3), meta.Position(3, 1))
