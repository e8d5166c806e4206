"""Tests for data sources, formats, SourceCollector and MemoryStorage."""

import pathlib as _pathlib

import pytest as _pytest

import stratum
import stratum.collectors as collectors
import stratum.errors as errors
import stratum.meta as meta
import stratum.storage as storage


class _FailingStorage(storage.Storage):
    def range(self, prefix: bytes) -> list[storage.KeyValue]:
        raise errors.StorageError("timeout")

    def get(self, key: bytes) -> storage.KeyValue | None:
        raise errors.StorageError("timeout")


def _pairs(c: collectors.SourceCollector) -> list[tuple[str, object]]:
    return [(str(v.meta().key), v.get()) for v in c.read()]


class TestMemoryStorage:
    """The in-memory storage backend."""

    def test_put_advances_revision(self) -> None:
        """Every write gets the next store-wide revision."""
        s = storage.MemoryStorage()
        assert s.put("/a", "1") == 1
        assert s.put(b"/b", b"2") == 2
        assert s.put("/a", "3") == 3
        assert s.get(b"/a") == storage.KeyValue(b"/a", b"3", 3)
        assert s.revision == 3

    def test_range_is_sorted_and_filtered(self) -> None:
        """Range returns keys under the prefix in key order."""
        s = storage.MemoryStorage()
        for key in ("/config/b", "/other/x", "/config/a"):
            s.put(key, "v")
        assert [kv.key for kv in s.range(b"/config/")] == [b"/config/a", b"/config/b"]
        assert len(s.range(b"")) == 3

    def test_delete(self) -> None:
        """Deleting removes the key and advances the revision."""
        s = storage.MemoryStorage()
        s.put("/a", "1")
        assert s.delete("/a") is True
        assert s.delete("/a") is False
        assert s.get(b"/a") is None
        assert s.revision == 2


class TestFileSource:
    """Local files as data sources."""

    def test_fetch(self, tmp_path: _pathlib.Path) -> None:
        """The file's bytes are returned with file provenance."""
        path = tmp_path / "app.yaml"
        path.write_bytes(b"a: 1\n")
        source = collectors.FileSource(path)

        assert source.fetch() == b"a: 1\n"
        assert source.name == "file"
        assert source.source_type == meta.SourceType.FILE
        assert source.revision == ""

    def test_missing_file(self, tmp_path: _pathlib.Path) -> None:
        """An unreadable file raises SourceError naming the path."""
        path = tmp_path / "missing.yaml"
        with _pytest.raises(errors.SourceError, match="failed to read file") as exc_info:
            collectors.FileSource(path).fetch()
        assert exc_info.value.source == str(path)


class TestYamlFormat:
    """Parsing raw bytes as YAML."""

    def test_parse(self) -> None:
        """Bytes are decoded and parsed into a tree."""
        root = collectors.YamlFormat().parse(b"server:\n  port: 8080\n", "doc")
        assert root.to_python() == {"server": {"port": 8080}}
        assert root.get(["server", "port"]).range is not None

    def test_keep_order(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        """Ordering follows the setting unless given explicitly."""
        assert collectors.YamlFormat().keep_order is True
        assert collectors.YamlFormat(keep_order=False).keep_order is False
        monkeypatch.setenv("STRATUM_YAML_KEEP_ORDER", "false")
        assert collectors.YamlFormat().keep_order is False

    def test_undecodable(self) -> None:
        """Bytes that are not valid text raise SourceError."""
        with _pytest.raises(errors.SourceError, match="failed to decode utf-8 text"):
            collectors.YamlFormat(encoding="utf-8").parse("a: caf\xe9\n".encode("latin-1"), "doc")

    def test_other_encoding(self) -> None:
        """An explicit encoding is used for decoding."""
        root = collectors.YamlFormat(encoding="latin-1").parse("a: caf\xe9\n".encode("latin-1"), "doc")
        assert root.to_python() == {"a": "caf\xe9"}


class TestStorageSource:
    """A single storage key as a data source."""

    def test_fetch(self) -> None:
        """The value is returned and the revision follows the entry."""
        backend = storage.MemoryStorage()
        backend.put("/other", "x")
        backend.put("/config/app", "port: 8080\n")
        source = collectors.StorageSource(backend, "/config/app")

        assert source.revision == ""
        assert source.fetch() == b"port: 8080\n"
        assert source.revision == "2"
        assert source.name == "storage"
        assert source.source_type == meta.SourceType.STORAGE

    def test_empty_value(self) -> None:
        """An empty value is returned as empty bytes."""
        backend = storage.MemoryStorage()
        backend.put("/config/app", "")
        assert collectors.StorageSource(backend, b"/config/app").fetch() == b""

    def test_missing_key(self) -> None:
        """A missing key raises SourceError."""
        source = collectors.StorageSource(storage.MemoryStorage(), "/config/app")
        with _pytest.raises(errors.SourceError, match="storage key not found: /config/app"):
            source.fetch()
        assert source.revision == ""

    def test_storage_failure(self) -> None:
        """Backend errors are wrapped with their cause."""
        with _pytest.raises(errors.SourceError, match="storage fetch failed: timeout") as exc_info:
            collectors.StorageSource(_FailingStorage(), "/config/app").fetch()
        assert isinstance(exc_info.value.__cause__, errors.StorageError)


class TestSourceCollector:
    """Collectors built from a source and a format."""

    def test_file_source(self, tmp_path: _pathlib.Path) -> None:
        """A file is read eagerly and streamed with file provenance."""
        path = tmp_path / "app.yaml"
        path.write_text("b: 1\na: 2\n")
        c = collectors.SourceCollector(collectors.FileSource(path), collectors.YamlFormat())

        path.unlink()
        assert _pairs(c) == [("b", 1), ("a", 2)]
        assert c.name == "file"
        assert c.source == meta.SourceType.FILE
        assert c.keep_order is True
        assert c.format.name == "yaml"

    def test_storage_source(self) -> None:
        """The key's revision becomes the collector's."""
        backend = storage.MemoryStorage()
        backend.put("/config/app", "port: 8080\n")
        backend.put("/config/app", "port: 9090\n")
        c = collectors.SourceCollector(
            collectors.StorageSource(backend, "/config/app"), collectors.YamlFormat(keep_order=False)
        )

        assert _pairs(c) == [("port", 9090)]
        assert c.name == "storage"
        assert c.source == meta.SourceType.STORAGE
        assert c.revision == "2"
        assert c.keep_order is False

    def test_empty_document(self) -> None:
        """An empty value yields nothing."""
        backend = storage.MemoryStorage()
        backend.put("/config/app", "")
        c = collectors.SourceCollector(collectors.StorageSource(backend, "/config/app"), collectors.YamlFormat())
        assert _pairs(c) == []

    def test_fetch_error(self) -> None:
        """Fetch failures surface when the collector is created."""
        with _pytest.raises(errors.SourceError, match="storage key not found"):
            collectors.SourceCollector(
                collectors.StorageSource(storage.MemoryStorage(), "/config/app"), collectors.YamlFormat()
            )

    def test_parse_error(self) -> None:
        """Malformed documents surface when the collector is created."""
        backend = storage.MemoryStorage()
        backend.put("/config/app", "a: [1, 2\n")
        with _pytest.raises(errors.SourceError, match="failed to parse YAML") as exc_info:
            collectors.SourceCollector(collectors.StorageSource(backend, "/config/app"), collectors.YamlFormat())
        assert exc_info.value.source == "storage"

    def test_build(self, tmp_path: _pathlib.Path) -> None:
        """Source collectors merge like any other layer."""
        path = tmp_path / "app.yaml"
        path.write_text("log:\n  level: info\n")
        backend = storage.MemoryStorage()
        backend.put("/config/app", "log:\n  level: debug\n")

        config, errs = (
            stratum.Builder()
            .add_collector(collectors.SourceCollector(collectors.FileSource(path), collectors.YamlFormat()))
            .add_collector(
                collectors.SourceCollector(collectors.StorageSource(backend, "/config/app"), collectors.YamlFormat())
            )
            .build()
        )

        assert errs == []
        assert config.get("log/level") == "debug"
        assert config.stat("log/level").source.name == "storage"
