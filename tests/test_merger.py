"""Tests for the merge engine and merge_collector."""

import typing as _typing

import pytest as _pytest

import stratum.collectors as collectors
import stratum.errors as errors
import stratum.keypath as keypath
import stratum.merger as merger
import stratum.meta as meta
import stratum.tree as tree


class _FailingMerger(merger.DefaultMerger):
    """Rejects every value."""

    def merge_value(
        self,
        ctx: merger.MergerContext,
        root: tree.Node,
        path: keypath.KeyPath,
        value: _typing.Any,
    ) -> None:
        raise RuntimeError("merge failed")


class _BadOrderingContext(merger.DefaultMergerContext):
    def apply_ordering(self, root: tree.Node) -> None:
        raise RuntimeError("ordering failed")


class _BadOrderingMerger(merger.DefaultMerger):
    def create_context(self, collector: _typing.Any) -> merger.MergerContext:
        return _BadOrderingContext(collector)


class _BrokenReadCollector(collectors.MockCollector):
    """Yields its first entry, then fails."""

    def read(self, cancel=None):  # type: ignore[no-untyped-def]
        values = super().read(cancel)
        yield next(values)
        raise ConnectionError("connection lost")


class TestDefaultMergerContext:
    """Ordering bookkeeping."""

    def test_untracked_without_keep_order(self) -> None:
        """Collectors without keep_order record nothing."""
        ctx = merger.DefaultMergerContext(collectors.MapCollector({}))
        ctx.record_ordering(None, "a")
        assert ctx.recorded == {}
        ctx.apply_ordering(tree.Node())

    def test_record_first_seen_order(self) -> None:
        """Keys are recorded once, in first-seen order, per parent."""
        ctx = merger.DefaultMergerContext(collectors.MapCollector({}).with_keep_order())
        for parent, child in [(None, "a"), (None, "c"), (None, "a"), (keypath.KeyPath("p"), "x")]:
            ctx.record_ordering(parent, child)
        assert ctx.recorded == {keypath.KeyPath(): ["a", "c"], keypath.KeyPath("p"): ["x"]}

    def test_apply_ordering(self) -> None:
        """Recorded parents are reordered and frozen."""
        ctx = merger.DefaultMergerContext(collectors.MapCollector({}).with_keep_order())
        for child in ("a", "c", "b"):
            ctx.record_ordering(None, child)
        for child in ("x", "z", "y"):
            ctx.record_ordering(keypath.KeyPath("parent"), child)
        ctx.record_ordering(keypath.KeyPath("nonexistent"), "child")

        root = tree.Node()
        for key in ("a", "b", "c"):
            root.set_child(key, tree.Node())
        parent = tree.Node()
        root.set_child("parent", parent)
        for key in ("x", "y", "z"):
            parent.set_child(key, tree.Node())

        ctx.apply_ordering(root)

        assert root.children_keys() == ["a", "c", "b", "parent"]
        assert parent.children_keys() == ["x", "z", "y"]
        assert root.order_set and parent.order_set

    def test_frozen_order_is_kept(self) -> None:
        """A parent whose order is already set is left alone."""
        ctx = merger.DefaultMergerContext(collectors.MapCollector({}).with_keep_order())
        ctx.record_ordering(None, "b")
        ctx.record_ordering(None, "a")

        root = tree.Node()
        root.set_child("a", tree.Node())
        root.set_child("b", tree.Node())
        root.order_set = True

        ctx.apply_ordering(root)
        assert root.children_keys() == ["a", "b"]


class TestMergeCollector:
    """Draining collectors into a tree."""

    def test_success_returns_count(self) -> None:
        """Every leaf is merged and stamped with the collector's provenance."""
        root = tree.Node()
        source = (
            collectors.MapCollector({"server": {"port": 8080, "host": "h"}})
            .with_name("file")
            .with_source_type(meta.SourceType.FILE)
            .with_revision("r1")
        )
        assert merger.merge_collector(root, source) == 2

        port = root.get(["server", "port"])
        assert (port.value, port.source, port.source_type, port.revision) == (
            8080,
            "file",
            meta.SourceType.FILE,
            "r1",
        )

    def test_default_merger_is_shared_instance(self) -> None:
        """DEFAULT_MERGER is a DefaultMerger."""
        assert isinstance(merger.DEFAULT_MERGER, merger.DefaultMerger)

    def test_extraction_errors_accumulate(self) -> None:
        """Failing values do not stop the batch; all errors are reported."""
        root = tree.Node()
        source = (
            collectors.MockCollector()
            .with_error("key0", ValueError("first error"))
            .with_entry("good", 1)
            .with_error("key1", ValueError("second error"))
            .with_name("multi")
        )

        with _pytest.raises(errors.CollectorError) as exc_info:
            merger.merge_collector(root, source)

        err = exc_info.value
        assert err.collector_name == "multi"
        assert [str(e) for e in err.errors] == [
            "failed to get raw value for key key0: first error",
            "failed to get raw value for key key1: second error",
        ]
        assert str(err).startswith("collector multi: failed to get raw value for key key0")
        assert root.get(["good"]).value == 1

    def test_merge_error(self) -> None:
        """Merger failures are wrapped with the path."""
        source = collectors.MockCollector().with_entry("key", "value").with_name("test")
        with _pytest.raises(errors.CollectorError) as exc_info:
            merger.merge_collector(tree.Node(), source, _FailingMerger())
        assert str(exc_info.value) == "collector test: merge value at key: merge failed"
        assert exc_info.value.errors[0].path == keypath.KeyPath("key")

    def test_apply_ordering_error(self) -> None:
        """Ordering failures are reported as collector errors."""
        source = collectors.MockCollector().with_entry("key", "value").with_name("test").with_keep_order()
        with _pytest.raises(errors.CollectorError) as exc_info:
            merger.merge_collector(tree.Node(), source, _BadOrderingMerger())
        assert str(exc_info.value) == "collector test: apply ordering: ordering failed"

    def test_read_failure_stops_pass(self) -> None:
        """A collector whose read() raises is reported, keeping what it yielded."""
        root = tree.Node()
        source = _BrokenReadCollector().with_entry("first", 1).with_entry("second", 2).with_name("broken")

        with _pytest.raises(errors.CollectorError) as exc_info:
            merger.merge_collector(root, source)

        assert str(exc_info.value) == "collector broken: read collector: connection lost"
        assert exc_info.value.errors[0].path is None
        assert root.to_python() == {"first": 1}

    def test_ranges_are_kept(self) -> None:
        """Source ranges reported by values end up on the tree."""
        root = tree.Node()
        merger.merge_collector(root, collectors.YamlCollector("a:\n  b: 1\n"))
        assert root.get(["a", "b"]).range == meta.Range(meta.Position(2, 6), meta.Position(2, 7))


class TestOrdering:
    """Order freezing across collectors."""

    def test_first_ordered_collector_fixes_order(self) -> None:
        """Later ordered collectors overwrite values but not order."""
        root = tree.Node()
        first = collectors.MockCollector().with_entries({"s/b": 1, "s/a": 2}).with_keep_order()
        second = collectors.MockCollector().with_entries({"s/a": 3, "s/c": 4, "s/b": 5}).with_keep_order()

        merger.merge_collector(root, first)
        merger.merge_collector(root, second)

        section = root.child("s")
        assert section.children_keys() == ["b", "a", "c"]
        assert section.to_python() == {"b": 5, "a": 3, "c": 4}

    def test_unordered_collector_keeps_insertion(self) -> None:
        """Without keep_order, children stay in insertion order."""
        root = tree.Node()
        merger.merge_collector(root, collectors.MockCollector().with_entries({"s/b": 1, "s/a": 2}))
        assert root.child("s").children_keys() == ["b", "a"]
        assert root.child("s").order_set is False

    def test_unordered_then_ordered(self) -> None:
        """An ordered collector may reorder what unordered ones wrote."""
        root = tree.Node()
        merger.merge_collector(root, collectors.MockCollector().with_entries({"s/a": 1, "s/b": 2}))
        merger.merge_collector(
            root, collectors.MockCollector().with_entries({"s/b": 3, "s/a": 4}).with_keep_order()
        )
        assert root.child("s").children_keys() == ["b", "a"]
