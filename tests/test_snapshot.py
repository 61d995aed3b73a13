"""Unit tests for the source registry and snapshots."""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from layerconf import Configuration
from layerconf.core.errors import DuplicateSourceNameError, SourceLoadError
from layerconf.core.snapshot import Layer, Snapshot, SourceRegistry
from layerconf.core.source import TreeSource
from layerconf.core.tree import thaw
from layerconf.core.types import RefreshOutcome
from layerconf.sources.memory import KeyValueSource
from layerconf.sources.random import RandomSource


class MockSource(TreeSource):
    """Mock source for testing."""

    refreshable = True

    def __init__(self, name: str, data: Dict[str, Any]):
        super().__init__(name)
        self.data = data
        self.error: Optional[Exception] = None
        self.load()

    def _fetch(self) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        return dict(self.data)


class PlainSource:
    """Source implementing only get_raw, keys, is_refreshable and try_refresh."""

    name = "plain"

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    def get_raw(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def keys(self):
        return list(self.data)

    def is_refreshable(self) -> bool:
        return True

    def try_refresh(self) -> RefreshOutcome:
        return RefreshOutcome.changed()


class TestSourceRegistry:
    """Test suite for SourceRegistry."""

    def test_priority_is_registration_order(self):
        """Test priorities are assigned in order."""
        registry = SourceRegistry()
        first = registry.register("a", KeyValueSource({}, name="a"))
        second = registry.register("b", KeyValueSource({}, name="b"))
        assert (first.priority, second.priority) == (0, 1)
        assert registry.names() == ["a", "b"]
        assert len(registry) == 2
        assert registry.get("b") is second
        assert registry.get("missing") is None

    def test_duplicate_name(self):
        """Test a clashing name is rejected."""
        registry = SourceRegistry()
        registry.register("a", KeyValueSource({}, name="a"))
        with pytest.raises(DuplicateSourceNameError) as exc_info:
            registry.register("a", KeyValueSource({}, name="a"))
        assert exc_info.value.name == "a"
        assert len(registry) == 1

    def test_registration_publishes(self):
        """Test each registration publishes a new generation."""
        registry = SourceRegistry()
        assert registry.snapshot().generation == 0
        registry.register("a", KeyValueSource({"x": "1"}, name="a"))
        snapshot = registry.snapshot()
        assert snapshot.generation == 1
        assert snapshot.resolve_raw("x") == "1"

    def test_refreshable_flag_recorded(self):
        """Test the refreshable flag lands on the entry."""
        registry = SourceRegistry()
        entry = registry.register("a", KeyValueSource({}, name="a"), refreshable=True)
        assert entry.refreshable is True


class TestSnapshot:
    """Test suite for Snapshot lookups."""

    def make(self, *layers: Dict[str, Any]) -> Snapshot:
        registry = SourceRegistry()
        for i, data in enumerate(layers):
            registry.register(f"s{i}", MockSource(f"s{i}", data))
        return registry.snapshot()

    def test_first_hit_wins(self):
        """Test earlier layers shadow later ones."""
        snapshot = self.make({"a.b": "1"}, {"a.b": "2", "c": "3"})
        assert snapshot.resolve_raw("a.b") == "1"
        assert snapshot.resolve_raw("c") == "3"
        assert snapshot.source_of("a.b") == "s0"
        assert snapshot.source_of("c") == "s1"

    def test_missing(self):
        """Test an absent key."""
        snapshot = self.make({"a": "1"})
        assert snapshot.resolve_raw("nope") is None
        assert snapshot.source_of("nope") is None

    def test_mapping_hits_merge(self):
        """Test mapping values merge across layers."""
        snapshot = self.make({"db.host": "prod"}, {"db.host": "dev", "db.port": "5432"})
        assert thaw(snapshot.resolve_raw("db")) == {"host": "prod", "port": "5432"}

    def test_scalar_first_hit_not_merged(self):
        """Test a scalar hit ends the search."""
        snapshot = self.make({"db": "off"}, {"db.host": "dev"})
        assert snapshot.resolve_raw("db") == "off"

    def test_keys_deduplicated_in_order(self):
        """Test keys() lists each key once."""
        snapshot = self.make({"a": "1", "b": "2"}, {"b": "3", "c": "4"})
        assert snapshot.keys() == ["a", "b", "c"]

    def test_bracket_keys(self):
        """Test index syntax in lookups."""
        snapshot = self.make({"servers": [{"host": "a"}, {"host": "b"}]})
        assert snapshot.resolve_raw("servers[1].host") == "b"

    def test_root_lookup(self):
        """Test the empty key resolves the whole merged tree."""
        snapshot = self.make({"a": "1"}, {"b": "2"})
        assert thaw(snapshot.resolve_raw("")) == {"a": "1", "b": "2"}

    def test_snapshot_is_stable(self):
        """Test a captured snapshot ignores later source refreshes."""
        registry = SourceRegistry()
        source = MockSource("m", {"a": "1"})
        registry.register("m", source, refreshable=True)
        snapshot = registry.snapshot()
        source.data = {"a": "2"}
        assert source.try_refresh().status.value == "changed"
        assert snapshot.resolve_raw("a") == "1"
        assert source.get_raw("a") == "2"

    def test_read_through_layer(self):
        """Test layers without captured data query the source."""
        entry = SourceRegistry().register("random", RandomSource())
        layer = Layer.capture(entry)
        assert layer.data is None
        assert isinstance(layer.get_raw("random.u8"), int)
        assert "random.uuid" in layer.keys()


class TestTreeSource:
    """Test suite for the TreeSource base class."""

    def test_load_failure_wrapped(self):
        """Test an initial load failure becomes SourceLoadError."""

        class Broken(TreeSource):
            def _fetch(self):
                raise OSError("disk on fire")

        source = Broken("broken")
        with pytest.raises(SourceLoadError) as exc_info:
            source.load()
        assert exc_info.value.source_name == "broken"
        assert "disk on fire" in str(exc_info.value)

    def test_refresh_outcomes(self):
        """Test unchanged, changed and error outcomes."""
        source = MockSource("m", {"a": "1"})
        assert source.try_refresh().status.value == "unchanged"

        source.data = {"a": "2"}
        assert source.try_refresh().status.value == "changed"

        source.error = RuntimeError("boom")
        outcome = source.try_refresh()
        assert outcome.is_error
        assert outcome.reason == "boom"
        # failing refresh keeps the last good data
        assert source.get_raw("a") == "2"


class TestMinimalSource:
    """Test suite for sources without a current() tree."""

    def test_registered_and_read_through(self):
        """Test a four-method source serves reads and refreshes."""
        source = PlainSource({"app.port": "8080", "app.name": "${app.port}-svc"})
        config = Configuration()
        config.register_source("plain", source)

        layer = config.snapshot().layers[0]
        assert layer.data is None
        assert config.get("app.port", int) == 8080
        assert config.get("app.name") == "8080-svc"
        assert config.keys() == ["app.port", "app.name"]

        source.data = {"app.port": "9090"}
        report = config.refresh()
        assert report.published
        assert config.get("app.port", int) == 9090
