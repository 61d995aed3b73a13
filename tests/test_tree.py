"""Unit tests for key handling, tree helpers and layer merging."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from layerconf.core.merge import merge_mappings
from layerconf.core.tree import (
    build_tree,
    flat_keys,
    freeze,
    iter_hierarchical,
    lookup,
    normalize_key,
    scalar_text,
    split_key,
    thaw,
)


class TestKeys:
    """Test suite for key splitting and normalisation."""

    def test_dotted(self):
        """Test plain dotted keys."""
        assert split_key("app.server.port") == ("app", "server", "port")

    def test_brackets_normalise_to_segments(self):
        """Test that index brackets become segments."""
        assert normalize_key("a.b[0].c") == "a.b.0.c"
        assert split_key("a.b[0].c") == split_key("a.b.0.c")

    def test_empty_segments_ignored(self):
        """Test that empty segments are dropped."""
        assert normalize_key(".a..b") == "a.b"
        assert normalize_key("") == ""

    def test_case_sensitive(self):
        """Test that segments keep their case."""
        assert normalize_key("App.Name") != normalize_key("app.name")


class TestBuildTree:
    """Test suite for build_tree."""

    def test_flat_keys_nest(self):
        """Test flat dotted keys build nested mappings."""
        tree = build_tree({"a.b": "1", "a.c": "2", "d": "3"})
        assert tree == {"a": {"b": "1", "c": "2"}, "d": "3"}

    def test_mixed_flat_and_nested(self):
        """Test flat and nested input merge."""
        tree = build_tree({"a": {"b": "1"}, "a.c": "2"})
        assert tree == {"a": {"b": "1", "c": "2"}}

    def test_mapping_replaces_scalar(self):
        """Test that a deeper key replaces a scalar at its parent."""
        tree = build_tree({"a": "1", "a.b": "2"})
        assert tree == {"a": {"b": "2"}}

    def test_lists_kept(self):
        """Test that list values stay lists."""
        tree = build_tree({"servers": [{"host": "a"}, {"host": "b"}]})
        assert tree == {"servers": [{"host": "a"}, {"host": "b"}]}


class TestFreezeAndLookup:
    """Test suite for freeze, thaw and lookup."""

    def test_freeze_is_read_only(self):
        """Test frozen trees reject mutation."""
        frozen = freeze({"a": {"b": [1, 2]}})
        assert isinstance(frozen, MappingProxyType)
        assert frozen["a"]["b"] == (1, 2)
        with pytest.raises(TypeError):
            frozen["a"]["x"] = 1  # type: ignore[index]

    def test_thaw_round_trip(self):
        """Test thaw gives back plain containers."""
        data = {"a": {"b": [1, {"c": "d"}]}}
        assert thaw(freeze(data)) == data

    def test_lookup_mapping_and_index(self):
        """Test lookup walks mappings and sequences."""
        tree = freeze({"a": {"list": ["x", "y"]}})
        assert lookup(tree, ("a", "list", "1")) == "y"
        assert lookup(tree, ("a", "list", "2")) is None
        assert lookup(tree, ("a", "list", "first")) is None
        assert lookup(tree, ("a", "list", "\u00b2")) is None
        assert lookup(tree, ("a", "missing")) is None
        assert lookup(tree, ("a", "list", "0", "deeper")) is None

    def test_scalar_text(self):
        """Test booleans render lower case."""
        assert scalar_text(True) == "true"
        assert scalar_text(False) == "false"
        assert scalar_text(8080) == "8080"


class TestIterHierarchical:
    """Test suite for iter_hierarchical function."""

    def test_empty_dict(self):
        """Test with empty dictionary."""
        assert list(iter_hierarchical({})) == []

    def test_nested_dict(self):
        """Test with nested dictionary."""
        data = {"database": {"host": "localhost", "port": 5432}, "cache": "redis"}
        assert sorted(iter_hierarchical(data)) == [
            ("cache", "redis"),
            ("database.host", "localhost"),
            ("database.port", 5432),
        ]

    def test_lists_flatten_by_index(self):
        """Test that list elements get index segments."""
        data = {"items": ["a", "b"]}
        assert list(iter_hierarchical(data)) == [("items.0", "a"), ("items.1", "b")]

    def test_with_parent_prefix(self):
        """Test with parent prefix."""
        assert list(iter_hierarchical({"key": "value"}, parent="prefix")) == [
            ("prefix.key", "value")
        ]

    def test_flat_keys_none(self):
        """Test flat_keys of an absent tree."""
        assert flat_keys(None) == []


class TestMergeMappings:
    """Test suite for merge_mappings."""

    def test_single_hit_returned_as_is(self):
        """Test that one hit is not copied."""
        hit = freeze({"a": "1"})
        assert merge_mappings([hit]) is hit

    def test_earlier_wins_per_member(self):
        """Test that higher priority members shadow lower ones."""
        merged = merge_mappings([freeze({"a": "1"}), freeze({"a": "2", "b": "3"})])
        assert dict(merged) == {"a": "1", "b": "3"}

    def test_deep_merge(self):
        """Test nested mappings are merged recursively."""
        merged = merge_mappings([
            freeze({"db": {"host": "prod"}}),
            freeze({"db": {"host": "local", "port": "5432"}}),
        ])
        assert thaw(merged) == {"db": {"host": "prod", "port": "5432"}}

    def test_scalar_shadows_mapping(self):
        """Test that a scalar member hides a lower mapping member."""
        merged = merge_mappings([freeze({"db": "off"}), freeze({"db": {"host": "x"}})])
        assert merged["db"] == "off"

    def test_lists_not_merged(self):
        """Test that lists are taken whole from the winning layer."""
        merged = merge_mappings([freeze({"l": [1]}), freeze({"l": [2, 3]})])
        assert merged["l"] == (1,)
