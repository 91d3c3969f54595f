"""Tests for deep_merge."""

from deep_merge import deep_merge


class TestDeepMerge:
    """Test nested config merging."""

    def test_later_source_wins(self):
        assert deep_merge({"a": 1, "b": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_nested_mappings_are_merged(self):
        merged = deep_merge(
            {"config": {"cookie": {"path": "/", "secure": True}}},
            {"config": {"cookie": {"secure": False}, "timeout": 10}},
        )

        assert merged == {"config": {"cookie": {"path": "/", "secure": False}, "timeout": 10}}

    def test_lists_are_concatenated_without_duplicates(self):
        merged = deep_merge({"tags": ["a", "b"]}, {"tags": ["b", "c"]})

        assert merged == {"tags": ["b", "c", "a"]}

    def test_none_sources_are_skipped(self):
        assert deep_merge(None, {"a": 1}, None) == {"a": 1}
        assert deep_merge() == {}

    def test_inputs_are_not_mutated(self):
        base = {"config": {"cookie": {"path": "/"}}}
        override = {"config": {"cookie": {"domain": "example.com"}}}

        merged = deep_merge(base, override)
        merged["config"]["cookie"]["path"] = "/changed"

        assert base == {"config": {"cookie": {"path": "/"}}}
        assert override == {"config": {"cookie": {"domain": "example.com"}}}

    def test_scalar_replaces_mapping(self):
        assert deep_merge({"a": {"b": 1}}, {"a": 2}) == {"a": 2}
        assert deep_merge({"a": 2}, {"a": {"b": 1}}) == {"a": {"b": 1}}
