"""
Tests for schemasync.schema.diff module.
"""

import pytest

from schemasync.schema.diff import DictionaryDifference, difference_from


class TestDifferenceFrom:
    """Test the three-way mapping difference."""

    def test_scenario_buckets(self):
        """Changed, added and removed keys land in separate buckets."""
        source = {"T1": "def1", "T2": "def2"}
        target = {"T1": "def1-OLD", "T3": "def3"}

        result = difference_from(source, target)

        assert result.modified == {"T1": "def1"}
        assert result.only_in_source == {"T2": "def2"}
        assert result.only_in_target == {"T3": "def3"}

    def test_modified_carries_source_value(self):
        result = difference_from({"a": 1}, {"a": 2})
        assert result.modified == {"a": 1}

    def test_equal_mappings_are_empty(self):
        source = {"a": 1, "b": 2}
        result = difference_from(source, dict(source))

        assert result.is_empty
        assert result == DictionaryDifference({}, {}, {})

    def test_empty_inputs(self):
        assert difference_from({}, {}).is_empty
        assert difference_from({"a": 1}, {}).only_in_source == {"a": 1}
        assert difference_from({}, {"a": 1}).only_in_target == {"a": 1}

    def test_buckets_are_disjoint_and_cover_all_differing_keys(self):
        source = {"a": 1, "b": 2, "c": 3, "d": 4}
        target = {"b": 2, "c": 30, "e": 5}

        result = difference_from(source, target)
        modified = set(result.modified)
        added = set(result.only_in_source)
        removed = set(result.only_in_target)

        assert not (modified & added or modified & removed or added & removed)
        assert modified | added | removed == {"a", "c", "d", "e"}
        assert "b" not in modified | added | removed

    def test_swapping_sides_swaps_buckets(self):
        source = {"a": 1, "b": 2}
        target = {"b": 3, "c": 4}

        forward = difference_from(source, target)
        backward = difference_from(target, source)

        assert forward.only_in_source == backward.only_in_target
        assert forward.only_in_target == backward.only_in_source
        assert set(forward.modified) == set(backward.modified)
        assert backward.modified == {"b": 3}

    def test_uses_value_equality(self):
        """Distinct but equal values are not modifications."""
        result = difference_from({"a": [1, 2]}, {"a": [1, 2]})
        assert result.is_empty

    def test_does_not_mutate_inputs(self):
        source = {"a": 1}
        target = {"b": 2}
        difference_from(source, target)
        assert source == {"a": 1}
        assert target == {"b": 2}

    @pytest.mark.parametrize(
        "source,target,expected_empty",
        [
            ({"x": None}, {"x": None}, True),
            ({"x": None}, {"x": 0}, False),
            ({"x": ""}, {}, False),
        ],
    )
    def test_edge_values(self, source, target, expected_empty):
        assert difference_from(source, target).is_empty is expected_empty
