"""
Tests for schemasync.schema.mapper module.
"""

from unittest.mock import MagicMock

from schemasync.schema.diff import DictionaryDifference, difference_from
from schemasync.schema.mapper import SchemaDifferenceMapper, map_snapshot_differences
from schemasync.schema.models import DifferenceKind, SchemaSnapshot
from tests.conftest import make_function, make_table


class TestSchemaDifferenceMapper:
    """Test SchemaDifferenceMapper."""

    def test_bucket_order_and_name_sort(self):
        difference = DictionaryDifference(
            modified={"m2": make_table("m2"), "m1": make_table("m1")},
            only_in_source={"s1": make_table("s1")},
            only_in_target={"t1": make_table("t1")},
        )
        mapper = SchemaDifferenceMapper(lambda: difference)

        differences = mapper.get_differences()

        assert [(d.kind, d.name) for d in differences] == [
            (DifferenceKind.MODIFIED, "m1"),
            (DifferenceKind.MODIFIED, "m2"),
            (DifferenceKind.ONLY_IN_SOURCE, "s1"),
            (DifferenceKind.ONLY_IN_TARGET, "t1"),
        ]

    def test_factory_called_lazily(self):
        factory = MagicMock(return_value=DictionaryDifference({}, {}, {}))
        mapper = SchemaDifferenceMapper(factory)

        factory.assert_not_called()
        assert mapper.get_differences() == []
        factory.assert_called_once()

    def test_map_differences_keys(self):
        mapper = SchemaDifferenceMapper(lambda: DictionaryDifference({}, {}, {}))
        assert set(mapper.map_differences()) == set(DifferenceKind)


class TestMapSnapshotDifferences:
    """Test map_snapshot_differences."""

    def test_scenario(self, source_snapshot, target_snapshot):
        result = map_snapshot_differences(source_snapshot, target_snapshot)

        assert [(d.kind, d.name) for d in result.table_differences] == [
            (DifferenceKind.MODIFIED, "T1"),
            (DifferenceKind.ONLY_IN_SOURCE, "T2"),
            (DifferenceKind.ONLY_IN_TARGET, "T3"),
        ]
        assert result.function_differences == ()

    def test_modified_and_added_carry_source_definition(self, source_snapshot, target_snapshot):
        result = map_snapshot_differences(source_snapshot, target_snapshot)
        by_name = {d.name: d for d in result.all_differences}

        assert by_name["T1"].object == source_snapshot.tables["T1"]
        assert by_name["T2"].object == source_snapshot.tables["T2"]
        assert by_name["T3"].object == target_snapshot.tables["T3"]

    def test_kinds_are_separate_namespaces(self):
        source = SchemaSnapshot.from_objects([make_table("x")])
        target = SchemaSnapshot.from_objects([make_function("x")])

        result = map_snapshot_differences(source, target)

        assert [(d.kind, d.object_kind.value) for d in result.all_differences] == [
            (DifferenceKind.ONLY_IN_SOURCE, "table"),
            (DifferenceKind.ONLY_IN_TARGET, "function"),
        ]

    def test_identical_snapshots(self, source_snapshot):
        assert map_snapshot_differences(source_snapshot, source_snapshot).is_empty


class TestDeterminism:
    """Equal inputs always produce equal, equally ordered output."""

    def test_difference_from_repeatable(self):
        source = {"b": 2, "a": 1, "c": 30, "e": 5}
        target = {"c": 3, "d": 4, "a": 1}

        assert difference_from(source, target) == difference_from(dict(source), dict(target))

    def test_mapping_repeatable(self, source_snapshot, target_snapshot):
        first = map_snapshot_differences(source_snapshot, target_snapshot)
        second = map_snapshot_differences(source_snapshot, target_snapshot)

        assert first == second
        assert first.all_differences == second.all_differences

    def test_mapping_ignores_insertion_order(self):
        objects = [make_table("b"), make_table("a"), make_function("f")]
        forward = map_snapshot_differences(SchemaSnapshot.from_objects(objects), SchemaSnapshot())
        backward = map_snapshot_differences(
            SchemaSnapshot.from_objects(reversed(objects)), SchemaSnapshot()
        )

        assert forward.all_differences == backward.all_differences
