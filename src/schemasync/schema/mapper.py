"""
Maps raw per-kind difference buckets to typed SchemaDifference values.
"""

from typing import Callable, List, Mapping, Tuple

from .diff import DictionaryDifference, difference_from
from .models import (
    DifferenceKind,
    NamedSchemaObject,
    ObjectKind,
    SchemaDifference,
    SchemaDifferenceResult,
    SchemaSnapshot,
)


# Emission order of buckets for each object kind.
BUCKET_ORDER: Tuple[DifferenceKind, ...] = (
    DifferenceKind.MODIFIED,
    DifferenceKind.ONLY_IN_SOURCE,
    DifferenceKind.ONLY_IN_TARGET,
)

OBJECT_KIND_ORDER: Tuple[ObjectKind, ...] = (ObjectKind.TABLE, ObjectKind.FUNCTION)


class SchemaDifferenceMapper:
    """
    Flattens one difference computation into an ordered list.

    The difference is produced lazily by ``difference_factory`` so the
    mapper can be built before snapshots are compared. Buckets are emitted
    in ``BUCKET_ORDER`` and entries within a bucket are sorted by name.
    """

    def __init__(
        self,
        difference_factory: Callable[[], DictionaryDifference[str, NamedSchemaObject]],
    ):
        self.difference_factory = difference_factory

    def map_differences(self) -> Mapping[DifferenceKind, Mapping[str, NamedSchemaObject]]:
        difference = self.difference_factory()
        return {
            DifferenceKind.MODIFIED: difference.modified,
            DifferenceKind.ONLY_IN_SOURCE: difference.only_in_source,
            DifferenceKind.ONLY_IN_TARGET: difference.only_in_target,
        }

    def get_differences(self) -> List[SchemaDifference]:
        buckets = self.map_differences()
        differences = []
        for kind in BUCKET_ORDER:
            bucket = buckets[kind]
            for name in sorted(bucket):
                differences.append(SchemaDifference(kind, bucket[name]))
        return differences


def map_snapshot_differences(
    source: SchemaSnapshot, target: SchemaSnapshot
) -> SchemaDifferenceResult:
    """Diff two snapshots kind by kind and map the result."""
    per_kind = {}
    for kind in OBJECT_KIND_ORDER:
        mapper = SchemaDifferenceMapper(
            lambda kind=kind: difference_from(source.objects(kind), target.objects(kind))
        )
        per_kind[kind] = tuple(mapper.get_differences())

    return SchemaDifferenceResult(
        table_differences=per_kind[ObjectKind.TABLE],
        function_differences=per_kind[ObjectKind.FUNCTION],
    )
