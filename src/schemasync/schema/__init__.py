"""
Schema comparison and reconciliation package for schemasync.

This package provides:
- Schema object and difference models
- The name-keyed difference algorithm and difference mapper
- The comparison service
- The reconciliation driver that applies selected differences
"""

from .comparison import SchemaComparisonService
from .diff import DictionaryDifference, difference_from
from .mapper import SchemaDifferenceMapper, map_snapshot_differences
from .models import (
    ColumnDefinition,
    DifferenceKind,
    FunctionDefinition,
    LineEndingMode,
    NamedSchemaObject,
    ObjectKind,
    SchemaDifference,
    SchemaDifferenceResult,
    SchemaSnapshot,
    TableDefinition,
)
from .reconciler import (
    CancellationToken,
    SchemaReconciler,
    SyncPolicy,
    SyncProgress,
    SyncProgressStage,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "SchemaComparisonService",
    "DictionaryDifference",
    "difference_from",
    "SchemaDifferenceMapper",
    "map_snapshot_differences",
    "ColumnDefinition",
    "DifferenceKind",
    "FunctionDefinition",
    "LineEndingMode",
    "NamedSchemaObject",
    "ObjectKind",
    "SchemaDifference",
    "SchemaDifferenceResult",
    "SchemaSnapshot",
    "TableDefinition",
    "CancellationToken",
    "SchemaReconciler",
    "SyncPolicy",
    "SyncProgress",
    "SyncProgressStage",
    "SyncResult",
    "SyncStatus",
]
