"""
Schema object and difference models for schemasync.

Definitions are frozen dataclasses so two objects compare equal exactly
when their full definitions are equal.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

from ..exceptions import UnknownObjectKindError


class ObjectKind(str, Enum):
    """Namespaces of schema objects. Names are unique only within a kind."""

    TABLE = "table"
    FUNCTION = "function"


class DifferenceKind(str, Enum):
    """Classification of a single divergence between source and target."""

    ONLY_IN_SOURCE = "only_in_source"
    ONLY_IN_TARGET = "only_in_target"
    MODIFIED = "modified"


class LineEndingMode(str, Enum):
    """Line ending normalization applied to generated DDL and function bodies."""

    LEAVE_AS_IS = "leave_as_is"
    WINDOWS = "windows"
    UNIX = "unix"

    def apply(self, text: str) -> str:
        if self is LineEndingMode.LEAVE_AS_IS:
            return text
        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        if self is LineEndingMode.WINDOWS:
            return normalized.replace("\n", "\r\n")
        return normalized


@dataclass(frozen=True)
class ColumnDefinition:
    """A single table column."""

    name: str
    data_type: str
    nullable: bool = True
    default: Optional[str] = None

    def __str__(self) -> str:
        result = f"{self.name} {self.data_type}"
        if not self.nullable:
            result += " NOT NULL"
        if self.default is not None:
            result += f" DEFAULT {self.default}"
        return result


@dataclass(frozen=True)
class TableDefinition:
    """Full definition of a table. ``folder`` is storage layout only."""

    columns: Tuple[ColumnDefinition, ...] = ()
    docstring: str = ""
    folder: str = field(default="", compare=False)

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class FunctionDefinition:
    """Full definition of a stored query function. ``folder`` is storage layout only."""

    arguments: str = ""
    returns: str = "void"
    body: str = ""
    language: str = "sql"
    docstring: str = ""
    folder: str = field(default="", compare=False)


Definition = Union[TableDefinition, FunctionDefinition]


@dataclass(frozen=True)
class NamedSchemaObject:
    """A named, versioned schema object belonging to one kind."""

    kind: ObjectKind
    name: str
    definition: Definition

    def __post_init__(self):
        if not self.name:
            raise ValueError("Schema object name must not be empty")

    @classmethod
    def table(cls, name: str, definition: TableDefinition) -> "NamedSchemaObject":
        return cls(ObjectKind.TABLE, name, definition)

    @classmethod
    def function(cls, name: str, definition: FunctionDefinition) -> "NamedSchemaObject":
        return cls(ObjectKind.FUNCTION, name, definition)

    @property
    def qualified_name(self) -> str:
        return f"{self.kind.value}:{self.name}"


@dataclass
class SchemaSnapshot:
    """Point-in-time name-to-object mappings for each object kind."""

    tables: Dict[str, NamedSchemaObject] = field(default_factory=dict)
    functions: Dict[str, NamedSchemaObject] = field(default_factory=dict)

    def objects(self, kind: ObjectKind) -> Dict[str, NamedSchemaObject]:
        """Return the mapping for ``kind``."""
        if kind is ObjectKind.TABLE:
            return self.tables
        if kind is ObjectKind.FUNCTION:
            return self.functions
        raise UnknownObjectKindError(kind)

    def add(self, obj: NamedSchemaObject) -> None:
        self.objects(obj.kind)[obj.name] = obj

    @classmethod
    def from_objects(cls, objects) -> "SchemaSnapshot":
        snapshot = cls()
        for obj in objects:
            snapshot.add(obj)
        return snapshot

    def __len__(self) -> int:
        return len(self.tables) + len(self.functions)


@dataclass(frozen=True)
class SchemaDifference:
    """
    One divergence between source and target.

    ``object`` carries the source-side definition for ONLY_IN_SOURCE and
    MODIFIED, and the target-side definition for ONLY_IN_TARGET.
    """

    kind: DifferenceKind
    object: NamedSchemaObject

    @property
    def object_kind(self) -> ObjectKind:
        return self.object.kind

    @property
    def name(self) -> str:
        return self.object.name

    @property
    def is_destructive(self) -> bool:
        return self.kind is DifferenceKind.ONLY_IN_TARGET

    def __str__(self) -> str:
        return f"{self.kind.value} {self.object.qualified_name}"


@dataclass(frozen=True)
class SchemaDifferenceResult:
    """Differences from one comparison, grouped by object kind."""

    table_differences: Tuple[SchemaDifference, ...] = ()
    function_differences: Tuple[SchemaDifference, ...] = ()

    @property
    def all_differences(self) -> List[SchemaDifference]:
        return list(self.table_differences) + list(self.function_differences)

    @property
    def is_empty(self) -> bool:
        return not self.table_differences and not self.function_differences

    def count_by_kind(self) -> Mapping[DifferenceKind, int]:
        counts = {kind: 0 for kind in DifferenceKind}
        for difference in self.all_differences:
            counts[difference.kind] += 1
        return counts
