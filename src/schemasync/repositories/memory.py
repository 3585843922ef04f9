"""
In-memory schema repository, used for dry runs and tests.
"""

from typing import Iterable, Optional

from ..schema.models import NamedSchemaObject, ObjectKind, SchemaSnapshot
from ..schema.reconciler import SyncPolicy
from .base import SchemaRepository


class InMemorySchemaRepository(SchemaRepository):
    """Dictionary-backed repository. Snapshots are copies of its state."""

    def __init__(self, objects: Optional[Iterable[NamedSchemaObject]] = None):
        super().__init__()
        self._snapshot = SchemaSnapshot.from_objects(objects or [])

    @classmethod
    def from_snapshot(cls, snapshot: SchemaSnapshot) -> "InMemorySchemaRepository":
        return cls(list(snapshot.tables.values()) + list(snapshot.functions.values()))

    @property
    def description(self) -> str:
        return "memory"

    async def get_snapshot(self) -> SchemaSnapshot:
        return SchemaSnapshot(dict(self._snapshot.tables), dict(self._snapshot.functions))

    async def create_or_alter(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        self.logger.debug(f"Storing {obj.qualified_name}")
        self._snapshot.add(obj)

    async def delete(self, kind: ObjectKind, name: str) -> None:
        self.logger.debug(f"Removing {kind.value}:{name}")
        self._snapshot.objects(kind).pop(name, None)
