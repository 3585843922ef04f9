"""
Abstract base class for schema repositories.

A repository is both a snapshot provider (the source or target side of a
comparison) and a writer the reconciler applies differences to.
"""

from abc import ABC, abstractmethod
import logging

from ..schema.models import NamedSchemaObject, ObjectKind, SchemaSnapshot
from ..schema.reconciler import SyncPolicy


logger = logging.getLogger(__name__)


class SchemaRepository(ABC):
    """
    Abstract base class for all schema repositories.

    Implementations read a full snapshot of the objects they hold and
    create, replace or delete single objects by name.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable location of the repository."""

    @abstractmethod
    async def get_snapshot(self) -> SchemaSnapshot:
        """
        Read every table and function in the repository.

        Raises:
            SchemaLoadError: If the snapshot cannot be obtained
        """

    @abstractmethod
    async def create_or_alter(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        """
        Make the stored object with ``obj.name`` match ``obj.definition``.

        Args:
            obj: Object to write
            policy: Formatting options such as ``create_merge`` and line endings
        """

    @abstractmethod
    async def delete(self, kind: ObjectKind, name: str) -> None:
        """Remove the object ``name`` of ``kind``. Missing objects are ignored."""

    async def close(self) -> None:
        """Release any resources held by the repository."""

    async def __aenter__(self) -> "SchemaRepository":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.description})"
