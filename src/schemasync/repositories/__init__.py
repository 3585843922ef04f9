"""
Schema repositories for schemasync.

This package provides:
- The repository interface used as snapshot provider and target writer
- File system, PostgreSQL and in-memory implementations
- A factory that builds repositories from configuration
"""

from .base import SchemaRepository
from .factory import RepositoryFactory
from .filesystem import FileSystemSchemaRepository
from .memory import InMemorySchemaRepository
from .postgres import PostgresSchemaRepository

__all__ = [
    "SchemaRepository",
    "RepositoryFactory",
    "FileSystemSchemaRepository",
    "InMemorySchemaRepository",
    "PostgresSchemaRepository",
]
