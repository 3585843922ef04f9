"""
Repository factory for creating schema repositories from configuration.
"""

from typing import Callable, Dict, List
import logging

from ..config import SourceConfig
from ..database.connection import ConnectionConfig
from ..exceptions import ConfigurationError
from .base import SchemaRepository
from .filesystem import FileSystemSchemaRepository
from .memory import InMemorySchemaRepository
from .postgres import PostgresSchemaRepository


logger = logging.getLogger(__name__)


def _create_files(config: SourceConfig) -> SchemaRepository:
    return FileSystemSchemaRepository(config.path)


def _create_postgres(config: SourceConfig) -> SchemaRepository:
    if config.connection is not None:
        connection = ConnectionConfig.from_connection(config.connection)
    else:
        connection = ConnectionConfig.from_url(config.url)
    return PostgresSchemaRepository.from_config(connection, config.db_schema)


def _create_memory(config: SourceConfig) -> SchemaRepository:
    return InMemorySchemaRepository()


class RepositoryFactory:
    """
    Factory for creating schema repositories based on ``SourceConfig.type``.
    """

    # Registry of available repository builders
    _REGISTRY: Dict[str, Callable[[SourceConfig], SchemaRepository]] = {
        "files": _create_files,
        "postgres": _create_postgres,
        "memory": _create_memory,
    }

    @classmethod
    def create(cls, config: SourceConfig) -> SchemaRepository:
        """
        Create a repository for a source or target configuration.

        Raises:
            ConfigurationError: If the type is not supported or the repository
                cannot be built from the given settings
        """
        repository_type = config.type.lower()

        if repository_type not in cls._REGISTRY:
            raise ConfigurationError(
                f"Unsupported repository type: {repository_type}. "
                f"Available types: {cls.get_supported_types()}"
            )

        try:
            repository = cls._REGISTRY[repository_type](config)
        except Exception as e:
            logger.error(f"Failed to create {repository_type} repository: {e}")
            raise ConfigurationError(
                f"Failed to create {repository_type} repository", cause=e
            ) from e

        logger.debug(f"Created {repository}")
        return repository

    @classmethod
    def get_supported_types(cls) -> List[str]:
        return list(cls._REGISTRY.keys())

    @classmethod
    def register_type(
        cls, repository_type: str, builder: Callable[[SourceConfig], SchemaRepository]
    ) -> None:
        """Register a custom repository builder."""
        cls._REGISTRY[repository_type.lower()] = builder
        logger.info(f"Registered repository type: {repository_type}")
