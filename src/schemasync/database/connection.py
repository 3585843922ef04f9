"""
Database connection management for schemasync.

Wraps an asyncpg pool that is created on first use, so a PostgreSQL
repository can be built from configuration without touching the network.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import asyncpg
from pydantic import BaseModel, Field, field_validator

from ..config import DatabaseConnection
from ..exceptions import DatabaseConfigurationError, DatabaseConnectionError


logger = logging.getLogger(__name__)

URL_SCHEMES = ("postgresql", "postgres")


class ConnectionConfig(BaseModel):
    """Settings for one PostgreSQL connection pool."""

    host: str = Field(..., description="Server host name")
    port: int = Field(5432, description="Server port")
    database: str = Field(..., description="Database to connect to")
    user: str = Field(..., description="Login role")
    password: str = Field(..., description="Login password")

    # A sync run writes through a single connection at a time
    min_size: int = Field(1, description="Connections opened up front")
    max_size: int = Field(4, description="Upper bound on open connections")

    command_timeout: float = Field(60.0, description="Per-statement timeout in seconds")
    connect_timeout: float = Field(30.0, description="Timeout for opening a connection")
    server_settings: Dict[str, str] = Field(
        default_factory=lambda: {"application_name": "schemasync"},
        description="Session settings sent on connect",
    )
    ssl_mode: Optional[str] = Field(None, description="libpq-style sslmode")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Build a configuration from a ``postgresql://`` URL."""
        parts = urlparse(url)
        if parts.scheme not in URL_SCHEMES:
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parts.scheme}")

        database = parts.path.lstrip("/")
        if not database:
            raise DatabaseConfigurationError("Database name is required")

        options = parse_qs(parts.query)
        return cls(
            host=parts.hostname or "localhost",
            port=parts.port or 5432,
            database=database,
            user=parts.username or "",
            password=parts.password or "",
            ssl_mode=options.get("sslmode", ["prefer"])[0],
        )

    @classmethod
    def from_connection(cls, connection: DatabaseConnection) -> "ConnectionConfig":
        """Build a configuration from the ``connection`` section of a config file."""
        return cls(
            host=connection.host,
            port=connection.port,
            database=connection.database,
            user=connection.user,
            password=connection.password,
            ssl_mode=connection.ssl_mode,
            command_timeout=connection.command_timeout,
            connect_timeout=connection.connect_timeout,
        )

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``asyncpg.create_pool``."""
        kwargs: Dict[str, Any] = self.model_dump(
            include={"host", "port", "database", "user", "password", "command_timeout", "server_settings"}
        )
        kwargs["timeout"] = self.connect_timeout
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs


class ConnectionPool:
    """Lazily created asyncpg pool."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()

    @property
    def target(self) -> str:
        return f"{self.config.host}:{self.config.port}/{self.config.database}"

    async def initialize(self) -> None:
        """Open the pool unless it is already open."""
        async with self._lock:
            if self._pool is not None:
                return

            logger.info(
                f"Connecting to {self.target} "
                f"(pool size {self.config.min_size}-{self.config.max_size})"
            )
            try:
                self._pool = await asyncpg.create_pool(
                    **self.config.to_connection_kwargs(),
                    min_size=self.config.min_size,
                    max_size=self.config.max_size,
                )
            except Exception as e:
                logger.error(f"Could not connect to {self.target}: {e}")
                raise DatabaseConnectionError(
                    f"Failed to initialize connection pool for {self.config.database}", cause=e
                ) from e
            logger.debug(f"Connection pool for {self.target} is ready")

    async def close(self) -> None:
        async with self._lock:
            if self._pool is None:
                return
            logger.debug(f"Closing connection pool for {self.target}")
            pool, self._pool = self._pool, None
            await pool.close()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection, opening the pool on first use."""
        if self._pool is None:
            await self.initialize()

        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection and run the block in one transaction."""
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column)

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def __aenter__(self) -> "ConnectionPool":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
