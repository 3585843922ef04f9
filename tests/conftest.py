"""
Pytest configuration and shared fixtures for schemasync tests.

This module provides shared fixtures and utilities for testing all schemasync components.
"""

from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from schemasync.schema.models import (
    ColumnDefinition,
    FunctionDefinition,
    NamedSchemaObject,
    ObjectKind,
    SchemaSnapshot,
    TableDefinition,
)
from schemasync.schema.reconciler import SyncPolicy


# ============================================================================
# Schema Object Fixtures
# ============================================================================

def make_table(name: str, *columns: str, docstring: str = "", folder: str = "") -> NamedSchemaObject:
    """Build a table object from ``"name type"`` column specs."""
    definitions = []
    for spec in columns:
        column_name, data_type = spec.split(" ", 1)
        definitions.append(ColumnDefinition(column_name, data_type))
    return NamedSchemaObject.table(
        name, TableDefinition(tuple(definitions), docstring=docstring, folder=folder)
    )


def make_function(name: str, body: str = "SELECT 1", **kwargs) -> NamedSchemaObject:
    kwargs.setdefault("returns", "integer")
    return NamedSchemaObject.function(name, FunctionDefinition(body=body, **kwargs))


@pytest.fixture
def orders_table() -> NamedSchemaObject:
    return make_table("orders", "id integer", "total numeric(10,2)", docstring="Customer orders")


@pytest.fixture
def top_customers_function() -> NamedSchemaObject:
    return make_function(
        "top_customers",
        body="SELECT customer_id FROM orders ORDER BY total DESC LIMIT n",
        arguments="n integer",
        returns="SETOF integer",
    )


@pytest.fixture
def source_snapshot() -> SchemaSnapshot:
    """Source side of the three-table scenario: T1 changed, T2 new."""
    return SchemaSnapshot.from_objects([
        make_table("T1", "id integer", "name text"),
        make_table("T2", "id integer"),
        make_function("F1", "SELECT 2"),
    ])


@pytest.fixture
def target_snapshot() -> SchemaSnapshot:
    """Target side of the three-table scenario: T1 old, T3 extra."""
    return SchemaSnapshot.from_objects([
        make_table("T1", "id integer"),
        make_table("T3", "id integer"),
        make_function("F1", "SELECT 2"),
    ])


# ============================================================================
# Writer Fixtures
# ============================================================================

class RecordingWriter:
    """Target writer that records every call in order."""

    def __init__(self, fail_on: str = None, error: Exception = None):
        self.calls: List[tuple] = []
        self.fail_on = fail_on
        self.error = error or RuntimeError("write failed")

    async def create_or_alter(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        self.calls.append(("create_or_alter", obj.name))
        if obj.name == self.fail_on:
            raise self.error

    async def delete(self, kind: ObjectKind, name: str) -> None:
        self.calls.append(("delete", name))
        if name == self.fail_on:
            raise self.error


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def mock_pool():
    """Mock ConnectionPool whose transaction() yields a mock connection."""
    pool = MagicMock()
    pool.config = MagicMock(host="localhost", port=5432, database="test")
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchval = AsyncMock(return_value=False)
    pool.close = AsyncMock()

    connection = MagicMock()
    connection.execute = AsyncMock(return_value="OK")

    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=connection)
    transaction.__aexit__ = AsyncMock(return_value=False)
    pool.transaction = MagicMock(return_value=transaction)
    pool.connection = connection
    return pool


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def config_data(tmp_path) -> dict:
    """Configuration syncing a schema folder into another folder."""
    return {
        "source": {"type": "files", "path": str(tmp_path / "source")},
        "target": {"type": "files", "path": str(tmp_path / "target")},
        "sync": {"allow_delete": False},
    }


@pytest.fixture
def config_file(tmp_path, config_data) -> str:
    path = tmp_path / "schemasync.yaml"
    path.write_text(yaml.safe_dump(config_data), encoding="utf-8")
    return str(path)
