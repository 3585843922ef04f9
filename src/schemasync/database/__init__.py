"""
Database integration package for schemasync.

This package provides:
- Async PostgreSQL connection pooling
- Schema introspection of tables, columns and functions
"""

from .connection import ConnectionConfig, ConnectionPool
from .introspection import SchemaIntrospector

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "SchemaIntrospector",
]
