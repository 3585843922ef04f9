"""
Database schema introspection for schemasync.

Reads tables, columns and functions of one PostgreSQL schema and turns
them into schemasync definitions.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .connection import ConnectionPool
from ..exceptions import DatabaseError, SchemaLoadError
from ..schema.models import ColumnDefinition, FunctionDefinition, TableDefinition


logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Database schema introspection utilities."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def list_tables(self, schema: str) -> List[str]:
        """List all base tables in a schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """

        try:
            rows = await self.pool.fetch(query, schema)
            return [row["table_name"] for row in rows]
        except Exception as e:
            logger.error(f"Error listing tables in {schema}: {e}")
            raise SchemaLoadError(f"Failed to list tables in schema {schema}", cause=e) from e

    async def table_exists(self, schema: str, table: str) -> bool:
        """Check if a table exists."""
        query = """
            SELECT EXISTS (
                SELECT 1 FROM information_schema.tables
                WHERE table_schema = $1 AND table_name = $2
            )
        """
        try:
            result = await self.pool.fetchval(query, schema, table)
            return bool(result)
        except Exception as e:
            logger.error(f"Error checking table existence for {schema}.{table}: {e}")
            raise DatabaseError(f"Failed to check table existence for {schema}.{table}", cause=e) from e

    async def get_columns(self, schema: str, table: str) -> Tuple[ColumnDefinition, ...]:
        """Get all columns for a table in ordinal order."""
        # format_type keeps modifiers such as varchar(64) and numeric(10,2)
        query = """
            SELECT
                a.attname AS column_name,
                format_type(a.atttypid, a.atttypmod) AS data_type,
                NOT a.attnotnull AS is_nullable,
                pg_get_expr(d.adbin, d.adrelid) AS column_default
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = $1
            AND c.relname = $2
            AND a.attnum > 0
            AND NOT a.attisdropped
            ORDER BY a.attnum
        """

        try:
            rows = await self.pool.fetch(query, schema, table)
            return tuple(
                ColumnDefinition(
                    name=row["column_name"],
                    data_type=row["data_type"],
                    nullable=row["is_nullable"],
                    default=row["column_default"],
                )
                for row in rows
            )
        except Exception as e:
            logger.error(f"Error getting columns for {schema}.{table}: {e}")
            raise SchemaLoadError(f"Failed to get columns for {schema}.{table}", cause=e) from e

    async def get_table_comments(self, schema: str) -> Dict[str, str]:
        """Get table comments keyed by table name."""
        query = """
            SELECT c.relname AS table_name, obj_description(c.oid, 'pg_class') AS comment
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = $1 AND c.relkind IN ('r', 'p')
        """

        try:
            rows = await self.pool.fetch(query, schema)
            return {row["table_name"]: row["comment"] for row in rows if row["comment"]}
        except Exception as e:
            logger.warning(f"Could not get table comments for {schema}: {e}")
            return {}

    async def get_table_definition(
        self, schema: str, table: str, comment: Optional[str] = None
    ) -> TableDefinition:
        columns = await self.get_columns(schema, table)
        return TableDefinition(columns=columns, docstring=comment or "")

    async def list_functions(self, schema: str) -> Dict[str, FunctionDefinition]:
        """
        Get all plain functions in a schema keyed by name.

        Aggregates and procedures are skipped. Overloads share a name, so
        only the first one by argument list is kept.
        """
        query = """
            SELECT
                p.proname AS function_name,
                pg_get_function_arguments(p.oid) AS arguments,
                pg_get_function_result(p.oid) AS returns,
                p.prosrc AS body,
                l.lanname AS language,
                obj_description(p.oid, 'pg_proc') AS comment
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            JOIN pg_language l ON l.oid = p.prolang
            WHERE n.nspname = $1
            AND p.prokind = 'f'
            ORDER BY p.proname, pg_get_function_arguments(p.oid)
        """

        try:
            rows = await self.pool.fetch(query, schema)
        except Exception as e:
            logger.error(f"Error listing functions in {schema}: {e}")
            raise SchemaLoadError(f"Failed to list functions in schema {schema}", cause=e) from e

        functions: Dict[str, FunctionDefinition] = {}
        for row in rows:
            name = row["function_name"]
            if name in functions:
                logger.warning(f"Skipping overload {schema}.{name}({row['arguments']})")
                continue
            functions[name] = FunctionDefinition(
                arguments=row["arguments"],
                returns=row["returns"],
                body=row["body"],
                language=row["language"],
                docstring=row["comment"] or "",
            )
        return functions
