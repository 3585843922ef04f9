"""
PostgreSQL schema repository.

Reads tables and functions of one database schema and applies changes
with generated DDL, one transaction per object.
"""

from typing import List, Optional

from ..database.connection import ConnectionConfig, ConnectionPool
from ..database.introspection import SchemaIntrospector
from ..exceptions import UnknownObjectKindError
from ..schema.models import (
    FunctionDefinition,
    NamedSchemaObject,
    ObjectKind,
    SchemaSnapshot,
    TableDefinition,
)
from ..schema.reconciler import SyncPolicy
from ..sql import (
    generate_comment_command,
    generate_drop_command,
    generate_function_command,
    generate_table_alter_commands,
    generate_table_create_command,
    qualified,
)
from .base import SchemaRepository


class PostgresSchemaRepository(SchemaRepository):
    """Repository backed by one schema of a PostgreSQL database."""

    def __init__(
        self,
        pool: ConnectionPool,
        schema: str = "public",
        introspector: Optional[SchemaIntrospector] = None,
    ):
        super().__init__()
        self.pool = pool
        self.schema = schema
        self.introspector = introspector or SchemaIntrospector(pool)

    @classmethod
    def from_config(cls, config: ConnectionConfig, schema: str = "public") -> "PostgresSchemaRepository":
        return cls(ConnectionPool(config), schema)

    @property
    def description(self) -> str:
        config = self.pool.config
        return f"postgres:{config.host}:{config.port}/{config.database}/{self.schema}"

    async def get_snapshot(self) -> SchemaSnapshot:
        snapshot = SchemaSnapshot()

        comments = await self.introspector.get_table_comments(self.schema)
        for table in await self.introspector.list_tables(self.schema):
            definition = await self.introspector.get_table_definition(
                self.schema, table, comments.get(table)
            )
            snapshot.add(NamedSchemaObject.table(table, definition))

        functions = await self.introspector.list_functions(self.schema)
        for name, definition in functions.items():
            snapshot.add(NamedSchemaObject.function(name, definition))

        self.logger.info(
            f"Loaded {len(snapshot.tables)} tables and {len(snapshot.functions)} "
            f"functions from {self.description}"
        )
        return snapshot

    async def create_or_alter(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        if obj.kind is ObjectKind.TABLE:
            commands = await self._table_commands(obj.name, obj.definition, policy)
        elif obj.kind is ObjectKind.FUNCTION:
            commands = self._function_commands(obj.name, obj.definition, policy)
        else:
            raise UnknownObjectKindError(obj.kind)

        await self._execute_all(commands)
        self.logger.info(f"Applied {len(commands)} command(s) for {obj.qualified_name}")

    async def delete(self, kind: ObjectKind, name: str) -> None:
        if kind not in (ObjectKind.TABLE, ObjectKind.FUNCTION):
            raise UnknownObjectKindError(kind)
        await self._execute_all([generate_drop_command(kind.value.upper(), self.schema, name)])
        self.logger.info(f"Dropped {kind.value}:{name}")

    async def close(self) -> None:
        await self.pool.close()

    async def _table_commands(
        self, name: str, table: TableDefinition, policy: SyncPolicy
    ) -> List[str]:
        target = qualified(self.schema, name)

        if not await self.introspector.table_exists(self.schema, name):
            commands = [
                generate_table_create_command(
                    self.schema,
                    name,
                    table,
                    fields_on_new_line=policy.fields_on_new_line,
                    line_ending_mode=policy.line_ending_mode,
                )
            ]
        else:
            existing = await self.introspector.get_table_definition(self.schema, name)
            commands = generate_table_alter_commands(
                self.schema, name, existing, table, create_merge=policy.create_merge
            )

        commands.append(generate_comment_command("TABLE", target, table.docstring))
        return commands

    def _function_commands(
        self, name: str, function: FunctionDefinition, policy: SyncPolicy
    ) -> List[str]:
        target = f"{qualified(self.schema, name)}({function.arguments})"
        return [
            generate_function_command(
                self.schema, name, function, line_ending_mode=policy.line_ending_mode
            ),
            generate_comment_command("FUNCTION", target, function.docstring),
        ]

    async def _execute_all(self, commands: List[str]) -> None:
        async with self.pool.transaction() as conn:
            for command in commands:
                self.logger.debug(f"Executing: {command}")
                await conn.execute(command)
