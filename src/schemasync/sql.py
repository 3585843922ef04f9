"""
DDL command generation for PostgreSQL schema objects.
"""

from typing import List

from .schema.models import (
    ColumnDefinition,
    FunctionDefinition,
    LineEndingMode,
    TableDefinition,
)


def quote_ident(name: str) -> str:
    """Quote an identifier so case and reserved words survive as written."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def qualified(schema: str, name: str) -> str:
    return f"{quote_ident(schema)}.{quote_ident(name)}"


def column_clause(column: ColumnDefinition) -> str:
    parts = [quote_ident(column.name), column.data_type]
    if not column.nullable:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default}")
    return " ".join(parts)


def generate_table_create_command(
    schema: str,
    name: str,
    table: TableDefinition,
    fields_on_new_line: bool = False,
    line_ending_mode: LineEndingMode = LineEndingMode.LEAVE_AS_IS,
) -> str:
    """``CREATE TABLE IF NOT EXISTS`` for the full definition."""
    clauses = [column_clause(c) for c in table.columns]
    if fields_on_new_line and clauses:
        body = "(\n    " + ",\n    ".join(clauses) + "\n)"
    else:
        body = "(" + ", ".join(clauses) + ")"
    command = f"CREATE TABLE IF NOT EXISTS {qualified(schema, name)} {body};"
    return line_ending_mode.apply(command)


def generate_table_alter_commands(
    schema: str,
    name: str,
    existing: TableDefinition,
    desired: TableDefinition,
    create_merge: bool = False,
) -> List[str]:
    """
    Commands that turn ``existing`` into ``desired``.

    With ``create_merge`` columns missing from ``desired`` are kept.
    """
    table = qualified(schema, name)
    commands = []

    for column in desired.columns:
        current = existing.get_column(column.name)
        ident = quote_ident(column.name)
        if current is None:
            commands.append(f"ALTER TABLE {table} ADD COLUMN {column_clause(column)};")
            continue
        if current.data_type != column.data_type:
            commands.append(
                f"ALTER TABLE {table} ALTER COLUMN {ident} TYPE {column.data_type} "
                f"USING {ident}::{column.data_type};"
            )
        if current.default != column.default:
            if column.default is None:
                commands.append(f"ALTER TABLE {table} ALTER COLUMN {ident} DROP DEFAULT;")
            else:
                commands.append(
                    f"ALTER TABLE {table} ALTER COLUMN {ident} SET DEFAULT {column.default};"
                )
        if current.nullable != column.nullable:
            action = "DROP NOT NULL" if column.nullable else "SET NOT NULL"
            commands.append(f"ALTER TABLE {table} ALTER COLUMN {ident} {action};")

    if not create_merge:
        desired_names = set(desired.column_names)
        for column in existing.columns:
            if column.name not in desired_names:
                commands.append(f"ALTER TABLE {table} DROP COLUMN {quote_ident(column.name)};")

    return commands


def generate_comment_command(kind: str, target: str, docstring: str) -> str:
    value = quote_literal(docstring) if docstring else "NULL"
    return f"COMMENT ON {kind} {target} IS {value};"


def _dollar_quote(body: str) -> str:
    tag = "$body$"
    while tag in body:
        tag = tag[:-1] + "_$"
    return f"{tag}{body}{tag}"


def generate_function_command(
    schema: str,
    name: str,
    function: FunctionDefinition,
    line_ending_mode: LineEndingMode = LineEndingMode.LEAVE_AS_IS,
) -> str:
    """``CREATE OR REPLACE FUNCTION`` for the full definition."""
    body = line_ending_mode.apply(function.body)
    return (
        f"CREATE OR REPLACE FUNCTION {qualified(schema, name)}({function.arguments})\n"
        f"RETURNS {function.returns}\n"
        f"LANGUAGE {function.language}\n"
        f"AS {_dollar_quote(body)};"
    )


def generate_drop_command(kind: str, schema: str, name: str) -> str:
    return f"DROP {kind} IF EXISTS {qualified(schema, name)};"
