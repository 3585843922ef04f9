"""
Built-in classification rules for database and file system failures.
"""

import asyncio
import socket
from typing import List

from asyncpg import exceptions as pg_errors

from ..exceptions import (
    DatabaseConnectionError,
    FileSchemaError,
    FileSchemaLoadError,
    SchemaParseError,
    SyncCancelledError,
    UnknownObjectKindError,
)
from .resolvers import DiagnosticClassifier, ErrorCategory, ErrorMessageResolver, RuleResolver
from .specification import Spec, Specification


def _cause(error: BaseException):
    return error.__cause__


def _cause_is(*types) -> Specification[BaseException]:
    return Spec.property(_cause, Spec.instance_of(*types))


def _parse_failure_message(error: SchemaParseError) -> str:
    failed = "\n".join(error.failed_objects)
    return (
        f"Failed to parse the following schema objects:\n{failed}\n\n"
        "These objects will be ignored."
    )


def database_rules() -> List[ErrorMessageResolver]:
    """Rules for asyncpg and connection-level failures."""
    return [
        RuleResolver(
            Spec.instance_of(pg_errors.InvalidCatalogNameError),
            "The database could not be found.",
        ),
        RuleResolver(
            Spec.instance_of(pg_errors.InvalidSchemaNameError),
            "The database schema could not be found.",
        ),
        RuleResolver(
            Spec.instance_of(
                pg_errors.InvalidPasswordError,
                pg_errors.InvalidAuthorizationSpecificationError,
            ),
            "Could not authenticate with the database. Check the credentials in the configuration.",
        ),
        RuleResolver(
            Spec.instance_of(pg_errors.InsufficientPrivilegeError),
            "The database user does not have permission to change this object.",
            ErrorCategory.SKIPPABLE,
        ),
        RuleResolver(
            Spec.instance_of(pg_errors.DependentObjectsStillExistError),
            "The object could not be changed because other objects depend on it.",
            ErrorCategory.SKIPPABLE,
        ),
        RuleResolver(
            Spec.instance_of(pg_errors.SyntaxOrAccessError)
            & Spec.message_contains("syntax error"),
            lambda e: f"The object definition was rejected by the database: {e}",
            ErrorCategory.SKIPPABLE,
        ),
        RuleResolver(
            Spec.instance_of(socket.gaierror),
            "The database host could not be located.",
        ),
        RuleResolver(
            Spec.instance_of(
                ConnectionRefusedError,
                pg_errors.CannotConnectNowError,
                pg_errors.TooManyConnectionsError,
            ),
            "The database server refused the connection.",
            ErrorCategory.RETRYABLE,
        ),
        RuleResolver(
            Spec.instance_of(DatabaseConnectionError) & Spec.none(_cause),
            "Could not connect to the database.",
            ErrorCategory.RETRYABLE,
        ),
    ]


def file_system_rules() -> List[ErrorMessageResolver]:
    """Rules for schema files and OS-level file errors."""
    return [
        RuleResolver(
            Spec.instance_of(SchemaParseError),
            _parse_failure_message,
            ErrorCategory.SKIPPABLE,
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaError) & _cause_is(PermissionError),
            lambda e: f"Access denied to file system: {e.message}",
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaError) & _cause_is(NotADirectoryError),
            lambda e: f"Directory not found: {e.message}",
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaError) & _cause_is(FileNotFoundError),
            lambda e: f"File not found: {e.message}",
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaError) & _cause_is(OSError),
            lambda e: f"File system I/O error: {e.message}",
            ErrorCategory.RETRYABLE,
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaError),
            lambda e: f"File system error: {e.message}",
        ),
        RuleResolver(
            Spec.instance_of(FileSchemaLoadError),
            "Failed to load schema from file system.",
        ),
        RuleResolver(
            Spec.instance_of(NotADirectoryError),
            "The folder path provided could not be found.",
        ),
        RuleResolver(
            Spec.instance_of(FileNotFoundError),
            "The specified file could not be found.",
        ),
        RuleResolver(
            Spec.instance_of(PermissionError),
            "Access to the path was denied.",
        ),
    ]


def general_rules() -> List[ErrorMessageResolver]:
    """Rules that do not belong to a particular store."""
    return [
        RuleResolver(
            Spec.instance_of(SyncCancelledError),
            lambda e: f"Synchronization was cancelled after {e.applied} change(s).",
            ErrorCategory.SKIPPABLE,
        ),
        RuleResolver(
            Spec.instance_of(UnknownObjectKindError),
            lambda e: f"Internal error: {e.message}",
        ),
        RuleResolver(
            Spec.instance_of(asyncio.TimeoutError, TimeoutError),
            "The operation timed out.",
            ErrorCategory.RETRYABLE,
        ),
    ]


def create_default_classifier() -> DiagnosticClassifier:
    """Classifier with all built-in rules, most specific first."""
    return DiagnosticClassifier(database_rules() + file_system_rules() + general_rules())
