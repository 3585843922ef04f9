"""
Exception classes for schemasync.
"""

from typing import Any, Dict, List, Optional, Sequence


class SchemaSyncError(Exception):
    """Base exception for all schemasync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemaSyncError):
    """Raised when there's an error in configuration."""

    pass


class SchemaLoadError(SchemaSyncError):
    """Raised when a schema snapshot cannot be obtained."""

    pass


class FileSchemaLoadError(SchemaLoadError):
    """Raised when a schema snapshot cannot be read from the file system."""

    pass


class FileSchemaError(SchemaSyncError):
    """Raised when a schema object file cannot be read, written or removed."""

    pass


class SchemaParseError(FileSchemaError):
    """Raised when one or more schema files cannot be parsed."""

    def __init__(
        self,
        message: str,
        failed_objects: Sequence[str],
        errors: Optional[Sequence[BaseException]] = None,
    ) -> None:
        super().__init__(message, {"failed": len(failed_objects)})
        self.failed_objects: List[str] = list(failed_objects)
        self.errors: List[BaseException] = list(errors or [])


class DatabaseError(SchemaSyncError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    pass


class UnknownObjectKindError(SchemaSyncError):
    """Raised when a schema object kind outside of {table, function} is encountered."""

    def __init__(self, kind: Any) -> None:
        super().__init__(f"Unknown schema object kind: {kind!r}")
        self.kind = kind


class SyncError(SchemaSyncError):
    """
    Raised when applying a difference to the target fails.

    Carries the position of the failing difference so callers can report
    how far the run got before it stopped.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        index: Optional[int] = None,
        difference: Any = None,
        applied: int = 0,
        remaining: Optional[Sequence[Any]] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if difference is not None:
            details["object"] = f"{difference.object_kind.value}:{difference.name}"
        if index is not None:
            details["index"] = index
            details["applied"] = applied
        super().__init__(message, details, cause)
        self.index = index
        self.difference = difference
        self.applied = applied
        self.remaining = list(remaining or [])


class SyncCancelledError(SchemaSyncError):
    """Raised when a sync run is stopped through its cancellation token."""

    def __init__(self, applied: int = 0, remaining: Optional[Sequence[Any]] = None) -> None:
        super().__init__("Synchronization was cancelled", {"applied": applied})
        self.applied = applied
        self.remaining = list(remaining or [])
