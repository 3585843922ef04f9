"""
schemasync: compare and reconcile database schemas.

schemasync computes the differences between a canonical schema (usually a
folder of YAML files) and a target database, and applies a selected subset
of them as create, alter and delete operations.
"""

__version__ = "0.1.0"
__author__ = "schemasync Contributors"

from .config import SchemaSyncConfig
from .exceptions import (
    ConfigurationError,
    SchemaLoadError,
    SchemaSyncError,
    SyncCancelledError,
    SyncError,
)

__all__ = [
    "__version__",
    "SchemaSyncConfig",
    "SchemaSyncError",
    "ConfigurationError",
    "SchemaLoadError",
    "SyncError",
    "SyncCancelledError",
]
