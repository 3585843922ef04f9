"""
Configuration system for schemasync using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError
from .schema.models import LineEndingMode
from .schema.reconciler import SyncPolicy


class DatabaseConnection(BaseModel):
    """Database connection configuration."""

    host: str = Field(..., description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field(..., description="Database password")
    ssl_mode: str = Field("prefer", description="SSL mode")
    connect_timeout: int = Field(30, description="Connection timeout in seconds")
    command_timeout: int = Field(60, description="Command timeout in seconds")


class SourceConfig(BaseModel):
    """Where a schema snapshot comes from, or where changes are written."""

    type: Literal["files", "postgres", "memory"] = Field(
        "files", description="Repository type"
    )
    path: Optional[str] = Field(None, description="Root folder for file repositories")
    connection: Optional[DatabaseConnection] = Field(
        None, description="Connection details for postgres repositories"
    )
    url: Optional[str] = Field(
        None, description="postgresql:// URL, used instead of 'connection'"
    )
    db_schema: str = Field("public", alias="schema", description="Database schema")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_location(self) -> "SourceConfig":
        if self.type == "files" and not self.path:
            raise ValueError("A 'path' is required for file repositories")
        if self.type == "postgres" and self.connection is None and not self.url:
            raise ValueError("A 'connection' or 'url' is required for postgres repositories")
        return self

    @property
    def description(self) -> str:
        if self.type == "files":
            return f"files:{self.path}"
        if self.type == "postgres" and self.connection is None:
            return f"postgres:{urlparse(self.url).hostname}/{self.db_schema}"
        if self.type == "postgres":
            return f"postgres:{self.connection.host}/{self.connection.database}/{self.db_schema}"
        return "memory"


class SyncSettings(BaseModel):
    """How differences are applied to the target."""

    allow_delete: bool = Field(
        False, description="Delete objects that exist only in the target"
    )
    drop_warning: bool = Field(
        True, description="Ask for confirmation before deleting objects"
    )
    continue_on_error: bool = Field(
        False, description="Keep applying differences after a failure"
    )
    create_merge: bool = Field(
        False, description="Keep target columns that are missing from the source"
    )
    fields_on_new_line: bool = Field(
        False, description="Write each table column on its own line"
    )
    line_ending_mode: LineEndingMode = Field(
        LineEndingMode.LEAVE_AS_IS, description="Line ending normalization"
    )

    def to_policy(self, allow_delete: Optional[bool] = None) -> SyncPolicy:
        return SyncPolicy(
            allow_delete=self.allow_delete if allow_delete is None else allow_delete,
            continue_on_error=self.continue_on_error,
            create_merge=self.create_merge,
            fields_on_new_line=self.fields_on_new_line,
            line_ending_mode=self.line_ending_mode,
        )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class SchemaSyncConfig(BaseSettings):
    """Main schemasync configuration."""

    debug: bool = Field(False, description="Enable debug mode")

    source: SourceConfig = Field(..., description="Canonical schema")
    target: SourceConfig = Field(..., description="Schema to reconcile")
    sync: SyncSettings = Field(
        default_factory=SyncSettings, description="Sync policy"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="SCHEMASYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemaSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def validate_config(self) -> None:
        """Validate the configuration for consistency."""
        if self.source.type == "memory" or self.target.type == "memory":
            raise ConfigurationError(
                "In-memory repositories cannot be used from a configuration file"
            )
        if self.source.model_dump() == self.target.model_dump():
            raise ConfigurationError("Source and target point to the same location")

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True, by_alias=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
