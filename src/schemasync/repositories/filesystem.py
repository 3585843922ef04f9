"""
File system schema repository.

Each object is one YAML document. Tables live under ``tables/`` and
functions under ``functions/``, optionally inside a sub-folder that is
kept in the definition's ``folder``:

    <root>/tables/sales/Orders.yaml
    <root>/functions/TopCustomers.yaml
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..exceptions import FileSchemaError, SchemaParseError, UnknownObjectKindError
from ..schema.models import (
    ColumnDefinition,
    FunctionDefinition,
    NamedSchemaObject,
    ObjectKind,
    SchemaSnapshot,
    TableDefinition,
)
from ..schema.reconciler import SyncPolicy
from .base import SchemaRepository


FILE_SUFFIX = ".yaml"

KIND_FOLDERS = {
    ObjectKind.TABLE: "tables",
    ObjectKind.FUNCTION: "functions",
}


def table_to_document(name: str, table: TableDefinition) -> Dict[str, Any]:
    document: Dict[str, Any] = {"name": name}
    if table.docstring:
        document["docstring"] = table.docstring
    columns = []
    for column in table.columns:
        entry: Dict[str, Any] = {"name": column.name, "type": column.data_type}
        if not column.nullable:
            entry["nullable"] = False
        if column.default is not None:
            entry["default"] = column.default
        columns.append(entry)
    document["columns"] = columns
    return document


def document_to_table(document: Dict[str, Any], folder: str = "") -> TableDefinition:
    columns = tuple(
        ColumnDefinition(
            name=str(entry["name"]),
            data_type=str(entry["type"]),
            nullable=bool(entry.get("nullable", True)),
            default=None if entry.get("default") is None else str(entry["default"]),
        )
        for entry in document.get("columns") or []
    )
    return TableDefinition(
        columns=columns,
        docstring=document.get("docstring") or "",
        folder=folder,
    )


def function_to_document(name: str, function: FunctionDefinition) -> Dict[str, Any]:
    document: Dict[str, Any] = {"name": name}
    if function.docstring:
        document["docstring"] = function.docstring
    document["arguments"] = function.arguments
    document["returns"] = function.returns
    document["language"] = function.language
    document["body"] = function.body
    return document


def document_to_function(document: Dict[str, Any], folder: str = "") -> FunctionDefinition:
    return FunctionDefinition(
        arguments=document.get("arguments") or "",
        returns=document.get("returns") or "void",
        body=document.get("body") or "",
        language=document.get("language") or "sql",
        docstring=document.get("docstring") or "",
        folder=folder,
    )


class _LiteralDumper(yaml.SafeDumper):
    """Writes multi-line strings as literal blocks so function bodies stay readable."""


def _represent_str(dumper: yaml.SafeDumper, data: str):
    if "\n" in data and "\r" not in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _represent_str)


class FileSystemSchemaRepository(SchemaRepository):
    """Repository backed by a folder of YAML files."""

    def __init__(self, root: Union[str, Path]):
        super().__init__()
        self.root = Path(root)

    @property
    def description(self) -> str:
        return f"files:{self.root}"

    def kind_folder(self, kind: ObjectKind) -> Path:
        return self.root / KIND_FOLDERS[kind]

    def object_path(self, kind: ObjectKind, name: str, folder: str = "") -> Path:
        base = self.kind_folder(kind)
        if folder:
            base = base / folder
        return base / f"{name}{FILE_SUFFIX}"

    async def get_snapshot(self) -> SchemaSnapshot:
        return await asyncio.to_thread(self._load_snapshot)

    async def create_or_alter(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        await asyncio.to_thread(self._write_object, obj, policy)

    async def delete(self, kind: ObjectKind, name: str) -> None:
        await asyncio.to_thread(self._delete_object, kind, name)

    def _load_snapshot(self) -> SchemaSnapshot:
        if not self.root.exists():
            self.logger.info(f"Schema folder {self.root} does not exist, treating it as empty")
            return SchemaSnapshot()
        if not self.root.is_dir():
            raise FileSchemaError(
                f"Schema folder {self.root} is not a directory",
                cause=NotADirectoryError(str(self.root)),
            )

        snapshot = SchemaSnapshot()
        failed: List[str] = []
        errors: List[BaseException] = []

        for kind in (ObjectKind.TABLE, ObjectKind.FUNCTION):
            for path, folder in self._object_files(kind):
                try:
                    obj = self._read_object(kind, path, folder)
                except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
                    self.logger.warning(f"Could not parse {path}: {e}")
                    failed.append(str(path.relative_to(self.root)))
                    errors.append(e)
                    continue

                existing = snapshot.objects(kind).get(obj.name)
                if existing is not None:
                    self.logger.warning(
                        f"Duplicate {kind.value} {obj.name} in {path}, "
                        f"keeping the copy in '{existing.definition.folder}'"
                    )
                    continue
                snapshot.add(obj)

        if failed:
            raise SchemaParseError(
                f"Failed to parse {len(failed)} schema file(s) under {self.root}",
                failed,
                errors,
            )

        self.logger.debug(
            f"Loaded {len(snapshot.tables)} tables and {len(snapshot.functions)} "
            f"functions from {self.root}"
        )
        return snapshot

    def _object_files(self, kind: ObjectKind) -> List[Tuple[Path, str]]:
        base = self.kind_folder(kind)
        if not base.is_dir():
            return []
        try:
            paths = sorted(base.rglob(f"*{FILE_SUFFIX}"))
        except OSError as e:
            raise FileSchemaError(f"Failed to list files in {base}", cause=e) from e
        files = []
        for path in paths:
            folder = path.parent.relative_to(base).as_posix()
            files.append((path, "" if folder == "." else folder))
        return files

    def _read_object(self, kind: ObjectKind, path: Path, folder: str) -> NamedSchemaObject:
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                document = yaml.safe_load(f)
        except OSError as e:
            raise FileSchemaError(f"Failed to read {path}", cause=e) from e

        if not isinstance(document, dict):
            raise ValueError(f"Expected a mapping, got {type(document).__name__}")

        name = str(document.get("name") or path.stem)
        if kind is ObjectKind.TABLE:
            return NamedSchemaObject.table(name, document_to_table(document, folder))
        return NamedSchemaObject.function(name, document_to_function(document, folder))

    def _write_object(self, obj: NamedSchemaObject, policy: SyncPolicy) -> None:
        definition = obj.definition
        if obj.kind is ObjectKind.TABLE:
            document = table_to_document(obj.name, definition)
        elif obj.kind is ObjectKind.FUNCTION:
            document = function_to_document(obj.name, definition)
            document["body"] = policy.line_ending_mode.apply(document["body"])
        else:
            raise UnknownObjectKindError(obj.kind)

        path = self.object_path(obj.kind, obj.name, definition.folder)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                yaml.dump(
                    document,
                    f,
                    Dumper=_LiteralDumper,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                )
        except OSError as e:
            raise FileSchemaError(f"Failed to write {path}", cause=e) from e

        self._remove_copies(obj.kind, obj.name, keep=path)
        self.logger.debug(f"Wrote {obj.qualified_name} to {path}")

    def _delete_object(self, kind: ObjectKind, name: str) -> None:
        removed = self._remove_copies(kind, name)
        if not removed:
            self.logger.debug(f"No file found for {kind.value}:{name}")

    def _remove_copies(self, kind: ObjectKind, name: str, keep: Optional[Path] = None) -> int:
        """Remove every file of ``kind`` named ``name`` except ``keep``."""
        base = self.kind_folder(kind)
        if not base.is_dir():
            return 0

        removed = 0
        for path in base.rglob(f"*{FILE_SUFFIX}"):
            # Names are matched literally, never as glob patterns
            if path.stem != name or path == keep:
                continue
            try:
                path.unlink()
            except OSError as e:
                raise FileSchemaError(f"Failed to remove {path}", cause=e) from e
            self.logger.debug(f"Removed {path}")
            removed += 1
        return removed
