"""Loader contract shared by every format variant."""

import logging
from typing import Any, Callable

import duckdb
import pyarrow as pa

from duckview.core.engine import DuckDBEngine, RelationMetadata
from duckview.core.file_detector import has_extension
from duckview.core.identifiers import derive_relation_name, format_identifier_for_sql
from duckview.core.models import ColumnSchema, LoadResult
from duckview.errors import LoadError

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "unknown"

# Errors raised by the engine or pyarrow while decoding file bytes
ENGINE_ERRORS = (duckdb.Error, pa.ArrowException)


class LoaderContext:
    """What a loader may touch while materializing a relation."""

    def __init__(self, engine: DuckDBEngine, update_status: Callable[[str], None] | None = None):
        self.engine = engine
        self._update_status = update_status

    def update_status(self, message: str):
        logger.info(message)
        if self._update_status is not None:
            self._update_status(message)


class Loader:
    """Format-specific loader.

    Subclasses set ``id`` and ``extensions`` and implement ``materialize``.
    """

    id: str = ""
    label: str = ""
    extensions: frozenset[str] = frozenset()

    def can_load(self, file_name: str) -> bool:
        return has_extension(file_name, self.extensions)

    def load(self, file_name: str, file_bytes: bytes, context: LoaderContext) -> LoadResult:
        """Materialize ``file_bytes`` as a relation named after ``file_name``.

        Raises:
            LoadError: If the bytes are unreadable or no columns are detected.
        """
        if not file_bytes:
            raise LoadError("File is empty (0 bytes).")
        try:
            result = self.materialize(file_name, file_bytes, context)
        except ENGINE_ERRORS as exc:
            raise LoadError(f"Could not read {self.label} file '{file_name}': {exc}") from exc

        context.engine.register_relation(RelationMetadata(
            relation_name=result.relation_name,
            source_file=file_name,
            source_format=self.id,
            column_count=len(result.columns),
        ))
        return result

    def materialize(self, file_name: str, file_bytes: bytes, context: LoaderContext) -> LoadResult:
        raise NotImplementedError

    def _result(self, file_name: str, schema: list[ColumnSchema]) -> LoadResult:
        relation_name = derive_relation_name(file_name)
        return LoadResult(
            relation_name=relation_name,
            relation_identifier=format_identifier_for_sql(relation_name),
            columns=tuple(col.name for col in schema),
            schema=tuple(schema),
            loader_id=self.id,
            source_file=file_name,
        )


def _pick_text(row: dict[str, Any], *keys: str) -> str | None:
    """Return the first value among ``keys`` usable as text."""
    for key in keys:
        value = row.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return None


def extract_schema(rows: list[dict[str, Any]], file_label: str) -> list[ColumnSchema]:
    """Turn DESCRIBE / table_info rows into an ordered column schema.

    Accepts either ``column_name``/``column_type`` (DESCRIBE) or
    ``name``/``type`` (table_info). Rows without a usable name are skipped.

    Raises:
        LoadError: If no columns were detected.
    """
    schema = []
    for row in rows:
        name = _pick_text(row, "column_name", "name")
        if not name:
            continue
        col_type = _pick_text(row, "column_type", "type") or UNKNOWN_TYPE
        schema.append(ColumnSchema(name=name, type=col_type))

    if not schema:
        raise LoadError(f"No columns were detected in this {file_label} file.")
    return schema
