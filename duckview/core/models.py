"""Immutable records passed between loaders, the executor, the grid and history."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from duckview.core.cells import format_cell


@dataclass(frozen=True)
class ColumnSchema:
    name: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True)
class LoadResult:
    """A relation materialized from a file, as handed back by a loader."""

    relation_name: str
    relation_identifier: str
    columns: tuple[str, ...]
    schema: tuple[ColumnSchema, ...]
    loader_id: str = ""
    source_file: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "relation_name": self.relation_name,
            "relation_identifier": self.relation_identifier,
            "columns": list(self.columns),
            "schema": [col.to_dict() for col in self.schema],
            "loader": self.loader_id,
            "source_file": self.source_file,
        }


@dataclass(frozen=True)
class Row:
    raw: tuple[Any, ...]
    display: tuple[str, ...]

    def __post_init__(self):
        if len(self.raw) != len(self.display):
            raise ValueError(
                f"Row has {len(self.raw)} raw values but {len(self.display)} display values"
            )

    @classmethod
    def from_values(cls, values) -> "Row":
        raw = tuple(values)
        return cls(raw=raw, display=tuple(format_cell(value) for value in raw))


@dataclass(frozen=True)
class QueryResult:
    """Snapshot of one successful execution. Never mutated."""

    columns: tuple[str, ...]
    rows: tuple[Row, ...]
    duration_ms: float = 0.0

    def __post_init__(self):
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row.raw) != width:
                raise ValueError(
                    f"Row {index} has {len(row.raw)} values, expected {width}"
                )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_rows(cls, columns, rows, duration_ms: float = 0.0) -> "QueryResult":
        """Build a snapshot from column names and engine row tuples."""
        return cls(
            columns=tuple(columns),
            rows=tuple(Row.from_values(values) for values in rows),
            duration_ms=duration_ms,
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Outcome of one execution attempt."""

    id: int
    sql: str
    timestamp: datetime
    duration_ms: float
    row_count: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def summary(self) -> str:
        """One-line description, e.g. ``'2 rows • 5 ms • 14:03:11'``."""
        parts = [
            f"{self.row_count:,} row{'' if self.row_count == 1 else 's'}",
            f"{max(1, round(self.duration_ms)):,} ms",
            self.timestamp.strftime("%H:%M:%S"),
        ]
        meta = " • ".join(parts)
        if self.error:
            return f"{self.error} • {meta}"
        return meta

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sql": self.sql,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": round(self.duration_ms, 3),
            "row_count": self.row_count,
            "error": self.error,
            "summary": self.summary(),
        }


@dataclass(frozen=True)
class ExportRequest:
    """Bytes and a suggested file name handed to the host for persisting."""

    file_name: str
    format: str
    data: bytes = field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.data)
