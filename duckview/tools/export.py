"""Export of query results to bytes handed to the host."""

import enum
import io
import logging
import re
import uuid

import duckdb
import pyarrow.ipc as ipc

from duckview.config import Config
from duckview.core.engine import DuckDBEngine
from duckview.core.models import ExportRequest
from duckview.core.sql_loader import load_sql
from duckview.errors import ExportError
from duckview.tools.query import QueryExecutor

logger = logging.getLogger(__name__)

_TRAILING_SEMICOLONS = re.compile(r"[;\s]+$")


class ExportFormat(enum.Enum):
    CSV = "csv"
    PARQUET = "parquet"
    JSON = "json"
    JSONL = "jsonl"
    ARROW = "arrow"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(fmt.value for fmt in cls)
            raise ExportError(
                f"Unsupported export format '{value}'. Supported: {supported}"
            ) from None


# Formats written by the engine with COPY ... TO
_COPY_TEMPLATES = {
    ExportFormat.CSV: "to_csv",
    ExportFormat.PARQUET: "to_parquet",
    ExportFormat.JSON: "to_json",
    ExportFormat.JSONL: "to_jsonl",
}


def normalize_sql_for_embedding(sql: str) -> str:
    """Strip trailing semicolons so the query can be wrapped in COPY (...)."""
    return _TRAILING_SEMICOLONS.sub("", sql.strip())


class ExportPipeline:
    """Turns the current query (or its cached result) into bytes for the host."""

    def __init__(
        self,
        engine: DuckDBEngine,
        executor: QueryExecutor,
        host,
        base_name: str = Config.EXPORT_BASENAME,
    ):
        self._engine = engine
        self._executor = executor
        self._host = host
        self._base_name = base_name

    def export(self, export_format: "str | ExportFormat", query_text: str) -> ExportRequest:
        """Export the current query in the requested format.

        Args:
            export_format: One of csv, parquet, json, jsonl, arrow.
            query_text: The SQL currently in the editor.

        Raises:
            ExportError: On blank query text, an unknown format, an engine
                failure, or when no result is available for Arrow export.
            QueryError: If the Arrow export had to run the query and it failed.
        """
        sql = (query_text or "").strip()
        if not sql:
            raise ExportError("Write a SQL query to export first.")
        fmt = ExportFormat.parse(export_format)

        if fmt is ExportFormat.ARROW:
            data = self._export_arrow(sql)
        else:
            data = self._export_with_copy(fmt, sql)

        request = ExportRequest(
            file_name=f"{self._base_name}{fmt.extension}",
            format=fmt.value,
            data=data,
        )
        self._host.save_export(request)
        logger.info("Exported %d bytes as %s", request.size_bytes, request.file_name)
        return request

    def _export_with_copy(self, fmt: ExportFormat, sql: str) -> bytes:
        export_path = self._engine.virtual_path(f"export-{uuid.uuid4().hex}{fmt.extension}")
        copy_sql = load_sql(
            "export", _COPY_TEMPLATES[fmt],
            query=normalize_sql_for_embedding(sql),
            output_path=export_path,
        )
        try:
            self._engine.execute(copy_sql)
            return self._engine.copy_bytes_out(export_path)
        except duckdb.Error as exc:
            raise ExportError(f"{fmt.value.upper()} export failed: {exc}") from exc
        finally:
            self._engine.drop_virtual_file(export_path)

    def _export_arrow(self, sql: str) -> bytes:
        if self._executor.last_table is None:
            self._executor.execute(sql)
        table = self._executor.last_table
        if table is None:
            raise ExportError("Run the query before exporting to Arrow.")

        sink = io.BytesIO()
        with ipc.new_file(sink, table.schema) as writer:
            writer.write_table(table)
        return sink.getvalue()
