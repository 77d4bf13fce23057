"""The tabular query session: one engine, one grid, one history, one host.

Session actions (load, run, reset, replay, export) are the single point
where failures are reported. They never raise; they return a result dict
with either ``"status": "success"`` or an ``"error"`` message, following the
same convention as the tool functions before them.
"""

import logging
import threading
from typing import Any, Callable

from duckview.config import Config
from duckview.core.engine import DuckDBEngine
from duckview.core.identifiers import build_default_query
from duckview.core.models import LoadResult, QueryResult
from duckview.errors import EmptyInputError, SessionBusyError, SessionError
from duckview.host import Host, RecordingHost, read_file_for_load
from duckview.tools.export import ExportPipeline
from duckview.tools.grid import ResultGrid
from duckview.tools.history import HistoryLedger
from duckview.tools.ingestion import load_file as load_into_engine
from duckview.tools.query import QueryExecutor

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Single-slot guard: at most one engine action at a time.

    A second action while one is outstanding is rejected, not queued.
    """

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def __enter__(self):
        if not self._lock.acquire(blocking=False):
            raise SessionBusyError("Another query is still running. Wait for it to finish.")
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()
        return False


class QuerySession:
    """Owns the engine connection and everything derived from it.

    Mutation rights are scoped: the grid owns filter/sort/search state, the
    history ledger owns its entries, and the executor owns the last-result
    cache.
    """

    def __init__(
        self,
        host: Host | None = None,
        engine: DuckDBEngine | None = None,
        history_capacity: int = Config.HISTORY_CAPACITY,
        export_base_name: str = Config.EXPORT_BASENAME,
    ):
        self.host = host if host is not None else RecordingHost()
        self.engine = engine if engine is not None else DuckDBEngine()
        self.history = HistoryLedger(history_capacity)
        self.executor = QueryExecutor(self.engine, self.history)
        self.grid = ResultGrid()
        self.exporter = ExportPipeline(self.engine, self.executor, self.host, export_base_name)
        self.relation: LoadResult | None = None
        self.default_query: str | None = None
        self.current_sql = ""
        self._guard = InFlightGuard()

    @property
    def busy(self) -> bool:
        return self._guard.busy

    # ------------------------------------------------------------------
    # Action plumbing
    # ------------------------------------------------------------------

    def _run_action(self, action: str, func: Callable[[], dict[str, Any]]) -> dict[str, Any]:
        try:
            with self._guard:
                return func()
        except EmptyInputError as exc:
            self.host.update_status(str(exc))
            return _error_result(exc)
        except SessionError as exc:
            self.host.report_error(str(exc))
            return _error_result(exc)
        except Exception as exc:
            logger.exception("%s failed", action)
            self.host.report_error(str(exc))
            return _error_result(exc)

    def _execute(self, sql: str, limit: int | None) -> dict[str, Any]:
        self.current_sql = sql
        result: QueryResult = self.executor.execute(sql)
        self.grid.ingest(result)
        self.host.update_status(
            f"Query returned {result.row_count:,} rows in {result.duration_ms:.1f} ms"
        )
        return {
            "status": "success",
            "row_count": result.row_count,
            "duration_ms": round(result.duration_ms, 3),
            "view": self.grid.to_view(limit),
        }

    # ------------------------------------------------------------------
    # Engine actions
    # ------------------------------------------------------------------

    def load_file(self, file_name: str, file_bytes: bytes, limit: int | None = None) -> dict[str, Any]:
        """Load file bytes, then run the synthesized default query."""
        def action():
            result = load_into_engine(
                self.engine, file_name, file_bytes, update_status=self.host.update_status,
            )
            self.relation = result
            self.default_query = build_default_query(result.columns, result.relation_identifier)
            outcome = self._execute(self.default_query, limit)
            outcome.update({
                "relation": result.to_dict(),
                "default_query": self.default_query,
            })
            return outcome

        return self._run_action("load_file", action)

    def open_path(self, path: str, limit: int | None = None) -> dict[str, Any]:
        """Read a workspace file from disk and load it."""
        try:
            file_name, file_bytes = read_file_for_load(path)
        except (ValueError, OSError) as exc:
            self.host.report_error(f"Failed to read file: {exc}")
            return _error_result(exc)
        return self.load_file(file_name, file_bytes, limit)

    def run_query(self, sql: str | None = None, limit: int | None = None) -> dict[str, Any]:
        """Run ``sql`` (or the current editor text) and show its result."""
        text = self.current_sql if sql is None else sql
        return self._run_action("run_query", lambda: self._execute(text, limit))

    def reset_query(self, limit: int | None = None) -> dict[str, Any]:
        """Re-run the default query of the last loaded file."""
        if not self.default_query:
            return {"error": "Load a file first.", "error_code": "NoDefaultQuery"}
        return self.run_query(self.default_query, limit)

    def replay(self, history_id: int, limit: int | None = None) -> dict[str, Any]:
        """Re-run a query from history by id."""
        sql = self.history.replay(history_id)
        if sql is None:
            message = f"History entry {history_id} not found."
            self.host.report_error(message)
            return {"error": message, "error_code": "NotFound"}
        return self.run_query(sql, limit)

    def export(self, export_format: str, sql: str | None = None) -> dict[str, Any]:
        """Export the current query and hand the bytes to the host.

        On success the result also carries the ExportRequest under
        ``"request"``, so a caller can serve exactly the bytes this call
        produced.
        """
        text = self.current_sql if sql is None else sql

        def action():
            request = self.exporter.export(export_format, text)
            return {
                "status": "success",
                "file_name": request.file_name,
                "format": request.format,
                "size_bytes": request.size_bytes,
                "request": request,
            }

        return self._run_action("export", action)

    # ------------------------------------------------------------------
    # Grid interaction (no engine access)
    # ------------------------------------------------------------------

    def set_global_filter(self, text: str, limit: int | None = None) -> dict[str, Any]:
        self.grid.set_global_filter(text)
        return self.grid.to_view(limit)

    def set_column_filter(self, column_index: int, text: str, limit: int | None = None) -> dict[str, Any]:
        try:
            self.grid.set_column_filter(column_index, text)
        except IndexError as exc:
            return _error_result(exc)
        return self.grid.to_view(limit)

    def toggle_sort(self, column_index: int, limit: int | None = None) -> dict[str, Any]:
        try:
            self.grid.toggle_sort(column_index)
        except IndexError as exc:
            return _error_result(exc)
        return self.grid.to_view(limit)

    def clear_filters(self, limit: int | None = None) -> dict[str, Any]:
        self.grid.clear_filters()
        return self.grid.to_view(limit)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    def view(self, limit: int | None = None) -> dict[str, Any]:
        return self.grid.to_view(limit)

    def history_entries(self) -> list[dict[str, Any]]:
        return self.history.to_list()

    def relations(self) -> list[dict[str, Any]]:
        return [meta.to_dict() for meta in self.engine.relations.values()]

    def status(self) -> dict[str, Any]:
        return {
            "busy": self.busy,
            "relation": self.relation.to_dict() if self.relation else None,
            "default_query": self.default_query,
            "current_sql": self.current_sql,
            "history_size": len(self.history),
        }

    def close(self):
        self.engine.close()


def _error_result(exc: Exception) -> dict[str, Any]:
    return {"error": str(exc), "error_code": type(exc).__name__}


# ---------------------------------------------------------------------------
# Module-level session (shared across requests of one host process)
# ---------------------------------------------------------------------------

_session: QuerySession | None = None
_session_lock = threading.Lock()


def get_session() -> QuerySession:
    """Get or create the module-level query session."""
    global _session
    with _session_lock:
        if _session is None:
            _session = QuerySession()
        return _session


def reset_session():
    """Close and discard the module-level session."""
    global _session
    with _session_lock:
        if _session is not None:
            _session.close()
            _session = None
