"""Timed execution of ad-hoc SQL against the session engine."""

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone

import duckdb
import pyarrow as pa

from duckview.core.engine import DuckDBEngine
from duckview.core.models import HistoryEntry, QueryResult
from duckview.errors import EmptyInputError, QueryError
from duckview.tools.history import HistoryLedger

logger = logging.getLogger(__name__)

# Failures while running a statement or converting its result
_EXECUTION_ERRORS = (duckdb.Error, pa.ArrowException)


class QueryExecutor:
    """Runs query text, records every attempt, and caches the last result.

    The cached Arrow table is what the Arrow export serializes, so it always
    holds the result of the most recent successful run.
    """

    def __init__(self, engine: DuckDBEngine, ledger: HistoryLedger):
        self._engine = engine
        self._ledger = ledger
        self._last_table: pa.Table | None = None
        self._last_result: QueryResult | None = None

    @property
    def last_table(self) -> pa.Table | None:
        return self._last_table

    @property
    def last_result(self) -> QueryResult | None:
        return self._last_result

    def execute(self, sql_text: str) -> QueryResult:
        """Execute SQL and return an immutable snapshot of the result.

        Zero rows is a successful result.

        Raises:
            EmptyInputError: If the text is blank. Nothing is recorded.
            QueryError: If the engine rejects or fails the statement.
        """
        sql = (sql_text or "").strip()
        if not sql:
            raise EmptyInputError("Enter a SQL query to run.")

        entry_id = self._ledger.next_id()
        timestamp = datetime.now(timezone.utc)
        start = time.perf_counter()

        try:
            fetched = self._engine.fetch(sql)
            if fetched is None:
                table, rows = pa.table({}), []
            else:
                table, rows = fetched
            result = QueryResult.from_rows(table.column_names, rows)
        except _EXECUTION_ERRORS as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            self._ledger.record(HistoryEntry(
                id=entry_id,
                sql=sql,
                timestamp=timestamp,
                duration_ms=duration_ms,
                row_count=0,
                error=str(exc),
            ))
            logger.info("Query %d failed after %.1f ms: %s", entry_id, duration_ms, exc)
            raise QueryError(str(exc), duration_ms=duration_ms) from exc

        duration_ms = (time.perf_counter() - start) * 1000
        result = replace(result, duration_ms=duration_ms)
        self._last_table = table
        self._last_result = result
        self._ledger.record(HistoryEntry(
            id=entry_id,
            sql=sql,
            timestamp=timestamp,
            duration_ms=duration_ms,
            row_count=result.row_count,
        ))
        logger.info(
            "Query %d returned %d rows in %.1f ms", entry_id, result.row_count, duration_ms,
        )
        return result
