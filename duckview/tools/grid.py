"""Filtered, sorted and searched view over the current result snapshot.

The grid never changes the snapshot it holds. Every read of ``visible_rows``
recomputes the projection from the snapshot and the current filter/sort
state, so clearing a filter simply restores the full result.
"""

import enum
import functools
from typing import Any

from duckview.core.cells import compare_values
from duckview.core.models import QueryResult, Row

NO_ROWS_RETURNED = "Query completed. No rows returned."
NO_ROWS_MATCH = "No rows match the current filters."
NO_ROWS_TO_DISPLAY = "No rows to display"


class SortDirection(enum.Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"
    NONE = "none"


class SortState:
    def __init__(self, column_index: int | None = None, direction: SortDirection = SortDirection.NONE):
        self.column_index = column_index
        self.direction = direction

    @property
    def active(self) -> bool:
        return self.column_index is not None and self.direction is not SortDirection.NONE

    def to_dict(self) -> dict[str, Any]:
        return {"column_index": self.column_index, "direction": self.direction.value}


class ResultGrid:
    """Holds the latest snapshot and derives the visible rows from it."""

    def __init__(self):
        self._snapshot: QueryResult | None = None
        self.global_filter = ""
        self.column_filters: list[str] = []
        self.sort_state = SortState()

    @property
    def snapshot(self) -> QueryResult | None:
        return self._snapshot

    @property
    def is_populated(self) -> bool:
        return self._snapshot is not None

    @property
    def columns(self) -> tuple[str, ...]:
        return self._snapshot.columns if self._snapshot else ()

    def ingest(self, result: QueryResult):
        """Replace the snapshot and reset filters and sort to neutral."""
        self._snapshot = result
        self.global_filter = ""
        self.column_filters = ["" for _ in result.columns]
        self.sort_state = SortState()

    def clear(self):
        self._snapshot = None
        self.global_filter = ""
        self.column_filters = []
        self.sort_state = SortState()

    # ------------------------------------------------------------------
    # Filter / sort / search state
    # ------------------------------------------------------------------

    def set_global_filter(self, text: str):
        self.global_filter = text or ""

    def set_column_filter(self, column_index: int, text: str):
        """Set the filter text of one column.

        Raises:
            IndexError: If no snapshot is present or the column does not exist.
        """
        if not 0 <= column_index < len(self.column_filters):
            raise IndexError(f"No column at index {column_index}")
        self.column_filters[column_index] = text or ""

    def clear_filters(self):
        self.global_filter = ""
        self.column_filters = ["" for _ in self.columns]

    def toggle_sort(self, column_index: int):
        """Advance the sort cycle for a column header.

        Same column: ascending -> descending -> none -> ascending.
        A different column always starts ascending.
        """
        if not 0 <= column_index < len(self.columns):
            raise IndexError(f"No column at index {column_index}")

        state = self.sort_state
        if state.column_index == column_index:
            if state.direction is SortDirection.ASCENDING:
                self.sort_state = SortState(column_index, SortDirection.DESCENDING)
            elif state.direction is SortDirection.DESCENDING:
                self.sort_state = SortState()
            else:
                self.sort_state = SortState(column_index, SortDirection.ASCENDING)
        else:
            self.sort_state = SortState(column_index, SortDirection.ASCENDING)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def _row_passes(self, row: Row, needle: str, filters: list[str]) -> bool:
        if needle and not any(needle in cell.lower() for cell in row.display):
            return False
        for index, text in enumerate(filters):
            if text and text not in row.display[index].lower():
                return False
        return True

    @property
    def visible_rows(self) -> tuple[Row, ...]:
        if self._snapshot is None:
            return ()

        needle = self.global_filter.strip().lower()
        filters = [text.strip().lower() for text in self.column_filters]
        rows = [row for row in self._snapshot.rows if self._row_passes(row, needle, filters)]

        if self.sort_state.active:
            index = self.sort_state.column_index
            multiplier = 1 if self.sort_state.direction is SortDirection.ASCENDING else -1

            def comparator(a: Row, b: Row) -> int:
                return multiplier * compare_values(
                    a.raw[index], b.raw[index], a.display[index], b.display[index],
                )

            rows.sort(key=functools.cmp_to_key(comparator))

        return tuple(rows)

    @property
    def row_count_label(self) -> str:
        total = self._snapshot.row_count if self._snapshot else 0
        if total == 0:
            return NO_ROWS_TO_DISPLAY
        visible = len(self.visible_rows)
        if visible == total:
            return f"{visible:,} rows"
        return f"{visible:,} of {total:,} rows"

    @property
    def empty_message(self) -> str | None:
        """Message to show instead of rows, or None when rows are visible."""
        if self._snapshot is None:
            return None
        if self._snapshot.row_count == 0:
            return NO_ROWS_RETURNED
        if not self.visible_rows:
            return NO_ROWS_MATCH
        return None

    def to_view(self, limit: int | None = None) -> dict[str, Any]:
        """Render the current view as plain data for the host."""
        rows = self.visible_rows
        total = self._snapshot.row_count if self._snapshot else 0
        shown = rows if limit is None else rows[:limit]
        return {
            "populated": self.is_populated,
            "columns": list(self.columns),
            "rows": [list(row.display) for row in shown],
            "visible_count": len(rows),
            "total_count": total,
            "row_count_label": self.row_count_label,
            "empty_message": self.empty_message,
            "global_filter": self.global_filter,
            "column_filters": list(self.column_filters),
            "sort": self.sort_state.to_dict(),
        }
