"""Bounded, most-recent-first ledger of executed queries."""

import itertools

from duckview.config import Config
from duckview.core.models import HistoryEntry


class HistoryLedger:
    """Append-only log of execution attempts.

    The newest entry is always at index 0. Beyond ``capacity`` the oldest
    entries are dropped; entries are never edited or removed individually.
    """

    def __init__(self, capacity: int = Config.HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._capacity = capacity
        self._entries: list[HistoryEntry] = []
        self._ids = itertools.count(1)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def next_id(self) -> int:
        """Reserve the id for the next execution attempt."""
        return next(self._ids)

    def record(self, entry: HistoryEntry):
        """Prepend an entry, truncating beyond capacity."""
        self._entries.insert(0, entry)
        del self._entries[self._capacity:]

    def get(self, entry_id: int) -> HistoryEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def replay(self, entry_id: int) -> str | None:
        """Return the SQL of a retained entry, or None if it was dropped or never existed."""
        entry = self.get(entry_id)
        return entry.sql if entry else None

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self._entries]
