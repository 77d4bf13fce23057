"""Rendering and ordering of individual result cells.

Each cell is kept twice: the engine-native value (for sorting numbers and
timestamps) and its display string (for filtering and search).
"""

import json
import math
import re
import unicodedata
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal


DIGIT_RUN_PATTERN = re.compile(r"(\d+)")


def format_cell(value) -> str:
    """Render an engine value as display text.

    NULL and non-finite floats render as an empty string; containers render
    as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(value) if math.isfinite(value) else ""
    if isinstance(value, Decimal):
        return str(value) if value.is_finite() else ""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def is_finite_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return False


def _temporal_key(value) -> tuple[str, float] | None:
    """Map a temporal value to (kind, position) or None if not temporal.

    Dates and datetimes share the "instant" kind; naive values are read as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return "instant", value.timestamp()
    if isinstance(value, date):
        midnight = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return "instant", midnight.timestamp()
    if isinstance(value, time):
        return "clock", (
            value.hour * 3600 + value.minute * 60 + value.second + value.microsecond / 1e6
        )
    if isinstance(value, timedelta):
        return "duration", value.total_seconds()
    return None


def _fold(text: str) -> str:
    """Case- and accent-insensitive form of ``text``."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def natural_key(text: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key comparing digit runs numerically ("file2" < "file10")."""
    parts = []
    for chunk in DIGIT_RUN_PATTERN.split(_fold(text)):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)


def _sign(left, right) -> int:
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def compare_values(a, b, a_display: str, b_display: str) -> int:
    """Three-way comparison of two cells of the same column.

    Order of precedence: equal raw values, finite numbers, temporal values
    of the same kind, then natural comparison of the display text.
    """
    try:
        if a == b:
            return 0
    except (TypeError, ValueError):
        pass

    if is_finite_number(a) and is_finite_number(b):
        return _sign(a, b)

    a_temporal = _temporal_key(a)
    b_temporal = _temporal_key(b)
    if a_temporal and b_temporal and a_temporal[0] == b_temporal[0]:
        return _sign(a_temporal[1], b_temporal[1])

    return _sign(natural_key(a_display or ""), natural_key(b_display or ""))
