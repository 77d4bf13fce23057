"""Relation naming and SQL identifier quoting.

Turns arbitrary file names into relation names DuckDB accepts unquoted, and
quotes anything else that has to be embedded in SQL text.
"""

import os
import re


PATH_SEPARATOR_PATTERN = re.compile(r"[\\/]")
UNSAFE_CHARS_PATTERN = re.compile(r"[^A-Za-z0-9_]")
SAFE_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

DEFAULT_RELATION_NAME = "data"
DIGIT_PREFIX = "t_"


def derive_relation_name(file_name: str | bytes) -> str:
    """Derive a safe relation name from a file name.

    Steps:
    1. Keep the trailing path component (both '/' and '\\' separate)
    2. Strip the final extension (text after the last '.')
    3. Replace every character outside [A-Za-z0-9_] with '_'
    4. Substitute DEFAULT_RELATION_NAME if nothing is left
    5. Prefix with DIGIT_PREFIX if the name starts with a digit
    """
    if isinstance(file_name, bytes):
        file_name = os.fsdecode(file_name)

    base = PATH_SEPARATOR_PATTERN.split(file_name)[-1]
    dot = base.rfind(".")
    if dot != -1:
        base = base[:dot]

    name = UNSAFE_CHARS_PATTERN.sub("_", base)
    if not name:
        return DEFAULT_RELATION_NAME
    if name[0].isdigit():
        return f"{DIGIT_PREFIX}{name}"
    return name


def is_safe_identifier(name: str) -> bool:
    return SAFE_IDENTIFIER_PATTERN.fullmatch(name) is not None


def quote_identifier(name: str) -> str:
    """Always double-quote ``name``, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def format_identifier_for_sql(name: str) -> str:
    """Return ``name`` unchanged if it is a plain identifier, else double-quote it."""
    if is_safe_identifier(name):
        return name
    return quote_identifier(name)


def escape_sql_literal(text: str) -> str:
    """Escape text for use inside a single-quoted SQL string literal."""
    return text.replace("'", "''")


def build_default_query(columns: list[str] | tuple[str, ...], relation_identifier: str) -> str:
    """Build the query run right after a file is loaded.

    Example:
        build_default_query(["a", "b"], "sample") -> 'SELECT a, b FROM sample;'
    """
    column_list = ", ".join(format_identifier_for_sql(col) for col in columns)
    return f"SELECT {column_list} FROM {relation_identifier};"
