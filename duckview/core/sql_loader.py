"""SQL statement templates stored as .sql files under duckview/sql/.

Templates are addressed by category and name and rendered with
``{{ name }}`` placeholders. A placeholder may name an escaping filter:

    {{ file_path | literal }}   body of a single-quoted string literal
    {{ relation | ident }}      identifier, quoted only when needed
    {{ catalog | quoted }}      identifier, always quoted

Unfiltered placeholders are substituted verbatim, which is what embedding
a whole query (``COPY ({{ query }}) TO ...``) needs.
"""

import re
from functools import lru_cache
from pathlib import Path

from duckview.core.identifiers import escape_sql_literal, format_identifier_for_sql, quote_identifier

_SQL_DIR = Path(__file__).parent.parent / "sql"
_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*(?:\|\s*(\w+)\s*)?\}\}")

FILTERS = {
    "literal": escape_sql_literal,
    "ident": format_identifier_for_sql,
    "quoted": quote_identifier,
}


@lru_cache(maxsize=64)
def _read_template(category: str, name: str) -> str:
    path = _SQL_DIR / category / f"{name}.sql"
    if not path.is_file():
        raise FileNotFoundError(f"SQL template not found: {path}")
    return path.read_text(encoding="utf-8").strip()


def load_sql(category: str, name: str, **params) -> str:
    """Render the template ``<category>/<name>.sql``.

    Example:
        load_sql("ingestion", "describe_csv", file_path="/tmp/it's.csv")
        -> "DESCRIBE SELECT * FROM read_csv('/tmp/it''s.csv', header = true)"

    Raises:
        FileNotFoundError: If no such template exists.
        KeyError: If a placeholder has no value.
        ValueError: If a placeholder names an unknown filter.
    """
    return render_template(_read_template(category, name), **params)


def render_template(template: str, **params) -> str:
    """Substitute ``{{ name }}`` and ``{{ name | filter }}`` placeholders."""
    def replace(match: re.Match) -> str:
        key, filter_name = match.group(1), match.group(2)
        if key not in params:
            raise KeyError(
                f"Missing SQL template parameter: '{key}'. "
                f"Available: {sorted(params)}"
            )
        value = str(params[key])
        if filter_name is None:
            return value
        if filter_name not in FILTERS:
            raise ValueError(f"Unknown SQL template filter: '{filter_name}'")
        return FILTERS[filter_name](value)

    return _PLACEHOLDER_PATTERN.sub(replace, template)
