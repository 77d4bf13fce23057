"""Tabular query session over DuckDB: load a file, query it, explore the rows."""

__version__ = "0.1.0"
