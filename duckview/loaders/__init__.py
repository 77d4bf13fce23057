"""Loader registry.

Loaders form a closed set checked in a fixed priority order, most specific
format first. Anything unmatched goes to the DefaultLoader, which reads the
file as CSV.
"""

import enum

from duckview.loaders.arrow_loader import ArrowLoader
from duckview.loaders.base import Loader, LoaderContext
from duckview.loaders.csv_loader import CsvLoader, DefaultLoader
from duckview.loaders.parquet_loader import ParquetLoader


class LoaderKind(enum.Enum):
    ARROW = "arrow"
    PARQUET = "parquet"
    CSV = "csv"
    DEFAULT = "default"


LOADERS: dict[LoaderKind, Loader] = {
    LoaderKind.ARROW: ArrowLoader(),
    LoaderKind.PARQUET: ParquetLoader(),
    LoaderKind.CSV: CsvLoader(),
}

DEFAULT_LOADER: Loader = DefaultLoader()


def select_loader(file_name: str) -> Loader:
    """Return the first loader whose extension test matches ``file_name``."""
    for loader in LOADERS.values():
        if loader.can_load(file_name):
            return loader
    return DEFAULT_LOADER


__all__ = [
    "DEFAULT_LOADER",
    "LOADERS",
    "Loader",
    "LoaderContext",
    "LoaderKind",
    "select_loader",
]
