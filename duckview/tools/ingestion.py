"""File ingestion: pick a loader for the file name and materialize the bytes.

The relation is created (or replaced) in the session engine; the caller
decides what to run against it afterwards.
"""

import logging
from typing import Callable

from duckview.core.engine import DuckDBEngine
from duckview.core.models import LoadResult
from duckview.loaders import LoaderContext, select_loader

logger = logging.getLogger(__name__)


def load_file(
    engine: DuckDBEngine,
    file_name: str,
    file_bytes: bytes,
    update_status: Callable[[str], None] | None = None,
) -> LoadResult:
    """Load raw file bytes as a queryable relation.

    Args:
        engine: The session engine.
        file_name: Name the bytes were delivered under; decides the loader
            and the relation name.
        file_bytes: The file content.
        update_status: Optional progress callback.

    Raises:
        LoadError: If the file is empty, unreadable, or has no columns.
    """
    loader = select_loader(file_name)
    context = LoaderContext(engine, update_status)
    context.update_status(f"Preparing {loader.id.upper()} data for {file_name}…")

    result = loader.load(file_name, bytes(file_bytes), context)
    logger.info(
        "Loaded %s as %s via %s loader (%d columns)",
        file_name, result.relation_name, loader.id, len(result.columns),
    )
    return result
