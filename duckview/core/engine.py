"""DuckDB engine adapter with relation registry and a private file space."""

import io
import logging
import shutil
import tempfile
import uuid
from pathlib import Path

import duckdb
import polars as pl
import pyarrow as pa
import pyarrow.ipc as ipc

from duckview.config import Config
from duckview.core.sql_loader import load_sql

logger = logging.getLogger(__name__)

_ARROW_FILE_MAGIC = b"ARROW1"


class RelationMetadata:
    """Metadata about a relation materialized from a loaded file."""

    def __init__(
        self,
        relation_name: str,
        source_file: str,
        source_format: str,
        column_count: int,
    ):
        self.relation_name = relation_name
        self.source_file = source_file
        self.source_format = source_format
        self.column_count = column_count

    def to_dict(self) -> dict[str, object]:
        return {
            "relation_name": self.relation_name,
            "source_file": self.source_file,
            "source_format": self.source_format,
            "column_count": self.column_count,
        }


class DuckDBEngine:
    """Manages a single in-memory DuckDB connection for one query session.

    Provides:
    - Connection lifecycle management
    - A session-private scratch directory standing in for the engine's
      virtual file space (registered input bytes, export targets)
    - Arrow IPC ingestion into base tables
    - A registry of relations materialized from loaded files
    """

    def __init__(
        self,
        threads: int = Config.DUCKDB_THREADS,
        scratch_dir: str = Config.SCRATCH_DIR,
        extensions: tuple[str, ...] = Config.DUCKDB_EXTENSIONS,
    ):
        self._connection = duckdb.connect(":memory:", config={"threads": threads})
        self._relation_registry: dict[str, RelationMetadata] = {}
        if scratch_dir:
            self._scratch = Path(scratch_dir) / f"session-{uuid.uuid4().hex[:12]}"
        else:
            self._scratch = Path(tempfile.mkdtemp(prefix="duckview-"))
        self._scratch.mkdir(parents=True, exist_ok=True)
        self._install_extensions(extensions)

    def _install_extensions(self, extensions: tuple[str, ...]):
        """Install optional DuckDB extensions; a missing one is not fatal."""
        for ext in extensions:
            try:
                self._connection.execute(f"INSTALL {ext}; LOAD {ext};")
            except duckdb.Error as exc:
                logger.warning("Could not load DuckDB extension %s: %s", ext, exc)

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._connection

    @property
    def scratch_dir(self) -> Path:
        return self._scratch

    @property
    def relations(self) -> dict[str, RelationMetadata]:
        return dict(self._relation_registry)

    def register_relation(self, metadata: RelationMetadata):
        """Register a relation in the session registry, replacing any older entry."""
        self._relation_registry[metadata.relation_name] = metadata

    # ------------------------------------------------------------------
    # Virtual file space
    # ------------------------------------------------------------------

    def virtual_path(self, name: str) -> str:
        """Resolve a file name to its location inside the scratch space."""
        safe_name = Path(name.replace("\\", "/")).name or "unnamed"
        return str(self._scratch / safe_name)

    def register_bytes(self, name: str, data: bytes) -> str:
        """Make raw bytes readable by the engine under ``name``.

        Registering the same name again overwrites the earlier bytes.

        Returns:
            The path DuckDB read functions should be pointed at.
        """
        path = self.virtual_path(name)
        Path(path).write_bytes(data)
        logger.debug("Registered %d bytes as %s", len(data), path)
        return path

    def copy_bytes_out(self, path: str) -> bytes:
        """Read back a file the engine wrote into the scratch space."""
        return Path(path).read_bytes()

    def drop_virtual_file(self, path: str):
        """Delete a scratch file. Ignores if already deleted."""
        Path(path).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # SQL
    # ------------------------------------------------------------------

    def execute(self, sql: str):
        """Execute SQL for its side effects."""
        self._connection.execute(sql)

    def query(self, sql: str) -> pl.DataFrame | None:
        """Execute SQL and return the result as a Polars DataFrame.

        Returns None for statements that produce no result set.
        """
        relation = self._connection.sql(sql)
        if relation is None:
            return None
        return relation.pl()

    def fetch(self, sql: str) -> tuple[pa.Table, list[tuple]] | None:
        """Execute user SQL once and return (arrow_table, rows).

        The rows are DuckDB's own Python values read back from the Arrow
        result, so every engine type (INTERVAL, UNION, infinite dates) has a
        value. Returns None for statements that produce no result set.
        """
        relation = self._connection.sql(sql)
        if relation is None:
            return None
        table = relation.fetch_arrow_table()
        rows = self._connection.from_arrow(table).fetchall()
        return table, rows

    def query_rows(self, sql: str) -> list[dict[str, object]]:
        """Execute SQL and return rows as dicts keyed by column name."""
        frame = self.query(sql)
        if frame is None:
            return []
        return frame.to_dicts()

    def _relation_entries(self, relation_name: str) -> list[tuple[str, str, str]]:
        """Return (catalog, schema, table_type) for every relation of that name.

        Temporary objects come first, matching name resolution order.
        """
        sql = load_sql("common", "relation_kind", relation=relation_name)
        return [tuple(row) for row in self._connection.execute(sql).fetchall()]

    def relation_kind(self, relation_name: str) -> str | None:
        """Return the information_schema table_type a name resolves to, or None."""
        entries = self._relation_entries(relation_name)
        return entries[0][2] if entries else None

    def relation_exists(self, relation_name: str) -> bool:
        return self.relation_kind(relation_name) is not None

    def drop_relation(self, relation_name: str):
        """Drop every view or table named ``relation_name``.

        A temporary view can shadow a base table of the same name, so each
        entry is dropped by its fully qualified name.
        """
        for catalog, schema, table_type in self._relation_entries(relation_name):
            kind = "VIEW" if table_type == "VIEW" else "TABLE"
            self.execute(load_sql(
                "common", "drop_relation",
                kind=kind, catalog=catalog, schema=schema, relation=relation_name,
            ))
            logger.debug("Dropped %s %s.%s.%s", kind.lower(), catalog, schema, relation_name)

    def insert_arrow_ipc(self, data: bytes, name: str):
        """Ingest an Arrow IPC stream (or IPC file) into a new base table.

        Any existing relation named ``name`` must be dropped first.
        """
        table = read_arrow_ipc(data)
        staging_name = f"__duckview_ipc_{uuid.uuid4().hex[:12]}"
        self._connection.register(staging_name, table)
        try:
            self.execute(load_sql(
                "ingestion", "create_table_from_arrow",
                relation=name, source=staging_name,
            ))
        finally:
            self._connection.unregister(staging_name)

    def close(self):
        """Close the DuckDB connection and remove the scratch space."""
        self._connection.close()
        shutil.rmtree(self._scratch, ignore_errors=True)


def read_arrow_ipc(data: bytes) -> pa.Table:
    """Decode Arrow IPC bytes, accepting both the stream and the file format."""
    source = io.BytesIO(data)
    if data[:len(_ARROW_FILE_MAGIC)] == _ARROW_FILE_MAGIC:
        return ipc.open_file(source).read_all()
    return ipc.open_stream(source).read_all()
