"""CSV loading through DuckDB's read_csv sniffer."""

import logging

from duckview.core.file_detector import FileFormat, ensure_utf8, extensions_for
from duckview.core.identifiers import derive_relation_name
from duckview.core.models import LoadResult
from duckview.core.sql_loader import load_sql
from duckview.loaders.base import Loader, LoaderContext, extract_schema

logger = logging.getLogger(__name__)


class CsvLoader(Loader):
    id = "csv"
    label = "CSV"
    extensions = extensions_for(FileFormat.CSV)

    def materialize(self, file_name: str, file_bytes: bytes, context: LoaderContext) -> LoadResult:
        engine = context.engine

        utf8_bytes, encoding, is_lossy = ensure_utf8(file_bytes)
        if encoding != "utf-8":
            logger.info(
                "Transcoded %s from %s to utf-8%s",
                file_name, encoding, " (lossy)" if is_lossy else "",
            )

        context.update_status(f"Registering {self.label} file…")
        path = engine.register_bytes(file_name, utf8_bytes)

        context.update_status(f"Inspecting {self.label} columns…")
        rows = engine.query_rows(load_sql("ingestion", "describe_csv", file_path=path))
        schema = extract_schema(rows, self.label)

        relation_name = derive_relation_name(file_name)
        if engine.relation_kind(relation_name) not in (None, "VIEW"):
            engine.drop_relation(relation_name)

        context.update_status(f"Creating '{relation_name}' view…")
        engine.execute(load_sql(
            "ingestion", "create_csv_view",
            relation=relation_name, file_path=path,
        ))
        return self._result(file_name, schema)


class DefaultLoader(CsvLoader):
    """Fallback for unrecognized extensions: the file is read as CSV."""

    id = "default"
    label = "CSV"
    extensions = frozenset()

    def can_load(self, file_name: str) -> bool:
        return True
