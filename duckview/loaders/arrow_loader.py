from duckview.core.file_detector import FileFormat, extensions_for
from duckview.core.identifiers import derive_relation_name
from duckview.core.models import LoadResult
from duckview.core.sql_loader import load_sql
from duckview.loaders.base import Loader, LoaderContext, extract_schema


class ArrowLoader(Loader):
    """Materializes Arrow IPC bytes as a base table rather than a view."""

    id = "arrow"
    label = "Arrow"
    extensions = extensions_for(FileFormat.ARROW)

    def materialize(self, file_name: str, file_bytes: bytes, context: LoaderContext) -> LoadResult:
        engine = context.engine
        relation_name = derive_relation_name(file_name)

        context.update_status("Loading Arrow IPC data…")
        engine.drop_relation(relation_name)
        engine.insert_arrow_ipc(file_bytes, relation_name)

        context.update_status("Inspecting Arrow schema…")
        rows = engine.query_rows(load_sql("ingestion", "table_info", relation=relation_name))
        schema = extract_schema(rows, self.label)
        return self._result(file_name, schema)
