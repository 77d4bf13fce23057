from duckview.core.file_detector import FileFormat, extensions_for
from duckview.core.identifiers import derive_relation_name
from duckview.core.models import LoadResult
from duckview.core.sql_loader import load_sql
from duckview.loaders.base import Loader, LoaderContext, extract_schema


class ParquetLoader(Loader):
    id = "parquet"
    label = "Parquet"
    extensions = extensions_for(FileFormat.PARQUET)

    def materialize(self, file_name: str, file_bytes: bytes, context: LoaderContext) -> LoadResult:
        engine = context.engine

        context.update_status("Registering Parquet file…")
        path = engine.register_bytes(file_name, file_bytes)

        # Parquet is self-describing, no header option
        context.update_status("Inspecting Parquet schema…")
        rows = engine.query_rows(load_sql("ingestion", "describe_parquet", file_path=path))
        schema = extract_schema(rows, self.label)

        relation_name = derive_relation_name(file_name)
        if engine.relation_kind(relation_name) not in (None, "VIEW"):
            engine.drop_relation(relation_name)

        context.update_status(f"Creating '{relation_name}' view…")
        engine.execute(load_sql(
            "ingestion", "create_parquet_view",
            relation=relation_name, file_path=path,
        ))
        return self._result(file_name, schema)
