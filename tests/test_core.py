"""Tests for core infrastructure modules."""

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from duckview.core.cells import compare_values, format_cell, natural_key
from duckview.core.engine import DuckDBEngine, RelationMetadata, read_arrow_ipc
from duckview.core.file_detector import FileFormat, detect_format, ensure_utf8
from duckview.core.identifiers import (
    build_default_query,
    derive_relation_name,
    escape_sql_literal,
    format_identifier_for_sql,
)
from duckview.core.sql_loader import load_sql, render_template

SAFE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

class TestDeriveRelationName:

    def test_simple_name(self):
        assert derive_relation_name("sales.csv") == "sales"

    def test_strips_directories(self):
        assert derive_relation_name("/data/my-file.csv") == "my_file"

    def test_strips_windows_directories(self):
        assert derive_relation_name("C:\\data\\report.v2.parquet") == "report_v2"

    def test_leading_digit(self):
        assert derive_relation_name("2024.csv") == "t_2024"

    def test_empty_stem_uses_default(self):
        assert derive_relation_name(".csv") == "data"
        assert derive_relation_name("") == "data"

    def test_non_ascii_replaced(self):
        assert derive_relation_name("données.csv") == "donn_es"

    def test_no_extension(self):
        assert derive_relation_name("measurements") == "measurements"

    @pytest.mark.parametrize("file_name", [
        "", ".", "..", "/", "\\", "a/b/", "9", "...csv", "🦆.parquet", "x y z.arrow",
        "'quoted'.csv", 'dq"name.csv', "tab\tname.csv", "__init__.py",
        b"\xff\xfe.csv", b"plain.csv", b"",
    ])
    def test_always_safe_and_non_empty(self, file_name):
        name = derive_relation_name(file_name)
        assert name
        assert SAFE_NAME.match(name)


class TestFormatIdentifier:

    def test_safe_identifier_unchanged(self):
        assert format_identifier_for_sql("sales_2024") == "sales_2024"

    def test_idempotent_on_safe_identifier(self):
        once = format_identifier_for_sql("sales")
        assert format_identifier_for_sql(once) == once

    def test_embedded_double_quote(self):
        assert format_identifier_for_sql('a"b') == '"a""b"'

    def test_space_is_quoted(self):
        assert format_identifier_for_sql("my column") == '"my column"'

    def test_leading_digit_is_quoted(self):
        assert format_identifier_for_sql("1st") == '"1st"'

    def test_escape_sql_literal(self):
        assert escape_sql_literal("it's.csv") == "it''s.csv"


class TestDefaultQuery:

    def test_plain_columns(self):
        assert build_default_query(["a", "b"], "sample") == "SELECT a, b FROM sample;"

    def test_quotes_unsafe_columns(self):
        sql = build_default_query(["order id", "total"], "orders")
        assert sql == 'SELECT "order id", total FROM orders;'


# ---------------------------------------------------------------------------
# File Detector
# ---------------------------------------------------------------------------

class TestFileDetector:

    @pytest.mark.parametrize("file_name, expected", [
        ("data.csv", FileFormat.CSV),
        ("DATA.CSV", FileFormat.CSV),
        ("data.parquet", FileFormat.PARQUET),
        ("data.PARQ", FileFormat.PARQUET),
        ("data.arrow", FileFormat.ARROW),
        ("data.ipc", FileFormat.ARROW),
        ("data.txt", FileFormat.UNKNOWN),
        ("noextension", FileFormat.UNKNOWN),
    ])
    def test_detect_format(self, file_name, expected):
        assert detect_format(file_name) == expected

    def test_utf8_passthrough(self):
        data = "name\nJosé\n".encode("utf-8")
        converted, encoding, is_lossy = ensure_utf8(data)
        assert converted is data
        assert encoding == "utf-8"
        assert is_lossy is False

    def test_transcodes_legacy_encoding(self):
        text = "name,city\n" + "José,Málaga\nRenée,Besançon\nZoë,Gülpınar\n" * 20
        data = text.replace("ı", "i").encode("cp1252")
        converted, encoding, _ = ensure_utf8(data)
        assert encoding != "utf-8"
        converted.decode("utf-8")
        assert converted.startswith(b"name,city")


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------

class TestFormatCell:

    def test_null_is_empty(self):
        assert format_cell(None) == ""

    def test_non_finite_float_is_empty(self):
        assert format_cell(math.nan) == ""
        assert format_cell(math.inf) == ""

    def test_booleans(self):
        assert format_cell(True) == "true"
        assert format_cell(False) == "false"

    def test_numbers(self):
        assert format_cell(42) == "42"
        assert format_cell(Decimal("3.50")) == "3.50"

    def test_temporal(self):
        assert format_cell(date(2024, 1, 2)) == "2024-01-02"
        assert format_cell(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"

    def test_containers_as_json(self):
        assert format_cell([1, 2]) == "[1, 2]"
        assert format_cell({"k": "v"}) == '{"k": "v"}'


class TestCompareValues:

    def test_equal(self):
        assert compare_values(5, 5, "5", "5") == 0

    def test_numeric_not_lexicographic(self):
        assert compare_values(9, 10, "9", "10") == -1
        assert compare_values(10.5, 2, "10.5", "2") == 1

    def test_dates_by_instant(self):
        assert compare_values(date(2020, 1, 1), date(2019, 12, 31), "2020-01-01", "2019-12-31") == 1

    def test_mixed_date_and_datetime(self):
        aware = datetime(2020, 1, 1, 12, tzinfo=timezone.utc)
        assert compare_values(date(2020, 1, 1), aware, "2020-01-01", aware.isoformat()) == -1

    def test_times_and_durations(self):
        assert compare_values(time(8), time(17), "08:00:00", "17:00:00") == -1
        assert compare_values(timedelta(hours=2), timedelta(minutes=30), "2:00:00", "0:30:00") == 1

    def test_text_is_case_insensitive(self):
        assert compare_values("apple", "Banana", "apple", "Banana") == -1

    def test_text_is_natural(self):
        assert compare_values("file2", "file10", "file2", "file10") == -1

    def test_null_falls_back_to_display(self):
        assert compare_values(None, 3, "", "3") == -1

    def test_natural_key_ignores_accents(self):
        assert natural_key("Éclair") == natural_key("eclair")


# ---------------------------------------------------------------------------
# DuckDB Engine
# ---------------------------------------------------------------------------

class TestDuckDBEngine:

    def test_create_engine(self, tmp_path):
        engine = DuckDBEngine(threads=1, scratch_dir=str(tmp_path))
        assert engine.connection is not None
        assert engine.scratch_dir.exists()
        engine.close()
        assert not engine.scratch_dir.exists()

    def test_register_bytes_and_read_back(self, engine):
        path = engine.register_bytes("numbers.csv", b"n\n1\n2\n")
        frame = engine.query(f"SELECT SUM(n) AS total FROM read_csv('{path}')")
        assert frame["total"][0] == 3
        assert engine.copy_bytes_out(path) == b"n\n1\n2\n"

    def test_register_bytes_overwrites(self, engine):
        first = engine.register_bytes("x.csv", b"a\n1\n")
        second = engine.register_bytes("x.csv", b"b\n2\n")
        assert first == second
        assert engine.copy_bytes_out(second) == b"b\n2\n"

    def test_virtual_path_keeps_file_name_only(self, engine):
        path = engine.virtual_path("../../etc/passwd")
        assert path.startswith(str(engine.scratch_dir))
        assert path.endswith("passwd")

    def test_drop_virtual_file_missing_is_ignored(self, engine):
        engine.drop_virtual_file(engine.virtual_path("never-written.csv"))

    def test_query_without_result_set(self, engine):
        assert engine.query("CREATE TABLE t (i INTEGER)") is None

    def test_relation_kind(self, engine):
        engine.execute("CREATE TABLE base_tbl (i INTEGER)")
        engine.execute("CREATE TEMP VIEW some_view AS SELECT 1 AS one")
        assert engine.relation_kind("base_tbl") == "BASE TABLE"
        assert engine.relation_kind("some_view") == "VIEW"
        assert engine.relation_kind("missing") is None

    def test_drop_relation(self, engine):
        engine.execute("CREATE TABLE dup (i INTEGER)")
        engine.execute("CREATE TEMP VIEW dup AS SELECT 1 AS one")
        engine.drop_relation("dup")
        assert engine.relation_exists("dup") is False

    def test_insert_arrow_stream(self, engine, arrow_stream_bytes):
        engine.insert_arrow_ipc(arrow_stream_bytes, "from_stream")
        assert engine.query("SELECT COUNT(*) AS n FROM from_stream")["n"][0] == 3

    def test_insert_arrow_file(self, engine, arrow_file_bytes):
        engine.insert_arrow_ipc(arrow_file_bytes, "from_file")
        assert engine.query("SELECT COUNT(*) AS n FROM from_file")["n"][0] == 3

    def test_read_arrow_ipc_formats_agree(self, arrow_stream_bytes, arrow_file_bytes):
        assert read_arrow_ipc(arrow_stream_bytes).equals(read_arrow_ipc(arrow_file_bytes))

    def test_relation_registry(self, engine):
        engine.register_relation(RelationMetadata("sales", "sales.csv", "csv", 3))
        engine.register_relation(RelationMetadata("sales", "sales.csv", "csv", 4))
        assert list(engine.relations) == ["sales"]
        assert engine.relations["sales"].column_count == 4


# ---------------------------------------------------------------------------
# SQL Loader
# ---------------------------------------------------------------------------

class TestSQLLoader:

    def test_render_template(self):
        result = render_template(
            "SELECT * FROM {{ relation }} WHERE id = {{ id }}",
            relation="users",
            id="42",
        )
        assert result == "SELECT * FROM users WHERE id = 42"

    def test_render_template_missing_param(self):
        with pytest.raises(KeyError, match="Missing SQL template parameter"):
            render_template("SELECT * FROM {{ relation }}")

    def test_load_sql_describe_csv(self):
        sql = load_sql("ingestion", "describe_csv", file_path="/tmp/x/test.csv")
        assert sql.startswith("DESCRIBE SELECT * FROM read_csv('/tmp/x/test.csv'")

    def test_load_sql_export(self):
        sql = load_sql("export", "to_csv", query="SELECT 1", output_path="/tmp/out.csv")
        assert sql == "COPY (SELECT 1) TO '/tmp/out.csv' (FORMAT CSV, HEADER true)"

    def test_literal_filter_escapes_quotes(self):
        sql = load_sql("ingestion", "describe_parquet", file_path="/tmp/it's.parquet")
        assert sql == "DESCRIBE SELECT * FROM read_parquet('/tmp/it''s.parquet')"

    def test_ident_filter_quotes_when_needed(self):
        assert render_template("{{ r | ident }}", r="sales") == "sales"
        assert render_template("{{ r | ident }}", r="my sales") == '"my sales"'
        assert render_template("{{ r | quoted }}", r="temp") == '"temp"'

    def test_unknown_filter(self):
        with pytest.raises(ValueError, match="Unknown SQL template filter"):
            render_template("{{ r | upper }}", r="x")

    def test_load_sql_nonexistent(self):
        with pytest.raises(FileNotFoundError):
            load_sql("nonexistent", "fake_query", relation="test")
