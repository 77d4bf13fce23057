"""Shared test fixtures."""

import io
from pathlib import Path

import pyarrow as pa
import pyarrow.ipc as ipc
import pyarrow.parquet as pq
import pytest

from duckview.core.engine import DuckDBEngine
from duckview.host import RecordingHost
from duckview.session import QuerySession

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_csv(fixtures_dir):
    return str(fixtures_dir / "sample.csv")


@pytest.fixture
def sample_csv_bytes(fixtures_dir):
    return (fixtures_dir / "sample.csv").read_bytes()


@pytest.fixture
def people_csv_bytes(fixtures_dir):
    return (fixtures_dir / "people.csv").read_bytes()


@pytest.fixture
def semicolon_csv_bytes(fixtures_dir):
    return (fixtures_dir / "semicolon.csv").read_bytes()


@pytest.fixture
def arrow_table():
    return pa.table({
        "id": pa.array([1, 2, 3], type=pa.int64()),
        "label": pa.array(["one", "two", "three"]),
        "score": pa.array([0.5, 1.5, None], type=pa.float64()),
    })


@pytest.fixture
def parquet_bytes(arrow_table):
    buffer = io.BytesIO()
    pq.write_table(arrow_table, buffer)
    return buffer.getvalue()


@pytest.fixture
def arrow_stream_bytes(arrow_table):
    sink = io.BytesIO()
    with ipc.new_stream(sink, arrow_table.schema) as writer:
        writer.write_table(arrow_table)
    return sink.getvalue()


@pytest.fixture
def arrow_file_bytes(arrow_table):
    sink = io.BytesIO()
    with ipc.new_file(sink, arrow_table.schema) as writer:
        writer.write_table(arrow_table)
    return sink.getvalue()


@pytest.fixture
def engine(tmp_path):
    engine = DuckDBEngine(threads=1, scratch_dir=str(tmp_path / "scratch"))
    yield engine
    engine.close()


@pytest.fixture
def host():
    return RecordingHost(export_dir="")


@pytest.fixture
def session(engine, host):
    return QuerySession(host=host, engine=engine, history_capacity=25)


@pytest.fixture(autouse=True)
def reset_session():
    """Reset the module-level query session between tests."""
    import duckview.session as session_module
    session_module._session = None
    yield
    if session_module._session is not None:
        session_module._session.close()
        session_module._session = None
