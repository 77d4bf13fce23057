"""Tests for the HTTP host."""

import io

import pytest

import duckview.session as session_module
from duckview.config import Config
from duckview.core.engine import read_arrow_ipc
from duckview.core.models import ExportRequest
from main import app


@pytest.fixture
def client(session):
    session_module._session = session
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def _upload(client, data, name="sample.csv"):
    return client.post(
        "/files",
        data={"file": (io.BytesIO(data), name)},
        content_type="multipart/form-data",
    )


class TestFiles:

    def test_upload(self, client, sample_csv_bytes):
        response = _upload(client, sample_csv_bytes)
        assert response.status_code == 200
        body = response.get_json()
        assert body["default_query"] == "SELECT a, b FROM sample;"
        assert body["view"]["row_count_label"] == "2 rows"

    def test_upload_without_file(self, client):
        response = client.post("/files", data={}, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_upload_empty_file(self, client):
        response = _upload(client, b"")
        assert response.status_code == 422
        assert response.get_json()["error_code"] == "LoadError"

    def test_open(self, client, sample_csv):
        response = client.post("/files/open", json={"path": sample_csv})
        assert response.status_code == 200
        assert response.get_json()["relation"]["relation_name"] == "sample"

    def test_open_missing(self, client):
        response = client.post("/files/open", json={"path": ""})
        assert response.status_code == 400

    def test_list(self, client, fixtures_dir, monkeypatch):
        monkeypatch.setattr(Config, "WORKSPACE_ROOT", str(fixtures_dir))
        body = client.get("/files").get_json()
        assert body["count"] == 3
        assert {f["relative_path"] for f in body["files"]} == {
            "people.csv", "sample.csv", "semicolon.csv",
        }


class TestQuery:

    def test_query_and_limit(self, client, people_csv_bytes):
        _upload(client, people_csv_bytes, "people.csv")
        response = client.post("/query?limit=2", json={"sql": "SELECT name FROM people"})
        assert response.status_code == 200
        view = response.get_json()["view"]
        assert len(view["rows"]) == 2
        assert view["visible_count"] == 10

    def test_empty_query(self, client):
        response = client.post("/query", json={"sql": ""})
        assert response.status_code == 400

    def test_bad_query(self, client):
        response = client.post("/query", json={"sql": "SELECT FROM WHERE"})
        assert response.status_code == 422
        assert response.get_json()["error_code"] == "QueryError"

    def test_reset_without_file(self, client):
        assert client.post("/query/reset").status_code == 409

    def test_busy(self, client, session):
        with session._guard:
            response = client.post("/query", json={"sql": "SELECT 1"})
        assert response.status_code == 409


class TestView:

    def test_view_interactions(self, client, people_csv_bytes):
        _upload(client, people_csv_bytes, "people.csv")
        response = client.post("/view", json={
            "global_filter": "berlin",
            "toggle_sort": 2,
        })
        body = response.get_json()
        assert body["row_count_label"] == "3 of 10 rows"
        assert [row[0] for row in body["rows"]] == ["Dmitri", "Alice", "Gustav"]

        body = client.post("/view", json={"column_filters": {"0": "ali"}}).get_json()
        assert [row[0] for row in body["rows"]] == ["Alice"]

        body = client.post("/view", json={"clear_filters": True}).get_json()
        assert body["visible_count"] == 10
        assert client.get("/view").get_json()["sort"]["direction"] == "asc"

    def test_bad_column(self, client, people_csv_bytes):
        _upload(client, people_csv_bytes, "people.csv")
        response = client.post("/view", json={"toggle_sort": 42})
        assert response.status_code == 400


class TestHistory:

    def test_history_and_replay(self, client, sample_csv_bytes):
        _upload(client, sample_csv_bytes)
        client.post("/query", json={"sql": "SELECT 1"})
        entries = client.get("/history").get_json()["entries"]
        assert [e["sql"] for e in entries] == ["SELECT 1", "SELECT a, b FROM sample;"]

        response = client.post(f"/history/{entries[1]['id']}/replay")
        assert response.get_json()["row_count"] == 2

    def test_replay_unknown(self, client):
        assert client.post("/history/999/replay").status_code == 404


class TestExport:

    def test_csv_download(self, client, sample_csv_bytes):
        _upload(client, sample_csv_bytes)
        response = client.post("/export", json={"format": "csv"})
        assert response.status_code == 200
        assert "duckdb_result.csv" in response.headers["Content-Disposition"]
        assert response.data.decode("utf-8").splitlines()[0] == "a,b"

    def test_arrow_download(self, client, sample_csv_bytes):
        _upload(client, sample_csv_bytes)
        response = client.post("/export", json={"format": "arrow"})
        assert read_arrow_ipc(response.data).num_rows == 2

    def test_export_without_query(self, client):
        response = client.post("/export", json={"format": "csv", "sql": ""})
        assert response.status_code == 422
        assert response.get_json()["error"] == "Write a SQL query to export first."


class TestStatus:

    def test_status_and_relations(self, client, sample_csv_bytes):
        _upload(client, sample_csv_bytes)
        status = client.get("/status").get_json()
        assert status["busy"] is False
        assert status["relation"]["relation_name"] == "sample"
        assert status["message"].startswith("Query returned")

        relations = client.get("/relations").get_json()["relations"]
        assert relations[0]["source_format"] == "csv"


class TestExportBytes:

    def test_serves_bytes_of_this_request(self, client, session, sample_csv_bytes):
        _upload(client, sample_csv_bytes)
        host = session.host
        save = host.save_export

        def save_then_overtaken(request):
            save(request)
            # another export finishing right after this one
            save(ExportRequest(file_name="other.parquet", format="parquet", data=b"PAR1"))

        host.save_export = save_then_overtaken
        response = client.post("/export", json={"format": "csv"})
        assert "duckdb_result.csv" in response.headers["Content-Disposition"]
        assert response.data.startswith(b"a,b")
