"""HTTP host for the tabular query session.

Delivers file bytes to the session, relays queries and grid interactions,
and returns exported bytes as downloads. One session per process.

Run with: python main.py
"""

import io
import logging

from dotenv import load_dotenv
from flask import Flask, jsonify, request as flask_request, send_file

load_dotenv()

from duckview.config import Config  # noqa: E402
from duckview.host import discover_compatible_files  # noqa: E402
from duckview.session import get_session  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

_ERROR_STATUS = {
    "EmptyInputError": 400,
    "ValueError": 400,
    "IndexError": 400,
    "NotFound": 404,
    "NoDefaultQuery": 409,
    "SessionBusyError": 409,
    "LoadError": 422,
    "QueryError": 422,
    "ExportError": 422,
}


def _respond(result: dict):
    if "error" in result:
        return jsonify(result), _ERROR_STATUS.get(result.get("error_code"), 500)
    return jsonify(result), 200


def _limit() -> int | None:
    return flask_request.args.get("limit", type=int)


@app.route("/files", methods=["GET"])
def list_files():
    """List loadable files in the workspace."""
    files = discover_compatible_files(Config.WORKSPACE_ROOT, Config.DISCOVERY_LIMIT)
    return jsonify({"files": files, "count": len(files)})


@app.route("/files", methods=["POST"])
def upload_file():
    """Load an uploaded file (multipart field 'file')."""
    upload = flask_request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file uploaded.", "error_code": "ValueError"}), 400
    data = upload.read()
    logger.info("Received %s (%d bytes)", upload.filename, len(data))
    return _respond(get_session().load_file(upload.filename, data, _limit()))


@app.route("/files/open", methods=["POST"])
def open_file():
    """Load a workspace file by path."""
    body = flask_request.get_json(silent=True) or {}
    return _respond(get_session().open_path(body.get("path", ""), _limit()))


@app.route("/query", methods=["POST"])
def run_query():
    body = flask_request.get_json(silent=True) or {}
    return _respond(get_session().run_query(body.get("sql", ""), _limit()))


@app.route("/query/reset", methods=["POST"])
def reset_query():
    return _respond(get_session().reset_query(_limit()))


@app.route("/view", methods=["GET"])
def get_view():
    return jsonify(get_session().view(_limit()))


@app.route("/view", methods=["POST"])
def update_view():
    """Apply grid interactions.

    Body keys (all optional): global_filter, column_filters ({index: text}),
    toggle_sort (column index), clear_filters (bool).
    """
    body = flask_request.get_json(silent=True) or {}
    session = get_session()
    limit = _limit()
    result = session.view(limit)

    if body.get("clear_filters"):
        result = session.clear_filters(limit)
    if "global_filter" in body:
        result = session.set_global_filter(str(body["global_filter"] or ""), limit)
    for index, text in (body.get("column_filters") or {}).items():
        result = session.set_column_filter(int(index), str(text or ""), limit)
        if "error" in result:
            return _respond(result)
    if body.get("toggle_sort") is not None:
        result = session.toggle_sort(int(body["toggle_sort"]), limit)
    return _respond(result)


@app.route("/history", methods=["GET"])
def get_history():
    return jsonify({"entries": get_session().history_entries()})


@app.route("/history/<int:entry_id>/replay", methods=["POST"])
def replay_history(entry_id: int):
    return _respond(get_session().replay(entry_id, _limit()))


@app.route("/export", methods=["POST"])
def export_result():
    """Export the current query; the response body is the exported file."""
    body = flask_request.get_json(silent=True) or {}
    result = get_session().export(body.get("format", "csv"), body.get("sql"))
    if "error" in result:
        return _respond(result)

    export = result["request"]
    return send_file(
        io.BytesIO(export.data),
        mimetype="application/octet-stream",
        as_attachment=True,
        download_name=export.file_name,
    )


@app.route("/relations", methods=["GET"])
def list_relations():
    return jsonify({"relations": get_session().relations()})


@app.route("/status", methods=["GET"])
def get_status():
    session = get_session()
    status = session.status()
    status["message"] = getattr(session.host, "status", "")
    return jsonify(status)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=Config.PORT)
