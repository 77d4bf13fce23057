import os


def _csv_env(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    DUCKDB_THREADS: int = int(os.environ.get("DUCKVIEW_THREADS", "4"))
    DUCKDB_EXTENSIONS: tuple[str, ...] = _csv_env("DUCKVIEW_EXTENSIONS")
    HISTORY_CAPACITY: int = int(os.environ.get("DUCKVIEW_HISTORY_CAPACITY", "25"))
    EXPORT_BASENAME: str = os.environ.get("DUCKVIEW_EXPORT_BASENAME", "duckdb_result")
    EXPORT_DIR: str = os.environ.get("DUCKVIEW_EXPORT_DIR", "")
    SCRATCH_DIR: str = os.environ.get("DUCKVIEW_SCRATCH_DIR", "")
    WORKSPACE_ROOT: str = os.environ.get("DUCKVIEW_WORKSPACE_ROOT", os.getcwd())
    DISCOVERY_LIMIT: int = int(os.environ.get("DUCKVIEW_DISCOVERY_LIMIT", "1000"))
    PORT: int = int(os.environ.get("PORT", "8080"))
