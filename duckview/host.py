"""Host boundary: status reporting, export persistence, workspace discovery."""

import logging
import os
from pathlib import Path
from typing import Protocol

from duckview.config import Config
from duckview.core.file_detector import EXTENSION_MAP, file_extension
from duckview.core.models import ExportRequest

logger = logging.getLogger(__name__)

_SKIPPED_DIRECTORIES = {"node_modules", "__pycache__"}


class Host(Protocol):
    """What the session needs from the surrounding application."""

    def update_status(self, message: str) -> None: ...

    def report_error(self, message: str) -> None: ...

    def save_export(self, request: ExportRequest) -> None: ...


class RecordingHost:
    """Host that keeps messages and the latest export in memory.

    When ``export_dir`` is set, exports are also written there.
    """

    def __init__(self, export_dir: str = Config.EXPORT_DIR):
        self.export_dir = export_dir
        self.statuses: list[str] = []
        self.errors: list[str] = []
        self.exports: list[ExportRequest] = []
        self.saved_paths: list[str] = []

    @property
    def status(self) -> str:
        return self.statuses[-1] if self.statuses else ""

    @property
    def last_export(self) -> ExportRequest | None:
        return self.exports[-1] if self.exports else None

    def update_status(self, message: str):
        self.statuses.append(message)

    def report_error(self, message: str):
        logger.warning("Error: %s", message)
        self.errors.append(message)
        self.statuses.append(f"Error: {message}")

    def save_export(self, request: ExportRequest):
        self.exports.append(request)
        if self.export_dir:
            os.makedirs(self.export_dir, exist_ok=True)
            path = os.path.join(self.export_dir, request.file_name)
            Path(path).write_bytes(request.data)
            self.saved_paths.append(path)
            logger.info("Saved export to %s", path)


def validate_path(path: str) -> str:
    """Validate that the path exists and return the absolute path.

    Raises:
        ValueError: If path is empty or file does not exist.
    """
    if not path:
        raise ValueError("Path cannot be empty")
    abs_path = str(Path(path).resolve())
    if not Path(abs_path).is_file():
        raise ValueError(f"File not found: {path}")
    return abs_path


def read_file_for_load(path: str) -> tuple[str, bytes]:
    """Read a workspace file, returning (file_name, file_bytes)."""
    abs_path = validate_path(path)
    return os.path.basename(abs_path), Path(abs_path).read_bytes()


def discover_compatible_files(
    root: str = Config.WORKSPACE_ROOT,
    limit_per_extension: int = Config.DISCOVERY_LIMIT,
) -> list[dict[str, str]]:
    """List loadable files under ``root``, sorted by relative path.

    Hidden directories and node_modules are skipped. At most
    ``limit_per_extension`` files are returned for each extension.
    """
    root_path = Path(root).resolve()
    counts: dict[str, int] = {}
    files = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = [
            name for name in dirnames
            if name not in _SKIPPED_DIRECTORIES and not name.startswith(".")
        ]
        for filename in filenames:
            ext = file_extension(filename)
            if ext not in EXTENSION_MAP:
                continue
            if counts.get(ext, 0) >= limit_per_extension:
                continue
            counts[ext] = counts.get(ext, 0) + 1
            full_path = Path(dirpath) / filename
            files.append({
                "path": str(full_path),
                "relative_path": full_path.relative_to(root_path).as_posix(),
                "type": EXTENSION_MAP[ext].value,
            })

    files.sort(key=lambda item: item["relative_path"])
    return files
