"""Detect file format from extension and normalize text encodings."""

import enum
from pathlib import PurePath


class FileFormat(enum.Enum):
    """Formats with a dedicated loader."""
    CSV = "csv"
    PARQUET = "parquet"
    ARROW = "arrow"
    UNKNOWN = "unknown"


EXTENSION_MAP = {
    ".csv": FileFormat.CSV,
    ".parquet": FileFormat.PARQUET,
    ".parq": FileFormat.PARQUET,
    ".pq": FileFormat.PARQUET,
    ".arrow": FileFormat.ARROW,
    ".ipc": FileFormat.ARROW,
    ".feather": FileFormat.ARROW,
}

_ENCODING_SAMPLE_BYTES = 65536  # 64KB sample for detection


def file_extension(file_name: str) -> str:
    """Return the lowercased final extension, including the dot."""
    return PurePath(file_name.replace("\\", "/")).suffix.lower()


def has_extension(file_name: str, extensions: frozenset[str]) -> bool:
    """Case-insensitive suffix test. Never touches the file system."""
    return file_extension(file_name) in extensions


def extensions_for(fmt: FileFormat) -> frozenset[str]:
    return frozenset(ext for ext, value in EXTENSION_MAP.items() if value is fmt)


def detect_format(file_name: str) -> FileFormat:
    """Detect the file format from its extension."""
    return EXTENSION_MAP.get(file_extension(file_name), FileFormat.UNKNOWN)


def detect_encoding(data: bytes) -> str:
    """Detect the character encoding of text bytes.

    Uses charset_normalizer to analyze the first 64KB. Falls back to utf-8
    when nothing conclusive is found.
    """
    from charset_normalizer import from_bytes

    result = from_bytes(data[:_ENCODING_SAMPLE_BYTES]).best()
    if result is None:
        return "utf-8"
    return result.encoding


def ensure_utf8(data: bytes) -> tuple[bytes, str, bool]:
    """Ensure text bytes are UTF-8 encoded, transcoding if necessary.

    Returns:
        Tuple of (utf8_bytes, detected_encoding, is_lossy):
        - utf8_bytes: The original bytes, or the transcoded copy.
        - detected_encoding: The detected encoding name.
        - is_lossy: True if transcoding had to use replacement characters.
    """
    try:
        data.decode("utf-8")
        return data, "utf-8", False
    except UnicodeDecodeError:
        pass

    encoding = detect_encoding(data)
    is_lossy = False
    try:
        text = data.decode(encoding, errors="strict")
    except (UnicodeDecodeError, LookupError):
        try:
            text = data.decode(encoding, errors="replace")
        except LookupError:
            text = data.decode("utf-8", errors="replace")
        is_lossy = True

    return text.encode("utf-8"), encoding, is_lossy
