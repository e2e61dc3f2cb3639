"""
Importer-specific utilities for handling uploaded files and JSON payloads.
"""

from __future__ import annotations

import io
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable

from werkzeug.datastructures import FileStorage

CSV_EXTENSIONS: tuple[str, ...] = ("csv",)


class UploadError(ValueError):
    """Raised when an uploaded file cannot be read as CSV text."""


def allowed_file(filename: str, allowed_extensions: Iterable[str] = CSV_EXTENSIONS) -> bool:
    """
    Validate the uploaded filename extension against the allowed set.
    """

    if not filename or "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    return extension in {ext.lower() for ext in allowed_extensions}


def read_upload_text(file_storage: FileStorage, *, encoding: str = "utf-8-sig") -> io.StringIO:
    """
    Decode an uploaded file into a seekable text buffer.

    ``utf-8-sig`` drops the byte-order mark spreadsheet exports often carry.
    """

    try:
        content = file_storage.read().decode(encoding)
    except UnicodeDecodeError as exc:
        raise UploadError(f"Uploaded file is not valid {encoding} text: {exc}") from exc
    return io.StringIO(content, newline="")


def ensure_json_serializable(value: Any) -> Any:
    """
    Best-effort conversion of values to JSON-serializable representations.
    """

    if isinstance(value, Enum):
        return ensure_json_serializable(value.value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): ensure_json_serializable(inner) for key, inner in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [ensure_json_serializable(item) for item in value]
    return str(value)
