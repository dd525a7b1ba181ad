from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import DocumentNotFoundError, DocumentParseError, DocumentSerializationError


def read_json_object(path: Path) -> dict[str, Any]:
    """
    Read a JSON object from disk.

    Raises DocumentNotFoundError for a missing file and DocumentParseError for
    empty files, invalid JSON, or a top-level value that is not an object.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise DocumentNotFoundError(path) from e
    if not raw.strip():
        raise DocumentParseError(path, "file is empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DocumentParseError(path, str(e)) from e
    if not isinstance(data, dict):
        raise DocumentParseError(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def atomic_write_json(path: Path, payload: Any, *, indent: int | None = 2, sort_keys: bool = False) -> None:
    """
    Atomically write JSON to disk by writing to a temp file then replacing.
    """
    # Encode fully before touching the filesystem so a bad payload leaves the old file intact.
    try:
        data = (json.dumps(payload, indent=indent, sort_keys=sort_keys) + "\n").encode("utf-8")
    except (TypeError, ValueError) as e:
        raise DocumentSerializationError(path, str(e)) from e

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with tmp_path.open("wb") as f:
            f.write(data)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
