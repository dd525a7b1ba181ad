from __future__ import annotations

from pathlib import Path

DOCUMENT_SUFFIX = ".json"


def resolve_path(root: Path, name: str) -> Path:
    # "users" and "users.json" address the same file
    if not name.endswith(DOCUMENT_SUFFIX):
        name = name + DOCUMENT_SUFFIX
    return root / name


def store_name(path: Path) -> str:
    return path.name[: -len(DOCUMENT_SUFFIX)] if path.name.endswith(DOCUMENT_SUFFIX) else path.name
