from __future__ import annotations

from pathlib import Path

from .cached_store import CachedStore
from .debounce import FlushDebouncer, FlushState
from .errors import (
    DocumentNotFoundError,
    DocumentParseError,
    DocumentSerializationError,
    DocumentStoreError,
    StoreClosedError,
)
from .interfaces import DocumentSource
from .repository import DocumentRepository
from .settings import Settings, get_settings


def open_database(root: str | Path | None = None, *, settings: Settings | None = None) -> DocumentRepository:
    settings = settings or get_settings()
    return DocumentRepository(
        root if root is not None else settings.root,
        indent=settings.json_indent,
        sort_keys=settings.sort_keys,
    )


def open_store(
    name: str,
    root: str | Path | DocumentRepository | None = None,
    *,
    settings: Settings | None = None,
) -> CachedStore:
    settings = settings or get_settings()
    repo = root if isinstance(root, DocumentRepository) else open_database(root, settings=settings)
    return CachedStore(name, repo, debounce_seconds=settings.debounce_seconds)


__all__ = [
    "CachedStore",
    "DocumentRepository",
    "DocumentSource",
    "FlushDebouncer",
    "FlushState",
    "Settings",
    "get_settings",
    "open_database",
    "open_store",
    "DocumentStoreError",
    "DocumentNotFoundError",
    "DocumentParseError",
    "DocumentSerializationError",
    "StoreClosedError",
]
