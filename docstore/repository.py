from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import DocumentNotFoundError
from .interfaces import DocumentSource
from .json_store import atomic_write_json, read_json_object
from .locks import DOCUMENT_LOCKS
from .paths import DOCUMENT_SUFFIX, resolve_path, store_name

if TYPE_CHECKING:
    from .cached_store import CachedStore

logger = logging.getLogger(__name__)


class DocumentRepository(DocumentSource):
    """
    Stores one JSON document per store name directly under a root directory:

    - <root>/<name>.json

    Owns no state beyond the root and formatting options. Writes are atomic
    (temp file + replace); the async variants run the blocking ones on a worker
    thread via asyncio.to_thread so they never block the event loop.
    """

    def __init__(self, root: str | Path, *, indent: int | None = 2, sort_keys: bool = False):
        self._root = Path(root)
        self._indent = indent
        self._sort_keys = sort_keys

    @property
    def root(self) -> Path:
        return self._root

    def resolve_path(self, name: str) -> Path:
        return resolve_path(self._root, name)

    def read_blocking(self, name: str) -> dict[str, Any]:
        path = self.resolve_path(name)
        with DOCUMENT_LOCKS.hold(path):
            return read_json_object(path)

    async def read_async(self, name: str) -> dict[str, Any]:
        return await asyncio.to_thread(self.read_blocking, name)

    def write_blocking(self, name: str, doc: dict[str, Any]) -> None:
        path = self.resolve_path(name)
        with DOCUMENT_LOCKS.hold(path):
            atomic_write_json(path, doc, indent=self._indent, sort_keys=self._sort_keys)
        logger.debug("DOCUMENT WRITE: %s (%d keys)", path, len(doc))

    async def write_async(self, name: str, doc: dict[str, Any]) -> None:
        await asyncio.to_thread(self.write_blocking, name, doc)

    def load_or_initialize(self, name: str) -> dict[str, Any]:
        try:
            return self.read_blocking(name)
        except DocumentNotFoundError:
            empty: dict[str, Any] = {}
            self.write_blocking(name, empty)
            logger.info("DOCUMENT INIT: created empty %s", self.resolve_path(name))
            return empty

    def exists(self, name: str) -> bool:
        return self.resolve_path(name).is_file()

    def remove(self, name: str) -> bool:
        path = self.resolve_path(name)
        try:
            with DOCUMENT_LOCKS.hold(path):
                try:
                    path.unlink()
                except FileNotFoundError:
                    return False
        finally:
            DOCUMENT_LOCKS.discard(path)
        logger.debug("DOCUMENT REMOVE: %s", path)
        return True

    def list_names(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(store_name(p) for p in self._root.glob(f"*{DOCUMENT_SUFFIX}") if p.is_file())

    def get_store(self, name: str, **options: Any) -> "CachedStore":
        from .cached_store import CachedStore

        return CachedStore(name, self, **options)
