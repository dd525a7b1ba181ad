from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class DocumentLocks:
    """
    In-process locks for document files, one per resolved document path.

    A background flush, an inline save and an async save of the same document
    take the same lock, so only one of them touches <name>.json.tmp at a time.
    Entries are dropped when the document is removed.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Path, threading.Lock] = {}

    @staticmethod
    def _key(path: Path) -> Path:
        return path.resolve()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, Path):
            return False
        with self._guard:
            return self._key(path) in self._locks

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        key = self._key(path)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
        with lock:
            yield

    def discard(self, path: Path) -> None:
        key = self._key(path)
        with self._guard:
            lock = self._locks.get(key)
            # a held lock still guards a write in progress
            if lock is not None and not lock.locked():
                del self._locks[key]


DOCUMENT_LOCKS = DocumentLocks()
