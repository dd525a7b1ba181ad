from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel

from .debounce import DEFAULT_WAIT_SECONDS, FlushDebouncer
from .errors import StoreClosedError
from .interfaces import DocumentSource

logger = logging.getLogger(__name__)

R = TypeVar("R")
M = TypeVar("M", bound=BaseModel)

Document = dict[str, Any]


class CachedStore:
    """
    In-memory handle over one named JSON document.

    Reads are answered from memory only. Mutations replace the in-memory
    document and then request a flush; the flush is debounced (leading edge)
    and executed on a background worker, so mutators never wait on disk.

    The live document is never mutated in place: updaters receive a deep copy
    and the mapping they return becomes the new document. A background flush
    therefore always serializes a consistent snapshot, namely whatever the
    document is when the flush actually runs.

    Flush paths, each with its own debouncer:
    - update/set/delete and save_sync share the blocking path
    - save() uses the async path
    - flush() and close() bypass debouncing

    A failed background flush is logged and the first such failure is re-raised
    by the next save/save_sync/flush/join/close call.

    No thread lock is ever held across an await, so save() can run on an event
    loop alongside save_sync()/flush() called from the same loop.
    """

    def __init__(
        self,
        name: str,
        repository: DocumentSource,
        *,
        debounce_seconds: float = DEFAULT_WAIT_SECONDS,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._name = name
        self._repo = repository
        self._lock = threading.RLock()
        # serializes blocking writers; never held across an await
        self._write_lock = threading.Lock()
        # serializes async writers among themselves
        self._async_write_lock = asyncio.Lock()

        self._sync_debounce = FlushDebouncer(debounce_seconds, clock=clock)
        self._async_debounce = FlushDebouncer(debounce_seconds, clock=clock)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"docstore-{name}")
        self._pending: list[Future] = []
        self._error: BaseException | None = None
        self._closed = False

        # version counts mutations; persisted_version is the newest version known to be on disk
        self._version = 0
        self._persisted_version = 0
        # writes currently running, and a count of every write ever started
        self._in_flight = 0
        self._write_starts = 0

        self._cache: Document = dict(repository.load_or_initialize(name))

    def __repr__(self) -> str:
        return f"CachedStore(name={self._name!r}, keys={len(self._cache)}, dirty={self.dirty})"

    def __enter__(self) -> "CachedStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._name

    @property
    def cache(self) -> Document:
        """A deep copy of the current document."""
        with self._lock:
            return copy.deepcopy(self._cache)

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._version > self._persisted_version

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- reads -------------------------------------------------------

    def select(self, selector: Callable[[Document], R]) -> R:
        with self._lock:
            view = copy.deepcopy(self._cache)
        return selector(view)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._cache:
                return default
            return copy.deepcopy(self._cache[key])

    def get_model(self, key: str, model: type[M]) -> M | None:
        raw = self.get(key)
        if raw is None:
            return None
        return model.model_validate(raw)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._cache)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    # ---- mutations ---------------------------------------------------

    def update(self, updater: Callable[[Document], Mapping[str, Any]]) -> Document:
        with self._lock:
            self._check_open()
            new_doc = updater(copy.deepcopy(self._cache))
            if not isinstance(new_doc, Mapping):
                raise TypeError(f"updater must return a mapping, got {type(new_doc).__name__}")
            new_doc = dict(new_doc)
            # Detach from anything the caller still holds.
            self._cache = copy.deepcopy(new_doc)
            self._version += 1
        self._schedule_flush()
        return new_doc

    def set(self, key: str, value: Any) -> Document:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")

        def _set(doc: Document) -> Document:
            doc[key] = value
            return doc

        return self.update(_set)

    def delete(self, key: str) -> Document:
        def _delete(doc: Document) -> Document:
            doc.pop(key, None)
            return doc

        return self.update(_delete)

    # ---- persistence -------------------------------------------------

    async def save(self) -> None:
        self._check_open()
        self._raise_pending_error()
        if not self._async_debounce.request():
            logger.debug("FLUSH COALESCED (async): %s", self._name)
            return
        await self._write_current_async()

    def save_sync(self) -> None:
        self._check_open()
        self._raise_pending_error()
        if not self._sync_debounce.request():
            logger.debug("FLUSH COALESCED (sync): %s", self._name)
            return
        self._write_current()

    def flush(self) -> None:
        """Write the current document now, ignoring and then clearing any cooldown."""
        self._check_open()
        self._raise_pending_error()
        self._write_current()
        # disk is current, so the next mutation should not be coalesced into an old window
        self._sync_debounce.reset()

    def join(self, timeout: float | None = None) -> None:
        """Wait for scheduled background flushes, then surface any failure."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait_futures(pending, timeout=timeout)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
        self._raise_pending_error()

    def close(self) -> None:
        """
        Wait for background flushes and write whatever is still only in memory.

        A stored background failure does not prevent the final write; it is
        re-raised after the store is closed. If the final write itself fails the
        store stays open so close() can be retried.
        """
        if self._closed:
            return
        earlier: BaseException | None = None
        try:
            self.join()
        except Exception as e:
            earlier = e
        try:
            if self.dirty:
                self._write_current()
        except Exception as e:
            if earlier is not None and earlier is not e:
                raise e from earlier
            raise
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        if earlier is not None:
            raise earlier

    # ---- internals ---------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError(self._name)

    def _begin_write(self) -> tuple[Document, int, int, bool]:
        with self._lock:
            overlapped = self._in_flight > 0
            self._in_flight += 1
            self._write_starts += 1
            return self._cache, self._version, self._write_starts, overlapped

    def _end_write(self, version: int | None) -> None:
        with self._lock:
            self._in_flight -= 1
            if version is not None and version > self._persisted_version:
                self._persisted_version = version

    def _write_current(self) -> None:
        # blocking writers run one at a time, in snapshot order
        with self._write_lock:
            doc, version, _, _ = self._begin_write()
            try:
                self._repo.write_blocking(self._name, doc)
            except BaseException:
                self._end_write(None)
                raise
            self._end_write(version)

    async def _write_current_async(self) -> None:
        # No thread lock is held across the await. A blocking write that overlaps
        # this one may land first, so keep rewriting the latest snapshot until a
        # write completes with nothing else in flight.
        async with self._async_write_lock:
            while True:
                doc, version, started, overlapped = self._begin_write()
                try:
                    await self._repo.write_async(self._name, doc)
                except BaseException:
                    self._end_write(None)
                    raise
                with self._lock:
                    overlapped = overlapped or self._write_starts != started
                self._end_write(None if overlapped else version)
                if not overlapped:
                    return
                logger.debug("ASYNC FLUSH: %s overlapped a blocking write, rewriting", self._name)

    def _schedule_flush(self) -> None:
        if not self._sync_debounce.request():
            logger.debug("FLUSH COALESCED (background): %s", self._name)
            return
        future = self._executor.submit(self._background_flush)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    def _background_flush(self) -> None:
        try:
            self._write_current()
        except Exception as e:
            logger.warning("BACKGROUND FLUSH: failed to write %s: %r", self._name, e)
            with self._lock:
                # the first failure is the one reported; later ones are only logged
                if self._error is None:
                    self._error = e

    def _raise_pending_error(self) -> None:
        with self._lock:
            err, self._error = self._error, None
        if err is not None:
            raise err
