from __future__ import annotations

import asyncio
import copy
from concurrent.futures import Executor, Future
from pathlib import Path
import sys
from typing import Any, Callable


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for `import docstore` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualExecutor(Executor):
    """
    Queues submitted callables until run_pending(), so tests decide when a
    background flush actually happens.
    """

    def __init__(self) -> None:
        self._queue: list[tuple[Future, Callable[..., Any], tuple, dict]] = []

    @property
    def queued(self) -> int:
        return len(self._queue)

    def submit(self, fn, /, *args, **kwargs):  # type: ignore[override]
        future: Future = Future()
        self._queue.append((future, fn, args, kwargs))
        return future

    def run_pending(self) -> None:
        queue, self._queue = self._queue, []
        for future, fn, args, kwargs in queue:
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as e:
                future.set_exception(e)


class RecordingSource:
    """
    In-memory DocumentSource that records every call and the document each
    write carried.
    """

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self.docs: dict[str, dict[str, Any]] = copy.deepcopy(initial or {})
        self.calls: list[str] = []
        self.writes: list[tuple[str, dict[str, Any]]] = []
        self.fail_writes: Exception | None = None

    def load_or_initialize(self, name: str) -> dict[str, Any]:
        self.calls.append("load_or_initialize")
        if name not in self.docs:
            self.docs[name] = {}
        return copy.deepcopy(self.docs[name])

    def read_blocking(self, name: str) -> dict[str, Any]:
        self.calls.append("read_blocking")
        return copy.deepcopy(self.docs[name])

    async def read_async(self, name: str) -> dict[str, Any]:
        self.calls.append("read_async")
        return copy.deepcopy(self.docs[name])

    def write_blocking(self, name: str, doc: dict[str, Any]) -> None:
        self.calls.append("write_blocking")
        self._write(name, doc)

    async def write_async(self, name: str, doc: dict[str, Any]) -> None:
        self.calls.append("write_async")
        self._write(name, doc)

    def _write(self, name: str, doc: dict[str, Any]) -> None:
        if self.fail_writes is not None:
            raise self.fail_writes
        self.docs[name] = copy.deepcopy(doc)
        self.writes.append((name, copy.deepcopy(doc)))

    def count(self, call: str) -> int:
        return self.calls.count(call)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def source() -> RecordingSource:
    return RecordingSource()


@pytest.fixture
def db_root(tmp_path: Path) -> Path:
    """
    Database root inside a temp directory so tests never touch a real ./data.
    """
    return tmp_path / "db"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for var in ("DOCSTORE_ROOT", "DOCSTORE_DEBOUNCE_MS", "DOCSTORE_JSON_INDENT", "DOCSTORE_SORT_KEYS"):
        # setenv first so monkeypatch also undoes values a test loads from a .env file
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    return monkeypatch


@pytest.fixture
def make_source() -> Callable[..., RecordingSource]:
    return RecordingSource


class GatedSource(RecordingSource):
    """
    RecordingSource whose async writes stay in flight until the test opens the
    gate, so a blocking write can be run while an async one is pending.
    """

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__(initial)
        self.gate: asyncio.Event | None = None

    async def write_async(self, name: str, doc: dict[str, Any]) -> None:
        self.calls.append("write_async")
        snapshot = copy.deepcopy(doc)
        if self.gate is not None:
            await self.gate.wait()
        self._write(name, snapshot)


@pytest.fixture
def gated_source() -> GatedSource:
    return GatedSource()
