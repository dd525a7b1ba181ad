from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_indent(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip().lower()
    if s in ("", "none"):
        return None
    return int(s)


@dataclass(frozen=True)
class Settings:
    # Database root; one <store>.json per store lives directly under it
    root: str

    # Cooldown window for flush coalescing
    debounce_ms: int

    # JSON formatting of written documents
    json_indent: int | None
    sort_keys: bool

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def get_settings(env_file: str | None = None) -> Settings:
    if env_file:
        load_dotenv(env_file)

    root = os.getenv("DOCSTORE_ROOT", "data").strip() or "data"

    debounce_ms = int(os.getenv("DOCSTORE_DEBOUNCE_MS", "50"))
    if debounce_ms < 0:
        raise ValueError(f"DOCSTORE_DEBOUNCE_MS must be >= 0, got {debounce_ms}")

    json_indent = _env_indent("DOCSTORE_JSON_INDENT", 2)
    sort_keys = _env_bool("DOCSTORE_SORT_KEYS", False)

    return Settings(
        root=root,
        debounce_ms=debounce_ms,
        json_indent=json_indent,
        sort_keys=sort_keys,
    )
