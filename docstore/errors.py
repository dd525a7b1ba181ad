from __future__ import annotations

from pathlib import Path


class DocumentStoreError(Exception):
    """Base class for every error raised by docstore."""


class DocumentNotFoundError(DocumentStoreError, FileNotFoundError):
    def __init__(self, path: Path):
        super().__init__(f"document not found: {path}")
        self.path = path


class DocumentParseError(DocumentStoreError, ValueError):
    """
    The file exists but does not hold a JSON object.

    Never recovered automatically: a corrupt file must not turn into an empty document.
    """

    def __init__(self, path: Path, reason: str):
        super().__init__(f"cannot parse document {path}: {reason}")
        self.path = path
        self.reason = reason


class DocumentSerializationError(DocumentStoreError, TypeError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"cannot serialize document {path}: {reason}")
        self.path = path
        self.reason = reason


class StoreClosedError(DocumentStoreError):
    def __init__(self, name: str):
        super().__init__(f"store {name!r} is closed")
        self.name = name
