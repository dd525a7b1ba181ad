from __future__ import annotations

from typing import Any, Protocol


class DocumentSource(Protocol):
    """
    What a CachedStore needs from its backing storage: whole-document reads and
    writes addressed by store name, in blocking and async flavors.
    """

    def load_or_initialize(self, name: str) -> dict[str, Any]:
        """Load the document, creating an empty one if it does not exist yet."""
        ...

    def read_blocking(self, name: str) -> dict[str, Any]:
        ...

    async def read_async(self, name: str) -> dict[str, Any]:
        ...

    def write_blocking(self, name: str, doc: dict[str, Any]) -> None:
        """Persist the full document atomically."""
        ...

    async def write_async(self, name: str, doc: dict[str, Any]) -> None:
        ...
