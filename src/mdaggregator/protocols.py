"""Protocol interfaces for swappable components.

The store, the renewal cycle and the HTTP layer reference these protocols,
not the concrete implementations. This allows:
- Tests to use lightweight in-memory providers and renderers
- New provider flavours to be added without changing the caching code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mdaggregator.models.tree import Entry, RenderEntry


class ProviderProtocol(Protocol):
    """Interface for a remote repository exposing a tree and its blobs."""

    async def list_tree(self) -> list[Entry]:
        """Return the current tree. Raises ProviderError on failure."""
        ...

    async def fetch(self, content_hash: str) -> bytes | None:
        """Return the raw blob body, or None when it cannot be retrieved."""
        ...


class RendererProtocol(Protocol):
    """Interface for the menu formatter. Raises RenderError on failure."""

    def render(self, entries: Sequence[RenderEntry]) -> str: ...
