"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and attached to ``app.state`` so every request handler reaches the same
DocumentStore.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from mdaggregator.config import Settings
    from mdaggregator.store import DocumentStore


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    store: DocumentStore
    http_client: httpx.AsyncClient | None = None
