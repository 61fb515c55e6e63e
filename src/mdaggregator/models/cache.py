from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContentRecord:
    """Cached body of one document, keyed by content hash in the ContentCache."""

    content: bytes
    fetched_at: float  # Seconds, from the cache's clock

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return self.fetched_at + ttl_seconds <= now
