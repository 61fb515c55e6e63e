"""In-memory tree snapshot and content cache.

Both structures follow the same discipline: the value a reader obtains is
never mutated afterwards. A TreeSnapshot is frozen and ``merge`` builds a new
one; the ContentCache swaps its whole record mapping on every change.
Readers holding an old reference keep a consistent view for as long as they
hold it, without taking a lock.

The ContentCache copies its mapping on each write. That is linear in the
number of cached documents, which is fine for a documentation corpus of a
few thousand files but is the first thing to revisit for larger ones.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeVar

import structlog

from mdaggregator.errors import ProviderError
from mdaggregator.models.cache import ContentRecord
from mdaggregator.models.tree import CacheEntry, Entry

log = structlog.get_logger()

CONTENT_TTL_SECONDS = 3600

ContentFetcher = Callable[[str], Awaitable[bytes | None]]

_V = TypeVar("_V")


def _freeze(mapping: dict[str, _V]) -> Mapping[str, _V]:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class TreeSnapshot:
    """One immutable version of the merged document tree.

    Maps a path to every CacheEntry listed at that path. The same path may
    appear once per source (e.g. a ``docs`` directory present in two repos).
    """

    buckets: Mapping[str, tuple[CacheEntry, ...]] = field(
        default_factory=lambda: _freeze({})
    )

    def __len__(self) -> int:
        return sum(len(entries) for entries in self.buckets.values())

    def __iter__(self) -> Iterator[tuple[str, tuple[CacheEntry, ...]]]:
        return iter(self.buckets.items())

    def entries(self) -> Iterator[CacheEntry]:
        for bucket in self.buckets.values():
            yield from bucket

    def sources(self) -> frozenset[str]:
        return frozenset(entry.source_name for entry in self.entries())

    def lookup(self, path: str, source_name: str) -> CacheEntry | None:
        for entry in self.buckets.get(path, ()):
            if entry.source_name == source_name:
                return entry
        return None

    def merge(self, source_name: str, entries: Iterable[Entry]) -> TreeSnapshot:
        """Return a new snapshot with ``source_name``'s entries replaced.

        Entries of every other source are carried over unchanged. Paths whose
        bucket ends up empty are dropped.
        """
        buckets: dict[str, list[CacheEntry]] = {}
        for path, bucket in self.buckets.items():
            kept = [entry for entry in bucket if entry.source_name != source_name]
            if kept:
                buckets[path] = kept

        for entry in entries:
            buckets.setdefault(entry.path, []).append(
                CacheEntry(source_name=source_name, entry=entry)
            )

        return TreeSnapshot(_freeze({path: tuple(bucket) for path, bucket in buckets.items()}))


class ContentCache:
    """Document bodies keyed by content hash, expired lazily on access.

    Records older than ``ttl_seconds`` are never served; they are removed the
    next time any retrieval observes the cache. There is no sweeper task.
    Failed fetches are not cached.
    """

    def __init__(
        self,
        ttl_seconds: float = CONTENT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Mapping[str, ContentRecord] = _freeze({})

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, content_hash: object) -> bool:
        """True only for a live record; expired ones awaiting eviction don't count."""
        record = self._records.get(content_hash) if isinstance(content_hash, str) else None
        return record is not None and not record.is_expired(self._clock(), self._ttl_seconds)

    def snapshot(self) -> Mapping[str, ContentRecord]:
        """Return the current record mapping (read-only)."""
        return self._records

    async def get_or_fetch(self, content_hash: str, fetcher: ContentFetcher) -> bytes | None:
        """Return the body for ``content_hash``, calling ``fetcher`` on a miss.

        Returns ``None`` when the fetcher finds nothing or fails.
        """
        now = self._clock()

        record = self._records.get(content_hash)
        if record is not None and record.is_expired(now, self._ttl_seconds):
            record = None
        self._replace(now)

        if record is not None:
            log.debug("content_cache_hit", content_hash=content_hash)
            return record.content

        log.debug("content_cache_miss", content_hash=content_hash)
        try:
            content = await fetcher(content_hash)
        except ProviderError as exc:
            log.warning(
                "content_fetch_failed",
                content_hash=content_hash,
                source=exc.source_name,
                code=exc.code,
                message=exc.message,
            )
            return None

        if content is None:
            log.info("content_not_found", content_hash=content_hash)
            return None

        # Built from the latest mapping: other retrievals may have swapped it
        # while the fetch was in flight.
        self._replace(now, content_hash, ContentRecord(content=content, fetched_at=now))
        return content

    def _replace(
        self,
        now: float,
        content_hash: str | None = None,
        record: ContentRecord | None = None,
    ) -> None:
        current = self._records
        expired = {
            key for key, value in current.items() if value.is_expired(now, self._ttl_seconds)
        }
        if not expired and record is None:
            return

        updated = {key: value for key, value in current.items() if key not in expired}
        if content_hash is not None and record is not None:
            updated[content_hash] = record
        self._records = _freeze(updated)

        if expired:
            log.debug("content_cache_evicted", count=len(expired))
