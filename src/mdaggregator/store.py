"""Document store: the owner of the tree, render and content caches.

A single DocumentStore is created at startup and shared by the renewal
scheduler (the only writer of the tree and render) and the request handlers
(readers, plus writers of the content cache). Reads are plain attribute
loads of immutable values, so they never block. Writers of the tree and
render go through ``renewal_lock``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from mdaggregator.cache import ContentCache, TreeSnapshot
from mdaggregator.errors import ProviderError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from mdaggregator.protocols import ProviderProtocol, RendererProtocol

log = structlog.get_logger()

PROVIDER_CALL_TIMEOUT_SECONDS = 60.0


class DocumentStore:
    def __init__(
        self,
        providers: Mapping[str, ProviderProtocol],
        renderer: RendererProtocol,
        content_cache: ContentCache | None = None,
        *,
        call_timeout_seconds: float = PROVIDER_CALL_TIMEOUT_SECONDS,
    ) -> None:
        self.providers = providers
        self.renderer = renderer
        self.content_cache = content_cache if content_cache is not None else ContentCache()
        self.call_timeout_seconds = call_timeout_seconds
        self.renewal_lock = asyncio.Lock()
        self._tree = TreeSnapshot()
        self._render = ""

    def current_tree(self) -> TreeSnapshot:
        return self._tree

    def current_render(self) -> str:
        """Return the latest rendered menu ("" until the first publish)."""
        return self._render

    def publish(self, tree: TreeSnapshot, render: str | None) -> None:
        """Expose a new tree and, unless ``render`` is None, its rendering.

        The render is swapped first, then the tree. With ``render=None`` the
        previous render stays current (template failure for this cycle).
        """
        if render is not None:
            self._render = render
        self._tree = tree

    async def retrieve(self, path: str, source_name: str) -> bytes | None:
        """Return the body of ``path`` as listed by ``source_name``, or None.

        Unknown paths and sources resolve to None without any provider call.
        """
        entry = self.current_tree().lookup(path, source_name)
        if entry is None or entry.is_dir:
            log.debug("retrieve_unknown_entry", path=path, source=source_name)
            return None

        provider = self.providers.get(source_name)
        if provider is None:
            log.warning("retrieve_unknown_source", path=path, source=source_name)
            return None

        async def fetch(content_hash: str) -> bytes | None:
            try:
                return await asyncio.wait_for(
                    provider.fetch(content_hash), timeout=self.call_timeout_seconds
                )
            except TimeoutError:
                log.warning(
                    "provider_fetch_timeout",
                    source=source_name,
                    content_hash=content_hash,
                    timeout=self.call_timeout_seconds,
                )
                return None
            except ProviderError:
                raise
            except Exception:
                log.error(
                    "provider_fetch_unexpected_error",
                    source=source_name,
                    content_hash=content_hash,
                    exc_info=True,
                )
                return None

        return await self.content_cache.get_or_fetch(entry.content_hash, fetch)
