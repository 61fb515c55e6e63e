"""Renewal cycle: list every provider, merge, render, publish.

One cycle moves through Listing -> Merging -> Publishing while holding the
store's renewal lock, so two cycles never merge from the same prior tree.

Strict cycles (the startup run) are all-or-nothing: any listing or render
failure raises RenewalError and nothing is published. Recurring cycles
always publish; a source whose listing failed keeps its previous entries.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from mdaggregator.errors import ProviderError, RenderError, RenewalError
from mdaggregator.render import build_render_entries

if TYPE_CHECKING:
    from mdaggregator.models.tree import Entry
    from mdaggregator.protocols import ProviderProtocol
    from mdaggregator.store import DocumentStore

log = structlog.get_logger()


@dataclass(frozen=True)
class RenewalReport:
    refreshed: tuple[str, ...]
    failed: tuple[str, ...]
    rendered: bool
    entries: int


async def _list_source(
    name: str, provider: ProviderProtocol, timeout: float
) -> list[Entry] | None:
    """List one source; None means the listing failed and was logged."""
    try:
        entries = await asyncio.wait_for(provider.list_tree(), timeout=timeout)
    except ProviderError as exc:
        log.warning("provider_list_failed", source=name, code=exc.code, message=exc.message)
        return None
    except TimeoutError:
        log.warning("provider_list_timeout", source=name, timeout=timeout)
        return None
    except Exception:
        log.error("provider_list_unexpected_error", source=name, exc_info=True)
        return None

    log.info("provider_listed", source=name, entries=len(entries))
    return entries


async def renew(store: DocumentStore, *, strict: bool = False) -> RenewalReport:
    """Run one renewal cycle against every configured provider."""
    async with store.renewal_lock:
        names = list(store.providers)
        listings = await asyncio.gather(
            *(
                _list_source(name, store.providers[name], store.call_timeout_seconds)
                for name in names
            )
        )

        failed = tuple(name for name, listing in zip(names, listings) if listing is None)
        if strict and failed:
            raise RenewalError(
                f"Listing failed for: {', '.join(failed)}",
                failed_sources=failed,
            )

        tree = store.current_tree()
        refreshed: list[str] = []
        for name, listing in zip(names, listings):
            if listing is None:
                continue
            tree = tree.merge(name, listing)
            refreshed.append(name)

        try:
            render: str | None = store.renderer.render(build_render_entries(tree))
        except RenderError as exc:
            if strict:
                raise RenewalError(exc.message) from exc
            log.error("render_failed", message=exc.message)
            render = None

        store.publish(tree, render)

    report = RenewalReport(
        refreshed=tuple(refreshed),
        failed=failed,
        rendered=render is not None,
        entries=len(tree),
    )
    log.info(
        "renewal_complete",
        strict=strict,
        refreshed=list(report.refreshed),
        failed=list(report.failed),
        rendered=report.rendered,
        entries=report.entries,
    )
    return report
