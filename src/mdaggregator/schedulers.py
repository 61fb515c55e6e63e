"""Background scheduler coroutine for periodic tree renewal."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from mdaggregator.renewal import renew

if TYPE_CHECKING:
    from mdaggregator.state import AppState

log = structlog.get_logger()


async def run_renewal_scheduler(state: AppState) -> None:
    """Renew the tree every ``renewal.interval_seconds`` until cancelled.

    The startup renewal is run by the lifespan before this task starts, so
    the loop sleeps first.
    """
    interval_seconds = state.settings.renewal.interval_seconds

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await renew(state.store)
        except Exception:
            log.warning("renewal_scheduler_error", exc_info=True)
