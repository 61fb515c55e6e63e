"""Integration test fixtures.

Provides a Starlette app wired to the shared in-memory store from
tests/conftest.py, with the startup renewal already run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from mdaggregator.config import Settings
from mdaggregator.renewal import renew
from mdaggregator.server import create_app
from mdaggregator.state import AppState

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from mdaggregator.store import DocumentStore


@pytest.fixture()
async def app_state(store: DocumentStore) -> AppState:
    await renew(store, strict=True)
    return AppState(settings=Settings(), store=store)


@pytest.fixture()
def app(app_state: AppState) -> Starlette:
    """App without lifespan: state is attached directly."""
    application = create_app(Settings())
    application.state.app_state = app_state
    return application


@pytest.fixture()
async def http(app: Starlette):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
