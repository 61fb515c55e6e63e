"""HTTP entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState in the Starlette lifespan and run the startup renewal
- Start and stop the renewal scheduler
- Route requests to the store
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from mdaggregator import __version__
from mdaggregator.cache import ContentCache
from mdaggregator.config import Settings
from mdaggregator.errors import RenewalError
from mdaggregator.providers import build_http_client, build_providers
from mdaggregator.render import TemplateRenderer
from mdaggregator.renewal import renew
from mdaggregator.schedulers import run_renewal_scheduler
from mdaggregator.state import AppState
from mdaggregator.store import DocumentStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from contextlib import AbstractAsyncContextManager

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings) -> AppState:
    """Wire the HTTP client, providers and store for ``settings``."""
    http_client = build_http_client(settings.http)
    store = DocumentStore(
        build_providers(settings, http_client),
        TemplateRenderer(),
        ContentCache(ttl_seconds=settings.cache.content_ttl_seconds),
        call_timeout_seconds=settings.http.timeout_seconds,
    )
    return AppState(settings=settings, store=store, http_client=http_client)


async def start(state: AppState) -> None:
    """Run the startup renewal. Any listing failure is fatal."""
    try:
        await renew(state.store, strict=True)
    except RenewalError as exc:
        log.critical(
            "startup_renewal_failed",
            message=exc.message,
            failed_sources=list(exc.failed_sources),
        )
        raise


def _lifespan(
    settings: Settings,
) -> Callable[[Starlette], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        """Create and tear down all shared resources for the server's lifetime."""
        log.info("server_starting", version=__version__, sources=list(settings.sources))

        state = build_state(settings)
        try:
            await start(state)
        except RenewalError:
            if state.http_client is not None:
                await state.http_client.aclose()
            raise

        app.state.app_state = state
        renewal_task = asyncio.create_task(run_renewal_scheduler(state))

        log.info(
            "server_started",
            version=__version__,
            host=settings.server.host,
            port=settings.server.port,
            entries=len(state.store.current_tree()),
        )

        try:
            yield
        finally:
            renewal_task.cancel()
            with suppress(asyncio.CancelledError):
                await renewal_task
            if state.http_client is not None:
                await state.http_client.aclose()
            log.info("server_stopping")

    return lifespan


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _not_found() -> Response:
    return Response(status_code=404, media_type="text/plain")


async def _document_response(state: AppState, path: str, owner: str) -> Response:
    content = await state.store.retrieve(path, owner)
    if content is None:
        return _not_found()
    return Response(content, media_type="text/plain; charset=utf-8")


async def _read_owner(request: Request) -> str | None:
    """Return ``owner`` from a JSON body like ``{"owner": "handbook"}``."""
    try:
        body = await request.json()
    except ValueError:
        log.info("request_body_invalid", path=request.url.path)
        return None
    owner = body.get("owner") if isinstance(body, dict) else None
    return owner if isinstance(owner, str) else None


async def documents(request: Request) -> Response:
    """GET without ``owner`` serves the menu; GET/POST with an owner serve a document."""
    state: AppState = request.app.state.app_state
    path = request.path_params["path"]

    if request.method == "POST":
        owner = await _read_owner(request)
        if owner is None:
            return _not_found()
        return await _document_response(state, path, owner)

    owner = request.query_params.get("owner")
    if owner is None:
        return HTMLResponse(state.store.current_render())
    return await _document_response(state, path, owner)


def create_app(settings: Settings | None = None) -> Starlette:
    settings = settings or Settings()
    return Starlette(
        routes=[
            Mount(
                "/_assets",
                StaticFiles(packages=[("mdaggregator", "static")]),
                name="static",
            ),
            Route("/{path:path}", documents, methods=["GET", "POST"]),
        ],
        lifespan=_lifespan(settings),
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
