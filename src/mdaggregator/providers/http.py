"""Shared HTTP plumbing for the provider adapters.

All provider I/O goes through a single httpx.AsyncClient created at startup.
The lifespan owns the client lifecycle; providers receive it via constructor
injection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from mdaggregator.errors import ErrorCode, ProviderError

if TYPE_CHECKING:
    from mdaggregator.config import HttpSettings

log = structlog.get_logger()


def build_http_client(settings: HttpSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(
            settings.timeout_seconds,
            connect=settings.connect_timeout_seconds,
        ),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    source_name: str,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
) -> tuple[Any, httpx.Headers]:
    """GET ``url`` and return its decoded JSON body with the response headers.

    Raises ProviderError on network errors, timeouts, non-2xx responses and
    bodies that are not JSON.
    """
    try:
        response = await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as exc:
        raise ProviderError(
            source_name,
            ErrorCode.PROVIDER_REQUEST_FAILED,
            f"Network error requesting {url}: {exc}",
        ) from exc

    if not response.is_success:
        raise ProviderError(
            source_name,
            ErrorCode.PROVIDER_REQUEST_FAILED,
            f"HTTP {response.status_code} requesting {url}",
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(
            source_name,
            ErrorCode.PROVIDER_BAD_RESPONSE,
            f"Response from {url} is not valid JSON",
        ) from exc

    log.debug("provider_request_complete", source=source_name, url=url)
    return payload, response.headers
