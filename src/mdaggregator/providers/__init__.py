"""Provider adapters and the source-name -> provider mapping."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from mdaggregator.config import GitHubSource
from mdaggregator.providers.github import GitHubProvider
from mdaggregator.providers.gitlab import GitLabProvider
from mdaggregator.providers.http import build_http_client

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from mdaggregator.config import Settings
    from mdaggregator.protocols import ProviderProtocol

__all__ = [
    "GitHubProvider",
    "GitLabProvider",
    "build_http_client",
    "build_providers",
]


def build_providers(
    settings: Settings, client: httpx.AsyncClient
) -> Mapping[str, ProviderProtocol]:
    """Build one provider per configured source. Resolved once at startup."""
    providers: dict[str, ProviderProtocol] = {}
    for name, source in settings.sources.items():
        if isinstance(source, GitHubSource):
            providers[name] = GitHubProvider(
                client,
                source_name=name,
                owner=source.owner,
                repo=source.repo,
                branch=source.branch,
                token=source.token,
            )
        else:
            providers[name] = GitLabProvider(
                client,
                source_name=name,
                project_id=source.id,
                branch=source.branch,
                token=source.token,
                base_url=source.base_url,
            )
    return MappingProxyType(providers)
