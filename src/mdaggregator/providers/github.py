"""GitHub provider: git trees API for listings, git blobs API for bodies."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from mdaggregator.errors import ErrorCode, ProviderError
from mdaggregator.models.providers import GitHubBlob, GitHubTree
from mdaggregator.providers.http import get_json

if TYPE_CHECKING:
    import httpx

    from mdaggregator.models.tree import Entry

log = structlog.get_logger()

GITHUB_API_URL = "https://api.github.com"


def decode_blob_content(content: str) -> bytes:
    """Decode GitHub's base64 blob content, which is wrapped with newlines."""
    return base64.b64decode("".join(content.split()), validate=True)


class GitHubProvider:
    """Provider for one branch of one GitHub repository."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        source_name: str,
        owner: str,
        repo: str,
        branch: str,
        token: str,
        api_url: str = GITHUB_API_URL,
    ) -> None:
        self._client = client
        self.source_name = source_name
        self._repo_url = f"{api_url}/repos/{owner}/{repo}"
        self._branch = branch
        self._headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
        }

    async def list_tree(self) -> list[Entry]:
        payload, _ = await get_json(
            self._client,
            f"{self._repo_url}/git/trees/{self._branch}",
            source_name=self.source_name,
            headers=self._headers,
            params={"recursive": "1"},
        )
        try:
            tree = GitHubTree.model_validate(payload)
        except ValidationError as exc:
            raise ProviderError(
                self.source_name,
                ErrorCode.PROVIDER_BAD_RESPONSE,
                f"Unexpected GitHub tree payload: {exc}",
            ) from exc

        if tree.truncated:
            log.warning("github_tree_truncated", source=self.source_name, entries=len(tree.tree))

        return [item.to_entry() for item in tree.tree if item.type != "commit"]

    async def fetch(self, content_hash: str) -> bytes | None:
        try:
            payload, _ = await get_json(
                self._client,
                f"{self._repo_url}/git/blobs/{content_hash}",
                source_name=self.source_name,
                headers=self._headers,
            )
            blob = GitHubBlob.model_validate(payload)
        except ProviderError as exc:
            log.warning(
                "provider_fetch_failed",
                source=self.source_name,
                content_hash=content_hash,
                code=exc.code,
                message=exc.message,
            )
            return None
        except ValidationError:
            log.warning(
                "provider_fetch_failed",
                source=self.source_name,
                content_hash=content_hash,
                code=ErrorCode.PROVIDER_BAD_RESPONSE,
                exc_info=True,
            )
            return None

        try:
            return decode_blob_content(blob.content)
        except (binascii.Error, ValueError):
            log.warning("github_blob_decode_error", source=self.source_name, content_hash=content_hash)
            return None
