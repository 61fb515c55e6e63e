"""GitLab provider: repository tree API (paginated) and blobs API."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING

import structlog
from pydantic import TypeAdapter, ValidationError

from mdaggregator.errors import ErrorCode, ProviderError
from mdaggregator.models.providers import GitLabBlob, GitLabTreeItem
from mdaggregator.providers.http import get_json

if TYPE_CHECKING:
    import httpx

    from mdaggregator.models.tree import Entry

log = structlog.get_logger()

GITLAB_PAGE_SIZE = 100
# Guards against a server that keeps advertising a next page.
GITLAB_MAX_PAGES = 1000

_tree_page = TypeAdapter(list[GitLabTreeItem])


class GitLabProvider:
    """Provider for one GitLab project, optionally pinned to a branch."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        source_name: str,
        project_id: int,
        branch: str | None = None,
        token: str | None = None,
        base_url: str = "https://gitlab.com",
    ) -> None:
        self._client = client
        self.source_name = source_name
        self._project_url = f"{base_url.rstrip('/')}/api/v4/projects/{project_id}/repository"
        self._branch = branch
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def list_tree(self) -> list[Entry]:
        params: dict[str, str | int] = {"recursive": "true", "per_page": GITLAB_PAGE_SIZE}
        if self._branch:
            params["ref"] = self._branch

        entries: list[Entry] = []
        page = "1"
        for _ in range(GITLAB_MAX_PAGES):
            payload, headers = await get_json(
                self._client,
                f"{self._project_url}/tree",
                source_name=self.source_name,
                headers=self._headers,
                params={**params, "page": page},
            )
            try:
                items = _tree_page.validate_python(payload)
            except ValidationError as exc:
                raise ProviderError(
                    self.source_name,
                    ErrorCode.PROVIDER_BAD_RESPONSE,
                    f"Unexpected GitLab tree payload: {exc}",
                ) from exc
            entries.extend(item.to_entry() for item in items if item.type != "commit")

            page = headers.get("x-next-page", "")
            if not page:
                return entries

        log.warning("gitlab_tree_page_limit", source=self.source_name, pages=GITLAB_MAX_PAGES)
        return entries

    async def fetch(self, content_hash: str) -> bytes | None:
        try:
            payload, _ = await get_json(
                self._client,
                f"{self._project_url}/blobs/{content_hash}",
                source_name=self.source_name,
                headers=self._headers,
            )
            blob = GitLabBlob.model_validate(payload)
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

        if blob.encoding != "base64":
            return blob.content.encode("utf-8")
        try:
            return base64.b64decode("".join(blob.content.split()), validate=True)
        except (binascii.Error, ValueError):
            log.warning("gitlab_blob_decode_error", source=self.source_name, content_hash=content_hash)
            return None
