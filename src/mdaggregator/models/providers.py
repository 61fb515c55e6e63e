"""Wire payloads of the GitHub and GitLab REST APIs.

Only the fields the providers read are declared; everything else in the
responses is ignored.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from mdaggregator.models.tree import Entry


class GitHubTreeItem(BaseModel):
    path: str
    type: Literal["blob", "tree", "commit"]
    sha: str

    def to_entry(self) -> Entry:
        return Entry(path=self.path, is_dir=self.type == "tree", content_hash=self.sha)


class GitHubTree(BaseModel):
    sha: str
    tree: list[GitHubTreeItem]
    truncated: bool = False


class GitHubBlob(BaseModel):
    sha: str
    content: str
    encoding: str = "base64"


class GitLabTreeItem(BaseModel):
    id: str
    name: str
    type: Literal["blob", "tree", "commit"]
    path: str

    def to_entry(self) -> Entry:
        return Entry(path=self.path, is_dir=self.type == "tree", content_hash=self.id)


class GitLabBlob(BaseModel):
    sha: str
    content: str
    encoding: str = "base64"
