from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Entry(BaseModel):
    """One node (file or directory) of a provider's tree listing."""

    model_config = ConfigDict(frozen=True)

    path: str
    is_dir: bool
    content_hash: str  # Blob/tree SHA as reported by the provider


class CacheEntry(BaseModel):
    """An Entry tagged with the configured source it was listed from."""

    model_config = ConfigDict(frozen=True)

    source_name: str
    entry: Entry

    @property
    def path(self) -> str:
        return self.entry.path

    @property
    def is_dir(self) -> bool:
        return self.entry.is_dir

    @property
    def content_hash(self) -> str:
        return self.entry.content_hash


class RenderEntry(BaseModel):
    """Single line of the rendered menu."""

    model_config = ConfigDict(frozen=True)

    path: str
    is_dir: bool
    source_name: str
    content_hash: str
    display: str  # "guide" for directories, "Guide (handbook)" for documents
