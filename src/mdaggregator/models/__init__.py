from __future__ import annotations

from mdaggregator.models.cache import ContentRecord
from mdaggregator.models.providers import (
    GitHubBlob,
    GitHubTree,
    GitHubTreeItem,
    GitLabBlob,
    GitLabTreeItem,
)
from mdaggregator.models.tree import CacheEntry, Entry, RenderEntry

__all__ = [
    # tree
    "Entry",
    "CacheEntry",
    "RenderEntry",
    # cache
    "ContentRecord",
    # providers
    "GitHubTree",
    "GitHubTreeItem",
    "GitHubBlob",
    "GitLabTreeItem",
    "GitLabBlob",
]
