"""Shared test fixtures for the mdaggregator test suite."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from mdaggregator.cache import ContentCache
from mdaggregator.models.tree import Entry
from mdaggregator.render import TemplateRenderer
from mdaggregator.store import DocumentStore


class FakeProvider:
    """In-memory provider recording every call made to it."""

    def __init__(
        self,
        entries: list[Entry] | None = None,
        blobs: dict[str, bytes] | None = None,
    ) -> None:
        self.entries = entries or []
        self.blobs = blobs or {}
        self.list_error: Exception | None = None
        self.list_calls = 0
        self.fetch_calls: list[str] = []

    async def list_tree(self) -> list[Entry]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.entries)

    async def fetch(self, content_hash: str) -> bytes | None:
        self.fetch_calls.append(content_hash)
        return self.blobs.get(content_hash)


@pytest.fixture()
def provider_a() -> FakeProvider:
    return FakeProvider(
        entries=[
            Entry(path="docs", is_dir=True, content_hash="tree-a-docs"),
            Entry(path="docs/Guide.md", is_dir=False, content_hash="sha-guide"),
            Entry(path="docs/logo.png", is_dir=False, content_hash="sha-logo"),
            Entry(path="README.md", is_dir=False, content_hash="sha-readme-a"),
        ],
        blobs={"sha-guide": b"# Guide", "sha-readme-a": b"# A"},
    )


@pytest.fixture()
def provider_b() -> FakeProvider:
    return FakeProvider(
        entries=[
            Entry(path="docs", is_dir=True, content_hash="tree-b-docs"),
            Entry(path="docs/Setup.md", is_dir=False, content_hash="sha-setup"),
        ],
        blobs={"sha-setup": b"# Setup"},
    )


@pytest.fixture()
def store(provider_a: FakeProvider, provider_b: FakeProvider) -> DocumentStore:
    """Store over sources "a" and "b", before any renewal."""
    return DocumentStore(
        MappingProxyType({"a": provider_a, "b": provider_b}),
        TemplateRenderer(),
        ContentCache(),
        call_timeout_seconds=5.0,
    )
