"""Menu rendering: snapshot -> sorted, labelled entries -> nested menu -> HTML."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from mdaggregator.errors import RenderError
from mdaggregator.models.tree import RenderEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mdaggregator.cache import TreeSnapshot
    from mdaggregator.models.tree import CacheEntry

log = structlog.get_logger()

DOCUMENT_EXTENSION = ".md"
INDEX_TEMPLATE = "index.html.j2"


def display_label(entry: CacheEntry, extension: str = DOCUMENT_EXTENSION) -> str:
    """``docs/guide`` -> ``guide``; ``docs/Guide.md`` from ``handbook`` -> ``Guide (handbook)``."""
    leaf = entry.path.rsplit("/", 1)[-1]
    if entry.is_dir:
        return leaf
    return f"{leaf.removesuffix(extension)} ({entry.source_name})"


def build_render_entries(
    snapshot: TreeSnapshot, extension: str = DOCUMENT_EXTENSION
) -> list[RenderEntry]:
    """Flatten the snapshot into the menu lines, sorted by path.

    Only directories and documents ending in ``extension`` are kept. The sort
    is stable, so entries sharing a path keep their bucket order.
    """
    entries = [
        RenderEntry(
            path=entry.path,
            is_dir=entry.is_dir,
            source_name=entry.source_name,
            content_hash=entry.content_hash,
            display=display_label(entry, extension),
        )
        for entry in snapshot.entries()
        if entry.is_dir or entry.path.endswith(extension)
    ]
    entries.sort(key=lambda entry: entry.path)
    return entries


@dataclass
class MenuNode:
    """A menu line plus the lines nested under it (directories only)."""

    entry: RenderEntry
    children: list[MenuNode] = field(default_factory=list)


def build_menu(entries: Sequence[RenderEntry]) -> list[MenuNode]:
    """Nest path-sorted menu lines under their closest listed directory.

    A directory listed by several sources becomes a single node. Directories
    with no document anywhere below them are dropped.
    """
    roots: list[MenuNode] = []
    directories: dict[str, MenuNode] = {}
    for entry in entries:
        if entry.is_dir and entry.path in directories:
            continue
        node = MenuNode(entry)
        _siblings(entry.path, directories, roots).append(node)
        if entry.is_dir:
            directories[entry.path] = node
    return _prune(roots)


def _siblings(
    path: str, directories: dict[str, MenuNode], roots: list[MenuNode]
) -> list[MenuNode]:
    # Path order puts every directory before its descendants.
    parent = path
    while "/" in parent:
        parent = parent.rsplit("/", 1)[0]
        if parent in directories:
            return directories[parent].children
    return roots


def _prune(nodes: list[MenuNode]) -> list[MenuNode]:
    kept = []
    for node in nodes:
        if node.entry.is_dir:
            node.children = _prune(node.children)
            if not node.children:
                continue
        kept.append(node)
    return kept


class TemplateRenderer:
    """Jinja2-backed menu renderer implementing RendererProtocol."""

    def __init__(self, environment: Environment | None = None) -> None:
        self._env = environment or Environment(
            loader=PackageLoader("mdaggregator", "templates"),
            autoescape=select_autoescape(),
        )
        # Compiled once; a missing or broken template fails at startup.
        self._template = self._env.get_template(INDEX_TEMPLATE)

    def render(self, entries: Sequence[RenderEntry]) -> str:
        try:
            return self._template.render(tree=build_menu(entries))
        except TemplateError as exc:
            raise RenderError(f"Template render error: {exc}") from exc
