"""Table-of-contents plugin."""

from __future__ import annotations

import html
from typing import List, Sequence

from ..kernel import Plugin
from ..markup import node_text, slugify
from ..models import ContentFile, MarkdownNode, TocItem

TOC_MARKER = "<!-- TOC -->"


def collect_headings(ast: MarkdownNode, min_level: int = 2, max_level: int = 3) -> List[TocItem]:
    """Flat list of TOC entries for headings within ``[min_level, max_level]``."""
    items: List[TocItem] = []
    for node in ast.walk():
        if node.type != "heading":
            continue
        level = int(node.attributes.get("level", 1))
        if level < min_level or level > max_level:
            continue
        text = node_text(node).strip()
        slug = str(node.attributes.get("id") or slugify(text))
        items.append(TocItem(text=text, slug=slug, level=level))
    return items


def nest_items(items: Sequence[TocItem]) -> List[TocItem]:
    """Attach each entry under the closest preceding entry of a lower level."""
    roots: List[TocItem] = []
    stack: List[TocItem] = []
    for item in items:
        while stack and stack[-1].level >= item.level:
            stack.pop()
        if stack:
            stack[-1].children.append(item)
        else:
            roots.append(item)
        stack.append(item)
    return roots


def render_toc(items: Sequence[TocItem], nav_class: str = "toc", list_class: str = "toc-list") -> str:
    if not items:
        return ""
    return f'<nav class="{html.escape(nav_class)}">{_render_list(items, list_class)}</nav>'


def _render_list(items: Sequence[TocItem], list_class: str) -> str:
    parts = [f'<ul class="{html.escape(list_class)}">']
    for item in items:
        parts.append(f'<li><a href="#{html.escape(item.slug)}">{html.escape(item.text)}</a>')
        if item.children:
            parts.append(_render_list(item.children, list_class))
        parts.append("</li>")
    parts.append("</ul>")
    return "".join(parts)


def toc_plugin(
    min_level: int = 2,
    max_level: int = 3,
    nested: bool = True,
    nav_class: str = "toc",
    list_class: str = "toc-list",
    marker: str = TOC_MARKER,
) -> Plugin:
    """Fill ``ContentFile.toc`` from headings and expand ``marker`` in the page body."""

    def on_markdown_parse(ast: MarkdownNode, file: ContentFile) -> None:
        items = collect_headings(ast, min_level, max_level)
        file.toc = nest_items(items) if nested else items

    def on_html_render(body: str, file: ContentFile) -> str | None:
        if marker not in body:
            return None
        # An empty TOC drops the marker.
        return body.replace(marker, render_toc(file.toc, nav_class, list_class), 1)

    return Plugin(
        name="toc",
        on_markdown_parse=on_markdown_parse,
        on_html_render=on_html_render,
    )


__all__ = ["TOC_MARKER", "collect_headings", "nest_items", "render_toc", "toc_plugin"]
