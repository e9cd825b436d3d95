"""Default Markdown collaborator: body text -> node tree -> HTML.

Headings and fenced code become first-class nodes so plugins can inspect and
rewrite them; every other run of block source is kept as a ``markdown`` node
and converted with Python-Markdown at render time.
"""

from __future__ import annotations

import html
import re
from typing import Dict, List, Sequence

import markdown as _markdown

from .models import MarkdownNode

_FENCE_PATTERN = re.compile(r"^(?P<fence>`{3,}|~{3,})\s*(?P<lang>[\w+#.-]*)")
_HEADING_PATTERN = re.compile(r"^(?P<marks>#{1,6})\s+(?P<text>.*?)(?:\s+#+)?\s*$")


def slugify(text: str) -> str:
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def node_text(node: MarkdownNode) -> str:
    """Concatenate the text carried by ``node`` and its descendants."""
    if node.type in {"text", "inline-code"}:
        return node.value or ""
    return "".join(node_text(child) for child in node.children)


class MarkdownProcessor:
    """Parses Markdown into :class:`MarkdownNode` trees and renders them back to HTML."""

    DEFAULT_EXTENSIONS = ("tables", "sane_lists")

    def __init__(self, extensions: Sequence[str] | None = None) -> None:
        self.extensions = list(extensions if extensions is not None else self.DEFAULT_EXTENSIONS)
        self._converter = _markdown.Markdown(extensions=self.extensions)

    def parse(self, text: str) -> MarkdownNode:
        root = MarkdownNode(type="root")
        buffer: List[str] = []
        slugs: Dict[str, int] = {}

        def flush() -> None:
            source = "\n".join(buffer).strip("\n")
            buffer.clear()
            if source.strip():
                root.children.append(MarkdownNode(type="markdown", value=source))

        lines = text.replace("\r\n", "\n").split("\n")
        index = 0
        while index < len(lines):
            line = lines[index]
            fence = _FENCE_PATTERN.match(line)
            if fence:
                flush()
                marker = fence.group("fence")
                body: List[str] = []
                index += 1
                while index < len(lines) and not lines[index].startswith(marker):
                    body.append(lines[index])
                    index += 1
                index += 1
                root.children.append(
                    MarkdownNode(
                        type="code",
                        value="\n".join(body),
                        attributes={"language": fence.group("lang") or None},
                    )
                )
                continue

            heading = _HEADING_PATTERN.match(line)
            if heading:
                flush()
                title = heading.group("text")
                root.children.append(
                    MarkdownNode(
                        type="heading",
                        children=[MarkdownNode(type="text", value=title)],
                        attributes={
                            "level": len(heading.group("marks")),
                            "id": _unique_slug(title, slugs),
                        },
                    )
                )
            else:
                buffer.append(line)
            index += 1

        flush()
        return root

    def render(self, node: MarkdownNode) -> str:
        kind = node.type
        if kind == "heading":
            level = int(node.attributes.get("level", 1))
            anchor = node.attributes.get("id")
            id_attr = f' id="{html.escape(str(anchor))}"' if anchor else ""
            return f"<h{level}{id_attr}>{self.render_inline(node_text(node))}</h{level}>"
        if kind == "code":
            language = node.attributes.get("language")
            class_attr = f' class="language-{html.escape(language)}"' if language else ""
            return f"<pre><code{class_attr}>{html.escape(node.value or '')}</code></pre>"
        if kind == "markdown":
            return self._converter.reset().convert(node.value or "")
        if kind == "html":
            return node.value or ""
        if kind in {"text", "inline-code"}:
            return html.escape(node.value or "")
        return "\n".join(self.render(child) for child in node.children)

    def render_inline(self, text: str) -> str:
        """Convert inline Markdown (emphasis, code spans, links) without a block wrapper."""
        converted = self._converter.reset().convert(text)
        if converted.startswith("<p>") and converted.endswith("</p>"):
            return converted[len("<p>"):-len("</p>")]
        # Text that Markdown reads as a block (``1. Intro``) stays literal.
        return html.escape(text)


def _unique_slug(text: str, seen: Dict[str, int]) -> str:
    base = slugify(text) or "section"
    count = seen.get(base, 0)
    seen[base] = count + 1
    return base if count == 0 else f"{base}-{count}"


__all__ = ["MarkdownProcessor", "node_text", "slugify"]
