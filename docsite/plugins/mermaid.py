"""Client-side Mermaid diagrams for ```mermaid code blocks."""

from __future__ import annotations

import html
from pathlib import Path
from typing import Set

from ..kernel import Plugin
from ..models import ContentFile, MarkdownNode

DEFAULT_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"


def mermaid_plugin(script_url: str = DEFAULT_SCRIPT_URL, theme: str = "default") -> Plugin:
    diagrams: Set[Path] = set()
    loader = (
        f'<script src="{html.escape(script_url)}"></script>\n'
        f"<script>mermaid.initialize({{ startOnLoad: true, theme: \"{html.escape(theme)}\" }});</script>"
    )

    def on_markdown_parse(ast: MarkdownNode, file: ContentFile) -> MarkdownNode:
        found = False
        for node in ast.walk():
            if node.type == "code" and node.attributes.get("language") == "mermaid":
                node.type = "html"
                node.value = f'<div class="mermaid">{html.escape(node.value or "")}</div>'
                node.attributes = {"diagram": "mermaid"}
                found = True
        if found:
            diagrams.add(file.path)
        else:
            diagrams.discard(file.path)
        return ast

    def on_html_render(body: str, file: ContentFile) -> str | None:
        if file.path not in diagrams:
            return None
        return f"{body}\n{loader}"

    def on_destroy() -> None:
        diagrams.clear()

    return Plugin(
        name="mermaid",
        on_markdown_parse=on_markdown_parse,
        on_html_render=on_html_render,
        on_destroy=on_destroy,
    )


__all__ = ["DEFAULT_SCRIPT_URL", "mermaid_plugin"]
