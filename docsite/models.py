"""Core data models shared across docsite components."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

# Values a frontmatter block can produce.
FrontmatterValue = Union[str, int, float, bool, None, List["FrontmatterValue"], Dict[str, Any]]
Frontmatter = Dict[str, FrontmatterValue]

UNORDERED = math.inf


class ChangeKind(str, Enum):
    """Normalized filesystem change reported to ``on_file_change`` hooks."""

    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"


@dataclass
class MarkdownNode:
    """Node of the intermediate document tree passed through ``on_markdown_parse``."""

    type: str
    children: List["MarkdownNode"] = field(default_factory=list)
    value: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class TocItem:
    """Table-of-contents entry derived from a heading."""

    text: str
    slug: str
    level: int
    children: List["TocItem"] = field(default_factory=list)


@dataclass
class ContentFile:
    """One Markdown source file discovered under the content root."""

    path: Path
    relative_path: str
    url: str
    frontmatter: Frontmatter = field(default_factory=dict)
    content: str = ""
    ast: Optional[MarkdownNode] = None
    html: Optional[str] = None
    toc: List[TocItem] = field(default_factory=list)


@dataclass
class Route:
    """Mapping from one content file to one output URL."""

    path: str
    frontmatter: Frontmatter
    file_path: Optional[Path] = None
    sidebar_position: float = UNORDERED
    children: List["Route"] = field(default_factory=list)


@dataclass
class SidebarItem:
    """Link entry inside a sidebar section."""

    text: str
    link: str
    frontmatter: Frontmatter = field(default_factory=dict)


@dataclass
class SidebarSection:
    """Routes sharing one parent URL, ordered for navigation."""

    base_path: str
    path: str
    text: str
    frontmatter: Frontmatter = field(default_factory=dict)
    items: List[SidebarItem] = field(default_factory=list)


@dataclass
class RenderContent:
    """Bundle handed to ``Renderer.render`` for a single page."""

    frontmatter: Frontmatter
    html: str
    toc: List[TocItem] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PageInfo:
    """Record of a page written during a build."""

    url: str
    file_path: Path
    output_path: Path
    frontmatter: Frontmatter


@dataclass
class AssetInfo:
    """Record of a static file copied or generated during a build."""

    src: str
    dest: str
    type: str = "copy"


@dataclass
class BuildManifest:
    """Summary of one completed build, handed to ``on_build_end`` hooks."""

    pages: List[PageInfo] = field(default_factory=list)
    assets: List[AssetInfo] = field(default_factory=list)
    build_time: float = 0.0


__all__ = [
    "AssetInfo",
    "BuildManifest",
    "ChangeKind",
    "ContentFile",
    "Frontmatter",
    "FrontmatterValue",
    "MarkdownNode",
    "PageInfo",
    "RenderContent",
    "Route",
    "SidebarItem",
    "SidebarSection",
    "TocItem",
    "UNORDERED",
]
