"""File-based routing: content discovery, URL derivation and sidebar hierarchy."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from .errors import RouteConflict
from .frontmatter import extract_frontmatter
from .logging import get_logger
from .models import UNORDERED, ContentFile, Route, SidebarItem, SidebarSection

MARKDOWN_EXTENSIONS = (".md", ".markdown", ".mdown")


def is_markdown_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in MARKDOWN_EXTENSIONS


def path_to_url(relative_path: str) -> str:
    """Derive the canonical URL for a content file.

    ``guide/getting-started.md`` -> ``/guide/getting-started/``,
    ``index.md`` -> ``/``, ``guide/index.md`` -> ``/guide/``.
    """
    path = relative_path.replace(os.sep, "/").replace("\\", "/")

    dot = path.rfind(".")
    if dot > 0:
        path = path[:dot]

    if path.endswith("/index"):
        path = path[: -len("/index")] or "/"
    elif path == "index":
        path = "/"

    if not path.startswith("/"):
        path = "/" + path
    if path != "/" and not path.endswith("/"):
        path = path + "/"
    return path


def format_title(segment: str) -> str:
    """Turn a kebab-case path segment into Title Case."""
    return " ".join(word[:1].upper() + word[1:] for word in segment.split("-"))


def _segments(url: str) -> List[str]:
    return [part for part in url.split("/") if part]


def base_path_of(url: str) -> str:
    """Return the parent directory portion of ``url`` (``/`` for top-level pages)."""
    parents = _segments(url)[:-1]
    if not parents:
        return "/"
    return "/" + "/".join(parents) + "/"


class Router:
    """Scans a source tree and maps its Markdown files to routes."""

    def __init__(self, src_dir: str | Path = "docs") -> None:
        self.src_dir = Path(src_dir)
        self._routes: Dict[str, Route] = {}
        self._hierarchy: List[SidebarSection] = []
        self.logger = get_logger("router")

    # ------------------------------------------------------------------
    # Discovery

    def scan(self, source_root: str | Path | None = None) -> List[ContentFile]:
        """Return one :class:`ContentFile` per Markdown file under ``source_root``.

        A missing root yields an empty list.
        """
        root = Path(source_root) if source_root is not None else self.src_dir
        if not root.is_dir():
            return []

        files: List[ContentFile] = []
        for path in self._iter_markdown(root):
            relative = path.relative_to(root).as_posix()
            text = path.read_text(encoding="utf-8")
            frontmatter, body = extract_frontmatter(text)
            files.append(
                ContentFile(
                    path=path,
                    relative_path=relative,
                    url=path_to_url(relative),
                    frontmatter=frontmatter,
                    content=body,
                )
            )
        self.logger.debug("Scanned %d content files under %s", len(files), root)
        return files

    def _iter_markdown(self, directory: Path) -> Iterator[Path]:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            if entry.is_dir():
                yield from self._iter_markdown(Path(entry.path))
            elif entry.is_file() and is_markdown_file(entry.name):
                yield Path(entry.path)

    # ------------------------------------------------------------------
    # Routes

    def generate_routes(self, files: Sequence[ContentFile]) -> List[Route]:
        """Build routes sorted by relative path and rebuild the sidebar hierarchy.

        Raises :class:`RouteConflict` when two files resolve to the same URL.
        """
        self._routes = {}
        sources: Dict[str, str] = {}

        for file in sorted(files, key=lambda item: item.relative_path):
            route = self._create_route(file)
            if route.path in self._routes:
                raise RouteConflict(route.path, [sources[route.path], file.relative_path])
            self._routes[route.path] = route
            sources[route.path] = file.relative_path

        self._hierarchy = self._build_hierarchy()
        return list(self._routes.values())

    @staticmethod
    def _create_route(file: ContentFile) -> Route:
        override = file.frontmatter.get("path")
        path = override if isinstance(override, str) else file.url

        order = file.frontmatter.get("order")
        if isinstance(order, (int, float)) and not isinstance(order, bool):
            position = order
        else:
            position = UNORDERED

        return Route(
            path=path,
            file_path=file.path,
            frontmatter=file.frontmatter,
            sidebar_position=position,
        )

    def _build_hierarchy(self) -> List[SidebarSection]:
        groups: Dict[str, List[Route]] = {}
        for route in self._routes.values():
            groups.setdefault(base_path_of(route.path), []).append(route)

        sections: List[SidebarSection] = []
        for base_path, routes in groups.items():
            # sorted() is stable, so equal positions keep scan order.
            ordered = sorted(routes, key=lambda route: route.sidebar_position)
            parents = _segments(base_path)
            sections.append(
                SidebarSection(
                    base_path=base_path,
                    path=ordered[0].path,
                    text=format_title(parents[-1]) if parents else "",
                    frontmatter=ordered[0].frontmatter,
                    items=[
                        SidebarItem(
                            text=self._item_title(route),
                            link=route.path,
                            frontmatter=route.frontmatter,
                        )
                        for route in ordered
                    ],
                )
            )
        return sections

    @staticmethod
    def _item_title(route: Route) -> str:
        title = route.frontmatter.get("title")
        if isinstance(title, str) and title:
            return title
        segments = _segments(route.path)
        return format_title(segments[-1] if segments else "index")

    # ------------------------------------------------------------------
    # Lookup

    def match(self, url: str) -> Optional[Route]:
        if url != "/" and not url.endswith("/"):
            url = url + "/"
        return self._routes.get(url)

    @property
    def routes(self) -> List[Route]:
        return list(self._routes.values())

    @property
    def hierarchy(self) -> List[SidebarSection]:
        return self._hierarchy

    def get_routes_by_base_path(self, base_path: str) -> List[Route]:
        """Routes nested under ``base_path``, excluding the base path itself."""
        return [
            route
            for route in self._routes.values()
            if route.path.startswith(base_path) and route.path != base_path
        ]


def create_router(src_dir: str | Path = "docs") -> Router:
    """Return a router that has already scanned ``src_dir`` and generated routes."""
    router = Router(src_dir)
    router.generate_routes(router.scan())
    return router


__all__ = [
    "MARKDOWN_EXTENSIONS",
    "Router",
    "base_path_of",
    "create_router",
    "format_title",
    "is_markdown_file",
    "path_to_url",
]
