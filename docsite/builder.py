"""Build orchestration: content -> plugin hooks -> rendered pages on disk."""

from __future__ import annotations

import inspect
import os
import shutil
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .adapters import Adapter, HtmlAdapter, Renderer
from .config import SiteConfig
from .errors import BuildError, ContentError, DocsError
from .frontmatter import extract_frontmatter
from .kernel import Event, Kernel
from .logging import get_logger
from .markup import MarkdownProcessor
from .models import AssetInfo, BuildManifest, ContentFile, PageInfo, RenderContent, Route
from .router import Router

ASSETS_DIRNAME = "assets"


def output_path_for(url: str) -> str:
    """Map a route URL to its output file, relative to the output directory.

    ``/`` -> ``index.html``; ``/guide/`` -> ``guide/index.html``;
    ``/about`` -> ``about.html``; ``/page.html`` stays ``page.html``.
    """
    if url == "/":
        filename = "/index.html"
    elif url.endswith("/"):
        filename = url + "index.html"
    elif url.endswith(".html"):
        filename = url
    else:
        filename = url + ".html"
    return filename.lstrip("/")


class Builder:
    """Runs one full build pass under the kernel's error boundary."""

    def __init__(
        self,
        config: SiteConfig,
        kernel: Kernel,
        *,
        adapter: Adapter | None = None,
        router: Router | None = None,
        markdown: MarkdownProcessor | None = None,
    ) -> None:
        self.config = config
        self.kernel = kernel
        self.adapter = adapter or HtmlAdapter()
        self.router = router or Router(config.src_path)
        self.markdown = markdown or MarkdownProcessor()
        self.out_dir = config.out_path
        self.logger = get_logger("builder")

    async def build(self) -> BuildManifest:
        """Execute the pipeline and return the manifest of written pages and assets."""
        return await self.kernel.run_with_error_boundary_async(self._guarded_build)

    async def _guarded_build(self) -> BuildManifest:
        try:
            return await self._build()
        except DocsError:
            raise
        except Exception as exc:
            raise BuildError(f"Build failed: {exc}") from exc

    async def _build(self) -> BuildManifest:
        started = time.perf_counter()
        self.logger.info("Building %s -> %s", self.config.src_path, self.out_dir)

        await self.kernel.emit(Event.ON_BUILD_START)

        self._clean_output()
        files = await self._load_content()
        routes = self.router.generate_routes(files)
        pages = await self._build_pages(routes, files)
        assets = self._copy_assets()

        manifest = BuildManifest(
            pages=pages,
            assets=assets,
            build_time=time.perf_counter() - started,
        )
        await self.kernel.emit(Event.ON_BUILD_END, manifest)

        self.logger.info(
            "Built %d pages and %d assets in %.2fs",
            len(manifest.pages),
            len(manifest.assets),
            manifest.build_time,
        )
        return manifest

    # ------------------------------------------------------------------
    # Pipeline stages

    def _clean_output(self) -> None:
        if self.out_dir.exists():
            shutil.rmtree(self.out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)

    async def _load_content(self) -> List[ContentFile]:
        src = self.config.src_path
        if not src.is_dir():
            raise ContentError(
                f"Source directory not found: {src}", context={"src_dir": str(src)}
            )
        files = self.router.scan(src)
        loaded = await self.kernel.emit(Event.ON_CONTENT_LOAD, files)
        return list(loaded) if loaded is not None else files

    async def _build_pages(self, routes: List[Route], files: List[ContentFile]) -> List[PageInfo]:
        renderer = self.adapter.create_renderer(self.config)
        by_path: Dict[Path, ContentFile] = {file.path: file for file in files}
        pages: List[PageInfo] = []
        for route in routes:
            source = by_path.get(route.file_path) if route.file_path else None
            pages.append(await self._build_page(route, source, renderer))
        return pages

    async def _build_page(
        self, route: Route, source: Optional[ContentFile], renderer: Renderer
    ) -> PageInfo:
        file_path = route.file_path or (source.path if source else None)
        if file_path is None:
            raise BuildError(f"Route {route.path} has no source file")

        text = Path(file_path).read_text(encoding="utf-8")
        metadata, body = extract_frontmatter(text)
        frontmatter = {**metadata, **route.frontmatter}

        if source is not None:
            page = replace(source, url=route.path, frontmatter=frontmatter, content=body)
        else:
            page = ContentFile(
                path=Path(file_path),
                relative_path=self._relative_to_src(Path(file_path)),
                url=route.path,
                frontmatter=frontmatter,
                content=body,
            )

        ast = self.markdown.parse(body)
        page.ast = ast
        ast = await self.kernel.emit(Event.ON_MARKDOWN_PARSE, ast, page)
        page.ast = ast

        html = self.markdown.render(ast)
        page.html = html
        html = await self.kernel.emit(Event.ON_HTML_RENDER, html, page)
        page.html = html

        content = RenderContent(
            frontmatter=page.frontmatter,
            html=html,
            toc=list(page.toc),
            data={
                "url": route.path,
                "sidebar": self.router.hierarchy,
                "site": {
                    "title": self.config.title,
                    "description": self.config.description,
                    "base": self.config.base,
                },
            },
        )
        rendered = renderer.render(content)
        if inspect.isawaitable(rendered):
            rendered = await rendered

        output_path = self._write_page(route.path, rendered)
        return PageInfo(
            url=route.path,
            file_path=Path(file_path),
            output_path=output_path,
            frontmatter=page.frontmatter,
        )

    def _write_page(self, url: str, content: str) -> Path:
        output_path = self.out_dir / output_path_for(url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        self.logger.debug("Wrote %s", output_path)
        return output_path

    def _copy_assets(self) -> List[AssetInfo]:
        assets_dir = self.config.src_path / ASSETS_DIRNAME
        if not assets_dir.is_dir():
            return []

        assets: List[AssetInfo] = []
        for dirpath, _, filenames in os.walk(assets_dir):
            current = Path(dirpath)
            for filename in sorted(filenames):
                src = current / filename
                dest = self.out_dir / src.relative_to(assets_dir)
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
                assets.append(
                    AssetInfo(src=self._display_path(src), dest=self._display_path(dest))
                )
        return assets

    # ------------------------------------------------------------------
    # Helpers

    def _relative_to_src(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.src_path).as_posix()
        except ValueError:
            return path.name

    def _display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.root).as_posix()
        except ValueError:
            return path.as_posix()


async def build(
    config: SiteConfig, kernel: Kernel, *, adapter: Adapter | None = None
) -> BuildManifest:
    """Create a :class:`Builder` and run a single build."""
    return await Builder(config, kernel, adapter=adapter).build()


__all__ = ["ASSETS_DIRNAME", "Builder", "build", "output_path_for"]
