"""Renderer contract and the default Jinja2 HTML adapter."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Union

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape

from .config import SiteConfig
from .models import RenderContent

_TEMPLATES_DIR = Path(__file__).parent / "templates"


class Renderer(Protocol):
    """Turns one page bundle into the final document string."""

    def render(self, content: RenderContent) -> Union[str, Awaitable[str]]:
        ...


class Adapter(Protocol):
    """Framework-specific factory for renderers."""

    name: str

    def create_renderer(self, config: SiteConfig) -> Renderer:
        ...


class HtmlRenderer:
    """Renders pages through a Jinja2 ``page.html.j2`` layout."""

    def __init__(self, env: Environment, config: SiteConfig, template: str = "page.html.j2") -> None:
        self._template = env.get_template(template)
        self._config = config

    def render(self, content: RenderContent) -> str:
        frontmatter = content.frontmatter
        data = content.data
        title = frontmatter.get("title")
        description = frontmatter.get("description") or self._config.description
        return self._template.render(
            html=content.html,
            frontmatter=frontmatter,
            page_title=title if isinstance(title, str) else None,
            description=description,
            toc=[asdict(item) for item in content.toc],
            sidebar=_plain(data.get("sidebar", [])),
            url=data.get("url", ""),
            site=data.get("site") or {"title": self._config.title, "base": self._config.base},
            lang=self._config.lang,
        )


class HtmlAdapter:
    """Default adapter producing standalone HTML documents."""

    name = "html"

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        self.templates_dir = templates_dir

    def create_renderer(self, config: SiteConfig) -> HtmlRenderer:
        return HtmlRenderer(self._create_env(self.templates_dir or config.templates_dir), config)

    @staticmethod
    def _create_env(templates_dir: Optional[Path]) -> Environment:
        loaders = []
        if templates_dir is not None and templates_dir.is_dir():
            # Theme templates shadow the bundled layout.
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(FileSystemLoader(str(_TEMPLATES_DIR)))
        return Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )


def _plain(sections: Any) -> List[Dict[str, Any]]:
    result: List[Dict[str, Any]] = []
    for section in sections or []:
        result.append(section if isinstance(section, dict) else asdict(section))
    return result


__all__ = ["Adapter", "HtmlAdapter", "HtmlRenderer", "Renderer"]
