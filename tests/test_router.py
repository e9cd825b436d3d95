"""Tests for file-based routing and sidebar hierarchy."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsite.errors import RouteConflict
from docsite.models import UNORDERED, ContentFile
from docsite.router import Router, base_path_of, create_router, format_title, path_to_url
from tests._fixtures.site_builder import SiteBuilder


@pytest.mark.parametrize(
    ("relative", "url"),
    [
        ("index.md", "/"),
        ("guide/index.md", "/guide/"),
        ("guide/getting-started.md", "/guide/getting-started/"),
        ("about.markdown", "/about/"),
        ("a/b/c.md", "/a/b/c/"),
    ],
)
def test_path_to_url(relative: str, url: str) -> None:
    assert path_to_url(relative) == url


def test_format_title_and_base_path() -> None:
    assert format_title("getting-started") == "Getting Started"
    assert base_path_of("/guide/intro/") == "/guide/"
    assert base_path_of("/about/") == "/"
    assert base_path_of("/") == "/"


def test_scan_reads_markdown_files_sorted(site_builder: SiteBuilder) -> None:
    site_builder.write_docs(
        {
            "index.md": "# Home\n",
            "guide/b.md": "---\ntitle: Bee\n---\nB\n",
            "guide/a.md": "A\n",
            "notes.txt": "ignored\n",
        }
    )

    files = Router(site_builder.docs).scan()

    assert [file.relative_path for file in files] == ["guide/a.md", "guide/b.md", "index.md"]
    bee = files[1]
    assert bee.url == "/guide/b/"
    assert bee.frontmatter == {"title": "Bee"}
    assert bee.content == "B\n"


def test_scan_missing_directory_returns_empty(tmp_path: Path) -> None:
    assert Router(tmp_path / "missing").scan() == []


def _file(relative: str, **frontmatter: object) -> ContentFile:
    return ContentFile(
        path=Path("/docs") / relative,
        relative_path=relative,
        url=path_to_url(relative),
        frontmatter=dict(frontmatter),
    )


def test_generate_routes_orders_sidebar_by_frontmatter() -> None:
    router = Router()
    routes = router.generate_routes([_file("guide/b.md", order=1), _file("guide/a.md", order=2)])

    assert [route.path for route in routes] == ["/guide/a/", "/guide/b/"]
    [section] = router.hierarchy
    assert section.base_path == "/guide/"
    assert section.text == "Guide"
    assert section.path == "/guide/b/"
    assert [item.link for item in section.items] == ["/guide/b/", "/guide/a/"]
    assert [item.text for item in section.items] == ["B", "A"]


def test_unordered_routes_keep_scan_order() -> None:
    router = Router()
    router.generate_routes(
        [_file("guide/c.md"), _file("guide/a.md", title="Alpha"), _file("guide/b.md", order="x")]
    )

    [section] = router.hierarchy
    assert [item.text for item in section.items] == ["Alpha", "B", "C"]
    assert all(route.sidebar_position == UNORDERED for route in router.routes)


def test_top_level_pages_share_root_section() -> None:
    router = Router()
    router.generate_routes([_file("index.md"), _file("about.md"), _file("guide/intro.md")])

    sections = {section.base_path: section for section in router.hierarchy}
    assert set(sections) == {"/", "/guide/"}
    assert sections["/"].text == ""
    assert [item.text for item in sections["/"].items] == ["About", "Index"]


def test_frontmatter_path_overrides_url() -> None:
    router = Router()
    [route] = router.generate_routes([_file("old-name.md", path="/custom/")])

    assert route.path == "/custom/"
    assert router.match("/custom") is route
    assert router.match("/old-name/") is None


def test_match_and_routes_by_base_path() -> None:
    router = Router()
    router.generate_routes(
        [_file("guide/index.md"), _file("guide/intro.md"), _file("guide/advanced/deep.md")]
    )

    assert router.match("/guide/intro/").path == "/guide/intro/"
    assert router.match("/nope/") is None
    nested = [route.path for route in router.get_routes_by_base_path("/guide/")]
    assert nested == ["/guide/advanced/deep/", "/guide/intro/"]


def test_conflicting_routes_raise() -> None:
    router = Router()

    with pytest.raises(RouteConflict) as excinfo:
        router.generate_routes([_file("guide.md"), _file("guide/index.md")])

    assert excinfo.value.path == "/guide/"
    assert excinfo.value.files == ["guide.md", "guide/index.md"]


def test_create_router_scans_and_routes(site_builder: SiteBuilder) -> None:
    site_builder.write_docs({"index.md": "# Home\n", "guide/intro.md": "Intro\n"})

    router = create_router(site_builder.docs)

    assert [route.path for route in router.routes] == ["/guide/intro/", "/"]


@pytest.mark.parametrize("relative", ["index.md", "guide/index.md", "guide/getting-started.md", "x.mdown"])
def test_path_to_url_is_stable_under_rederivation(relative: str) -> None:
    url = path_to_url(relative)

    assert url.startswith("/")
    assert url == "/" or url.endswith("/")
    assert path_to_url(url) == url
    assert path_to_url(url.strip("/") + "/index.md") == url
