"""Tests for the dev server HTTP surface."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docsite.kernel import Kernel
from docsite.server import DevServer
from docsite.server.app import HMR_SCRIPT, event_stream, resolve_request_path
from tests._fixtures.site_builder import SiteBuilder


def _write_dist(site_builder: SiteBuilder) -> None:
    site_builder.write(
        {
            "dist/index.html": "<html><body><h1>Home</h1></body></html>",
            "dist/guide/index.html": "<html><body><h1>Guide</h1></body></html>",
            "dist/style.css": "body { color: red; }",
            "dist/data.bin": "raw",
        }
    )
    (site_builder.dist / "font.woff2").write_bytes(b"wOF2")


@pytest.fixture
def server(site_builder: SiteBuilder) -> DevServer:
    return DevServer(site_builder.config(), Kernel(), keepalive=0.05)


@pytest.fixture
def client(server: DevServer) -> TestClient:
    return TestClient(server.app)


def test_root_serves_index_with_reload_script(site_builder: SiteBuilder, client: TestClient) -> None:
    _write_dist(site_builder)

    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert response.text == f"<html><body><h1>Home</h1>{HMR_SCRIPT}</body></html>"
    assert 'new EventSource("/__hmr")' in response.text


def test_directory_paths_resolve_to_index(site_builder: SiteBuilder, client: TestClient) -> None:
    _write_dist(site_builder)

    for path in ("/guide/", "/guide"):
        response = client.get(path)
        assert response.status_code == 200
        assert "<h1>Guide</h1>" in response.text


@pytest.mark.parametrize(
    ("path", "content_type"),
    [
        ("/style.css", "text/css; charset=utf-8"),
        ("/font.woff2", "font/woff2"),
        ("/data.bin", "application/octet-stream"),
    ],
)
def test_static_files_use_mime_table(
    site_builder: SiteBuilder, client: TestClient, path: str, content_type: str
) -> None:
    _write_dist(site_builder)

    response = client.get(path)

    assert response.status_code == 200
    assert response.headers["content-type"] == content_type
    assert HMR_SCRIPT not in response.text


def test_unknown_paths_fall_back_to_index(site_builder: SiteBuilder, client: TestClient) -> None:
    _write_dist(site_builder)

    response = client.get("/does/not/exist/")

    assert response.status_code == 200
    assert "<h1>Home</h1>" in response.text


def test_missing_index_returns_404(client: TestClient) -> None:
    response = client.get("/anything")

    assert response.status_code == 404
    assert response.text == "Not Found"


def test_paths_escaping_output_are_rejected(tmp_path: Path) -> None:
    out_dir = tmp_path / "dist"
    out_dir.mkdir()

    assert resolve_request_path(out_dir, "/../secret.txt") is None
    assert resolve_request_path(out_dir, "/") == (out_dir / "index.html").resolve()
    assert resolve_request_path(out_dir, "/guide") == (out_dir / "guide" / "index.html").resolve()


@pytest.mark.asyncio
async def test_event_stream_sends_connected_reload_and_keepalive(server: DevServer) -> None:
    hmr_client = server.connect()
    stream = event_stream(server, hmr_client)

    assert await stream.__anext__() == "data: connected\n\n"
    assert await stream.__anext__() == ": keepalive\n\n"

    server.broadcast("reload")
    assert await stream.__anext__() == "data: reload\n\n"

    hmr_client.close()
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert hmr_client not in server.clients


def test_requests_are_logged_with_status(
    site_builder: SiteBuilder, client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    _write_dist(site_builder)
    caplog.set_level(logging.DEBUG, logger="docsite.server.http")

    client.get("/style.css")

    [record] = [record for record in caplog.records if record.name == "docsite.server.http"]
    assert record.getMessage().startswith("GET /style.css 200 ")
