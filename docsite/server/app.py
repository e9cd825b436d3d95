"""FastAPI application backing the docsite dev server."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from ..logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .dev import DevServer, HmrClient

HMR_PATH = "/__hmr"

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".eot": "application/vnd.ms-fontobject",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

HMR_SCRIPT = """<script>
(function () {
  var source = new EventSource("%s");
  source.onmessage = function (event) {
    if (event.data === "reload") {
      window.location.reload();
    }
  };
  source.onerror = function () {
    source.close();
  };
})();
</script>
""" % HMR_PATH


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def inject_hmr_script(html: str) -> str:
    """Insert the live-reload client before the closing body tag."""
    return html.replace("</body>", f"{HMR_SCRIPT}</body>", 1)


def resolve_request_path(out_dir: Path, pathname: str) -> Optional[Path]:
    """Map a request path to a file under ``out_dir``; ``None`` if it escapes it."""
    filename = "/index.html" if pathname in {"", "/"} else pathname
    if not filename.endswith(".html") and "." not in filename:
        filename = filename.rstrip("/") + "/index.html"

    root = out_dir.resolve()
    candidate = (root / filename.lstrip("/")).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    return candidate


def file_response(path: Path) -> Response:
    content_type = content_type_for(path)
    if path.suffix.lower() == ".html":
        body = inject_hmr_script(path.read_text(encoding="utf-8"))
        return Response(content=body, media_type=content_type)
    return Response(content=path.read_bytes(), media_type=content_type)


def serve_static(out_dir: Path, pathname: str) -> Response:
    """Serve a build artefact, falling back to the root ``index.html`` then 404."""
    target = resolve_request_path(out_dir, pathname)
    if target is not None and target.is_file():
        return file_response(target)

    fallback = out_dir / "index.html"
    if fallback.is_file():
        return file_response(fallback)

    return PlainTextResponse("Not Found", status_code=404)


async def event_stream(server: "DevServer", client: "HmrClient") -> AsyncIterator[str]:
    """Server-Sent Events for one ``/__hmr`` connection."""
    try:
        while True:
            try:
                message = await asyncio.wait_for(client.queue.get(), timeout=server.keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if message is None:
                break
            yield f"data: {message}\n\n"
    finally:
        server.disconnect(client)


Scope = Dict[str, Any]
Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]


class RequestLogMiddleware:
    """Logs one line per request: method, path, status and duration.

    The live-reload stream stays open for the whole session and is not logged.
    """

    def __init__(self, app: Callable[..., Awaitable[None]]) -> None:
        self.app = app
        self.logger = get_logger("server.http")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") == HMR_PATH:
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status = 500

        async def send_with_status(message: Dict[str, Any]) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            self.logger.debug(
                "%s %s %d %.1fms",
                scope.get("method", "GET"),
                scope.get("path", ""),
                status,
                (time.perf_counter() - started) * 1000,
            )


def create_app(server: "DevServer") -> FastAPI:
    """Create the FastAPI application serving ``server``'s build output."""

    app = FastAPI(title="docsite dev server", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(RequestLogMiddleware)

    @app.get(HMR_PATH)
    async def hmr() -> StreamingResponse:
        client = server.connect()
        return StreamingResponse(
            event_stream(server, client),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    # Plain def: FastAPI runs the blocking file reads in its threadpool.
    @app.get("/{path:path}")
    def static(path: str) -> Response:
        return serve_static(server.out_dir, "/" + path)

    return app


__all__ = [
    "HMR_PATH",
    "HMR_SCRIPT",
    "MIME_TYPES",
    "RequestLogMiddleware",
    "content_type_for",
    "create_app",
    "event_stream",
    "inject_hmr_script",
    "resolve_request_path",
    "serve_static",
]
