"""Development server: serves the build output and live-reloads on change."""

from __future__ import annotations

import asyncio
import shutil
import socket
from contextlib import suppress
from pathlib import Path
from typing import Callable, Dict, Optional, Set

import uvicorn
from pydantic import BaseModel, Field

from ..adapters import Adapter
from ..builder import Builder
from ..config import SiteConfig
from ..errors import ServerError
from ..kernel import Event, Kernel
from ..logging import get_logger
from ..models import BuildManifest, ChangeKind
from ..router import Router
from .app import create_app
from .watcher import Debouncer, PollingWatcher

BuilderFactory = Callable[[], Builder]

DEFAULT_POLL_INTERVAL = 0.25


class DevServerOptions(BaseModel):
    host: str = "localhost"
    port: int = Field(3000, ge=0, le=65535)


class HmrClient:
    """One connected live-reload subscriber."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[Optional[str]] = asyncio.Queue()

    def send(self, message: str) -> None:
        self.queue.put_nowait(message)

    def close(self) -> None:
        self.queue.put_nowait(None)


class DevServer:
    """Watches the source tree, rebuilds on change, and pushes reloads over SSE.

    Rebuilds write into the configured output directory, where
    ``on_build_end`` plugins expect it. The previous output is set aside
    first and restored if the build fails, so a broken edit keeps the last
    good site served. Changes that arrive while a rebuild runs are queued and
    produce a single follow-up rebuild.
    """

    def __init__(
        self,
        config: SiteConfig,
        kernel: Kernel,
        *,
        adapter: Adapter | None = None,
        builder_factory: BuilderFactory | None = None,
        debounce: float | None = None,
        poll_interval: float | None = None,
        keepalive: float = 30.0,
    ) -> None:
        self.config = config
        self.kernel = kernel
        self.out_dir = config.out_path
        self.router = Router(config.src_path)
        self.debounce = debounce if debounce is not None else config.dev.debounce_ms / 1000
        if poll_interval is None:
            poll_interval = min(DEFAULT_POLL_INTERVAL, self.debounce) or DEFAULT_POLL_INTERVAL
        self.poll_interval = poll_interval
        self.keepalive = keepalive
        self.clients: Set[HmrClient] = set()
        self.last_manifest: Optional[BuildManifest] = None
        self.running = False
        self.closed = False
        self.logger = get_logger("server")

        self._adapter = adapter
        self._builder_factory = builder_factory or self._default_builder
        self._previous_dir = self.out_dir.with_name(self.out_dir.name + ".old")
        self._incoming: Dict[Path, ChangeKind] = {}
        self._queued: Dict[Path, ChangeKind] = {}
        self._rebuilding = False
        # The watcher reports a save up to one poll interval after it happens,
        # so the quiet period spans both.
        self._debouncer = Debouncer(self.debounce + self.poll_interval, self._on_settled)
        self._watcher: Optional[PollingWatcher] = None
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._url = ""
        self.app = create_app(self)

    @property
    def url(self) -> str:
        return self._url

    @property
    def rebuilding(self) -> bool:
        return self._rebuilding

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self, options: DevServerOptions | None = None) -> "DevServer":
        """Bind, serve, run the initial build and begin watching. Re-entrant."""
        if self.running:
            return self
        if self.closed:
            raise ServerError("Dev server has already been closed")
        options = options or DevServerOptions(host=self.config.dev.host, port=self.config.dev.port)

        sock = _bind_socket(options.host, options.port)
        port = sock.getsockname()[1]
        self._url = f"http://{options.host}:{port}"

        server_config = uvicorn.Config(
            self.app, log_level="warning", lifespan="off", access_log=False
        )
        self._server = uvicorn.Server(server_config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))
        while not self._server.started:
            if self._serve_task.done():
                sock.close()
                exc = self._serve_task.exception()
                raise ServerError(f"Dev server failed to start on {self._url}") from exc
            await asyncio.sleep(0.01)
        self.running = True

        await self.rebuild()

        self._watcher = PollingWatcher(
            self.config.src_path, self.notify_change, interval=self.poll_interval
        )
        await self._watcher.start()

        await self.kernel.emit(Event.ON_DEV_SERVER, self)
        self.logger.info("Dev server running at %s", self._url)
        return self

    async def serve_forever(self) -> None:
        """Block until the HTTP server exits, then shut everything down."""
        try:
            if self._serve_task is not None:
                await self._serve_task
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop watching, disconnect clients, stop serving and destroy the kernel."""
        if not self.running:
            return
        self.running = False
        self.closed = True

        self._debouncer.cancel()
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None
        await self._debouncer.drain()

        for client in list(self.clients):
            client.close()
        self.clients.clear()

        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            with suppress(asyncio.CancelledError):
                await self._serve_task
            self._serve_task = None
        self._server = None

        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir, ignore_errors=True)

        await self.kernel.destroy()
        self.logger.info("Dev server stopped")

    # ------------------------------------------------------------------
    # Builds

    async def rebuild(self) -> bool:
        """Rebuild the output directory, restoring the previous one on failure."""
        self._set_aside()
        try:
            manifest = await self._builder_factory().build()
        except Exception:
            self.logger.exception("Build failed; keeping the previous output")
            self._restore()
            return False
        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir, ignore_errors=True)
        self.last_manifest = manifest
        return True

    def _default_builder(self) -> Builder:
        return Builder(self.config, self.kernel, adapter=self._adapter, router=self.router)

    def _set_aside(self) -> None:
        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir)
        if self.out_dir.exists():
            self.out_dir.rename(self._previous_dir)

    def _restore(self) -> None:
        if not self._previous_dir.exists():
            return
        if self.out_dir.exists():
            shutil.rmtree(self.out_dir)
        self._previous_dir.rename(self.out_dir)

    # ------------------------------------------------------------------
    # Change handling

    def notify_change(self, path: Path, kind: ChangeKind | str) -> None:
        """Record a source change; a rebuild follows once changes settle."""
        self._incoming[Path(path)] = ChangeKind(kind)
        self._debouncer.trigger()

    async def _on_settled(self) -> None:
        self._queued.update(self._incoming)
        self._incoming.clear()
        if self._rebuilding:
            # The running loop below picks these up.
            return

        self._rebuilding = True
        try:
            while self._queued and not self.closed:
                changes, self._queued = self._queued, {}
                for path, kind in changes.items():
                    self.logger.info("%s %s", kind.value, path)
                    await self.kernel.emit(Event.ON_FILE_CHANGE, path, kind)
                if await self.rebuild():
                    self.broadcast("reload")
        finally:
            self._rebuilding = False

    # ------------------------------------------------------------------
    # Live reload clients

    def connect(self) -> HmrClient:
        client = HmrClient()
        self.clients.add(client)
        client.send("connected")
        return client

    def disconnect(self, client: HmrClient) -> None:
        self.clients.discard(client)

    def broadcast(self, message: str) -> None:
        for client in list(self.clients):
            client.send(message)


def _bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ServerError(
            f"Cannot listen on {host}:{port}: {exc.strerror or exc}",
            context={"host": host, "port": port},
        ) from exc
    return sock


async def create_dev_server(
    config: SiteConfig,
    kernel: Kernel,
    options: DevServerOptions | None = None,
    *,
    adapter: Adapter | None = None,
) -> DevServer:
    """Create a :class:`DevServer` and start it."""
    server = DevServer(config, kernel, adapter=adapter)
    return await server.start(options)


__all__ = ["DevServer", "DevServerOptions", "HmrClient", "create_dev_server"]
