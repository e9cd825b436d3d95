"""High-level helpers wiring config, plugins, kernel, builder and dev server."""

from __future__ import annotations

from typing import Iterable, Optional

from .adapters import Adapter
from .builder import Builder
from .config import SiteConfig
from .errors import ConfigError
from .kernel import Event, Kernel, Plugin
from .models import BuildManifest
from .plugins import discover_plugins
from .server import DevServer, DevServerOptions


def create_kernel(plugins: Iterable[Plugin] = ()) -> Kernel:
    kernel = Kernel()
    for plugin in plugins:
        kernel.register(plugin)
    return kernel


async def resolve_config(config: SiteConfig, kernel: Kernel) -> SiteConfig:
    """Give ``on_config`` hooks the chance to replace the site configuration."""
    resolved = await kernel.emit(Event.ON_CONFIG, config)
    if not isinstance(resolved, SiteConfig):
        raise ConfigError(
            f"on_config hooks must return a SiteConfig, got {type(resolved).__name__}"
        )
    return resolved


async def build_site(
    config: SiteConfig,
    plugins: Optional[Iterable[Plugin]] = None,
    *,
    adapter: Adapter | None = None,
) -> BuildManifest:
    """Run one production build and tear the kernel down afterwards.

    When ``plugins`` is omitted the plugins named in ``config.plugins`` are
    discovered and registered.
    """
    kernel = create_kernel(discover_plugins(config.plugins) if plugins is None else plugins)
    try:
        config = await resolve_config(config, kernel)
        return await Builder(config, kernel, adapter=adapter).build()
    finally:
        await kernel.destroy()


async def serve_site(
    config: SiteConfig,
    plugins: Optional[Iterable[Plugin]] = None,
    *,
    adapter: Adapter | None = None,
    options: DevServerOptions | None = None,
) -> DevServer:
    """Start a dev server; the caller owns it and must ``close()`` it."""
    kernel = create_kernel(discover_plugins(config.plugins) if plugins is None else plugins)
    try:
        config = await resolve_config(config, kernel)
        server = DevServer(config, kernel, adapter=adapter)
        return await server.start(options)
    except BaseException:
        await kernel.destroy()
        raise


__all__ = ["build_site", "create_kernel", "resolve_config", "serve_site"]
