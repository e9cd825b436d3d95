"""Static documentation site generator: plugin kernel, router, builder and dev server."""

from .builder import Builder, build
from .config import SiteConfig, load_config
from .errors import DocsError
from .kernel import Event, Kernel, Plugin
from .router import Router, create_router
from .server import DevServer, DevServerOptions
from .site import build_site, create_kernel, serve_site

__version__ = "0.1.0"

__all__ = [
    "Builder",
    "DevServer",
    "DevServerOptions",
    "DocsError",
    "Event",
    "Kernel",
    "Plugin",
    "Router",
    "SiteConfig",
    "build",
    "build_site",
    "create_kernel",
    "create_router",
    "load_config",
    "serve_site",
]
