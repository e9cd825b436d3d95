"""Dev server with live reload."""

from .app import HMR_PATH, create_app
from .dev import DevServer, DevServerOptions, HmrClient, create_dev_server
from .watcher import Debouncer, PollingWatcher

__all__ = [
    "HMR_PATH",
    "Debouncer",
    "DevServer",
    "DevServerOptions",
    "HmrClient",
    "PollingWatcher",
    "create_app",
    "create_dev_server",
]
