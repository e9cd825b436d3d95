"""Error types raised by the kernel, router, builder and dev server."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence


class ErrorCode(str, Enum):
    """Stable identifiers attached to every :class:`DocsError`."""

    CONFIG_ERROR = "CONFIG_ERROR"
    PLUGIN_DUPLICATE = "PLUGIN_DUPLICATE"
    PLUGIN_ERROR = "PLUGIN_ERROR"
    KERNEL_DESTROYED = "KERNEL_DESTROYED"
    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"
    ROUTE_CONFLICT = "ROUTE_CONFLICT"
    BUILD_ERROR = "BUILD_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


class DocsError(RuntimeError):
    """Base class for failures surfaced to docsite callers."""

    code: ErrorCode = ErrorCode.BUILD_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context: Dict[str, Any] = dict(context or {})

    def format(self) -> str:
        """Render the error, its context and its cause for terminal output."""
        output = f"[{self.code.value}] {self.message}"
        if self.context:
            output += "\nContext: " + json.dumps(self.context, indent=2, default=str)
        cause = self.__cause__
        if cause is not None:
            output += f"\nCaused by: {cause}"
        return output


class ConfigError(DocsError):
    """Raised when docsite.yml cannot be read or has the wrong shape."""

    code = ErrorCode.CONFIG_ERROR


class DuplicateError(DocsError):
    """Raised when a plugin name is registered twice on one kernel."""

    code = ErrorCode.PLUGIN_DUPLICATE

    def __init__(self, name: str) -> None:
        super().__init__(f"Plugin '{name}' is already registered", context={"plugin": name})
        self.name = name


class LifecycleError(DocsError):
    """Raised when a destroyed kernel is asked to accept new work."""

    code = ErrorCode.KERNEL_DESTROYED


class ContentError(DocsError):
    """Raised when the content source directory is missing."""

    code = ErrorCode.CONTENT_NOT_FOUND


class RouteConflict(DocsError):
    """Raised when two content files resolve to the same URL."""

    code = ErrorCode.ROUTE_CONFLICT

    def __init__(self, path: str, files: Sequence[str]) -> None:
        joined = ", ".join(files)
        super().__init__(
            f"Route conflict at {path}: multiple files map to this route: {joined}",
            context={"path": path, "files": list(files)},
        )
        self.path = path
        self.files = list(files)


class PluginError(DocsError):
    """Wraps an exception raised inside a plugin hook or listener."""

    code = ErrorCode.PLUGIN_ERROR

    def __init__(self, event: str, plugin: str | None, cause: BaseException) -> None:
        owner = f"plugin '{plugin}'" if plugin else "listener"
        super().__init__(
            f"{owner} failed during {event}: {cause}",
            context={"event": event, "plugin": plugin},
        )
        self.event = event
        self.plugin = plugin
        self.__cause__ = cause


class BuildError(DocsError):
    """Wraps any unexpected failure during a build pass."""

    code = ErrorCode.BUILD_ERROR


class ServerError(DocsError):
    """Raised when the dev server cannot bind its listener."""

    code = ErrorCode.SERVER_ERROR


__all__ = [
    "BuildError",
    "ConfigError",
    "ContentError",
    "DocsError",
    "DuplicateError",
    "ErrorCode",
    "LifecycleError",
    "PluginError",
    "RouteConflict",
    "ServerError",
]
