"""Micro-kernel: plugin registry and lifecycle event dispatch."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, TypeVar, Union

from .errors import DuplicateError, LifecycleError, PluginError
from .logging import get_logger

HookFn = Callable[..., Any]
T = TypeVar("T")


class Event(Enum):
    """Lifecycle events and the hook attribute each one dispatches to.

    Payloads (positional):

    ==================== =========================================
    ON_CONFIG            ``(config)`` -> config
    ON_CONTENT_LOAD      ``(files)`` -> files
    ON_MARKDOWN_PARSE    ``(ast, file)`` -> ast
    ON_HTML_RENDER       ``(html, file)`` -> html
    ON_BUILD_START       ``()``
    ON_BUILD_END         ``(manifest)``
    ON_DEV_SERVER        ``(server)``
    ON_FILE_CHANGE       ``(path, kind)``
    ON_DESTROY           ``()``
    ON_ERROR             ``(error)``
    ==================== =========================================

    Transform events thread their first argument through every listener.
    """

    ON_CONFIG = ("on_config", True)
    ON_CONTENT_LOAD = ("on_content_load", True)
    ON_MARKDOWN_PARSE = ("on_markdown_parse", True)
    ON_HTML_RENDER = ("on_html_render", True)
    ON_BUILD_START = ("on_build_start", False)
    ON_BUILD_END = ("on_build_end", False)
    ON_DEV_SERVER = ("on_dev_server", False)
    ON_FILE_CHANGE = ("on_file_change", False)
    ON_DESTROY = ("on_destroy", False)
    ON_ERROR = ("on_error", False)

    def __init__(self, hook: str, transforms: bool) -> None:
        self.hook = hook
        self.transforms = transforms


@dataclass
class Plugin:
    """A named bundle of optional lifecycle hooks.

    Every hook is independently optional; a missing hook is a no-op. Hooks may
    be plain callables or coroutine functions.
    """

    name: str
    version: str = "1.0.0"
    dependencies: List[str] = field(default_factory=list)
    on_config: Optional[HookFn] = None
    on_content_load: Optional[HookFn] = None
    on_markdown_parse: Optional[HookFn] = None
    on_html_render: Optional[HookFn] = None
    on_build_start: Optional[HookFn] = None
    on_build_end: Optional[HookFn] = None
    on_dev_server: Optional[HookFn] = None
    on_file_change: Optional[HookFn] = None
    on_destroy: Optional[HookFn] = None
    on_error: Optional[HookFn] = None

    def hook(self, event: Event) -> Optional[HookFn]:
        return getattr(self, event.hook)


@dataclass
class _Listener:
    callback: HookFn
    plugin: Optional[str] = None


class Kernel:
    """Holds registered plugins and dispatches lifecycle events in order.

    Once :meth:`destroy` has run the kernel is inert: registration raises,
    subscriptions and emits are ignored.
    """

    def __init__(self) -> None:
        self._plugins: Dict[str, Plugin] = {}
        self._order: List[str] = []
        self._listeners: Dict[Event, List[_Listener]] = {}
        self._destroyed = False
        self._pending: Set[asyncio.Task] = set()
        self.logger = get_logger("kernel")

    # ------------------------------------------------------------------
    # Registry

    def register(self, plugin: Plugin) -> "Kernel":
        """Add ``plugin`` and subscribe its hooks; returns the kernel for chaining."""
        if self._destroyed:
            raise LifecycleError(f"Cannot register plugin '{plugin.name}' on a destroyed kernel")
        if plugin.name in self._plugins:
            raise DuplicateError(plugin.name)

        self._plugins[plugin.name] = plugin
        self._order.append(plugin.name)
        for event in Event:
            if event is Event.ON_DESTROY:
                # Teardown runs from destroy() in reverse registration order.
                continue
            hook = plugin.hook(event)
            if hook is not None:
                self._subscribe(event, _Listener(hook, plugin.name))
        self.logger.debug("Registered plugin %s@%s", plugin.name, plugin.version)
        return self

    use = register

    def get_plugin(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def list_plugins(self) -> Tuple[Plugin, ...]:
        """Return registered plugins in registration order."""
        return tuple(self._plugins[name] for name in self._order)

    @property
    def plugin_order(self) -> List[str]:
        return list(self._order)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Listeners

    def on(self, event: Event, callback: HookFn) -> None:
        if self._destroyed:
            return
        self._subscribe(event, _Listener(callback))

    def off(self, event: Event, callback: HookFn) -> None:
        listeners = self._listeners.get(event)
        if not listeners:
            return
        for index, listener in enumerate(listeners):
            if listener.callback == callback:
                del listeners[index]
                return

    def _subscribe(self, event: Event, listener: _Listener) -> None:
        listeners = self._listeners.setdefault(event, [])
        if any(existing.callback == listener.callback for existing in listeners):
            return
        listeners.append(listener)

    async def emit(self, event: Event, *args: Any) -> Any:
        """Run every listener for ``event`` sequentially, in subscription order.

        Listener failures are collected and re-emitted one by one as
        ``ON_ERROR`` once the whole pass has finished. For transform events the
        (possibly replaced) first argument is returned.
        """
        if self._destroyed:
            return args[0] if event.transforms and args else None
        return await self._dispatch(event, args)

    async def _dispatch(self, event: Event, args: Tuple[Any, ...]) -> Any:
        value = args[0] if args else None
        errors: List[PluginError] = []

        for listener in list(self._listeners.get(event, ())):
            call_args = (value, *args[1:]) if event.transforms else args
            try:
                result = listener.callback(*call_args)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                if event is Event.ON_ERROR:
                    self.logger.warning("Error listener failed: %s", exc)
                    continue
                errors.append(PluginError(event.hook, listener.plugin, exc))
                continue
            if event.transforms and result is not None:
                value = result

        for error in errors:
            self.logger.warning("%s", error.message)
            await self._dispatch(Event.ON_ERROR, (error,))

        return value if event.transforms else None

    # ------------------------------------------------------------------
    # Error boundaries

    def run_with_error_boundary(self, fn: Callable[[], T]) -> T:
        """Call ``fn``; on failure emit ``ON_ERROR`` then re-raise."""
        try:
            return fn()
        except Exception as exc:
            self._report_from_sync(exc)
            raise

    async def run_with_error_boundary_async(
        self, fn: Callable[[], Union[T, Awaitable[T]]]
    ) -> T:
        """Await ``fn``; on failure emit ``ON_ERROR`` then re-raise."""
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
            return result  # type: ignore[return-value]
        except Exception as exc:
            await self.emit(Event.ON_ERROR, exc)
            raise

    def _report_from_sync(self, exc: Exception) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.emit(Event.ON_ERROR, exc))
            return
        task = loop.create_task(self.emit(Event.ON_ERROR, exc))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Teardown

    async def destroy(self) -> None:
        """Tear down plugins in reverse registration order. Idempotent."""
        if self._destroyed:
            return
        self._destroyed = True

        for name in reversed(self._order):
            plugin = self._plugins.get(name)
            if plugin is None or plugin.on_destroy is None:
                continue
            try:
                result = plugin.on_destroy()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                error = PluginError(Event.ON_DESTROY.hook, name, exc)
                self.logger.warning("%s", error.message)
                await self._dispatch(Event.ON_ERROR, (error,))

        self._plugins.clear()
        self._listeners.clear()
        self._order.clear()
        self.logger.debug("Kernel destroyed")


__all__ = ["Event", "HookFn", "Kernel", "Plugin"]
