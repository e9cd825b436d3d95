"""Plugin factories and discovery."""

from __future__ import annotations

from importlib import metadata
from typing import Any, Callable, Dict, Iterable, List, Sequence

from ..config import PluginSpec
from ..kernel import HookFn, Plugin
from .frontmatter import frontmatter_plugin
from .mermaid import mermaid_plugin
from .toc import toc_plugin

_ENTRY_POINT_GROUP = "docsite.plugins"

_BUILTIN_FACTORIES: Dict[str, Callable[..., Plugin]] = {
    "frontmatter": frontmatter_plugin,
    "toc": toc_plugin,
    "mermaid": mermaid_plugin,
}


def content_plugin(name: str, transform: HookFn, *, version: str = "1.0.0") -> Plugin:
    """Plugin whose only hook rewrites the loaded file list."""
    return Plugin(name=name, version=version, on_content_load=transform)


def markdown_plugin(name: str, transform: HookFn, *, version: str = "1.0.0") -> Plugin:
    """Plugin whose only hook receives ``(ast, file)`` and may return a new tree."""
    return Plugin(name=name, version=version, on_markdown_parse=transform)


def html_plugin(name: str, transform: HookFn, *, version: str = "1.0.0") -> Plugin:
    return Plugin(name=name, version=version, on_html_render=transform)


def config_plugin(name: str, transform: HookFn, *, version: str = "1.0.0") -> Plugin:
    return Plugin(name=name, version=version, on_config=transform)


def discover_plugins(specs: Sequence[PluginSpec]) -> List[Plugin]:
    """Instantiate the requested plugins in the order given.

    Names resolve against the built-in factories first, then against the
    ``docsite.plugins`` entry-point group.
    """
    if not specs:
        return []

    factories: Dict[str, Any] = dict(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        factories.setdefault(entry.name, entry)

    unknown = sorted({spec.name for spec in specs if spec.name not in factories})
    if unknown:
        raise ValueError(f"Unknown plugins requested: {', '.join(unknown)}")

    plugins: List[Plugin] = []
    for spec in specs:
        factory = factories[spec.name]
        if isinstance(factory, metadata.EntryPoint):
            try:
                factory = factory.load()
            except Exception as exc:
                raise RuntimeError(f"Failed to load plugin entry point '{spec.name}': {exc}") from exc
        plugins.append(_coerce_plugin(spec, factory))
    return plugins


def _coerce_plugin(spec: PluginSpec, obj: Any) -> Plugin:
    if isinstance(obj, Plugin):
        return obj
    if callable(obj):
        try:
            instance = obj(**spec.options)
        except TypeError as exc:
            raise ValueError(f"Invalid options for plugin '{spec.name}': {exc}") from exc
        if isinstance(instance, Plugin):
            return instance
    raise TypeError(f"Plugin entry point '{spec.name}' must be a Plugin or a factory returning one")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "config_plugin",
    "content_plugin",
    "discover_plugins",
    "frontmatter_plugin",
    "html_plugin",
    "markdown_plugin",
    "mermaid_plugin",
    "toc_plugin",
]
