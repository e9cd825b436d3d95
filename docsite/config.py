"""Configuration loading for docsite (docsite.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAMES = ("docsite.yml", "docsite.yaml")


@dataclass
class DevConfig:
    """Dev server settings from the ``dev`` block."""

    host: str = "localhost"
    port: int = 3000
    debounce_ms: int = 100


@dataclass
class PluginSpec:
    """A plugin requested by name, with factory options."""

    name: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SiteConfig:
    """Resolved site settings shared by the builder and dev server."""

    root: Path
    title: str = "Documentation"
    description: str = ""
    base: str = "/"
    lang: str = "en"
    src_dir: str = "docs"
    out_dir: str = "dist"
    templates_dir: Optional[Path] = None
    theme: Dict[str, Any] = field(default_factory=dict)
    plugins: List[PluginSpec] = field(default_factory=list)
    dev: DevConfig = field(default_factory=DevConfig)

    @property
    def src_path(self) -> Path:
        return self.root / self.src_dir

    @property
    def out_path(self) -> Path:
        return self.root / self.out_dir


def load_config(config_path: Path) -> SiteConfig:
    """Load configuration from ``config_path`` (a file or a project directory)."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SiteConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    config = SiteConfig(root=root)
    config.title = _as_str(data.get("title")) or config.title
    config.description = _as_str(data.get("description")) or ""
    config.base = _normalize_base(_as_str(data.get("base")) or "/")
    config.lang = _as_str(data.get("lang")) or config.lang
    config.src_dir = _as_str(data.get("src_dir")) or config.src_dir
    config.out_dir = _as_str(data.get("out_dir")) or config.out_dir
    config.theme = _as_dict(data.get("theme"))

    templates_dir = _as_str(config.theme.get("templates_dir"))
    if templates_dir:
        config.templates_dir = root / templates_dir

    config.plugins = _parse_plugins(data.get("plugins"))

    dev_data = _as_dict(data.get("dev"))
    if dev_data:
        defaults = DevConfig()
        config.dev = DevConfig(
            host=_as_str(dev_data.get("host")) or defaults.host,
            port=_as_int(dev_data.get("port"), defaults.port),
            debounce_ms=_as_int(dev_data.get("debounce_ms"), defaults.debounce_ms),
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        for name in CONFIG_FILENAMES:
            candidate = config_path / name
            if candidate.exists():
                return candidate.resolve()
        return (config_path / CONFIG_FILENAMES[0]).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _parse_plugins(value: Any) -> List[PluginSpec]:
    specs: List[PluginSpec] = []
    if not isinstance(value, Sequence) or isinstance(value, str):
        return specs
    for item in value:
        if isinstance(item, str):
            specs.append(PluginSpec(name=item))
        elif isinstance(item, dict) and _as_str(item.get("name")):
            specs.append(PluginSpec(name=str(item["name"]), options=_as_dict(item.get("options"))))
        else:
            raise ConfigError(f"Invalid plugin entry: {item!r}")
    return specs


def _normalize_base(base: str) -> str:
    if not base.startswith("/"):
        base = "/" + base
    if not base.endswith("/"):
        base = base + "/"
    return base


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


__all__ = ["ConfigError", "DevConfig", "PluginSpec", "SiteConfig", "load_config"]
