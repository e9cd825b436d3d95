"""YAML frontmatter: nested mappings and lists beyond the built-in parser."""

from __future__ import annotations

from typing import List

import yaml

from ..frontmatter import split_frontmatter
from ..kernel import Plugin
from ..logging import get_logger
from ..models import ContentFile

logger = get_logger("plugins.frontmatter")


def frontmatter_plugin() -> Plugin:
    def on_content_load(files: List[ContentFile]) -> List[ContentFile]:
        for file in files:
            try:
                text = file.path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Cannot re-read %s: %s", file.relative_path, exc)
                continue
            block, _ = split_frontmatter(text)
            if block is None:
                continue
            try:
                data = yaml.safe_load(block)
            except yaml.YAMLError as exc:
                logger.warning("Invalid YAML frontmatter in %s: %s", file.relative_path, exc)
                continue
            if isinstance(data, dict):
                file.frontmatter = {str(key): value for key, value in data.items()}
        return files

    return Plugin(name="frontmatter", on_content_load=on_content_load)


__all__ = ["frontmatter_plugin"]
