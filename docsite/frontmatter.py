"""Minimal frontmatter extraction used by the router and builder.

Only flat ``key: value`` lines are understood here; nested blocks are the
job of :func:`docsite.plugins.frontmatter_plugin`.
"""

from __future__ import annotations

import math
import re
from typing import List, Tuple

from .models import Frontmatter, FrontmatterValue

_BLOCK_PATTERN = re.compile(r"\A---\n(.*?)\n---\n(.*)\Z", re.DOTALL)
_LINE_PATTERN = re.compile(r"^(\s*)(\w+):\s*(.*)$")
_DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_RADIX_PATTERN = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")

_MISSING = object()


def split_frontmatter(text: str) -> Tuple[str | None, str]:
    """Return ``(block, body)``; ``block`` is ``None`` when there is no frontmatter."""
    match = _BLOCK_PATTERN.match(text)
    if not match:
        return None, text
    return match.group(1), match.group(2)


def extract_frontmatter(text: str) -> Tuple[Frontmatter, str]:
    """Split ``text`` and parse its frontmatter block into typed values."""
    block, body = split_frontmatter(text)
    if block is None:
        return {}, text
    return parse_frontmatter(block.strip()), body


def parse_frontmatter(block: str) -> Frontmatter:
    result: Frontmatter = {}
    for line in block.split("\n"):
        match = _LINE_PATTERN.match(line)
        if not match:
            continue
        value = parse_value(match.group(3).strip())
        if value is not _MISSING:
            result[match.group(2)] = value  # type: ignore[assignment]
    return result


def parse_value(value: str) -> FrontmatterValue | object:
    """Type a raw scalar.

    Precedence: quoted string, boolean, null, number, ``[a, b]`` list, raw
    string. An empty value yields a sentinel so the key is left out.
    """
    if not value:
        return _MISSING
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    if value == "true":
        return True
    if value == "false":
        return False
    if value in {"null", "~"}:
        return None

    number = _parse_number(value)
    if number is not None:
        return number

    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        items: List[FrontmatterValue] = []
        for part in inner.split(","):
            item = parse_value(part.strip())
            items.append(None if item is _MISSING else item)  # type: ignore[arg-type]
        return items

    return value


def _parse_number(value: str) -> int | float | None:
    if _INTEGER_PATTERN.match(value):
        return int(value)
    if _DECIMAL_PATTERN.match(value):
        return float(value)
    if _RADIX_PATTERN.match(value):
        return int(value, 0)
    stripped = value.lstrip("+-")
    if stripped == "Infinity":
        return -math.inf if value.startswith("-") else math.inf
    return None


__all__ = ["extract_frontmatter", "parse_frontmatter", "parse_value", "split_frontmatter"]
