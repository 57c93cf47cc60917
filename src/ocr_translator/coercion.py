"""Lenient value coercion for settings that arrive from JSON or the UI."""

from __future__ import annotations

from typing import Any

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def parse_bool(value: Any, default: bool) -> bool:
    """Convert ``value`` into a ``bool``.

    ``None`` means "not provided" and yields ``default``. Strings use the
    usual spellings; anything else falls back to Python truthiness.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    try:
        return bool(value)
    except Exception:  # objects with a broken __bool__/__len__
        return default


def text_or_default(value: Any, default: str) -> str:
    """Return ``value`` when it is a non-empty string, otherwise ``default``."""
    if isinstance(value, str) and value:
        return value
    return default


__all__ = ["parse_bool", "text_or_default"]
