"""Parse and canonicalize global hotkey chords such as ``Ctrl+Alt+T``."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import IntFlag

__all__ = [
    "HotkeyCombination",
    "HotkeyParseError",
    "Modifier",
    "format_combination",
    "normalize_combination",
    "parse_combination",
]


class HotkeyParseError(ValueError):
    """Raised when a chord cannot be registered as a global hotkey."""


class Modifier(IntFlag):
    NONE = 0
    ALT = 0x0001
    CTRL = 0x0002
    SHIFT = 0x0004
    WIN = 0x0008


# Canonical rendering order.
_MODIFIER_LABELS: tuple[tuple[Modifier, str], ...] = (
    (Modifier.CTRL, "Ctrl"),
    (Modifier.ALT, "Alt"),
    (Modifier.SHIFT, "Shift"),
    (Modifier.WIN, "Win"),
)

_MODIFIER_ALIASES: dict[str, Modifier] = {
    "alt": Modifier.ALT,
    "option": Modifier.ALT,
    "opt": Modifier.ALT,
    "ctrl": Modifier.CTRL,
    "control": Modifier.CTRL,
    "ctl": Modifier.CTRL,
    "shift": Modifier.SHIFT,
    "win": Modifier.WIN,
    "windows": Modifier.WIN,
    "super": Modifier.WIN,
    "meta": Modifier.WIN,
}

_NAMED_KEYS: dict[str, str] = {
    "space": "Space",
    "spacebar": "Space",
    "tab": "Tab",
    "enter": "Enter",
    "return": "Enter",
    "esc": "Esc",
    "escape": "Esc",
}

_FUNCTION_KEY = re.compile(r"^f(\d{1,2})$")

# Prefix users sometimes type before a key name ("key T").
_PREFIX_PATTERN = re.compile(r"^key\s+", re.IGNORECASE)


@dataclass(frozen=True)
class HotkeyCombination:
    modifiers: Modifier
    key: str

    def __str__(self) -> str:
        return format_combination(self)


def _strip_accents(value: str) -> str:
    return "".join(
        char
        for char in unicodedata.normalize("NFKD", value)
        if unicodedata.category(char) != "Mn"
    )


def _sanitize_token(token: str) -> str:
    token = token.strip().strip("\"'[](){}")
    token = _PREFIX_PATTERN.sub("", token).strip()
    return _strip_accents(re.sub(r"\s+", " ", token)).lower()


def _parse_key(token: str, original: str) -> str:
    if not token:
        raise HotkeyParseError("hotkey key is empty")
    if len(token) == 1 and token.isascii() and token.isalnum():
        return token.upper()
    if token in _NAMED_KEYS:
        return _NAMED_KEYS[token]
    match = _FUNCTION_KEY.match(token)
    if match and 1 <= int(match.group(1)) <= 24:
        return f"F{int(match.group(1))}"
    raise HotkeyParseError(f"unsupported hotkey key {original!r}")


def parse_combination(text: str | None) -> HotkeyCombination:
    """Split ``text`` on ``+``; the last part is the key, the rest modifiers."""
    if text is None or not str(text).strip():
        raise HotkeyParseError("hotkey combination is empty")

    parts = str(text).strip().split("+")
    key_part = parts[-1]
    if not key_part.strip():
        raise HotkeyParseError("hotkey key is missing")

    modifiers = Modifier.NONE
    for part in parts[:-1]:
        token = _sanitize_token(part)
        if not token:
            continue
        alias = _MODIFIER_ALIASES.get(token)
        if alias is None:
            raise HotkeyParseError(f"unsupported modifier {part.strip()!r}")
        modifiers |= alias

    return HotkeyCombination(modifiers=modifiers, key=_parse_key(_sanitize_token(key_part), key_part.strip()))


def format_combination(combination: HotkeyCombination) -> str:
    parts = [label for flag, label in _MODIFIER_LABELS if combination.modifiers & flag]
    parts.append(combination.key)
    return "+".join(parts)


def normalize_combination(text: str | None) -> str:
    """Canonical spelling of ``text``; raises :class:`HotkeyParseError`."""
    return format_combination(parse_combination(text))
