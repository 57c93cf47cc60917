"""Language codes understood by the translator and their display names."""

from __future__ import annotations

from typing import Any

AUTO_LANGUAGE = "auto"

# Order is the order shown in language pickers.
LANGUAGE_NAMES: dict[str, str] = {
    AUTO_LANGUAGE: "Auto Detect",
    "zh-CN": "Simplified Chinese",
    "zh-TW": "Traditional Chinese",
    "en": "English",
    "ja": "Japanese",
    "ko": "Korean",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "ru": "Russian",
    "ar": "Arabic",
    "pt": "Portuguese",
    "it": "Italian",
    "th": "Thai",
    "vi": "Vietnamese",
}


def display_name(code: Any) -> str:
    """Return the human readable name for ``code``.

    Unknown codes are returned unchanged so a custom code still reads
    sensibly inside a prompt.
    """
    if code is None:
        return ""
    if not isinstance(code, str):
        code = str(code)
    return LANGUAGE_NAMES.get(code, code)


def language_options(*, include_auto: bool = True) -> list[tuple[str, str]]:
    """``(code, name)`` pairs for pickers; ``auto`` only makes sense as a source."""
    return [
        (code, name)
        for code, name in LANGUAGE_NAMES.items()
        if include_auto or code != AUTO_LANGUAGE
    ]


__all__ = ["AUTO_LANGUAGE", "LANGUAGE_NAMES", "display_name", "language_options"]
