"""Pydantic schema for the translator settings and the wire-record boundary.

The wire record is whatever the shell persisted or the settings form sent:
camelCase keys, possibly written by an older release that did not know every
field yet. :func:`normalize` turns any such record into a complete
:class:`TranslatorSettings`; :func:`denormalize` turns it back.

Adding a setting means adding a field (and its entry in
:data:`DEFAULT_SETTINGS`); older records simply pick up the default.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .coercion import parse_bool, text_or_default
from .logging_utils import get_logger, log_context
from .prompts import (
    DEFAULT_EXTRACT_PROMPT,
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_TRANSLATE_PROMPT,
    DEFAULT_USE_VISION_FOR_TRANSLATION,
    PromptVariables,
)

LOGGER = get_logger(__name__, component="ConfigSchema")

DEFAULT_API_BASE_URL = "https://open.bigmodel.cn/api/paas/v4"
DEFAULT_TRANSLATE_MODEL = "glm-4.5-flash"
DEFAULT_VISION_MODEL = "glm-4v-flash"
DEFAULT_THEME = "system"
DEFAULT_HOTKEY = "Alt+T"

# Bump when defaults change; it is informational and never persisted.
DEFAULTS_VERSION = 3

DEFAULT_SETTINGS: dict[str, Any] = {
    "apiKeyOverride": "",
    "apiBaseUrl": DEFAULT_API_BASE_URL,
    "visionApiKeyOverride": "",
    "visionApiBaseUrl": DEFAULT_API_BASE_URL,
    "autoCopyResult": True,
    "keepWindowOnTop": False,
    "theme": DEFAULT_THEME,
    "showToastOnComplete": True,
    "enableStreamOutput": True,
    "hotkeyCombination": DEFAULT_HOTKEY,
    "extractPrompt": DEFAULT_EXTRACT_PROMPT,
    "translatePrompt": DEFAULT_TRANSLATE_PROMPT,
    "translateModel": DEFAULT_TRANSLATE_MODEL,
    "visionModel": DEFAULT_VISION_MODEL,
    "useVisionForTranslation": DEFAULT_USE_VISION_FOR_TRANSLATION,
    "sourceLanguage": DEFAULT_SOURCE_LANGUAGE,
    "targetLanguage": DEFAULT_TARGET_LANGUAGE,
}

_BOOL_FIELDS = (
    "auto_copy_result",
    "keep_window_on_top",
    "show_toast_on_complete",
    "enable_stream_output",
    "use_vision_for_translation",
)
_TEXT_FIELDS = (
    "api_key_override",
    "api_base_url",
    "vision_api_key_override",
    "vision_api_base_url",
    "theme",
    "hotkey_combination",
    "extract_prompt",
    "translate_prompt",
    "translate_model",
    "vision_model",
    "source_language",
    "target_language",
)


class TranslatorSettings(BaseModel):
    """Complete, immutable settings snapshot."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    api_key_override: str = Field(default="", alias="apiKeyOverride")
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, alias="apiBaseUrl")
    vision_api_key_override: str = Field(default="", alias="visionApiKeyOverride")
    vision_api_base_url: str = Field(default=DEFAULT_API_BASE_URL, alias="visionApiBaseUrl")
    auto_copy_result: bool = Field(default=True, alias="autoCopyResult")
    keep_window_on_top: bool = Field(default=False, alias="keepWindowOnTop")
    theme: str = Field(default=DEFAULT_THEME, alias="theme")
    show_toast_on_complete: bool = Field(default=True, alias="showToastOnComplete")
    enable_stream_output: bool = Field(default=True, alias="enableStreamOutput")
    hotkey_combination: str = Field(default=DEFAULT_HOTKEY, alias="hotkeyCombination")
    extract_prompt: str = Field(default=DEFAULT_EXTRACT_PROMPT, alias="extractPrompt")
    translate_prompt: str = Field(default=DEFAULT_TRANSLATE_PROMPT, alias="translatePrompt")
    translate_model: str = Field(default=DEFAULT_TRANSLATE_MODEL, alias="translateModel")
    vision_model: str = Field(default=DEFAULT_VISION_MODEL, alias="visionModel")
    use_vision_for_translation: bool = Field(
        default=DEFAULT_USE_VISION_FOR_TRANSLATION, alias="useVisionForTranslation"
    )
    source_language: str = Field(default=DEFAULT_SOURCE_LANGUAGE, alias="sourceLanguage")
    target_language: str = Field(default=DEFAULT_TARGET_LANGUAGE, alias="targetLanguage")

    @model_validator(mode="before")
    @classmethod
    def _fill_vision_endpoint(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return {}
        data = {key: value for key, value in data.items() if isinstance(key, str)}
        vision_base = _wire_value(data, "visionApiBaseUrl")
        if not (isinstance(vision_base, str) and vision_base):
            api_base = _wire_value(data, "apiBaseUrl")
            if isinstance(api_base, str) and api_base:
                data["visionApiBaseUrl"] = api_base
                data.pop("vision_api_base_url", None)
        return data

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _text_or_default(cls, value: Any, info: ValidationInfo) -> str:
        return text_or_default(value, _field_default(info.field_name))

    @field_validator(*_BOOL_FIELDS, mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any, info: ValidationInfo) -> bool:
        return parse_bool(value, _field_default(info.field_name))

    def prompt_variables(self) -> PromptVariables:
        return PromptVariables(
            source_language=self.source_language,
            target_language=self.target_language,
            use_vision_for_translation=self.use_vision_for_translation,
        )

    def with_updates(self, changes: Mapping[str, Any] | None = None, /, **fields: Any) -> "TranslatorSettings":
        """Return a fresh normalized snapshot with ``changes`` applied.

        Keys may be wire names or attribute names.
        """
        record = denormalize(self)
        for key, value in {**dict(changes or {}), **fields}.items():
            record[_WIRE_NAME_BY_ATTRIBUTE.get(key, key)] = value
        return normalize(record)


_WIRE_NAME_BY_ATTRIBUTE: dict[str, str] = {
    name: field.alias or name for name, field in TranslatorSettings.model_fields.items()
}
_ATTRIBUTE_BY_WIRE_NAME: dict[str, str] = {
    wire: name for name, wire in _WIRE_NAME_BY_ATTRIBUTE.items()
}


def _wire_value(data: Mapping[str, Any], wire_name: str) -> Any:
    value = data.get(wire_name)
    if value is None:
        value = data.get(_ATTRIBUTE_BY_WIRE_NAME[wire_name])
    return value


def _field_default(field_name: str | None) -> Any:
    return DEFAULT_SETTINGS[_WIRE_NAME_BY_ATTRIBUTE[field_name]]


def wire_fields() -> tuple[str, ...]:
    """Wire names of every setting, in declaration order."""
    return tuple(_WIRE_NAME_BY_ATTRIBUTE.values())


def normalize_with_warnings(raw: Any) -> tuple[TranslatorSettings, list[str]]:
    """Like :func:`normalize` but also report fields that had to be reset."""
    warnings: list[str] = []
    payload: dict[str, Any] = dict(raw) if isinstance(raw, Mapping) else {}
    if raw is not None and not isinstance(raw, Mapping):
        warnings.append(f"Settings record of type {type(raw).__name__} ignored; using defaults.")

    reset: set[str] = set()
    while True:
        try:
            return TranslatorSettings.model_validate(payload), warnings
        except ValidationError as exc:  # pragma: no cover - validators coerce everything
            progressed = False
            for error in exc.errors():
                loc = error.get("loc") or ()
                if not loc:
                    continue
                key = str(loc[0])
                wire = _WIRE_NAME_BY_ATTRIBUTE.get(key, key)
                if wire not in DEFAULT_SETTINGS or wire in reset:
                    continue
                payload.pop(_ATTRIBUTE_BY_WIRE_NAME[wire], None)
                payload[wire] = copy.deepcopy(DEFAULT_SETTINGS[wire])
                reset.add(wire)
                progressed = True
                warnings.append(f"Invalid value for '{wire}': {error.get('msg')}. Using default instead.")
            if not progressed:
                LOGGER.error(
                    log_context(
                        "Settings record could not be validated; falling back to defaults.",
                        event="config.normalize.fallback",
                        error=str(exc),
                    )
                )
                return TranslatorSettings(), warnings


def normalize(raw: Any) -> TranslatorSettings:
    """Build a complete :class:`TranslatorSettings` from any wire record.

    Missing, empty or wrongly-typed values take their defaults; unknown keys
    are ignored. ``visionApiBaseUrl`` falls back to ``apiBaseUrl`` before the
    static default. Never raises.
    """
    settings, warnings = normalize_with_warnings(raw)
    for warning in warnings:
        LOGGER.warning(log_context(warning, event="config.normalize.defaulted"))
    return settings


def denormalize(settings: TranslatorSettings) -> dict[str, Any]:
    """Wire record (camelCase, JSON-serializable) for ``settings``."""
    return settings.model_dump(by_alias=True)


def default_settings() -> TranslatorSettings:
    return normalize({})


__all__ = [
    "DEFAULTS_VERSION",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_HOTKEY",
    "DEFAULT_SETTINGS",
    "DEFAULT_THEME",
    "DEFAULT_TRANSLATE_MODEL",
    "DEFAULT_VISION_MODEL",
    "TranslatorSettings",
    "default_settings",
    "denormalize",
    "normalize",
    "normalize_with_warnings",
    "wire_fields",
]
