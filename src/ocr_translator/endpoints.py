"""Credential and endpoint resolution handed to the request layer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .config_schema import (
    DEFAULT_API_BASE_URL,
    DEFAULT_TRANSLATE_MODEL,
    DEFAULT_VISION_MODEL,
    TranslatorSettings,
)
from .logging_utils import get_logger, log_context

LOGGER = get_logger(__name__, component="Endpoints")

API_KEY_ENV = "OCR_TRANSLATOR_API_KEY"
API_KEY_FILE_PREFIX = "API-KEY"
DEFAULT_ENV_FILES: tuple[str, ...] = (".env", "env", "../.env", "../env")


class ApiKeyNotFoundError(LookupError):
    """No API key in the settings, the environment or any env file."""


@dataclass(frozen=True)
class Endpoint:
    api_key: str
    base_url: str
    model: str

    def __repr__(self) -> str:
        masked = "<unset>" if not self.api_key else f"...{self.api_key[-4:]}"
        return f"Endpoint(base_url={self.base_url!r}, model={self.model!r}, api_key={masked})"


@dataclass(frozen=True)
class BackendEndpoints:
    translate: Endpoint
    vision: Endpoint


def normalize_base_url(value: str | None, fallback: str = DEFAULT_API_BASE_URL) -> str:
    """Trim, fall back when empty, and drop trailing slashes."""
    trimmed = (value or "").strip()
    if not trimmed:
        trimmed = fallback
    return trimmed.rstrip("/")


def read_api_key(env_files: Iterable[str | os.PathLike[str]]) -> str:
    """Return the first ``API-KEY=...`` value found in ``env_files``."""
    for env_file in env_files:
        path = Path(env_file)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            continue
        except OSError as exc:
            LOGGER.warning(
                log_context(
                    "Unable to read env file.",
                    event="endpoints.env_file.unreadable",
                    path=str(path),
                    error=str(exc),
                )
            )
            continue
        for line in lines:
            line = line.strip()
            if not line.startswith(API_KEY_FILE_PREFIX):
                continue
            _, sep, value = line.partition("=")
            if sep and value.strip():
                LOGGER.debug("API key loaded from env file.", details={"path": str(path)})
                return value.strip()
    raise ApiKeyNotFoundError("could not load API key from any source")


def resolve_api_key(
    settings: TranslatorSettings,
    env_files: Iterable[str | os.PathLike[str]] = DEFAULT_ENV_FILES,
) -> str:
    """Settings override, then ``OCR_TRANSLATOR_API_KEY``, then env files."""
    override = settings.api_key_override.strip()
    if override:
        return override
    from_env = os.environ.get(API_KEY_ENV, "").strip()
    if from_env:
        return from_env
    return read_api_key(env_files)


def resolve_endpoints(settings: TranslatorSettings, api_key: str | None = None) -> BackendEndpoints:
    """Translate and vision endpoints; the vision side inherits what it leaves empty."""
    translate_key = (api_key if api_key is not None else settings.api_key_override).strip()
    translate_base = normalize_base_url(settings.api_base_url)
    vision_key = settings.vision_api_key_override.strip() or translate_key
    vision_base = normalize_base_url(settings.vision_api_base_url, fallback=translate_base)

    return BackendEndpoints(
        translate=Endpoint(
            api_key=translate_key,
            base_url=translate_base,
            model=settings.translate_model.strip() or DEFAULT_TRANSLATE_MODEL,
        ),
        vision=Endpoint(
            api_key=vision_key,
            base_url=vision_base,
            model=settings.vision_model.strip() or DEFAULT_VISION_MODEL,
        ),
    )


__all__ = [
    "API_KEY_ENV",
    "ApiKeyNotFoundError",
    "BackendEndpoints",
    "DEFAULT_ENV_FILES",
    "Endpoint",
    "normalize_base_url",
    "read_api_key",
    "resolve_api_key",
    "resolve_endpoints",
]
