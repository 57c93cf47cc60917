"""Settings persistence: JSON snapshots in the user profile directory."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .config_schema import (
    DEFAULT_HOTKEY,
    TranslatorSettings,
    denormalize,
    normalize_with_warnings,
)
from .endpoints import normalize_base_url
from .hotkey_normalization import HotkeyParseError, normalize_combination
from .logging_utils import get_logger, log_context, log_duration

LOGGER = get_logger("ocr_translator.config", component="SettingsStore")

APP_NAME = "ocr-translator"
PROFILE_DIR_ENV = "OCR_TRANSLATOR_PROFILE_DIR"
SETTINGS_FILE_NAME = "settings.json"
SECRETS_FILE_NAME = "secrets.json"

# Wire keys kept out of the main settings file.
SECRET_KEYS: tuple[str, ...] = ("apiKeyOverride", "visionApiKeyOverride")


class SettingsPersistenceError(RuntimeError):
    """Raised when the settings snapshot cannot be written to disk."""


def resolve_profile_dir() -> Path:
    override = os.getenv(PROFILE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        base = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return (base / APP_NAME).expanduser()


def sanitize_for_persistence(settings: TranslatorSettings) -> TranslatorSettings:
    """Tighten a snapshot before it is written.

    Keys and model names are trimmed, base URLs lose trailing slashes and an
    unparseable hotkey is replaced by the default chord. Whitespace-only
    prompts revert to the shipped templates.
    """
    api_base = normalize_base_url(settings.api_base_url)
    vision_base = normalize_base_url(settings.vision_api_base_url, fallback=api_base)
    try:
        hotkey = normalize_combination(settings.hotkey_combination)
    except HotkeyParseError as exc:
        LOGGER.warning(
            log_context(
                "Invalid hotkey replaced with the default chord.",
                event="config.hotkey.invalid",
                hotkey=settings.hotkey_combination,
                error=str(exc),
            )
        )
        hotkey = DEFAULT_HOTKEY

    return settings.with_updates(
        apiKeyOverride=settings.api_key_override.strip(),
        visionApiKeyOverride=settings.vision_api_key_override.strip(),
        apiBaseUrl=api_base,
        visionApiBaseUrl=vision_base,
        translateModel=settings.translate_model.strip(),
        visionModel=settings.vision_model.strip(),
        hotkeyCombination=hotkey,
        extractPrompt=settings.extract_prompt if settings.extract_prompt.strip() else "",
        translatePrompt=settings.translate_prompt if settings.translate_prompt.strip() else "",
    )


def _compute_hash(data: Mapping[str, Any]) -> str:
    return hashlib.sha256(json.dumps(data, sort_keys=True).encode("utf-8")).hexdigest()


class SettingsStore:
    """Read-current-snapshot / write-full-snapshot access to the settings files."""

    def __init__(
        self,
        config_file: str | os.PathLike[str] | None = None,
        secrets_file: str | os.PathLike[str] | None = None,
    ) -> None:
        profile_dir = resolve_profile_dir()
        self.config_path = Path(config_file).expanduser() if config_file else profile_dir / SETTINGS_FILE_NAME
        if secrets_file:
            self.secrets_path = Path(secrets_file).expanduser()
        else:
            self.secrets_path = self.config_path.parent / SECRETS_FILE_NAME
        self._lock = threading.RLock()
        self._config_hash: str | None = None
        self._secrets_hash: str | None = None

    def _read_json(self, path: Path, *, label: str) -> dict[str, Any]:
        if not path.exists():
            LOGGER.info(
                log_context(
                    f"{label.capitalize()} file not found; using defaults.",
                    event=f"config.{label}.load.missing",
                    path=str(path),
                )
            )
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            LOGGER.error(
                log_context(
                    f"Error decoding {label} file; ignoring its contents.",
                    event=f"config.{label}.load.invalid_json",
                    path=str(path),
                    error=str(exc),
                ),
                exc_info=True,
            )
            return {}
        except OSError as exc:
            LOGGER.error(
                log_context(
                    f"Unable to read {label} file.",
                    event=f"config.{label}.load.failure",
                    path=str(path),
                    error=str(exc),
                ),
                exc_info=True,
            )
            return {}
        if not isinstance(data, dict):
            LOGGER.warning(
                log_context(
                    f"{label.capitalize()} file does not hold an object; ignoring it.",
                    event=f"config.{label}.load.not_object",
                    path=str(path),
                    kind=type(data).__name__,
                )
            )
            return {}
        return data

    def load(self) -> TranslatorSettings:
        """Current snapshot; never raises."""
        with self._lock:
            public = self._read_json(self.config_path, label="settings")
            secrets = self._read_json(self.secrets_path, label="secrets")
            self._config_hash = _compute_hash(public) if public else None
            self._secrets_hash = _compute_hash(secrets) if secrets else None

            record = dict(public)
            for key in SECRET_KEYS:
                if key in secrets:
                    record[key] = secrets[key]

            settings, warnings = normalize_with_warnings(record)
            for warning in warnings:
                LOGGER.warning(log_context(warning, event="config.load.defaulted"))
            LOGGER.debug(
                "Settings snapshot loaded.",
                details={"path": str(self.config_path), "keys": len(record)},
            )
            return settings

    def _write_json(self, path: Path, data: Mapping[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        try:
            os.chmod(path, 0o600)
        except OSError as exc:  # pragma: no cover - filesystems without POSIX modes
            LOGGER.debug("Could not restrict file permissions.", details={"path": str(path), "error": str(exc)})

    def save(self, settings: TranslatorSettings) -> TranslatorSettings:
        """Write the full snapshot and return it as it will load next time."""
        with self._lock:
            sanitized = sanitize_for_persistence(settings)
            record = denormalize(sanitized)
            secrets = {key: record.pop(key) for key in SECRET_KEYS}
            config_hash = _compute_hash(record)
            secrets_hash = _compute_hash(secrets)

            with log_duration(
                LOGGER,
                "Settings snapshot persisted.",
                event="config.save",
                details={"path": str(self.config_path)},
            ) as collected:
                try:
                    wrote_config = config_hash != self._config_hash or not self.config_path.exists()
                    if wrote_config:
                        self._write_json(self.config_path, record)
                        self._config_hash = config_hash
                    wrote_secrets = secrets_hash != self._secrets_hash or not self.secrets_path.exists()
                    if wrote_secrets:
                        self._write_json(self.secrets_path, secrets)
                        self._secrets_hash = secrets_hash
                except OSError as exc:
                    raise SettingsPersistenceError(
                        f"Unable to persist settings to {self.config_path}: {exc}"
                    ) from exc
                collected["wrote_config"] = wrote_config
                collected["wrote_secrets"] = wrote_secrets
            return sanitized

    def update(self, changes: Mapping[str, Any]) -> TranslatorSettings:
        """Apply wire-shaped ``changes`` to the current snapshot and save it."""
        with self._lock:
            return self.save(self.load().with_updates(changes))


__all__ = [
    "SECRET_KEYS",
    "SettingsPersistenceError",
    "SettingsStore",
    "resolve_profile_dir",
    "sanitize_for_persistence",
]
