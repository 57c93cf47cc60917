"""Collapse/expand state of the settings panel sections.

Loaded once from disk, written through on every change. Only booleans for
known sections are honoured; anything else in the stored file is ignored.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from threading import RLock

from .config_manager import resolve_profile_dir
from .logging_utils import get_logger, log_context

LOGGER = get_logger("ocr_translator.ui_state", component="SettingsNavigation")

SECTION_STORAGE_KEY = "settings-panel:sections"
UI_STATE_FILE_NAME = "ui_state.json"

SECTION_DEFAULTS: dict[str, bool] = {
    "api": True,
    "models": False,
    "behavior": True,
    "prompts": False,
    "hotkey": True,
    "theme": True,
}


@dataclass(frozen=True)
class SettingsCategory:
    key: str
    label: str
    description: str
    sections: tuple[str, ...]


SETTINGS_CATEGORIES: tuple[SettingsCategory, ...] = (
    SettingsCategory(
        "integration",
        "Service",
        "API credentials and model selection.",
        ("api", "models"),
    ),
    SettingsCategory(
        "experience",
        "Workflow",
        "What happens after a translation, and the prompts used for it.",
        ("behavior", "prompts"),
    ),
    SettingsCategory("productivity", "Shortcuts", "Global hotkey.", ("hotkey",)),
    SettingsCategory("appearance", "Appearance", "Theme preferences.", ("theme",)),
)


class SettingsNavigation:
    """Active category plus per-section expanded flags."""

    def __init__(self, store_path: str | os.PathLike[str] | None = None) -> None:
        self.store_path = Path(store_path) if store_path else resolve_profile_dir() / UI_STATE_FILE_NAME
        self._lock = RLock()
        self._sections = dict(SECTION_DEFAULTS)
        self._active = SETTINGS_CATEGORIES[0].key
        self._restore()

    # -- persistence ---------------------------------------------------

    def _read_store(self) -> dict:
        if not self.store_path.exists():
            return {}
        try:
            data = json.loads(self.store_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning(
                log_context(
                    "Failed to restore section state.",
                    event="ui_state.restore.failure",
                    path=str(self.store_path),
                    error=str(exc),
                )
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _restore(self) -> None:
        stored = self._read_store().get(SECTION_STORAGE_KEY)
        if not isinstance(stored, dict):
            return
        for key in SECTION_DEFAULTS:
            value = stored.get(key)
            if isinstance(value, bool):
                self._sections[key] = value

    def _persist(self) -> None:
        data = self._read_store()
        data[SECTION_STORAGE_KEY] = dict(self._sections)
        try:
            self.store_path.parent.mkdir(parents=True, exist_ok=True)
            self.store_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning(
                log_context(
                    "Failed to save section state.",
                    event="ui_state.persist.failure",
                    path=str(self.store_path),
                    error=str(exc),
                )
            )

    # -- queries -------------------------------------------------------

    @property
    def sections(self) -> dict[str, bool]:
        with self._lock:
            return dict(self._sections)

    @property
    def active_category(self) -> str:
        return self._active

    @property
    def current_category(self) -> SettingsCategory:
        for category in SETTINGS_CATEGORIES:
            if category.key == self._active:
                return category
        return SETTINGS_CATEGORIES[0]

    @property
    def visible_sections(self) -> tuple[str, ...]:
        return self.current_category.sections

    def is_category_active(self, name: str) -> bool:
        return self._active == name

    def is_section_visible(self, name: str) -> bool:
        return name in self.visible_sections

    def is_section_expanded(self, name: str) -> bool:
        return self._sections.get(name, True)

    # -- mutations -----------------------------------------------------

    def toggle_section(self, name: str) -> bool:
        with self._lock:
            expanded = not self.is_section_expanded(name)
            self._sections[name] = expanded
            self._persist()
            return expanded

    def activate_category(self, name: str) -> None:
        """Switch category; a category with every section collapsed gets its first one opened."""
        with self._lock:
            if self._active == name:
                return
            target = next((c for c in SETTINGS_CATEGORIES if c.key == name), None)
            if target is None:
                LOGGER.debug("Ignoring unknown settings category.", details={"category": name})
                return
            self._active = name
            if target.sections and not any(self._sections.get(key) for key in target.sections):
                self._sections[target.sections[0]] = True
                self._persist()


__all__ = [
    "SECTION_DEFAULTS",
    "SECTION_STORAGE_KEY",
    "SETTINGS_CATEGORIES",
    "SettingsCategory",
    "SettingsNavigation",
]
