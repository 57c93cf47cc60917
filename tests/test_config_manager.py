import json
import os

import pytest

from ocr_translator import config_manager
from ocr_translator.config_manager import (
    SettingsPersistenceError,
    SettingsStore,
    resolve_profile_dir,
    sanitize_for_persistence,
)
from ocr_translator.config_schema import DEFAULT_HOTKEY, DEFAULT_SETTINGS, normalize
from ocr_translator.prompts import DEFAULT_EXTRACT_PROMPT


def _store(tmp_path):
    return SettingsStore(config_file=tmp_path / "settings.json", secrets_file=tmp_path / "secrets.json")


def test_profile_dir_env_override(profile_dir):
    assert resolve_profile_dir() == profile_dir


def test_default_paths_live_in_profile_dir(profile_dir):
    store = SettingsStore()
    assert store.config_path == profile_dir / "settings.json"
    assert store.secrets_path == profile_dir / "secrets.json"


def test_missing_file_loads_defaults(tmp_path):
    settings = _store(tmp_path).load()
    assert settings == normalize({})


def test_save_then_load_round_trip(tmp_path):
    store = _store(tmp_path)
    saved = store.save(normalize({"theme": "dark", "targetLanguage": "en", "autoCopyResult": False}))
    assert _store(tmp_path).load() == saved
    assert saved.theme == "dark"


def test_api_keys_are_written_to_secrets_file(tmp_path):
    store = _store(tmp_path)
    store.save(normalize({"apiKeyOverride": " sk-123 ", "visionApiKeyOverride": "sk-vis"}))

    public = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    secrets = json.loads((tmp_path / "secrets.json").read_text(encoding="utf-8"))
    assert "apiKeyOverride" not in public
    assert "visionApiKeyOverride" not in public
    assert secrets == {"apiKeyOverride": "sk-123", "visionApiKeyOverride": "sk-vis"}

    loaded = _store(tmp_path).load()
    assert loaded.api_key_override == "sk-123"
    assert loaded.vision_api_key_override == "sk-vis"


def test_invalid_json_loads_defaults(tmp_path):
    (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")
    assert _store(tmp_path).load() == normalize({})


def test_non_object_file_loads_defaults(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps(["dark"]), encoding="utf-8")
    assert _store(tmp_path).load() == normalize({})


def test_partial_file_is_completed_on_load(tmp_path):
    (tmp_path / "settings.json").write_text(
        json.dumps({"theme": "light", "useVisionForTranslation": "false"}), encoding="utf-8"
    )
    settings = _store(tmp_path).load()
    assert settings.theme == "light"
    assert settings.use_vision_for_translation is False
    assert settings.hotkey_combination == DEFAULT_SETTINGS["hotkeyCombination"]


def test_sanitize_trims_and_canonicalizes():
    settings = normalize(
        {
            "apiBaseUrl": "https://api.example.com/v1/ ",
            "visionApiBaseUrl": "https://vision.example.com//",
            "translateModel": " glm-4 ",
            "hotkeyCombination": "shift + ctrl + q",
        }
    )
    sanitized = sanitize_for_persistence(settings)
    assert sanitized.api_base_url == "https://api.example.com/v1"
    assert sanitized.vision_api_base_url == "https://vision.example.com"
    assert sanitized.translate_model == "glm-4"
    assert sanitized.hotkey_combination == "Ctrl+Shift+Q"


def test_sanitize_replaces_invalid_hotkey():
    sanitized = sanitize_for_persistence(normalize({"hotkeyCombination": "Hyper+Banana"}))
    assert sanitized.hotkey_combination == DEFAULT_HOTKEY


def test_sanitize_restores_whitespace_only_prompt():
    sanitized = sanitize_for_persistence(normalize({"extractPrompt": "   \n"}))
    assert sanitized.extract_prompt == DEFAULT_EXTRACT_PROMPT


def test_sanitize_model_falls_back_when_blank():
    sanitized = sanitize_for_persistence(normalize({"visionModel": "   "}))
    assert sanitized.vision_model == DEFAULT_SETTINGS["visionModel"]


def test_skip_save_when_unchanged(tmp_path, monkeypatch):
    store = _store(tmp_path)
    settings = normalize({"theme": "dark"})
    store.save(settings)

    writes = []
    original = SettingsStore._write_json

    def counting_write(self, path, data):
        writes.append(path)
        return original(self, path, data)

    monkeypatch.setattr(SettingsStore, "_write_json", counting_write)
    store.save(settings)
    assert writes == []

    store.save(settings.with_updates(theme="light"))
    assert writes == [tmp_path / "settings.json"]


def test_save_after_load_does_not_rewrite(tmp_path, monkeypatch):
    _store(tmp_path).save(normalize({"theme": "dark", "apiKeyOverride": "k"}))

    store = _store(tmp_path)
    settings = store.load()
    writes = []
    monkeypatch.setattr(SettingsStore, "_write_json", lambda self, path, data: writes.append(path))
    store.save(settings)
    assert writes == []


def test_update_applies_wire_changes(tmp_path):
    store = _store(tmp_path)
    store.save(normalize({"theme": "dark"}))
    updated = store.update({"targetLanguage": "ja", "keepWindowOnTop": True})
    assert updated.theme == "dark"
    assert updated.target_language == "ja"
    assert _store(tmp_path).load().keep_window_on_top is True


def test_write_failure_raises_persistence_error(tmp_path, monkeypatch):
    store = _store(tmp_path)

    def failing_write(self, path, data):
        raise PermissionError("read-only")

    monkeypatch.setattr(SettingsStore, "_write_json", failing_write)
    with pytest.raises(SettingsPersistenceError):
        store.save(normalize({}))


def test_atomic_write_leaves_no_temp_files(tmp_path):
    _store(tmp_path).save(normalize({"theme": "dark"}))
    leftovers = [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]
    assert leftovers == []


def test_secret_keys_cover_override_fields():
    assert set(config_manager.SECRET_KEYS) <= set(DEFAULT_SETTINGS)
