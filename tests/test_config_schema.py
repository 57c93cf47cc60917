import json

import pytest
from pydantic import ValidationError

from ocr_translator import config_schema
from ocr_translator.config_schema import (
    DEFAULT_API_BASE_URL,
    DEFAULT_SETTINGS,
    TranslatorSettings,
    denormalize,
    normalize,
    normalize_with_warnings,
    wire_fields,
)
from ocr_translator.prompts import DEFAULT_EXTRACT_PROMPT, PromptVariables


def _assert_complete(settings):
    record = denormalize(settings)
    assert set(record) == set(DEFAULT_SETTINGS)
    for key, default in DEFAULT_SETTINGS.items():
        assert type(record[key]) is type(default), key


@pytest.mark.parametrize(
    "raw",
    [
        {},
        None,
        [],
        "not a record",
        42,
        {"theme": None, "autoCopyResult": None},
        {"apiBaseUrl": 123, "visionModel": ["x"], "useVisionForTranslation": {"a": 1}},
        {"unknownKey": "ignored", 7: "non-string key"},
    ],
)
def test_normalize_always_yields_complete_settings(raw):
    _assert_complete(normalize(raw))


def test_empty_record_matches_defaults_table():
    assert denormalize(normalize({})) == DEFAULT_SETTINGS


def test_explicit_false_is_respected_and_absence_uses_default():
    assert normalize({"autoCopyResult": False}).auto_copy_result is False
    assert normalize({}).auto_copy_result is True
    assert normalize({"useVisionForTranslation": False}).use_vision_for_translation is False
    assert normalize({}).use_vision_for_translation is True


def test_null_boolean_counts_as_absent():
    assert normalize({"enableStreamOutput": None}).enable_stream_output is True
    assert normalize({"keepWindowOnTop": None}).keep_window_on_top is False


@pytest.mark.parametrize(
    "value,expected",
    [("true", True), ("false", False), ("Off", False), ("YES", True), (1, True), (0, False)],
)
def test_parse_bool_values(value, expected):
    settings = normalize(
        {
            "autoCopyResult": value,
            "keepWindowOnTop": value,
            "showToastOnComplete": value,
            "enableStreamOutput": value,
            "useVisionForTranslation": value,
        }
    )
    assert settings.auto_copy_result is expected
    assert settings.keep_window_on_top is expected
    assert settings.show_toast_on_complete is expected
    assert settings.enable_stream_output is expected
    assert settings.use_vision_for_translation is expected


def test_vision_endpoint_falls_back_to_api_endpoint():
    assert normalize({"apiBaseUrl": "https://x"}).vision_api_base_url == "https://x"
    assert normalize({"apiBaseUrl": "https://x", "visionApiBaseUrl": ""}).vision_api_base_url == "https://x"


def test_explicit_vision_endpoint_wins():
    settings = normalize({"apiBaseUrl": "https://x", "visionApiBaseUrl": "https://y"})
    assert settings.api_base_url == "https://x"
    assert settings.vision_api_base_url == "https://y"


def test_vision_endpoint_uses_static_default_last():
    settings = normalize({"apiBaseUrl": ""})
    assert settings.api_base_url == DEFAULT_API_BASE_URL
    assert settings.vision_api_base_url == DEFAULT_API_BASE_URL


def test_malformed_api_endpoint_is_not_used_as_companion():
    settings = normalize({"apiBaseUrl": 5})
    assert settings.api_base_url == DEFAULT_API_BASE_URL
    assert settings.vision_api_base_url == DEFAULT_API_BASE_URL


def test_empty_and_wrong_type_strings_take_defaults():
    settings = normalize({"theme": "", "translateModel": 3, "extractPrompt": None})
    assert settings.theme == "system"
    assert settings.translate_model == config_schema.DEFAULT_TRANSLATE_MODEL
    assert settings.extract_prompt == DEFAULT_EXTRACT_PROMPT


def test_payload_strings_are_kept_verbatim():
    settings = normalize({"hotkeyCombination": "ctrl+shift+q", "targetLanguage": "xx-custom"})
    assert settings.hotkey_combination == "ctrl+shift+q"
    assert settings.target_language == "xx-custom"


def test_record_from_older_release_gets_new_fields():
    legacy = {
        "apiKeyOverride": "sk-old",
        "targetLanguage": "en",
        "autoCopyResult": False,
        "keepWindowOnTop": True,
        "theme": "dark",
        "showToastOnComplete": False,
        "hotkeyCombination": "Ctrl+Alt+T",
    }
    settings = normalize(legacy)
    assert settings.api_key_override == "sk-old"
    assert settings.target_language == "en"
    assert settings.keep_window_on_top is True
    assert settings.enable_stream_output is True
    assert settings.use_vision_for_translation is True
    assert settings.source_language == "auto"
    assert settings.vision_model == config_schema.DEFAULT_VISION_MODEL


def test_snake_case_keys_are_accepted():
    settings = normalize({"api_base_url": "https://snake", "auto_copy_result": False})
    assert settings.api_base_url == "https://snake"
    assert settings.vision_api_base_url == "https://snake"
    assert settings.auto_copy_result is False


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"apiBaseUrl": "https://x"},
        {"apiBaseUrl": "https://x", "visionApiBaseUrl": "https://y", "autoCopyResult": False},
        {"useVisionForTranslation": "no", "sourceLanguage": "ja", "targetLanguage": "ko"},
        {"extractPrompt": "custom {{.SourceLanguage}}", "translatePrompt": "t", "theme": "dark"},
    ],
)
def test_denormalize_is_left_inverse(raw):
    settings = normalize(raw)
    assert normalize(denormalize(settings)) == settings


def test_denormalize_is_json_serializable_and_drops_unknown_keys():
    record = denormalize(normalize({"apiKeyOverride": "k", "legacyField": 1}))
    assert "legacyField" not in record
    assert json.loads(json.dumps(record)) == record


def test_settings_are_immutable():
    settings = normalize({})
    with pytest.raises(ValidationError):
        settings.theme = "dark"


def test_with_updates_produces_new_normalized_instance():
    original = normalize({"theme": "dark"})
    updated = original.with_updates({"theme": "light"}, auto_copy_result=False)
    assert original.theme == "dark"
    assert updated.theme == "light"
    assert updated.auto_copy_result is False
    assert updated.with_updates(theme="").theme == "system"


def test_prompt_variables_come_from_settings():
    settings = normalize({"sourceLanguage": "ja", "targetLanguage": "en", "useVisionForTranslation": False})
    assert settings.prompt_variables() == PromptVariables("ja", "en", False)


def test_non_mapping_record_is_reported():
    settings, warnings = normalize_with_warnings(["nope"])
    assert settings == TranslatorSettings()
    assert len(warnings) == 1


def test_wire_fields_cover_defaults_table():
    assert set(wire_fields()) == set(DEFAULT_SETTINGS)
