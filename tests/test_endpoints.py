import pytest

from ocr_translator.config_schema import DEFAULT_API_BASE_URL, DEFAULT_TRANSLATE_MODEL, normalize
from ocr_translator.endpoints import (
    API_KEY_ENV,
    ApiKeyNotFoundError,
    Endpoint,
    normalize_base_url,
    read_api_key,
    resolve_api_key,
    resolve_endpoints,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("https://api.example.com/v1/", "https://api.example.com/v1"),
        ("  https://api.example.com  ", "https://api.example.com"),
        ("", DEFAULT_API_BASE_URL),
        (None, DEFAULT_API_BASE_URL),
    ],
)
def test_normalize_base_url(value, expected):
    assert normalize_base_url(value) == expected


def test_read_api_key_takes_first_file_with_key(tmp_path):
    first = tmp_path / ".env"
    second = tmp_path / "env"
    first.write_text("OTHER=1\n", encoding="utf-8")
    second.write_text("# comment\nAPI-KEY = sk-file \n", encoding="utf-8")
    assert read_api_key([tmp_path / "missing", first, second]) == "sk-file"


def test_read_api_key_raises_when_nothing_found(tmp_path):
    (tmp_path / ".env").write_text("API-KEY=\n", encoding="utf-8")
    with pytest.raises(ApiKeyNotFoundError):
        read_api_key([tmp_path / ".env", tmp_path / "absent"])


def test_override_beats_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(API_KEY_ENV, "sk-env")
    settings = normalize({"apiKeyOverride": " sk-override "})
    assert resolve_api_key(settings, env_files=[]) == "sk-override"


def test_environment_beats_env_files(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("API-KEY=sk-file\n", encoding="utf-8")
    monkeypatch.setenv(API_KEY_ENV, "sk-env")
    assert resolve_api_key(normalize({}), env_files=[env_file]) == "sk-env"

    monkeypatch.delenv(API_KEY_ENV)
    assert resolve_api_key(normalize({}), env_files=[env_file]) == "sk-file"


def test_resolve_api_key_without_any_source(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    with pytest.raises(ApiKeyNotFoundError):
        resolve_api_key(normalize({}), env_files=[])


def test_vision_endpoint_inherits_translate_values():
    settings = normalize({"apiBaseUrl": "https://api.example.com/", "apiKeyOverride": "sk-main"})
    endpoints = resolve_endpoints(settings)
    assert endpoints.translate.base_url == "https://api.example.com"
    assert endpoints.vision.base_url == "https://api.example.com"
    assert endpoints.vision.api_key == "sk-main"
    assert endpoints.translate.model == DEFAULT_TRANSLATE_MODEL


def test_vision_overrides_are_used():
    settings = normalize(
        {
            "apiBaseUrl": "https://api.example.com",
            "visionApiBaseUrl": "https://vision.example.com/",
            "visionApiKeyOverride": "sk-vision",
            "visionModel": "custom-vl",
        }
    )
    endpoints = resolve_endpoints(settings, api_key="sk-main")
    assert endpoints.translate.api_key == "sk-main"
    assert endpoints.vision == Endpoint("sk-vision", "https://vision.example.com", "custom-vl")


def test_endpoint_repr_masks_key():
    text = repr(Endpoint("sk-1234567890", "https://x", "m"))
    assert "sk-1234567890" not in text
    assert "...7890" in text
    assert "<unset>" in repr(Endpoint("", "https://x", "m"))
