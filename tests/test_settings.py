import dataclasses

import pytest

from aiproxy_worker.core.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in (
        "DEEPSEEK_API_KEY",
        "PROXY_KEY",
        "UPSTREAM_API_URL",
        "MAX_BODY_SIZE",
        "REQUEST_TIMEOUT",
        "VALIDATE_REQUEST_BODY",
        "DEFAULT_MODEL",
        "SUPPORTED_MODELS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.upstream_api_key is None
    assert settings.proxy_key is None
    assert settings.upstream_url == "https://api.deepseek.com/chat/completions"
    assert settings.max_body_size == 1024 * 1024
    assert settings.request_timeout == 30.0
    assert settings.validate_request_body is False
    assert settings.default_model == "deepseek-chat"
    assert settings.supported_models == ("deepseek-chat", "deepseek-reasoner")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-1")
    monkeypatch.setenv("PROXY_KEY", "  ")
    monkeypatch.setenv("MAX_BODY_SIZE", "2048")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("VALIDATE_REQUEST_BODY", "true")
    monkeypatch.setenv("SUPPORTED_MODELS", "a, b,,c")

    settings = get_settings()

    assert settings.upstream_api_key == "sk-1"
    assert settings.proxy_key is None
    assert settings.max_body_size == 2048
    assert settings.request_timeout == 2.5
    assert settings.validate_request_body is True
    assert settings.supported_models == ("a", "b", "c")


def test_settings_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Settings().proxy_key = "x"
