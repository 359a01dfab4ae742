from __future__ import annotations

from pathlib import Path

import pytest

from engsmart.core.errors import ValidationError
from engsmart.utils.settings import AppSettings

_VARIABLES = (
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_MODEL",
    "ENGSMART_GENERATION_TIMEOUT",
    "ENGSMART_DATA_DIR",
    "ENGSMART_HOST",
    "ENGSMART_PORT",
    "ENGSMART_TEACHER_PASSPHRASE",
    "ENGSMART_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = AppSettings.from_environment(load_env_file=False)

    assert settings.gemini_api_key is None
    assert settings.port == 8000
    assert settings.teacher_passphrase == "123456"
    assert settings.data_dir == Path("data")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("API_KEY", "fallback-key")
    monkeypatch.setenv("ENGSMART_PORT", "9001")
    monkeypatch.setenv("ENGSMART_GENERATION_TIMEOUT", "30.5")
    monkeypatch.setenv("ENGSMART_DATA_DIR", "/tmp/engsmart")

    settings = AppSettings.from_environment(load_env_file=False)

    assert settings.gemini_api_key == "fallback-key"
    assert settings.port == 9001
    assert settings.generation_timeout_seconds == 30.5
    assert settings.data_dir == Path("/tmp/engsmart")


def test_gemini_key_takes_precedence(monkeypatch):
    monkeypatch.setenv("API_KEY", "fallback-key")
    monkeypatch.setenv("GEMINI_API_KEY", "primary-key")

    assert AppSettings.from_environment(load_env_file=False).gemini_api_key == "primary-key"


@pytest.mark.parametrize("value", ["eighty", "0", "-5"])
def test_invalid_port_is_rejected(monkeypatch, value: str):
    monkeypatch.setenv("ENGSMART_PORT", value)

    with pytest.raises(ValidationError):
        AppSettings.from_environment(load_env_file=False)
