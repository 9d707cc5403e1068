"""Unit tests for core/config.py -- Settings validation and environment mapping."""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("STORE_URL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.salt_length == 16
    assert settings.store_url.startswith("sqlite:///")
    assert settings.cors_allow_origins == ["*"]
    assert settings.log_level == "INFO"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("STORE_URL", "memory://")
    monkeypatch.setenv("SALT_LENGTH", "24")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", '["https://app.example.com"]')
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings(_env_file=None)
    assert settings.store_url == "memory://"
    assert settings.salt_length == 24
    assert settings.cors_allow_origins == ["https://app.example.com"]
    assert settings.log_level == "DEBUG"


def test_rejects_non_positive_salt_length():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, salt_length=0)


def test_rejects_unknown_log_level():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
