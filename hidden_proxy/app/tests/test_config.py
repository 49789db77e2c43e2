"""
Configuration Tests

Tests environment loading, aliases and derived properties of Settings.
"""

import pytest
from pydantic import ValidationError

from hidden_proxy.app.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove proxy variables that may leak in from the developer's shell"""
    for name in ("KEY", "KEY_BASE64", "TIMEOUT_SECS", "TIMEOUT_MS", "MAX_MEGABYTES",
                 "ALLOW_POST", "BLOCK_PRIVATE_HOSTS", "ALLOWED_ORIGINS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.KEY_BASE64 is None
    assert settings.timeout_seconds == 60.0
    assert settings.max_bytes is None
    assert settings.ALLOW_POST is False
    assert settings.BLOCK_PRIVATE_HOSTS is False
    assert settings.allowed_origins_list == []


def test_key_base64_from_environment(monkeypatch):
    monkeypatch.setenv("KEY_BASE64", "base64:AAAA")

    assert Settings(_env_file=None).KEY_BASE64 == "base64:AAAA"


def test_key_alias_from_environment(monkeypatch):
    """The second deployment's KEY variable is accepted too"""
    monkeypatch.setenv("KEY", "hex:00")

    assert Settings(_env_file=None).KEY_BASE64 == "hex:00"


def test_timeout_ms_overrides_seconds(monkeypatch):
    monkeypatch.setenv("TIMEOUT_SECS", "60")
    monkeypatch.setenv("TIMEOUT_MS", "15000")

    assert Settings(_env_file=None).timeout_seconds == 15.0


def test_max_megabytes_converts_to_bytes(monkeypatch):
    monkeypatch.setenv("MAX_MEGABYTES", "5")

    assert Settings(_env_file=None).max_bytes == 5 * 1024 * 1024


@pytest.mark.parametrize("value", ["0", "-3"])
def test_non_positive_max_megabytes_disables_ceiling(monkeypatch, value):
    monkeypatch.setenv("MAX_MEGABYTES", value)

    assert Settings(_env_file=None).max_bytes is None


def test_boolean_switches_from_environment(monkeypatch):
    monkeypatch.setenv("ALLOW_POST", "true")
    monkeypatch.setenv("BLOCK_PRIVATE_HOSTS", "1")

    settings = Settings(_env_file=None)

    assert settings.ALLOW_POST is True
    assert settings.BLOCK_PRIVATE_HOSTS is True


def test_allowed_origins_list_is_trimmed():
    settings = Settings(_env_file=None, ALLOWED_ORIGINS=" https://a.example , ,https://b.example")

    assert settings.allowed_origins_list == ["https://a.example", "https://b.example"]


def test_log_level_is_normalised():
    assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_invalid_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, LOG_LEVEL="LOUD")


def test_non_positive_timeout_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, TIMEOUT_SECS=0)


@pytest.mark.parametrize("name", ["MAX_MEGABYTES", "TIMEOUT_MS"])
def test_blank_numeric_values_are_unset(monkeypatch, name):
    """``MAX_MEGABYTES=`` in .env or compose must not stop the service starting"""
    monkeypatch.setenv(name, "")

    settings = Settings(_env_file=None)

    assert getattr(settings, name) is None
    assert settings.max_bytes is None
    assert settings.timeout_seconds == 60.0
