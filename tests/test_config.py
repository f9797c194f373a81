"""Unit tests for core/config.py -- startup validation of Settings."""

import pytest

from core.config import ConfigurationError, Settings, get_settings


@pytest.fixture
def fresh_settings(monkeypatch):
    """Clear the get_settings() cache around a test so env changes take effect."""
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_missing_secret_outside_debug_is_fatal(fresh_settings) -> None:
    fresh_settings.setenv("DEBUG", "false")
    fresh_settings.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="SECRET_KEY is required"):
        get_settings()


def test_short_secret_is_fatal(fresh_settings) -> None:
    fresh_settings.setenv("SECRET_KEY", "too-short")
    with pytest.raises(ConfigurationError, match="at least 32 characters"):
        get_settings()


def test_debug_generates_secret(fresh_settings) -> None:
    fresh_settings.setenv("DEBUG", "true")
    fresh_settings.delenv("SECRET_KEY", raising=False)
    settings = get_settings()
    assert len(settings.secret_key) >= 32
    assert get_settings() is settings


def test_defaults() -> None:
    settings = Settings(secret_key="k" * 32, bcrypt_rounds=10)
    assert settings.access_token_ttl_seconds == 15 * 60
    assert settings.refresh_token_ttl_seconds == 7 * 24 * 60 * 60
    assert settings.jwt_algorithm == "HS256"
    assert settings.bcrypt_rounds == 10
    assert settings.reveal_unknown_accounts is True


def test_non_positive_ttl_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(secret_key="k" * 32, access_token_ttl_seconds=0)
