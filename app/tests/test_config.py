"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def _settings(**overrides):
    values = {"DATABASE_URL": "postgresql://test", "JWT_SECRET_KEY": "test-key"}
    values.update(overrides)
    return Settings(**values)


def test_prod_settings_rejects_wildcard_origins():
    settings = _settings(JWT_SECRET_KEY="a" * 32, APP_ENV="prod", ALLOWED_ORIGINS="*")
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    settings = _settings(JWT_SECRET_KEY="short", APP_ENV="prod", ALLOWED_ORIGINS="https://console.example.com")
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allow_wildcard_origins():
    settings = _settings(APP_ENV="local", ALLOWED_ORIGINS="*")
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    settings = _settings(ALLOWED_ORIGINS="https://console.example.com, https://ops.example.com,")
    assert settings.get_allowed_origins_list() == ["https://console.example.com", "https://ops.example.com"]


def test_unknown_app_env_rejected():
    with pytest.raises(ValidationError):
        _settings(APP_ENV="qa")


def test_tenant_defaults():
    settings = _settings()
    assert settings.DEFAULT_GUARD_LIMIT == 50
    assert settings.DEFAULT_TIMEZONE == "Asia/Kolkata"
    assert settings.TRIAL_DAYS >= 0


def test_unknown_default_timezone_rejected():
    with pytest.raises(ValidationError):
        _settings(DEFAULT_TIMEZONE="Mars/Olympus_Mons")


def test_guard_limit_must_be_positive():
    with pytest.raises(ValidationError):
        _settings(DEFAULT_GUARD_LIMIT=0)
