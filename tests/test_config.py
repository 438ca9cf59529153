import pytest
from pydantic import ValidationError

from app.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.rate_limit_capacity == 3
    assert settings.rate_limit_refill_seconds == 60
    assert settings.rate_limit_path_prefixes == ["/api/transaction"]


def test_from_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_CAPACITY", "10")
    monkeypatch.setenv("RATE_LIMIT_REFILL_SECONDS", "30")
    monkeypatch.setenv("RATE_LIMIT_IDLE_TTL_SECONDS", "0")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "http://a.example, http://b.example")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.rate_limit_capacity == 10
    assert settings.rate_limit_refill_seconds == 30.0
    assert settings.rate_limit_idle_ttl_seconds is None
    assert settings.cors_allowed_origins == ["http://a.example", "http://b.example"]
    assert settings.log_level == "DEBUG"


def test_rejects_non_positive_capacity():
    with pytest.raises(ValidationError):
        Settings(rate_limit_capacity=0)


def test_idle_ttl_shorter_than_window_rejected():
    with pytest.raises(ValidationError):
        Settings(rate_limit_refill_seconds=60, rate_limit_idle_ttl_seconds=30)


def test_invalid_idle_ttl_from_env_is_a_validation_error(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_IDLE_TTL_SECONDS", "ten minutes")

    with pytest.raises(ValidationError):
        Settings.from_env()


def test_idle_ttl_from_env_checked_against_window(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_IDLE_TTL_SECONDS", "30")

    with pytest.raises(ValidationError):
        Settings.from_env()


def test_path_prefixes_from_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_PATH_PREFIXES", "/api/transaction, /api/reports")

    settings = Settings.from_env()

    assert settings.rate_limit_path_prefixes == ["/api/transaction", "/api/reports"]
