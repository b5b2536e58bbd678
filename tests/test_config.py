import pytest
from pydantic import ValidationError

from core.config import Settings


def test_secret_key_is_mandatory(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_jwt_secret_key_alias(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.setenv("JWT_SECRET_KEY", "from-alias")
    assert Settings(_env_file=None).SECRET_KEY == "from-alias"


def test_overflow_policy_is_validated(monkeypatch):
    monkeypatch.setenv("REALTIME_SSE_OVERFLOW_POLICY", "Drop_New")
    assert Settings(_env_file=None).REALTIME_SSE_OVERFLOW_POLICY == "drop_new"

    monkeypatch.setenv("REALTIME_SSE_OVERFLOW_POLICY", "block")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_list_settings_accept_comma_separated_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test,http://b.test")
    monkeypatch.setenv("LOG_SKIP_PATHS", "/health, /metrics")

    settings = Settings(_env_file=None)

    assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]
    assert settings.LOG_SKIP_PATHS == ["/health", "/metrics"]


def test_list_settings_accept_json_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["http://a.test", "http://b.test"]')
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://a.test", "http://b.test"]

    monkeypatch.setenv("CORS_ORIGINS", "http://only.test")
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://only.test"]
