from __future__ import annotations

import pytest

from teamboard.core import config as app_config
from teamboard.core.config import Settings, require_auth_secrets


def test_require_auth_secrets_passes_with_test_env():
    require_auth_secrets()


@pytest.mark.parametrize("name", ["ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET", "CSRF_SECRET"])
def test_require_auth_secrets_fails_fast_when_missing(name):
    setattr(app_config.settings, name, "")
    with pytest.raises(RuntimeError) as exc:
        require_auth_secrets()
    assert name in str(exc.value)


def test_access_and_refresh_secrets_must_differ():
    app_config.settings.REFRESH_TOKEN_SECRET = app_config.settings.ACCESS_TOKEN_SECRET
    with pytest.raises(RuntimeError):
        require_auth_secrets()


def test_access_ttl_must_be_shorter_than_refresh_ttl():
    app_config.settings.ACCESS_TOKEN_EXPIRE_MINUTES = 24 * 60
    app_config.settings.REFRESH_TOKEN_EXPIRE_HOURS = 12
    with pytest.raises(RuntimeError):
        require_auth_secrets()


def test_prod_requires_explicit_ttls(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u:p@db:5432/teamboard")
    monkeypatch.setenv("CORS_ORIGINS", "https://teamboard.example.com")
    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
    monkeypatch.delenv("REFRESH_TOKEN_EXPIRE_HOURS", raising=False)

    with pytest.raises(RuntimeError) as exc:
        Settings()
    assert "ACCESS_TOKEN_EXPIRE_MINUTES" in str(exc.value)
    assert "REFRESH_TOKEN_EXPIRE_HOURS" in str(exc.value)


def test_prod_accepts_complete_config(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u:p@db:5432/teamboard")
    monkeypatch.setenv("CORS_ORIGINS", "https://teamboard.example.com")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10")
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_HOURS", "8")

    s = Settings()
    assert s.is_prod
    assert s.ACCESS_TOKEN_EXPIRE_MINUTES == 10
    assert s.database_url.startswith("postgresql+psycopg2://")
    assert s.CORS_ORIGINS == ["https://teamboard.example.com"]


def test_prod_rejects_localhost_cors(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u:p@db:5432/teamboard")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:5173")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10")
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_HOURS", "8")

    with pytest.raises(RuntimeError):
        Settings()


def test_dev_defaults():
    s = Settings()
    assert s.ACCESS_TOKEN_EXPIRE_MINUTES * 60 < s.REFRESH_TOKEN_EXPIRE_HOURS * 3600
    assert s.CSRF_COOKIE_NAME == "x-csrf-token"
    assert s.AUTH_COOKIE_SAMESITE == "strict"
