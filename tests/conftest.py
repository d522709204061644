import os

# Secrets and DB must exist before importing teamboard.main (it calls require_auth_secrets() at import time).
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test_access_secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test_refresh_secret")
os.environ.setdefault("CSRF_SECRET", "test_csrf_secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import importlib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from teamboard.core.base import Base
from teamboard.core import config as app_config
from teamboard.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from teamboard.models.user import User
from teamboard.models.refresh_token import RefreshToken  # noqa: F401

from teamboard.core.database import get_db

PASSWORD = "test_password_123"


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # In-memory SQLite with StaticPool persists across tests; reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak app_config.settings.*; restore after each test.
    """
    keys = [
        "ENV",
        "ACCESS_TOKEN_SECRET",
        "REFRESH_TOKEN_SECRET",
        "CSRF_SECRET",
        "ACCESS_TOKEN_EXPIRE_MINUTES",
        "REFRESH_TOKEN_EXPIRE_HOURS",
        "ENABLE_RATE_LIMITING",
        "REVOKED_SESSION_RETENTION_DAYS",
        "LOGIN_RATE_LIMIT",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)
        app_config.settings.ENABLE_RATE_LIMITING = False


@pytest.fixture()
def app(db_session):
    app_config.settings.ENABLE_RATE_LIMITING = False

    # SlowAPI decorators bind at import time, so reload routes + app with rate limiting
    # disabled (the rate limiting test reloads them with it enabled).
    import teamboard.routes.auth as auth_routes
    import teamboard.main as main

    importlib.reload(auth_routes)
    importlib.reload(main)
    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def users(db_session):
    """
    Two distinct active local users.
    """
    user_a = User(
        username="alice",
        email="alice@example.com",
        password_hash=hash_password(PASSWORD),
        auth_provider="local",
        is_active=True,
    )
    user_b = User(
        username="bob",
        email="bob@example.com",
        password_hash=hash_password(PASSWORD),
        auth_provider="local",
        is_active=True,
    )
    db_session.add_all([user_a, user_b])
    db_session.commit()
    db_session.refresh(user_a)
    db_session.refresh(user_b)
    return user_a, user_b


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


def csrf_headers(c: TestClient) -> dict[str, str]:
    """Fetch a CSRF token bound to the client's current cookies."""
    res = c.get("/api/csrf-token")
    assert res.status_code == 200, res.text
    return {"x-csrf-token": res.json()["csrfToken"]}


def login(c: TestClient, login_name: str = "alice", password: str = PASSWORD):
    return c.post(
        "/api/auth/local/login",
        json={"login": login_name, "password": password},
        headers=csrf_headers(c),
    )


@pytest.fixture()
def logged_in(client, users):
    """
    Client signed in as user_a through the real login route (cookies set).
    """
    res = login(client)
    assert res.status_code == 200, res.text
    return client
