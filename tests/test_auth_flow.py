from __future__ import annotations

from conftest import PASSWORD, csrf_headers, login
from teamboard.models.refresh_token import RefreshToken
from teamboard.models.user import User
from teamboard.services import session_store


def test_register_then_login_issues_both_cookies(client, db_session):
    res = client.post(
        "/api/auth/local/register",
        json={"username": "carol", "email": "Carol@Example.com", "password": "Password_12345"},
        headers=csrf_headers(client),
    )
    assert res.status_code == 201

    u = db_session.query(User).filter(User.username == "carol").first()
    assert u is not None
    assert u.email == "carol@example.com"
    assert u.password_hash and u.password_hash != "Password_12345"

    res2 = login(client, "carol@example.com", "Password_12345")
    assert res2.status_code == 200
    body = res2.json()
    assert body["user"] == {"userId": str(u.id), "username": "carol", "email": "carol@example.com"}

    cookies = res2.headers.get("set-cookie", "")
    assert "accessToken=" in cookies
    assert "refreshToken=" in cookies
    assert "httponly" in cookies.lower()
    assert "samesite=strict" in cookies.lower()

    rt = session_store.get_record(db_session, u.id)
    assert rt is not None
    assert rt.revoked is False
    assert rt.token == client.cookies.get("refreshToken")


def test_register_conflict_is_409(client, users):
    res = client.post(
        "/api/auth/local/register",
        json={"username": "alice", "email": "new@example.com", "password": "Password_12345"},
        headers=csrf_headers(client),
    )
    assert res.status_code == 409
    assert res.json()["error"] == "CONFLICT"


def test_register_validation_error_shape(client):
    res = client.post(
        "/api/auth/local/register",
        json={"username": "x", "email": "not-an-email", "password": "short"},
        headers=csrf_headers(client),
    )
    assert res.status_code == 422
    body = res.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert isinstance(body["details"]["errors"], list)


def test_login_wrong_password_is_401(client, users):
    res = login(client, "alice", "wrong_password")
    assert res.status_code == 401
    assert res.json() == {"error": "UNAUTHORIZED", "message": "Invalid username or password"}


def test_login_unknown_user_is_401(client, users):
    res = login(client, "nobody", PASSWORD)
    assert res.status_code == 401


def test_second_login_replaces_record(client, users, db_session):
    user_a, _ = users
    assert login(client).status_code == 200
    first = client.cookies.get("refreshToken")

    client.cookies.clear()
    assert login(client).status_code == 200
    second = client.cookies.get("refreshToken")

    assert first != second
    rows = db_session.query(RefreshToken).filter(RefreshToken.user_id == user_a.id).all()
    assert len(rows) == 1
    assert rows[0].token == second


def test_logout_revokes_and_clears_cookies(logged_in, users, db_session):
    user_a, _ = users
    res = logged_in.delete("/api/sessions/me", headers=csrf_headers(logged_in))
    assert res.status_code == 200
    assert res.json() == {"message": "User logged out successfully"}

    assert logged_in.cookies.get("accessToken") is None
    assert logged_in.cookies.get("refreshToken") is None

    db_session.expire_all()
    rt = session_store.get_record(db_session, user_a.id)
    assert rt.revoked is True
    assert rt.revoked_reason == "user_logout"

    assert logged_in.get("/api/users").status_code == 401


def test_logout_is_idempotent(client):
    res = client.delete("/api/sessions/me", headers=csrf_headers(client))
    assert res.status_code == 200
    assert res.json() == {"message": "Already logged out"}


def test_logout_alias_route(logged_in, users, db_session):
    user_a, _ = users
    res = logged_in.delete("/api/auth/tokens/refresh", headers=csrf_headers(logged_in))
    assert res.status_code == 200
    assert session_store.is_valid(db_session, user_a.id) is False


def test_issue_session_for_known_user(client, users, db_session):
    user_a, _ = users
    payload = {"user": {"userId": str(user_a.id), "username": "alice", "email": "alice@example.com"}}
    res = client.post("/api/auth/tokens/refresh", json=payload, headers=csrf_headers(client))
    assert res.status_code == 200
    assert res.json()["user"]["userId"] == str(user_a.id)
    assert session_store.is_valid(db_session, user_a.id)
    assert client.get("/api/users").status_code == 200


def test_issue_session_refuses_mismatched_claims(client, users):
    user_a, _ = users
    payload = {"user": {"userId": str(user_a.id), "username": "mallory", "email": "alice@example.com"}}
    res = client.post("/api/auth/tokens/refresh", json=payload, headers=csrf_headers(client))
    assert res.status_code == 400


def test_issue_session_refuses_unknown_user(client, users):
    payload = {"user": {"userId": "99999", "username": "ghost", "email": None}}
    res = client.post("/api/tokens/refresh", json=payload, headers=csrf_headers(client))
    assert res.status_code == 400
    assert res.json()["error"] == "VALIDATION_ERROR"


def test_inactive_user_cannot_log_in(client, users, db_session):
    user_a, _ = users
    user_a.is_active = False
    db_session.commit()
    assert login(client).status_code == 401
