from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import PASSWORD
from teamboard.client.context import ClientContext
from teamboard.client.session import LOGIN_ROUTE, AuthSession
from teamboard.models.refresh_token import RefreshToken
from teamboard.services import session_store


def test_login_use_revoke_elsewhere_then_routed_to_login(client, users, db_session):
    user_a, _ = users
    ctx = ClientContext(http=client)
    session = AuthSession(ctx)

    # login -> one live record
    assert session.login_local("alice", PASSWORD).ok
    rows = db_session.query(RefreshToken).filter(RefreshToken.user_id == user_a.id).all()
    assert len(rows) == 1
    assert rows[0].revoked is False

    # authenticated call works
    me = session.current_user()
    assert me.ok
    assert me.data["username"] == "alice"

    ctx.cache.register_static_views()
    ctx.cache.add_entry("team-1")

    # session revoked from another device
    session_store.revoke(db_session, user_a.id)

    result = session.current_user()
    assert result.status == 401
    assert result.data["error"] == "TOKEN_REVOKED"
    assert len(ctx.cache) == 0
    assert ctx.cache.cached_components == frozenset()
    assert session.user is None
    assert session.redirect_to == LOGIN_ROUTE


def test_logout_then_stale_access_token_is_rejected(app, client, users):
    ctx = ClientContext(http=client)
    session = AuthSession(ctx)
    assert session.login_local("alice", PASSWORD).ok
    stale = client.cookies.get("accessToken")
    ctx.cache.add_entry("team-1")

    assert session.logout().ok
    assert len(ctx.cache) == 0
    assert session.redirect_to == LOGIN_ROUTE
    assert client.cookies.get("accessToken") is None

    # The access token is still cryptographically valid, but the store says revoked.
    with TestClient(app, cookies={"accessToken": stale}) as replay:
        res = replay.get("/api/users")
    assert res.status_code == 401
    assert res.json()["error"] == "TOKEN_REVOKED"


def test_dropped_access_cookie_is_renewed_transparently(client, users, db_session):
    user_a, _ = users
    ctx = ClientContext(http=client)
    session = AuthSession(ctx)
    assert session.login_local("alice", PASSWORD).ok
    ctx.cache.add_entry("team-1")

    # Access cookie aged out (its max-age equals the token lifetime).
    client.cookies.delete("accessToken")

    me = session.current_user()
    assert me.ok
    assert me.data["userId"] == str(user_a.id)
    assert client.cookies.get("accessToken") is not None
    assert "team-1" in ctx.cache
    assert session.redirect_to is None

    db_session.expire_all()
    assert session_store.get_record(db_session, user_a.id).activity_count == 2


def test_mutating_call_after_login_uses_session_bound_csrf(client, users):
    ctx = ClientContext(http=client)
    session = AuthSession(ctx)
    assert session.login_local("alice", PASSWORD).ok

    res = ctx.gateway.request_json("DELETE", "/api/sessions/revoke-all/except-current")
    assert res.ok, res.data
    assert res.data["count"] == 0


def test_relogin_after_cookies_expire_with_stale_csrf_token_cached(client, users):
    ctx = ClientContext(http=client)
    session = AuthSession(ctx)
    assert session.login_local("alice", PASSWORD).ok

    # A mutating call caches a CSRF token bound to alice's session.
    assert ctx.gateway.request_json("DELETE", "/api/sessions/revoke-all/except-current").ok
    assert ctx.csrf.token is not None

    # Both session cookies aged out in the browser.
    client.cookies.delete("accessToken")
    client.cookies.delete("refreshToken")

    again = session.login_local("alice", PASSWORD)
    assert again.ok, again.data
    assert session.user["username"] == "alice"
    assert client.cookies.get("accessToken") is not None
