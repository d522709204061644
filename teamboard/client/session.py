# teamboard/client/session.py
from __future__ import annotations

import logging

from teamboard.client.context import ClientContext
from teamboard.client.events import TokenRevokedEvent
from teamboard.client.gateway import ApiResult
from teamboard.client.monitor import SessionMonitor

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"


class AuthSession:
    """
    Client-side login state.

    Listens for ``token-revoked`` on its context: when it fires the user is
    signed out locally and ``redirect_to`` points the router at the login page.
    """

    def __init__(self, ctx: ClientContext, *, monitor: SessionMonitor | None = None) -> None:
        self.ctx = ctx
        self.monitor = monitor
        self.user: dict | None = None
        self.redirect_to: str | None = None
        self.revoked_message: str | None = None
        self._unsubscribe = ctx.events.on_token_revoked(self._on_token_revoked)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login_local(self, login: str, password: str) -> ApiResult:
        self._begin_login()
        result = self.ctx.gateway.request_json(
            "POST", "/api/auth/local/login", json={"login": login, "password": password}
        )
        return self._after_login(result)

    def login_oauth(self, google_access_token: str) -> ApiResult:
        self._begin_login()
        result = self.ctx.gateway.request_json("POST", "/api/auth/oauth", json={"token": google_access_token})
        return self._after_login(result)

    def _begin_login(self) -> None:
        # A cached token may be bound to a session whose cookies are already gone.
        self.ctx.csrf.reset()

    def _after_login(self, result: ApiResult) -> ApiResult:
        if not result.ok:
            return result

        data = result.data if isinstance(result.data, dict) else {}
        self.user = data.get("user")
        self.redirect_to = None
        self.revoked_message = None
        # CSRF tokens are bound to the session they were issued under.
        self.ctx.csrf.reset()
        if self.monitor is not None:
            self.monitor.start()
        logger.info("Signed in as user_id=%s", (self.user or {}).get("userId"))
        return result

    def current_user(self) -> ApiResult:
        result = self.ctx.gateway.request_json("GET", "/api/users")
        if result.ok and isinstance(result.data, dict):
            self.user = result.data
        return result

    def logout(self) -> ApiResult:
        if self.monitor is not None:
            self.monitor.stop()

        result = self.ctx.gateway.request_json("DELETE", "/api/sessions/me")
        if not result.ok:
            logger.warning("Server logout failed status=%s; clearing local state anyway", result.status)

        self._clear_local_state()
        self.redirect_to = LOGIN_ROUTE
        return result

    def _clear_local_state(self) -> None:
        self.user = None
        self.ctx.cache.clear_all()
        self.ctx.csrf.reset()

    def _on_token_revoked(self, event: TokenRevokedEvent) -> None:
        logger.warning("Session ended by server (%s)", event.code)
        if self.monitor is not None:
            self.monitor.stop()
        self.user = None
        self.ctx.csrf.reset()
        self.revoked_message = event.message
        self.redirect_to = LOGIN_ROUTE

    def close(self) -> None:
        if self.monitor is not None:
            self.monitor.stop()
        self._unsubscribe()
