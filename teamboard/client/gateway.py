# teamboard/client/gateway.py
"""
API gateway: every client call to the backend goes through here.

- Mutating requests carry the CSRF header (token fetched once, then cached).
- Cookies ride along on the underlying httpx client.
- A 401 triggers one access-token rotation and, if that works, one retry of
  the original request. The retry budget belongs to the call, not the gateway,
  so concurrent calls rotate independently.
- A rotation refused with TOKEN_REVOKED / TOKEN_INVALID clears the cache and
  emits ``token-revoked`` before the original 401 is handed back.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from teamboard.client.cache import ComponentCache
from teamboard.client.csrf import CsrfTokenProvider
from teamboard.client.events import AuthEvents, TokenRevokedEvent
from teamboard.client.retry import with_retry
from teamboard.core.errors import REVOKED_MESSAGE, TOKEN_INVALID, TOKEN_REVOKED

logger = logging.getLogger(__name__)

ROTATION_PATH = "/api/auth/tokens/access"
MUTATING_METHODS = frozenset(["POST", "PUT", "PATCH", "DELETE"])
REVOKED_CODES = frozenset([TOKEN_REVOKED, TOKEN_INVALID])
NETWORK_ERROR = "NETWORK_ERROR"


@dataclass(frozen=True)
class RotationResult:
    ok: bool
    revoked: bool = False
    code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class ApiResult:
    ok: bool
    status: int
    data: Any = None


def parse_body(resp: httpx.Response) -> Any:
    """JSON when possible, ``{"message": text}`` for plain text, None when empty."""
    text = resp.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


class ApiGateway:
    def __init__(
        self,
        http: httpx.Client,
        *,
        cache: ComponentCache,
        events: AuthEvents,
        csrf: CsrfTokenProvider,
        rotation_path: str = ROTATION_PATH,
    ) -> None:
        self.http = http
        self.cache = cache
        self.events = events
        self.csrf = csrf
        self.rotation_path = rotation_path

    # -----------------------------
    # Rotation
    # -----------------------------
    def rotate(self) -> RotationResult:
        try:
            resp = self.http.get(self.rotation_path)
        except httpx.HTTPError as e:
            logger.warning("Access token rotation failed: %s", e)
            return RotationResult(ok=False)

        if resp.is_success:
            logger.info("Access token rotated")
            return RotationResult(ok=True)

        if resp.status_code == 401:
            data = parse_body(resp)
            code = data.get("error") if isinstance(data, dict) else None
            if code in REVOKED_CODES:
                message = data.get("message") or REVOKED_MESSAGE
                logger.warning("Rotation refused: session %s", code)
                return RotationResult(ok=False, revoked=True, code=code, message=message)

        logger.info("Rotation refused status=%s", resp.status_code)
        return RotationResult(ok=False)

    def _handle_unauthorized(self, url: str) -> bool:
        """Runs between the 401 and the retry. Returns whether to retry."""
        logger.info("401 for %s, attempting rotation", url)
        rotation = self.rotate()
        if rotation.ok:
            return True

        if rotation.revoked:
            self.cache.clear_all()
            self.events.emit_token_revoked(
                TokenRevokedEvent(code=rotation.code or TOKEN_REVOKED, message=rotation.message or REVOKED_MESSAGE)
            )
        return False

    # -----------------------------
    # Requests
    # -----------------------------
    def _send(self, method: str, url: str, kwargs: dict) -> httpx.Response:
        headers = dict(kwargs.get("headers") or {})
        if method in MUTATING_METHODS:
            token = self.csrf.get()
            if token:
                headers[self.csrf.header_name] = token

        options = {k: v for k, v in kwargs.items() if k != "headers"}
        return self.http.request(method, url, headers=headers, **options)

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send ``method url`` with httpx keyword options (json, params, headers...).

        Transport errors from the original request propagate as ``httpx.HTTPError``.
        """
        method = method.upper()
        return with_retry(
            lambda: self._send(method, url, kwargs),
            max_attempts=1,
            should_retry=lambda resp: resp.status_code == 401,
            before_retry=lambda resp: self._handle_unauthorized(url),
        )

    def request_json(self, method: str, url: str, **kwargs: Any) -> ApiResult:
        try:
            resp = self.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Request %s %s failed: %s", method, url, e)
            return ApiResult(ok=False, status=0, data={"error": NETWORK_ERROR, "message": str(e)})

        return ApiResult(ok=resp.is_success, status=resp.status_code, data=parse_body(resp))

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)
