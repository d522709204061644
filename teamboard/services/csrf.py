# teamboard/services/csrf.py
"""
Double-submit CSRF tokens.

A token is ``<nonce>.<hmac>`` where the HMAC (keyed by CSRF_SECRET) covers the
session identifier and the nonce. The identifier is the caller's user id when
the request carries a session cookie we can attribute, else ``"anonymous"``.
All anonymous callers share that bucket, which is accepted for the pre-login
routes that use it.

CSRF tokens are a forgery defense only. They never authenticate anyone.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets

from fastapi import Request, Response

from teamboard.core.config import settings
from teamboard.core.security import peek_identity
from teamboard.services.session_cookies import cookie_secure, read_access_cookie, read_refresh_cookie

ANONYMOUS = "anonymous"
SAFE_METHODS = frozenset(["GET", "HEAD", "OPTIONS"])


def _secret() -> bytes:
    secret = (settings.CSRF_SECRET or "").encode("utf-8")
    if not secret:
        raise RuntimeError("CSRF_SECRET must be set to issue CSRF tokens.")
    return secret


def _sign(session_id: str, nonce: str) -> str:
    msg = f"{session_id}:{nonce}".encode("utf-8")
    return hmac.new(_secret(), msg, hashlib.sha256).hexdigest()


def session_identifier(request: Request) -> str:
    identity = peek_identity(read_access_cookie(request), read_refresh_cookie(request))
    if identity is None:
        return ANONYMOUS
    return identity.user_id


def issue_token(session_id: str) -> str:
    nonce = secrets.token_urlsafe(24)
    return f"{nonce}.{_sign(session_id, nonce)}"


def verify_token(token: str | None, session_id: str) -> bool:
    if not token or "." not in token:
        return False
    nonce, _, signature = token.partition(".")
    if not nonce or not signature:
        return False
    return hmac.compare_digest(signature, _sign(session_id, nonce))


def validate_request(request: Request) -> str | None:
    """
    Returns None when the request passes, else the rejection message.
    """
    if request.method.upper() in SAFE_METHODS:
        return None

    cookie_token = request.cookies.get(settings.CSRF_COOKIE_NAME)
    header_token = request.headers.get(settings.CSRF_HEADER_NAME)
    if not cookie_token or not header_token:
        return "CSRF token missing"
    if not hmac.compare_digest(cookie_token, header_token):
        return "Invalid CSRF token"
    if not verify_token(header_token, session_identifier(request)):
        return "Invalid CSRF token"
    return None


def set_csrf_cookie(resp: Response, token: str) -> None:
    resp.set_cookie(
        key=settings.CSRF_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=cookie_secure(),
        samesite="lax",
        path="/",
    )
