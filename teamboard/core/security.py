# teamboard/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
import uuid

from jose import jwt, JWTError
from passlib.context import CryptContext

from teamboard.auth.identity import IdentityClaim
from teamboard.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

PURPOSE_ACCESS = "access"
PURPOSE_REFRESH = "refresh"


class InvalidTokenError(ValueError):
    """
    Raised for every token verification failure.

    Bad signature, wrong secret, expiry, wrong purpose and malformed claims all
    end up here with the same message so callers can't tell them apart.
    """

    def __init__(self) -> None:
        super().__init__("Invalid or expired token")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


# -------------------------
# Token lifetimes
# -------------------------
def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def access_token_ttl() -> timedelta:
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def refresh_token_ttl() -> timedelta:
    return timedelta(hours=settings.REFRESH_TOKEN_EXPIRE_HOURS)


def _require_secret(secret: str | None) -> str:
    if not secret or not secret.strip():
        raise RuntimeError("Token signing secret must be set (auth is required).")
    return secret


# -------------------------
# Token codec
# -------------------------
def _encode(
    identity: IdentityClaim,
    *,
    secret: str,
    purpose: str,
    ttl: timedelta,
    now: datetime | None = None,
) -> str:
    issued_at = now or _now_utc()
    exp = issued_at + ttl

    payload: dict[str, Any] = {
        **identity.to_claims(),
        "purpose": purpose,
        "jti": uuid.uuid4().hex,
        "iat": int(issued_at.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _require_secret(secret), algorithm=settings.JWT_ALGORITHM)


def issue_access_token(identity: IdentityClaim, *, now: datetime | None = None) -> str:
    """
    Short-lived token presented on every API call (``accessToken`` cookie).
    Never stored server-side.
    """
    return _encode(
        identity,
        secret=settings.ACCESS_TOKEN_SECRET,
        purpose=PURPOSE_ACCESS,
        ttl=access_token_ttl(),
        now=now,
    )


def issue_refresh_token(identity: IdentityClaim, *, now: datetime | None = None) -> str:
    """
    Longer-lived token used only to mint new access tokens (``refreshToken`` cookie).
    Backed by a session record, which is what makes it revocable.
    """
    return _encode(
        identity,
        secret=settings.REFRESH_TOKEN_SECRET,
        purpose=PURPOSE_REFRESH,
        ttl=refresh_token_ttl(),
        now=now,
    )


def verify(
    token: str,
    secret: str,
    *,
    expected_purpose: str | None = None,
    verify_exp: bool = True,
) -> IdentityClaim:
    """
    Verify signature (and expiry unless disabled) and return the embedded identity.

    Raises:
        InvalidTokenError: on any failure.
    """
    if not token or not secret:
        raise InvalidTokenError()

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        raise InvalidTokenError()

    if expected_purpose is not None and payload.get("purpose") != expected_purpose:
        raise InvalidTokenError()

    try:
        return IdentityClaim.from_claims(payload)
    except ValueError:
        raise InvalidTokenError()


def verify_access_token(token: str) -> IdentityClaim:
    return verify(token, settings.ACCESS_TOKEN_SECRET, expected_purpose=PURPOSE_ACCESS)


def verify_refresh_token(token: str) -> IdentityClaim:
    return verify(token, settings.REFRESH_TOKEN_SECRET, expected_purpose=PURPOSE_REFRESH)


def peek_identity(access_token: str | None, refresh_token: str | None) -> IdentityClaim | None:
    """
    Best-effort "who sent this" for CSRF binding and logout.

    Signatures are still checked, expiry is not: an expired access token still
    names its owner, it just can't authorize anything.
    """
    for token, secret, purpose in (
        (access_token, settings.ACCESS_TOKEN_SECRET, PURPOSE_ACCESS),
        (refresh_token, settings.REFRESH_TOKEN_SECRET, PURPOSE_REFRESH),
    ):
        if not token:
            continue
        try:
            return verify(token, secret, expected_purpose=purpose, verify_exp=False)
        except InvalidTokenError:
            continue
    return None
