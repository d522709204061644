# teamboard/services/session_cookies.py
from __future__ import annotations

from fastapi import Request, Response

from teamboard.core.config import settings
from teamboard.core.security import access_token_ttl, refresh_token_ttl


# -----------------------------
# Cookie settings
# -----------------------------
def access_cookie_name() -> str:
    return str(getattr(settings, "ACCESS_COOKIE_NAME", "accessToken")).strip() or "accessToken"


def refresh_cookie_name() -> str:
    return str(getattr(settings, "REFRESH_COOKIE_NAME", "refreshToken")).strip() or "refreshToken"


def cookie_secure() -> bool:
    # Prod => HTTPS => Secure cookies. Dev http://localhost => must be False.
    return settings.is_prod


def cookie_samesite() -> str:
    v = str(getattr(settings, "AUTH_COOKIE_SAMESITE", "strict")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "strict"
    return v


def _set(resp: Response, key: str, value: str, max_age: int) -> None:
    resp.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=max_age,
        path="/",
        domain=settings.AUTH_COOKIE_DOMAIN,
    )


def set_access_cookie(resp: Response, access_token: str) -> None:
    _set(resp, access_cookie_name(), access_token, int(access_token_ttl().total_seconds()))


def set_refresh_cookie(resp: Response, refresh_token: str) -> None:
    _set(resp, refresh_cookie_name(), refresh_token, int(refresh_token_ttl().total_seconds()))


def clear_session_cookies(resp: Response) -> None:
    for key in (access_cookie_name(), refresh_cookie_name()):
        resp.delete_cookie(
            key=key,
            path="/",
            domain=settings.AUTH_COOKIE_DOMAIN,
            secure=cookie_secure(),
            httponly=True,
            samesite=cookie_samesite(),
        )


def _read(req: Request, key: str) -> str | None:
    val = req.cookies.get(key)
    if not val:
        return None
    val = val.strip()
    return val or None


def read_access_cookie(req: Request) -> str | None:
    return _read(req, access_cookie_name())


def read_refresh_cookie(req: Request) -> str | None:
    return _read(req, refresh_cookie_name())
