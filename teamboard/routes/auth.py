# teamboard/routes/auth.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from teamboard.auth.identity import IdentityClaim
from teamboard.core.config import settings
from teamboard.core.database import get_db
from teamboard.core.errors import SessionError
from teamboard.core.rate_limit import limiter
from teamboard.core.security import (
    issue_access_token,
    issue_refresh_token,
    peek_identity,
    refresh_token_ttl,
)
from teamboard.dependencies.auth import require_refresh_token
from teamboard.models.user import User
from teamboard.schemas.auth import (
    IssueSessionIn,
    LoginIn,
    MessageOut,
    OAuthIn,
    RegisterIn,
    SessionStartedOut,
)
from teamboard.services import session_store
from teamboard.services.google_oauth import GoogleProfileError, fetch_google_profile
from teamboard.services.session_cookies import (
    clear_session_cookies,
    read_access_cookie,
    read_refresh_cookie,
    set_access_cookie,
    set_refresh_cookie,
)
from teamboard.services.users import (
    UserConflictError,
    authenticate_local,
    create_local_user,
    get_or_create_oauth_user,
    get_user_by_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _maybe_limit(rule: str):
    if not settings.ENABLE_RATE_LIMITING:
        def passthrough(fn):
            return fn
        return passthrough
    return limiter.limit(rule)


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",", 1)[0].strip() or None
    return request.client.host if request.client else None


# -----------------------------
# Session issuance / teardown
# -----------------------------
def start_session(db: Session, request: Request, response: Response, identity: IdentityClaim) -> dict:
    """
    Issue both tokens, upsert the user's session record, and set the cookies.

    Used by every credential path (local login, OAuth, direct issuance).
    """
    session_store.purge_expired(db)

    refresh_token = issue_refresh_token(identity)
    access_token = issue_access_token(identity)
    session_store.upsert(
        db,
        identity.user_id,
        refresh_token,
        datetime.now(timezone.utc) + refresh_token_ttl(),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    set_refresh_cookie(response, refresh_token)
    set_access_cookie(response, access_token)
    return {"message": "Session created successfully", "user": identity.to_claims()}


def end_session(db: Session, request: Request, response: Response) -> dict:
    """
    Logout: revoke the caller's record (if we can tell who they are) and always
    clear both cookies. Idempotent.
    """
    identity = peek_identity(read_access_cookie(request), read_refresh_cookie(request))
    clear_session_cookies(response)
    if identity is None:
        return {"message": "Already logged out"}

    session_store.revoke(db, identity.user_id, reason=session_store.REASON_LOGOUT)
    return {"message": "User logged out successfully"}


# -----------------------------
# Credential routes
# -----------------------------
@router.post("/local/register", response_model=MessageOut, status_code=201)
@_maybe_limit(settings.LOGIN_RATE_LIMIT)
def register(request: Request, payload: RegisterIn, db: Session = Depends(get_db)):
    try:
        create_local_user(db, username=payload.username, email=payload.email, password=payload.password)
    except UserConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"message": "Registration successful. You can now log in."}


@router.post("/local/login", response_model=SessionStartedOut)
@_maybe_limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = authenticate_local(db, payload.login, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")

    return start_session(db, request, response, IdentityClaim.from_user(user))


@router.post("/oauth", response_model=SessionStartedOut)
@_maybe_limit(settings.LOGIN_RATE_LIMIT)
def oauth_login(request: Request, payload: OAuthIn, response: Response, db: Session = Depends(get_db)):
    try:
        profile = fetch_google_profile(payload.token)
    except GoogleProfileError as e:
        logger.info("OAuth exchange rejected: %s", e)
        raise HTTPException(status_code=401, detail="OAuth authentication failed")

    user = get_or_create_oauth_user(db, email=profile["email"], name=profile.get("name"))
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is inactive")

    return start_session(db, request, response, IdentityClaim.from_user(user))


# -----------------------------
# Token routes
# -----------------------------
@router.post("/tokens/refresh", response_model=SessionStartedOut)
def issue_session(
    request: Request,
    payload: IssueSessionIn,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Issue a refresh token + session record for ``user`` in the body.

    The claim must describe an existing, active account exactly; anything else
    is refused rather than minting tokens for an identity we don't know.
    """
    user: User | None = get_user_by_id(db, payload.user.userId)
    if user is None or not user.is_active:
        raise HTTPException(status_code=400, detail="Unknown user")

    identity = IdentityClaim.from_user(user)
    claimed_email = (payload.user.email or "").strip().lower() or None
    if payload.user.username != identity.username or claimed_email != identity.email:
        raise HTTPException(status_code=400, detail="User data does not match account")

    return start_session(db, request, response, identity)


@router.get("/tokens/access", response_model=MessageOut)
def rotate_access_token(
    request: Request,
    response: Response,
    identity: IdentityClaim = Depends(require_refresh_token),
    db: Session = Depends(get_db),
):
    """
    Mint a new access token from a valid refresh token.

    Checks the session record explicitly: it must exist, be unrevoked,
    unexpired, and still hold the presented refresh token. The refresh token
    is not single-use, so concurrent rotations with the same cookie all succeed.
    """
    presented = read_refresh_cookie(request)
    try:
        rt = session_store.require_live_session(db, identity.user_id, token=presented)
    except SessionError as exc:
        logger.warning("Rotation refused for user_id=%s code=%s", identity.user_id, exc.code)
        failure = JSONResponse(status_code=401, content=exc.to_payload())
        clear_session_cookies(failure)
        return failure

    set_access_cookie(response, issue_access_token(identity))
    session_store.touch_activity(db, rt, ip_address=_client_ip(request))
    logger.info("Access token renewed for user_id=%s", identity.user_id)
    return {"message": "Access token renewed"}


@router.delete("/tokens/refresh", response_model=MessageOut)
def revoke_session_alias(request: Request, response: Response, db: Session = Depends(get_db)):
    return end_session(db, request, response)


# Short aliases for the token routes.
tokens_router = APIRouter(prefix="/api/tokens", tags=["auth"])
tokens_router.add_api_route("/access", rotate_access_token, methods=["GET"], response_model=MessageOut)
tokens_router.add_api_route("/refresh", issue_session, methods=["POST"], response_model=SessionStartedOut)
tokens_router.add_api_route("/refresh", revoke_session_alias, methods=["DELETE"], response_model=MessageOut)
