# teamboard/dependencies/auth.py
from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from teamboard.auth.identity import IdentityClaim
from teamboard.core.database import get_db
from teamboard.core.errors import NotAuthenticatedError, SessionError
from teamboard.core.security import verify_access_token, verify_refresh_token
from teamboard.services import session_store
from teamboard.services.session_cookies import read_access_cookie, read_refresh_cookie

logger = logging.getLogger(__name__)


def require_access_session(request: Request, db: Session = Depends(get_db)) -> IdentityClaim:
    """
    Access-token guard.

    Validates:
      - accessToken cookie present (else bare 401)
      - signature + exp (else 403, InvalidTokenError)
      - the user's session record is live (else 401 TOKEN_REVOKED / TOKEN_INVALID)

    The store lookup happens on every request. It is what makes a logout visible
    before the access token runs out on its own.
    """
    token = read_access_cookie(request)
    if not token:
        logger.debug("No access cookie on %s %s", request.method, request.url.path)
        raise NotAuthenticatedError()

    identity = verify_access_token(token)

    try:
        session_store.require_live_session(db, identity.user_id)
    except SessionError as exc:
        logger.warning("Access token presented for dead session user_id=%s code=%s", identity.user_id, exc.code)
        raise

    request.state.identity = identity
    return identity


def require_refresh_token(request: Request) -> IdentityClaim:
    """
    Refresh-token guard: signature + exp only.

    Deliberately skips the store; the rotation endpoint does its own record
    check before minting anything.
    """
    token = read_refresh_cookie(request)
    if not token:
        logger.debug("No refresh cookie on %s %s", request.method, request.url.path)
        raise NotAuthenticatedError()

    identity = verify_refresh_token(token)
    request.state.identity = identity
    return identity
