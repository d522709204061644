from __future__ import annotations

from fastapi import APIRouter, Request, Response

from teamboard.schemas.auth import CsrfOut
from teamboard.services.csrf import issue_token, session_identifier, set_csrf_cookie

router = APIRouter(prefix="/api", tags=["csrf"])


@router.get("/csrf-token", response_model=CsrfOut)
def get_csrf_token(request: Request, response: Response):
    """
    Issue a CSRF token bound to the caller (user id, or the anonymous bucket)
    and set it as the double-submit cookie.
    """
    token = issue_token(session_identifier(request))
    set_csrf_cookie(response, token)
    return {"csrfToken": token}
