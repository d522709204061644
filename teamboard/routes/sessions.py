# teamboard/routes/sessions.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from teamboard.auth.identity import IdentityClaim
from teamboard.core.database import get_db
from teamboard.dependencies.auth import require_access_session
from teamboard.models.refresh_token import RefreshToken
from teamboard.routes.auth import end_session
from teamboard.schemas.auth import MessageOut
from teamboard.schemas.session import (
    ActiveSessionsOut,
    CurrentSessionOut,
    RevokeOthersOut,
    SecurityCheckOut,
)
from teamboard.services import session_store
from teamboard.services.session_cookies import read_refresh_cookie

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

SUSPICIOUS_RECENT_IPS = 3
RECENT_WINDOW = timedelta(hours=24)


def _session_info(rt: RefreshToken, current_token: str | None) -> dict:
    return {
        "sessionId": rt.id,
        "ipAddress": rt.ip_address,
        "userAgent": rt.user_agent,
        "lastActivity": rt.last_activity,
        "activityCount": int(rt.activity_count or 0),
        "createdAt": rt.created_at,
        "expiresAt": rt.expires_at,
        "isCurrent": bool(current_token) and rt.token == current_token,
    }


@router.get("/active", response_model=ActiveSessionsOut)
def get_active_sessions(
    request: Request,
    identity: IdentityClaim = Depends(require_access_session),
    db: Session = Depends(get_db),
):
    current = read_refresh_cookie(request)
    records = session_store.active_records(db, identity.user_id)
    records.sort(key=lambda rt: rt.last_activity or rt.created_at, reverse=True)

    sessions = [_session_info(rt, current) for rt in records]
    return {
        "totalCount": len(records),
        "sessionCount": len(sessions),
        "uniqueIPs": len({rt.ip_address for rt in records}),
        "totalActivity": sum(int(rt.activity_count or 0) for rt in records),
        "lastActivity": records[0].last_activity if records else None,
        "sessions": sessions,
    }


@router.get("/current", response_model=CurrentSessionOut)
def get_current_session(
    request: Request,
    identity: IdentityClaim = Depends(require_access_session),
    db: Session = Depends(get_db),
):
    rt = session_store.get_record(db, identity.user_id)
    if rt is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session": _session_info(rt, read_refresh_cookie(request))}


@router.get("/security-check", response_model=SecurityCheckOut)
def security_check(
    identity: IdentityClaim = Depends(require_access_session),
    db: Session = Depends(get_db),
):
    records = session_store.active_records(db, identity.user_id)
    cutoff = datetime.now(timezone.utc) - RECENT_WINDOW
    recent = [rt for rt in records if (session_store.as_aware(rt.created_at) or cutoff) >= cutoff]
    recent_ips = {rt.ip_address for rt in recent}
    return {
        "isSuspicious": len(recent_ips) > SUSPICIOUS_RECENT_IPS,
        "uniqueIPs": len({rt.ip_address for rt in records}),
        "activeTokenCount": len(records),
        "recentUniqueIPs": len(recent_ips),
    }


@router.delete("/me", response_model=MessageOut)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    return end_session(db, request, response)


@router.delete("/revoke-all/except-current", response_model=RevokeOthersOut)
def revoke_other_sessions(
    request: Request,
    identity: IdentityClaim = Depends(require_access_session),
    db: Session = Depends(get_db),
):
    current = read_refresh_cookie(request)
    if not current:
        raise HTTPException(status_code=401, detail="No current session found")

    count = session_store.revoke_all_except(db, identity.user_id, current)
    return {"message": f"Ended {count} other sessions", "count": count}


@router.delete("/{session_id}", response_model=MessageOut)
def revoke_session(
    session_id: int,
    identity: IdentityClaim = Depends(require_access_session),
    db: Session = Depends(get_db),
):
    rt = session_store.revoke_record(db, session_id, owner_user_id=identity.user_id)
    if rt is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session ended successfully"}
