# teamboard/services/session_store.py
"""
Session Store: one refresh-token record per user.

The record is the source of truth for whether a refresh token (and, through the
access-token guard, the whole session) is still alive. Expiry is always
re-checked at use time; purging expired rows is housekeeping only.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamboard.core.config import settings
from teamboard.core.errors import SessionInvalidError, SessionRevokedError
from teamboard.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

REASON_LOGOUT = "user_logout"
REASON_USER_REVOKE = "user_revoke"
REASON_SECURITY = "security"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime | None) -> datetime | None:
    # SQLite round-trips tz-aware datetimes as naive. Treat naive as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_pk(user_id: str | int) -> int | None:
    try:
        return int(str(user_id).strip())
    except (TypeError, ValueError):
        return None


def is_expired(rt: RefreshToken, now: datetime | None = None) -> bool:
    expires_at = as_aware(rt.expires_at)
    if expires_at is None:
        return True
    return expires_at <= (now or _now_utc())


def get_record(db: Session, user_id: str | int) -> RefreshToken | None:
    pk = _user_pk(user_id)
    if pk is None:
        return None
    return db.query(RefreshToken).filter(RefreshToken.user_id == pk).first()


def upsert(
    db: Session,
    user_id: str | int,
    token: str,
    expires_at: datetime,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """
    The only write path for (re)issuing a refresh token.

    Finds the user's record and overwrites it, or creates one. A fresh upsert is
    also the only way to clear a revocation.
    """
    pk = _user_pk(user_id)
    if pk is None:
        raise ValueError("user_id must be numeric")

    now = _now_utc()
    values = {
        "token": token,
        "expires_at": expires_at,
        "created_at": now,
        "revoked": False,
        "revoked_at": None,
        "revoked_reason": None,
        "ip_address": ip_address,
        "user_agent": (user_agent or "")[:512] or None,
        "last_activity": now,
        "activity_count": 1,
    }

    rt = db.query(RefreshToken).filter(RefreshToken.user_id == pk).first()
    if rt is None:
        rt = RefreshToken(user_id=pk, **values)
        db.add(rt)
        try:
            db.commit()
        except IntegrityError:
            # Another request created the row first; fall through to update it.
            db.rollback()
            rt = db.query(RefreshToken).filter(RefreshToken.user_id == pk).one()
            for key, value in values.items():
                setattr(rt, key, value)
            db.commit()
    else:
        for key, value in values.items():
            setattr(rt, key, value)
        db.commit()

    db.refresh(rt)
    logger.info("Session issued for user_id=%s expires_at=%s", pk, expires_at.isoformat())
    return rt


def is_valid(db: Session, user_id: str | int, *, now: datetime | None = None) -> bool:
    """True iff a record exists, is not expired, and is not revoked."""
    rt = get_record(db, user_id)
    if rt is None or rt.revoked:
        return False
    return not is_expired(rt, now)


def require_live_session(
    db: Session,
    user_id: str | int,
    *,
    token: str | None = None,
    now: datetime | None = None,
) -> RefreshToken:
    """
    Return the user's live record or raise.

    Raises:
        SessionRevokedError: no record, or the record is revoked.
        SessionInvalidError: record expired, or ``token`` is given and no longer
            matches the record (superseded by a newer login).
    """
    rt = get_record(db, user_id)
    if rt is None or rt.revoked:
        raise SessionRevokedError()
    if is_expired(rt, now):
        raise SessionInvalidError()
    if token is not None and rt.token != token:
        raise SessionInvalidError()
    return rt


def revoke(db: Session, user_id: str | int, reason: str = REASON_LOGOUT) -> bool:
    """
    Mark the user's record revoked. Returns True if this call did the transition.

    Revocation is one-way; only ``upsert`` brings a session back.
    """
    rt = get_record(db, user_id)
    if rt is None or rt.revoked:
        return False

    rt.revoked = True
    rt.revoked_at = _now_utc()
    rt.revoked_reason = reason
    db.commit()
    logger.info("Session revoked for user_id=%s reason=%s", rt.user_id, reason)
    return True


def revoke_record(
    db: Session,
    record_id: int,
    *,
    owner_user_id: str | int,
    reason: str = REASON_USER_REVOKE,
) -> RefreshToken | None:
    """Revoke a record by id, only if it belongs to ``owner_user_id``."""
    pk = _user_pk(owner_user_id)
    rt = (
        db.query(RefreshToken)
        .filter(RefreshToken.id == record_id)
        .filter(RefreshToken.user_id == pk)
        .first()
    )
    if rt is None:
        return None
    if not rt.revoked:
        rt.revoked = True
        rt.revoked_at = _now_utc()
        rt.revoked_reason = reason
        db.commit()
        logger.info("Session %s revoked for user_id=%s reason=%s", record_id, pk, reason)
    return rt


def revoke_all_except(
    db: Session,
    user_id: str | int,
    current_token: str,
    reason: str = REASON_SECURITY,
) -> int:
    pk = _user_pk(user_id)
    if pk is None:
        return 0
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == pk)
        .filter(RefreshToken.token != current_token)
        .filter(RefreshToken.revoked.is_(False))
        .update(
            {
                RefreshToken.revoked: True,
                RefreshToken.revoked_at: _now_utc(),
                RefreshToken.revoked_reason: reason,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    logger.info("Revoked %s other sessions for user_id=%s reason=%s", count, pk, reason)
    return int(count or 0)


def active_records(db: Session, user_id: str | int, *, now: datetime | None = None) -> list[RefreshToken]:
    pk = _user_pk(user_id)
    if pk is None:
        return []
    rows = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == pk)
        .filter(RefreshToken.revoked.is_(False))
        .all()
    )
    return [rt for rt in rows if not is_expired(rt, now)]


def touch_activity(db: Session, rt: RefreshToken, *, ip_address: str | None = None) -> None:
    values = {
        RefreshToken.last_activity: _now_utc(),
        RefreshToken.activity_count: RefreshToken.activity_count + 1,
    }
    if ip_address and ip_address != rt.ip_address:
        logger.info("IP change detected for user_id=%s", rt.user_id)
        values[RefreshToken.ip_address] = ip_address
    db.query(RefreshToken).filter(RefreshToken.id == rt.id).update(values, synchronize_session=False)
    db.commit()


def purge_expired(
    db: Session,
    *,
    now: datetime | None = None,
    retention_days: int | None = None,
    dry_run: bool = False,
) -> int:
    """
    Delete records that are past expiry, or revoked longer ago than the retention window.

    Runs as a single filtered DELETE; rows are never loaded into the session.
    """
    now = now or _now_utc()
    days = settings.REVOKED_SESSION_RETENTION_DAYS if retention_days is None else retention_days
    revoked_cutoff = now - timedelta(days=days)

    doomed = db.query(RefreshToken).filter(
        or_(
            RefreshToken.expires_at <= now,
            and_(RefreshToken.revoked.is_(True), RefreshToken.revoked_at < revoked_cutoff),
        )
    )
    if dry_run:
        return doomed.count()

    purged = doomed.delete(synchronize_session=False)
    db.commit()
    if purged:
        logger.info("Purged %s expired/old session records", purged)
    return purged
