# teamboard/services/users.py
"""
User lookup and provisioning.

Responsibilities:
- Local (username/password) account creation and credential checks
- Find-or-create for accounts arriving through the Google OAuth exchange
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from teamboard.core.security import hash_password, verify_password
from teamboard.models.user import User

logger = logging.getLogger(__name__)

PROVIDER_LOCAL = "local"
PROVIDER_GOOGLE = "google"

_USERNAME_STRIP = re.compile(r"[^a-z0-9_.-]+")


class UserConflictError(ValueError):
    """Username or email already taken."""


def get_user_by_id(db: Session, user_id: str | int) -> Optional[User]:
    try:
        pk = int(str(user_id))
    except (TypeError, ValueError):
        return None
    return db.query(User).filter(User.id == pk).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Look up a user by email address."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username.strip()).first()


def create_local_user(db: Session, *, username: str, email: str, password: str) -> User:
    username = username.strip()
    email = email.strip().lower()

    if get_user_by_username(db, username) is not None:
        raise UserConflictError("Username already taken")
    if get_user_by_email(db, email) is not None:
        raise UserConflictError("Email already registered")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        auth_provider=PROVIDER_LOCAL,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered local user id=%s", user.id)
    return user


def authenticate_local(db: Session, login: str, password: str) -> Optional[User]:
    """
    Resolve ``login`` as an email (if it contains "@") or a username, then check
    the password. Returns None for any mismatch so callers can answer uniformly.
    """
    login = (login or "").strip()
    if not login:
        return None

    user = get_user_by_email(db, login) if "@" in login else get_user_by_username(db, login)
    if user is None or not user.is_active or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def _derive_username(db: Session, email: str, name: str | None) -> str:
    base = _USERNAME_STRIP.sub("", (name or email.split("@", 1)[0]).strip().lower()) or "user"
    base = base[:40]
    candidate = base
    suffix = 1
    while get_user_by_username(db, candidate) is not None:
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def get_or_create_oauth_user(db: Session, *, email: str, name: str | None = None) -> User:
    """
    Find the account for a verified Google email, or provision one.
    """
    email = email.strip().lower()
    user = get_user_by_email(db, email)
    if user is not None:
        return user

    user = User(
        username=_derive_username(db, email, name),
        email=email,
        password_hash=None,
        auth_provider=PROVIDER_GOOGLE,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Provisioned OAuth user id=%s", user.id)
    return user
