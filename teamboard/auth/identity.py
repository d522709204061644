# teamboard/auth/identity.py
"""
Identity claim carried by session tokens.

Both access and refresh tokens embed exactly this claim set: who the caller
is, never what they may do. Roles and permissions are resolved per request by
the feature endpoints that need them.

The claim is immutable for the lifetime of a token. Changing a username or
email takes effect the next time a session is issued.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

# Names used inside the signed payload and in JSON responses.
CLAIM_USER_ID = "userId"
CLAIM_USERNAME = "username"
CLAIM_EMAIL = "email"


@dataclass(frozen=True)
class IdentityClaim:
    """
    Attributes:
        user_id: Internal user identifier (string form of the primary key).
        username: Display/login name at the time the token was issued.
        email: Normalized (lowercase) email at the time the token was issued.
    """

    user_id: str
    username: str
    email: str | None = None

    @classmethod
    def from_user(cls, user: Any) -> IdentityClaim:
        """Build a claim from a ``User`` row (or anything with the same attributes)."""
        return cls(
            user_id=str(user.id),
            username=str(user.username or ""),
            email=user.email.strip().lower() if getattr(user, "email", None) else None,
        )

    @classmethod
    def from_claims(cls, payload: Mapping[str, Any]) -> IdentityClaim:
        """
        Rebuild a claim from a decoded token payload or a request body.

        Raises:
            ValueError: if the user id is missing.
        """
        user_id = payload.get(CLAIM_USER_ID)
        if user_id is None or not str(user_id).strip():
            raise ValueError("Identity claim missing user id")
        email = payload.get(CLAIM_EMAIL)
        return cls(
            user_id=str(user_id).strip(),
            username=str(payload.get(CLAIM_USERNAME) or ""),
            email=str(email).strip().lower() if email else None,
        )

    def to_claims(self) -> dict[str, Any]:
        return {
            CLAIM_USER_ID: self.user_id,
            CLAIM_USERNAME: self.username,
            CLAIM_EMAIL: self.email,
        }
