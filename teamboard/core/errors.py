# teamboard/core/errors.py
"""
Session error taxonomy.

- NotAuthenticatedError: no session cookie at all. Expected; answered with a bare 401.
- InvalidTokenError (teamboard.core.security): signature/expiry failure. Generic 403.
- SessionRevokedError / SessionInvalidError: the token itself checks out but the
  backing session record does not. 401 with a structured marker the client reacts to.
"""
from __future__ import annotations

TOKEN_REVOKED = "TOKEN_REVOKED"
TOKEN_INVALID = "TOKEN_INVALID"

REVOKED_MESSAGE = "Your session has been terminated. Please sign in again."
INVALID_MESSAGE = "Your session is no longer valid. Please sign in again."


class NotAuthenticatedError(Exception):
    """No access/refresh cookie was sent."""


class SessionError(Exception):
    code = TOKEN_REVOKED
    default_message = REVOKED_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class SessionRevokedError(SessionError):
    """Session record is missing or revoked."""


class SessionInvalidError(SessionError):
    """Session record exists but no longer backs the presented refresh token."""

    code = TOKEN_INVALID
    default_message = INVALID_MESSAGE
