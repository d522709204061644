# teamboard/client/oauth_poller.py
"""
Desktop OAuth hand-off: the browser completes the Google flow while the app
polls the backend until the hand-off for ``state`` is resolved.

The status endpoint belongs to the desktop OAuth bridge deployment and is not
served by the ``teamboard`` app; ``path`` points the poller at it.

States: pending -> completed | error | timeout. Polling is bounded to
``max_attempts`` calls spaced ``interval`` seconds apart.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from teamboard.client.gateway import ApiGateway

logger = logging.getLogger(__name__)

OAUTH_STATUS_PATH = "/api/auth/oauth/status"
DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 2.0


class OAuthStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"
    TIMEOUT = "timeout"


TERMINAL_STATES = frozenset([OAuthStatus.COMPLETED, OAuthStatus.ERROR, OAuthStatus.TIMEOUT])


@dataclass
class PollOutcome:
    status: OAuthStatus
    attempts: int
    data: Any = None
    message: str | None = None


class OAuthStatusPoller:
    def __init__(
        self,
        gateway: ApiGateway,
        state: str,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        path: str = OAUTH_STATUS_PATH,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.gateway = gateway
        self.state = state
        self.max_attempts = max_attempts
        self.interval = interval
        self._sleep = sleep
        self.path = path

        self.status = OAuthStatus.PENDING
        self.attempts = 0
        self.data: Any = None
        self.message: str | None = None

    def poll_once(self) -> OAuthStatus:
        """
        One status request. Network errors and 5xx count as an attempt but leave
        the poller pending; other non-2xx responses end it in ``error``.
        """
        if self.status in TERMINAL_STATES:
            return self.status

        self.attempts += 1
        result = self.gateway.request_json("GET", self.path, params={"state": self.state})
        body = result.data if isinstance(result.data, dict) else {}

        if not result.ok:
            if result.status == 0 or result.status >= 500:
                logger.info("OAuth status poll %s transient failure status=%s", self.attempts, result.status)
                return self.status
            self.status = OAuthStatus.ERROR
            self.message = body.get("message") or f"Status check failed ({result.status})"
            return self.status

        reported = str(body.get("status") or "").lower()
        if reported == OAuthStatus.COMPLETED.value:
            self.status = OAuthStatus.COMPLETED
            self.data = body
        elif reported == OAuthStatus.ERROR.value:
            self.status = OAuthStatus.ERROR
            self.message = body.get("message") or body.get("error") or "OAuth authentication failed"
        return self.status

    def run(self) -> PollOutcome:
        while self.status not in TERMINAL_STATES:
            self.poll_once()
            if self.status in TERMINAL_STATES:
                break
            if self.attempts >= self.max_attempts:
                self.status = OAuthStatus.TIMEOUT
                self.message = "Timed out waiting for OAuth sign-in"
                logger.warning("OAuth status polling timed out after %s attempts", self.attempts)
                break
            self._sleep(self.interval)

        return PollOutcome(status=self.status, attempts=self.attempts, data=self.data, message=self.message)
