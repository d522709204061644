# teamboard/client/events.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

TOKEN_REVOKED_EVENT = "token-revoked"


@dataclass(frozen=True)
class TokenRevokedEvent:
    code: str
    message: str


TokenRevokedListener = Callable[[TokenRevokedEvent], None]


class AuthEvents:
    """Listener registry for session-security signals, one per client context."""

    def __init__(self) -> None:
        self._listeners: list[TokenRevokedListener] = []
        self._lock = threading.Lock()

    def on_token_revoked(self, listener: TokenRevokedListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit_token_revoked(self, event: TokenRevokedEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)

        logger.warning("Emitting %s code=%s to %s listener(s)", TOKEN_REVOKED_EVENT, event.code, len(listeners))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # Remaining listeners still run.
                logger.exception("token-revoked listener failed")
