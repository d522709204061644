# teamboard/client/csrf.py
from __future__ import annotations

import logging
import threading

import httpx

logger = logging.getLogger(__name__)

CSRF_TOKEN_PATH = "/api/csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"


class CsrfTokenProvider:
    """
    Caches the double-submit token for one client.

    The server binds tokens to the session they were issued under, so the cache
    must be reset whenever the session cookies change (login, logout).
    """

    def __init__(
        self,
        http: httpx.Client,
        *,
        path: str = CSRF_TOKEN_PATH,
        header_name: str = CSRF_HEADER_NAME,
    ) -> None:
        self._http = http
        self.path = path
        self.header_name = header_name
        self._token: str | None = None
        self._lock = threading.Lock()

    @property
    def token(self) -> str | None:
        return self._token

    def fetch(self) -> str | None:
        try:
            resp = self._http.get(self.path)
        except httpx.HTTPError as e:
            logger.warning("CSRF token fetch failed: %s", e)
            return None

        if not resp.is_success:
            logger.warning("CSRF token fetch returned status=%s", resp.status_code)
            return None

        try:
            token = resp.json().get("csrfToken")
        except (ValueError, AttributeError):
            logger.warning("CSRF token response was not a JSON object")
            return None

        self._token = token if isinstance(token, str) and token else None
        return self._token

    def get(self) -> str | None:
        """Return the cached token, fetching it once if absent."""
        with self._lock:
            if self._token is None:
                self.fetch()
            return self._token

    def reset(self) -> None:
        with self._lock:
            self._token = None
