# teamboard/client/monitor.py
from __future__ import annotations

import logging
import threading
from typing import Callable

from teamboard.client.gateway import ApiGateway, ApiResult

logger = logging.getLogger(__name__)

SECURITY_CHECK_PATH = "/api/sessions/security-check"
DEFAULT_INTERVAL_SECONDS = 5 * 60
MULTIPLE_LOCATIONS_THRESHOLD = 3

WARNING_SUSPICIOUS = "suspicious_activity"
WARNING_MULTIPLE_LOCATIONS = "multiple_locations"


class SessionMonitor:
    """
    Periodic session security check.

    Runs on a fixed interval regardless of request traffic, as a chain of
    one-shot timers. ``stop()`` cancels the pending timer; it must be called on
    logout so a timer never outlives its session.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ) -> None:
        self.gateway = gateway
        self.interval = interval
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self._running = False
        self._lock = threading.RLock()
        self.warnings: set[str] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule()
        logger.info("Session monitoring started (every %ss)", self.interval)

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self) -> None:
        timer = self._timer_factory(self.interval, self._tick)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        if not self._running:
            return
        self.check_security()
        with self._lock:
            if self._running:
                self._schedule()

    def check_security(self) -> ApiResult:
        result = self.gateway.request_json("GET", SECURITY_CHECK_PATH)
        if not result.ok or not isinstance(result.data, dict):
            logger.info("Security check failed status=%s", result.status)
            return result

        if result.data.get("isSuspicious"):
            self.warnings.add(WARNING_SUSPICIOUS)
        if int(result.data.get("uniqueIPs") or 0) > MULTIPLE_LOCATIONS_THRESHOLD:
            self.warnings.add(WARNING_MULTIPLE_LOCATIONS)
        return result

    def clear_warnings(self) -> None:
        self.warnings.clear()
