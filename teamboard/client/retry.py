# teamboard/client/retry.py
from __future__ import annotations

from typing import Callable, TypeVar

T = TypeVar("T")


def _never(_result) -> bool:
    return False


def with_retry(
    fn: Callable[[], T],
    *,
    max_attempts: int = 1,
    should_retry: Callable[[T], bool] = _never,
    before_retry: Callable[[T], bool] | None = None,
) -> T:
    """
    Call ``fn`` and re-call it at most ``max_attempts`` more times.

    After each call, ``should_retry(result)`` decides whether another attempt is
    wanted. If so, ``before_retry(result)`` runs first and may veto the retry by
    returning False (e.g. a token rotation that failed). The last result is
    returned either way; exceptions from ``fn`` propagate.

    Usage:
        resp = with_retry(
            lambda: http.get("/api/users"),
            max_attempts=1,
            should_retry=lambda r: r.status_code == 401,
            before_retry=lambda r: rotate(),
        )
    """
    if max_attempts < 0:
        raise ValueError("max_attempts must be >= 0")

    result = fn()
    for _ in range(max_attempts):
        if not should_retry(result):
            break
        if before_retry is not None and not before_retry(result):
            break
        result = fn()
    return result
