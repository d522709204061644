from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from teamboard.services.csrf import validate_request

logger = logging.getLogger(__name__)

CSRF_BYPASS_PATHS = frozenset(
    [
        "/health",
        "/docs",
        "/openapi.json",
        "/redoc",
    ]
)


def register_csrf_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def csrf_middleware(request: Request, call_next):
        """
        Double-submit check for every state-changing request.

        Runs before routing, so it rejects forged requests ahead of any session
        token verification. Safe methods pass through untouched.
        """
        path = request.url.path.rstrip("/")
        if path in CSRF_BYPASS_PATHS:
            return await call_next(request)

        problem = validate_request(request)
        if problem is not None:
            logger.warning("CSRF rejection method=%s path=%s reason=%s", request.method, path, problem)
            return JSONResponse(
                status_code=403,
                content={"error": "FORBIDDEN", "message": problem},
            )

        return await call_next(request)
