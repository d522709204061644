import logging
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi.errors import RateLimitExceeded

from teamboard.core.config import settings, require_auth_secrets
from teamboard.core.errors import NotAuthenticatedError, SessionError
from teamboard.core.rate_limit import limiter
from teamboard.core.security import InvalidTokenError
from teamboard.middleware.csrf import register_csrf_middleware
from teamboard.routes.auth import router as auth_router, tokens_router
from teamboard.routes.csrf import router as csrf_router
from teamboard.routes.sessions import router as sessions_router
from teamboard.routes.users import router as users_router

logger = logging.getLogger(__name__)

require_auth_secrets()

app = FastAPI(title="Teamboard")
logger.info(
    "Startup config: ENV=%s access_ttl_min=%s refresh_ttl_h=%s rate_limiting=%s",
    settings.ENV,
    settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    settings.REFRESH_TOKEN_EXPIRE_HOURS,
    settings.ENABLE_RATE_LIMITING,
)

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    message: str
    details: dict | None = None
    code = _error_code(exc.status_code)

    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        msg = detail.get("message")
        message = msg if isinstance(msg, str) and msg else "Request failed"
        det = detail.get("details")
        details = det if isinstance(det, dict) else None
        err = detail.get("error")
        if isinstance(err, str) and err:
            code = err
    else:
        message = str(detail) if detail is not None else "Request failed"

    payload: dict = {"error": code, "message": message}
    if details:
        payload["details"] = details
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # pydantic may put exception objects in "ctx"; keep the response JSON-safe.
    out: list[dict] = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k != "ctx"}
        out.append(item)
    return out


@app.exception_handler(NotAuthenticatedError)
def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):  # noqa: ARG001
    # Expected condition; bare 401 with no body.
    return Response(status_code=401)


@app.exception_handler(InvalidTokenError)
def invalid_token_handler(request: Request, exc: InvalidTokenError):  # noqa: ARG001
    logger.info("Rejected invalid token on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=403, content={"error": "FORBIDDEN", "message": "Invalid token"})


@app.exception_handler(SessionError)
def session_error_handler(request: Request, exc: SessionError):  # noqa: ARG001
    return JSONResponse(status_code=401, content=exc.to_payload())


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
    )


if settings.ENABLE_RATE_LIMITING:
    app.state.limiter = limiter
    # Provide our standard error shape for rate limits, instead of slowapi's default.
    app.add_exception_handler(
        RateLimitExceeded,
        lambda request, exc: JSONResponse(  # noqa: ARG005
            status_code=429,
            content={"error": "RATE_LIMITED", "message": "Too many requests"},
        ),
    )

# Registered before CORS so CORS wraps it and preflights never reach the CSRF check.
register_csrf_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(tokens_router)
app.include_router(csrf_router)
app.include_router(users_router)
app.include_router(sessions_router)

@app.get("/health")
def health_check():
    return {"status": "ok"}
