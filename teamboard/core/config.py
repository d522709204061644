# teamboard/core/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class Settings:
    def __init__(self) -> None:
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            # Load .env only for non-prod so prod can't be accidentally influenced by local files.
            load_dotenv()

        # ----------------------------
        # Database
        # ----------------------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
        self.DB_HOST = os.getenv("DB_HOST", "")
        self.DB_PORT = os.getenv("DB_PORT", "5432")
        self.DB_NAME = os.getenv("DB_NAME", "")
        self.DB_APP_USER = os.getenv("DB_APP_USER", "")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_MIGRATOR_USER = os.getenv("DB_MIGRATOR_USER", "")
        self.DB_MIGRATOR_PASSWORD = os.getenv("DB_MIGRATOR_PASSWORD", "")
        self.DB_SSLMODE = os.getenv("DB_SSLMODE", "require").strip().lower()

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Session tokens
        # ----------------------------
        self.ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "")
        self.REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

        self._access_ttl_raw = os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES")
        self._refresh_ttl_raw = os.getenv("REFRESH_TOKEN_EXPIRE_HOURS")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(self._access_ttl_raw or "15")
        self.REFRESH_TOKEN_EXPIRE_HOURS = int(self._refresh_ttl_raw or "12")

        self.ACCESS_COOKIE_NAME = os.getenv("ACCESS_COOKIE_NAME", "accessToken")
        self.REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
        self.AUTH_COOKIE_SAMESITE = os.getenv("AUTH_COOKIE_SAMESITE", "strict")
        self.AUTH_COOKIE_DOMAIN = os.getenv("AUTH_COOKIE_DOMAIN", "") or None

        # Revoked records are kept this long for the sessions view, then purged.
        self.REVOKED_SESSION_RETENTION_DAYS = int(os.getenv("REVOKED_SESSION_RETENTION_DAYS", "7"))

        # ----------------------------
        # CSRF
        # ----------------------------
        self.CSRF_SECRET = os.getenv("CSRF_SECRET", "")
        self.CSRF_COOKIE_NAME = os.getenv("CSRF_COOKIE_NAME", "x-csrf-token")
        self.CSRF_HEADER_NAME = os.getenv("CSRF_HEADER_NAME", "x-csrf-token")

        # ----------------------------
        # OAuth (Google)
        # ----------------------------
        self.GOOGLE_USERINFO_URL = os.getenv(
            "GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v2/userinfo"
        ).strip()
        self.GOOGLE_HTTP_TIMEOUT = float(os.getenv("GOOGLE_HTTP_TIMEOUT", "5"))

        # ----------------------------
        # Rate limiting
        # ----------------------------
        self.ENABLE_RATE_LIMITING = str_to_bool(os.getenv("ENABLE_RATE_LIMITING", "false"))
        self.LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10/minute")

        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.ACCESS_TOKEN_SECRET:
            missing.append("ACCESS_TOKEN_SECRET")
        if not self.REFRESH_TOKEN_SECRET:
            missing.append("REFRESH_TOKEN_SECRET")
        if not self.CSRF_SECRET:
            missing.append("CSRF_SECRET")
        if not self._access_ttl_raw:
            missing.append("ACCESS_TOKEN_EXPIRE_MINUTES")
        if not self._refresh_ttl_raw:
            missing.append("REFRESH_TOKEN_EXPIRE_HOURS")

        if not self.DATABASE_URL:
            if not self.DB_HOST:
                missing.append("DB_HOST")
            if not self.DB_NAME:
                missing.append("DB_NAME")
            if not self.DB_APP_USER:
                missing.append("DB_APP_USER")
            if not self.DB_APP_PASSWORD:
                missing.append("DB_APP_PASSWORD")
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    def _build_database_url(self, user: str, password: str) -> str:
        encoded_password = quote_plus(password)
        return (
            f"postgresql+psycopg2://{user}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._build_database_url(self.DB_APP_USER, self.DB_APP_PASSWORD)

    @property
    def migrations_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._build_database_url(self.DB_MIGRATOR_USER, self.DB_MIGRATOR_PASSWORD)


settings = Settings()


def require_auth_secrets() -> None:
    missing = [
        name
        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET", "CSRF_SECRET")
        if not (getattr(settings, name) or "").strip()
    ]
    if missing:
        raise RuntimeError(f"{', '.join(missing)} must be set")
    if settings.ACCESS_TOKEN_SECRET == settings.REFRESH_TOKEN_SECRET:
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
    if settings.ACCESS_TOKEN_EXPIRE_MINUTES >= settings.REFRESH_TOKEN_EXPIRE_HOURS * 60:
        raise RuntimeError("Access token lifetime must be shorter than refresh token lifetime")
