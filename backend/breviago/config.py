"""
Breviago Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Values come from environment variables (or a .env file), are coerced
       and range-checked once at import time, and are exposed through the
       `settings` singleton.
Who:   Imported by every module that needs configuration values.

Security-sensitive values (JWT_SECRET, OPENFGA_* and ADMIN_PASSWORD) ship with
development defaults; `validate_required_for_production()` reports the ones
that still hold those defaults.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "secret-key"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///path.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./breviago.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases; SQLite ignores it.
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create missing tables on startup (Alembic remains the migration path
    # for existing databases).
    auto_create_schema: bool = Field(default=True)

    # Seed the admin user, root organization and welcome content on startup.
    seed_defaults: bool = Field(default=True)

    # ── JWT ───────────────────────────────────────────────────────────────
    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="HMAC secret used to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_hours: int = Field(default=24, ge=1, le=24 * 30)
    jwt_issuer: str = Field(default="breviago")

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only HMAC algorithms are accepted: tokens are signed with a shared secret."""
        upper = v.upper()
        if upper not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"Invalid jwt_algorithm '{v}'. Must be an HMAC algorithm.")
        return upper

    # ── Cookies ───────────────────────────────────────────────────────────
    auth_cookie_name: str = Field(default="token")
    auth_cookie_secure: bool = Field(default=False)

    # ── Authentication bypass list ────────────────────────────────────────
    # An entry matches the exact path or anything below it ("/docs" matches
    # "/docs/oauth2-redirect"). "/", entries ending in "/" and entries ending
    # in "$" match only the exact path.
    unprotected_routes: str = Field(
        default=(
            "/,/api/v1$,/api/v1/,/health,/docs,/redoc,/openapi.json,"
            "/api/v1/auth/login,/api/v1/auth/register"
        )
    )

    @property
    def unprotected_routes_list(self) -> List[str]:
        """Splits the comma-separated bypass list, dropping empty entries."""
        return [r.strip() for r in self.unprotected_routes.split(",") if r.strip()]

    # ── Authorization ─────────────────────────────────────────────────────
    # local:   relations are derived from ownership, memberships and grants
    # openfga: relations are checked against an OpenFGA store over HTTP
    authz_backend: str = Field(default="local")

    @field_validator("authz_backend")
    @classmethod
    def validate_authz_backend(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"local", "openfga"}:
            raise ValueError(f"Invalid authz_backend '{v}'. Must be 'local' or 'openfga'.")
        return lower

    openfga_api_url: str = Field(default="http://localhost:8080")
    openfga_store_id: str = Field(default="")
    openfga_model_id: str = Field(default="")
    openfga_api_token: str = Field(default="")
    openfga_timeout: float = Field(default=5.0, gt=0, le=60)

    # ── Retry Configuration (OpenFGA calls) ───────────────────────────────
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: float = Field(default=0.5, ge=0, le=30)
    retry_max_wait: float = Field(default=5, ge=0, le=120)

    # ── Circuit Breaker (OpenFGA calls) ───────────────────────────────────
    cb_failure_threshold: int = Field(default=5, ge=1, le=20)
    cb_recovery_timeout: int = Field(default=30, ge=0, le=300)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    rate_limit_requests: int = Field(default=1000, ge=10, le=100000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8080, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Seed data ─────────────────────────────────────────────────────────
    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="admin")
    admin_email: str = Field(default="admin@breviago.com")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def validate_required_for_production(self) -> None:
        """
        Reports settings that still hold development defaults.

        Raises:
            ValueError listing every problem found.
        """
        errors = []
        if self.jwt_secret == DEFAULT_JWT_SECRET:
            errors.append("JWT_SECRET is the development default. Set a long random secret.")
        if self.authz_backend == "openfga" and not self.openfga_store_id:
            errors.append("AUTHZ_BACKEND is 'openfga' but OPENFGA_STORE_ID is not set.")
        if self.seed_defaults and self.admin_password == "admin":
            errors.append("ADMIN_PASSWORD is the development default.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
