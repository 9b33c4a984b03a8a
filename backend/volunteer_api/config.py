"""
Volunteer API — Application Configuration
==========================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Every threshold the request pipeline enforces (rate window, body limit,
       allowed origins, proxy trust) differs between deployments, so none of
       them may be a constant in code.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the app factory, the server entry point and services.
When:  Loaded once at module import time; strict checks run before the server starts.

Observed deployment variants (all expressible here, none hardcoded):
    RATE_LIMIT_MAX=1200 RATE_LIMIT_WINDOW=6000
    RATE_LIMIT_MAX=1000 RATE_LIMIT_WINDOW=900 RATE_LIMIT_SKIP_FAILED=true
    RATE_LIMIT_MAX=200  RATE_LIMIT_WINDOW=900
    BODY_LIMIT=102400 or BODY_LIMIT=1048576
"""

from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

# Environment keys that must be present when strict_environment is on.
# Values are the settings attribute each key populates.
REQUIRED_ENVIRONMENT = {
    "DB_HOST": "db_host",
    "DB_USER": "db_user",
    "DB_PASSWORD": "db_password",
    "DB_NAME": "db_name",
    "PORT": "port",
}

DEFAULT_RATE_LIMIT_MESSAGE = "คุณได้ส่งคำขอมากเกินไป กรุณาลองใหม่อีกครั้งในภายหลัง"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST
    override DB_*, JWT_SECRET and ALLOWED_ORIGINS.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Full async connection URL. When unset, it is assembled from DB_* parts.
    database_url: Optional[str] = Field(default=None)
    db_dialect: str = Field(default="postgresql+asyncpg")
    db_host: Optional[str] = Field(default=None)
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: Optional[str] = Field(default=None)
    db_password: Optional[str] = Field(default=None)
    db_name: Optional[str] = Field(default=None)

    db_pool_size: int = Field(default=20, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5001, ge=1, le=65535)
    app_url: Optional[str] = Field(default=None)

    log_level: str = Field(default="INFO")

    # What: Refuse to start when any REQUIRED_ENVIRONMENT key is missing
    strict_environment: bool = Field(default=True)

    # ── Origin Policy ─────────────────────────────────────────────────────
    # Format: Comma-separated origins (parsed by the property below)
    allowed_origins: str = Field(
        default="http://localhost:5173,https://project-100-front.onrender.com"
    )

    # ── Rate Limiting ─────────────────────────────────────────────────────
    rate_limit_max: int = Field(default=200, ge=1, le=1_000_000)
    rate_limit_window: int = Field(default=900, ge=1, le=86400)  # seconds
    rate_limit_skip_failed: bool = Field(default=False)
    rate_limit_prefix: str = Field(default="/api/")
    rate_limit_message: str = Field(default=DEFAULT_RATE_LIMIT_MESSAGE)

    # What: Number of reverse-proxy hops whose X-Forwarded-For entries are trusted.
    # 0 means the direct peer address is always the client key.
    trust_proxy: int = Field(default=1, ge=0, le=10)

    # ── Request Admission ─────────────────────────────────────────────────
    body_limit: int = Field(default=102_400, ge=1024, le=104_857_600)  # bytes
    hpp_whitelist: str = Field(default="")
    request_timeout: float = Field(default=30.0, ge=0)  # seconds, 0 disables

    # ── Credentials ───────────────────────────────────────────────────────
    jwt_secret: str = Field(
        default="your-secret-key-123",
        validation_alias=AliasChoices("JWT_SECRET", "COOKIE_SECRET", "jwt_secret"),
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=1440, ge=1)

    # ── File Storage ──────────────────────────────────────────────────────
    upload_root: str = Field(default=".")
    max_upload_size: int = Field(default=10_485_760, ge=1024)

    @property
    def allowed_origins_list(self) -> List[str]:
        """Splits comma-separated origins into a list, dropping blanks."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def hpp_whitelist_set(self) -> set:
        return {key.strip() for key in self.hpp_whitelist.split(",") if key.strip()}

    @property
    def api_base_url(self) -> str:
        return f"{self.app_url or f'http://localhost:{self.port}'}/api"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("rate_limit_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("rate_limit_prefix must start with '/'")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def missing_required_environment(self) -> List[str]:
        """
        What:  Lists REQUIRED_ENVIRONMENT keys that were not provided.
        When:  Called by the server entry point before binding the listener.
        How:   A key counts as provided only if the environment (or .env) set it
               to a non-empty value; defaults do not satisfy the check.
        """
        if not self.strict_environment:
            return []
        missing = []
        for env_key, attribute in REQUIRED_ENVIRONMENT.items():
            value = getattr(self, attribute)
            if attribute not in self.model_fields_set or value in (None, ""):
                missing.append(env_key)
        return missing


# Singleton instance, imported throughout the application
settings = Settings()
