"""
Volunteer API — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, exception handlers, handler-group
       mounting and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by the server entry point (and by tests with their own settings).
When:  Once at process start; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────────┐
    │                        FastAPI App                          │
    │                                                             │
    │  Middleware Chain (outermost first):                        │
    │  SecurityHeaders → RequestID → AccessLog → ErrorNormalizer  │
    │  → OriginPolicy → RateLimit → BodyLimit → InputSanitizer    │
    │  → RequestTimeout                                           │
    │                                                             │
    │  Routes: 10 handler groups under /api (verified disjoint)   │
    │  Static: /uploads, /uploadsfile                             │
    │  Fallback: 404 JSON for anything unmatched                  │
    └─────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Verify database connectivity (SELECT 1)
    3. Synchronize schema (create missing tables)
    4. Create upload directories (mode 0755)
    5. Attach the process guardian to the event loop
    6. Log port and API base URL
    Any failure in 2-4 is logged and raised as StartupError; uvicorn then
    reports startup failure and the entry point exits 70.

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from volunteer_api import __version__
from volunteer_api.config import Settings, settings
from volunteer_api.database import dispose_engine, synchronize_schema, verify_connection
from volunteer_api.exceptions import StartupError
from volunteer_api.guardian import guardian
from volunteer_api.middleware.body_limit import BodyLimitMiddleware
from volunteer_api.middleware.error_handler import ErrorNormalizerMiddleware, register_exception_handlers
from volunteer_api.middleware.logging import RequestLoggingMiddleware
from volunteer_api.middleware.origin_policy import OriginPolicy, OriginPolicyMiddleware
from volunteer_api.middleware.rate_limit import InMemoryRateLimitStore, RateLimitMiddleware, RateLimitStore
from volunteer_api.middleware.request_id import RequestIDMiddleware
from volunteer_api.middleware.sanitize import InputSanitizerMiddleware
from volunteer_api.middleware.security_headers import SecurityHeadersMiddleware
from volunteer_api.middleware.timeout import RequestTimeoutMiddleware
from volunteer_api.routes import mount_handler_groups
from volunteer_api.services.file_service import UPLOAD_DIRECTORIES

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called by the entry point before anything else logs, and again by the
    lifespan (idempotent) for servers started without the entry point.
    """
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The access log middleware replaces uvicorn's own access lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def ensure_upload_directories(root: str) -> None:
    for name in UPLOAD_DIRECTORIES:
        directory = Path(root) / name
        directory.mkdir(mode=0o755, parents=True, exist_ok=True)
        logger.info("Upload directory: %s", directory.resolve())


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("Volunteer API %s starting up...", __version__)

    try:
        await verify_connection()
        logger.info("Database connection verified")
        await synchronize_schema()
        logger.info("Database schema synchronized")
        ensure_upload_directories(config.upload_root)
    except (StartupError, OSError) as exc:
        logger.critical("Startup failed: %s", exc, exc_info=True)
        if isinstance(exc, StartupError):
            raise
        raise StartupError(f"Upload directory setup failed: {exc}") from exc

    guardian.attach(asyncio.get_running_loop())

    logger.info("Starting on port %d", config.port)
    logger.info("API URL: %s", config.api_base_url)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Volunteer API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None, rate_limit_store: Optional[RateLimitStore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config:           Settings to build from (defaults to the process settings)
        rate_limit_store: Counter store for the rate limiter (defaults to a
                          fresh in-memory store); exposed as app.state.rate_limit_store

    Raises:
        RouteConflictError: two handler groups declare overlapping routes
    """
    config = config if config is not None else settings
    store = rate_limit_store if rate_limit_store is not None else InMemoryRateLimitStore()
    policy = OriginPolicy(config.allowed_origins_list)

    app = FastAPI(
        title="Volunteer API",
        description="REST backend for university volunteer activities.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.rate_limit_store = store
    app.state.origin_policy = policy

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition: the last one added
    # is the outermost. Added here innermost first.
    app.add_middleware(RequestTimeoutMiddleware, timeout=config.request_timeout)
    app.add_middleware(InputSanitizerMiddleware, whitelist=config.hpp_whitelist_set)
    app.add_middleware(
        BodyLimitMiddleware,
        max_bytes=config.body_limit,
        multipart_max_bytes=config.max_upload_size,
    )
    app.add_middleware(
        RateLimitMiddleware,
        store=store,
        max_requests=config.rate_limit_max,
        window_seconds=config.rate_limit_window,
        message=config.rate_limit_message,
        path_prefix=config.rate_limit_prefix,
        trusted_hops=config.trust_proxy,
        skip_failed_requests=config.rate_limit_skip_failed,
    )
    app.add_middleware(OriginPolicyMiddleware, policy=policy)
    app.add_middleware(ErrorNormalizerMiddleware, policy=policy, trusted_hops=config.trust_proxy)
    app.add_middleware(RequestLoggingMiddleware, trusted_hops=config.trust_proxy)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, trusted_hops=config.trust_proxy)

    # ── Register Routes ───────────────────────────────────────────────────
    mount_handler_groups(app)

    # Static mounts go last so they never shadow a handler group; a missing
    # file raises HTTPException(404) and gets the same JSON 404 as any path.
    for name in UPLOAD_DIRECTORIES:
        app.mount(
            f"/{name}",
            StaticFiles(directory=str(Path(config.upload_root) / name), check_dir=False),
            name=name,
        )

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn and the entry point import `volunteer_api.main:app`
app = create_app()
