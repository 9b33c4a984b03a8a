"""
Volunteer API — Database Session Management
============================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency and the
       startup checks (connectivity, schema synchronisation).
Why:   Centralizes all database connection logic in one place, and is the
       single point where driver errors become error variants.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
       IntegrityError raised by flush/commit is translated into DuplicateError
       (unique violations) or DataValidationError (other constraints).
Who:   Used by route handlers via FastAPI's dependency injection system and
       by the application lifespan.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    pool_size / max_overflow / pool_pre_ping come from settings.
    SQLite (tests, local runs) uses SQLAlchemy's own pool defaults because
    its pool classes do not accept sizing arguments.
"""

import logging
import re
from typing import AsyncGenerator, List

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from volunteer_api.config import Settings, settings
from volunteer_api.exceptions import DataValidationError, DuplicateError, StartupError

logger = logging.getLogger(__name__)


def build_database_url(config: Settings) -> str:
    """
    What:  Returns DATABASE_URL if given, otherwise assembles one from DB_* parts.
    Why:   Deployments describe the database either way; URL.create quotes
           passwords containing '@' or '/' correctly.
    """
    if config.database_url:
        return config.database_url
    url = URL.create(
        drivername=config.db_dialect,
        username=config.db_user,
        password=config.db_password,
        host=config.db_host or "localhost",
        port=config.db_port,
        database=config.db_name,
    )
    return url.render_as_string(hide_password=False)


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    url = build_database_url(config)
    options = {"echo": config.log_level == "DEBUG"}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = create_engine_from_settings(settings)

# expire_on_commit=False: attributes stay readable after commit for serialization
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model module must be imported before synchronize_schema() runs so
    its table is registered on Base.metadata (volunteer_api.models does this).
    """
    pass


# ══════════════════════════════════════════════════════════════════════════
# Integrity error translation
# ══════════════════════════════════════════════════════════════════════════

# SQLite:     UNIQUE constraint failed: users.email, users.username
# PostgreSQL: DETAIL:  Key (email)=(a@b.c) already exists.
# MySQL:      Duplicate entry 'a@b.c' for key 'users.email'
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: ([\w.,\s]+)")
_POSTGRES_KEY = re.compile(r"Key \(([^)]+)\)=")
_MYSQL_DUPLICATE = re.compile(r"Duplicate entry .+ for key '([^']+)'")


def _unique_columns(detail: str) -> List[str]:
    match = _SQLITE_UNIQUE.search(detail)
    if match:
        return [part.strip().split(".")[-1] for part in match.group(1).split(",") if part.strip()]
    match = _POSTGRES_KEY.search(detail)
    if match:
        return [part.strip() for part in match.group(1).split(",")]
    match = _MYSQL_DUPLICATE.search(detail)
    if match:
        return [match.group(1).split(".")[-1]]
    return []


def translate_integrity_error(exc: IntegrityError) -> Exception:
    """
    Map a driver IntegrityError onto the error variant clients should see.

    Returns (does not raise) so callers can `raise ... from exc`.
    """
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    is_unique = (
        getattr(exc.orig, "pgcode", None) == "23505"
        or "UNIQUE constraint failed" in detail
        or "duplicate key value" in detail
        or "Duplicate entry" in detail
    )
    if is_unique:
        columns = _unique_columns(detail)
        errors = [f"{column} must be unique" for column in columns] or ["value must be unique"]
        return DuplicateError(errors=errors, context={"detail": detail})
    return DataValidationError(errors=[detail.splitlines()[0]], context={"detail": detail})


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back; IntegrityError is re-raised as a variant
        5. Always: closes the session (returns connection to pool)

    Handlers that need the generated id call `await db.flush()`, which is
    where unique violations surface; they are translated the same way by
    volunteer_api.services.records.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise translate_integrity_error(exc) from exc
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def verify_connection(target: AsyncEngine = None) -> None:
    """Runs SELECT 1; raises StartupError when the database is unreachable."""
    target = target or engine
    try:
        async with target.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        raise StartupError(f"Database connection failed: {exc}") from exc


async def synchronize_schema(target: AsyncEngine = None) -> None:
    """Creates any missing tables registered on Base.metadata."""
    target = target or engine
    # Registers every model on Base.metadata
    import volunteer_api.models  # noqa: F401

    try:
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        raise StartupError(f"Schema synchronization failed: {exc}") from exc


async def dispose_engine() -> None:
    """Closes all pooled connections (application shutdown)."""
    await engine.dispose()
