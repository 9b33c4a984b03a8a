"""
Volunteer API — Credential Service
===================================

What:  Password hashing, access-token issue and verification, and the FastAPI
       dependencies that resolve the signed-in user.
Why:   Every protected handler group needs the same answer to "who is this?"
       and the same failure: AuthTokenError (401, no errors list).
How:   - Passwords: PBKDF2-HMAC-SHA256 with a per-user random salt, stored as
         "pbkdf2_sha256$<iterations>$<salt>$<hex digest>".
       - Tokens: HS256 JWT (python-jose) with sub=user id, role, iat, exp.
         Every jose failure (bad signature, malformed, expired) becomes
         AuthTokenError at this boundary.
       - Transport: "Authorization: Bearer <jwt>" header, or the `token`
         cookie set at login. The header wins when both are present.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from jose import JWTError, jwt
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection, Request

from volunteer_api.config import Settings, settings
from volunteer_api.database import get_db_session
from volunteer_api.exceptions import AuthTokenError, PermissionDeniedError
from volunteer_api.models import User

logger = logging.getLogger(__name__)

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 260_000
TOKEN_COOKIE = "token"

INVALID_LOGIN_MESSAGE = "อีเมลหรือรหัสผ่านไม่ถูกต้อง"


# ── Passwords ─────────────────────────────────────────────────────────────
def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), iterations)
    return f"{PBKDF2_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != PBKDF2_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds)
    return hmac.compare_digest(digest.hex(), expected)


# ── Tokens ────────────────────────────────────────────────────────────────
def create_access_token(user: User, config: Settings = settings) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=config.jwt_expire_minutes)).timestamp()),
    }
    return jwt.encode(claims, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_token(token: str, config: Settings = settings) -> Dict[str, Any]:
    """Verifies signature and expiry; raises AuthTokenError on any failure."""
    try:
        claims = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError as exc:
        raise AuthTokenError(context={"reason": str(exc)}) from exc
    if not str(claims.get("sub", "")).isdigit():
        raise AuthTokenError(context={"reason": "subject claim missing"})
    return claims


def extract_token(connection: HTTPConnection) -> Optional[str]:
    authorization = connection.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return connection.cookies.get(TOKEN_COOKIE) or None


# ── Users ─────────────────────────────────────────────────────────────────
async def authenticate(db: AsyncSession, identifier: str, password: str) -> User:
    """Looks the user up by email or username and checks the password."""
    result = await db.execute(
        select(User).where(or_(User.email == identifier, User.username == identifier))
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", identifier)
        raise AuthTokenError(message=INVALID_LOGIN_MESSAGE)
    return user


async def user_from_token(db: AsyncSession, token: Optional[str]) -> User:
    if not token:
        raise AuthTokenError(context={"reason": "no credential"})
    claims = decode_token(token)
    user = await db.get(User, int(claims["sub"]))
    if user is None:
        raise AuthTokenError(context={"reason": "user no longer exists"})
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """FastAPI dependency: the signed-in user, or AuthTokenError (401)."""
    return await user_from_token(db, extract_token(request))


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise PermissionDeniedError(context={"user_id": user.id, "role": user.role})
    return user
