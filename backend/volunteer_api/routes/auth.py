"""
Volunteer API — Auth Handler Group (/api/auth)
===============================================

POST /register   create a student account, returns a token
POST /login      email or username + password, returns a token
POST /logout     clears the token cookie

The token is returned three ways so every frontend flow works: in the body,
in the Authorization response header (exposed by the origin policy), and as
an httponly `token` cookie.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.config import settings
from volunteer_api.database import get_db_session
from volunteer_api.models import User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import (
    TOKEN_COOKIE,
    authenticate,
    create_access_token,
    hash_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


def issue_token(response: Response, user: User) -> TokenResponse:
    token = create_access_token(user)
    secure = (settings.app_url or "").startswith("https://")
    response.headers["Authorization"] = f"Bearer {token}"
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.jwt_expire_minutes * 60,
        httponly=True,
        secure=secure,
        samesite="none" if secure else "lax",
    )
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/register", status_code=201, response_model=DataResponse[TokenResponse])
async def register(
    payload: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
):
    user = User(
        email=payload.email,
        username=payload.username,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        faculty_id=payload.faculty_id,
        role="student",
    )
    await records.save(db, user)
    logger.info("Registered user %d (%s)", user.id, user.username)
    return DataResponse(message="ลงทะเบียนสำเร็จ", data=issue_token(response, user))


@router.post("/login", response_model=DataResponse[TokenResponse])
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
):
    user = await authenticate(db, payload.identifier, payload.password)
    return DataResponse(message="เข้าสู่ระบบสำเร็จ", data=issue_token(response, user))


@router.post("/logout", response_model=DataResponse[None])
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return DataResponse(message="ออกจากระบบสำเร็จ", data=None)
