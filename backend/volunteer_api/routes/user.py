"""User handler group (/api/user): listing and admin-side account creation."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.user import UserCreate, UserResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import get_current_user, hash_password, require_admin

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("", response_model=DataResponse[List[UserResponse]])
async def list_users(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    users = await records.list_records(db, User, limit=limit, offset=offset)
    return DataResponse(data=[UserResponse.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=DataResponse[UserResponse])
async def get_user(
    user_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await records.get_or_404(db, User, user_id, "ผู้ใช้")
    return DataResponse(data=UserResponse.model_validate(user))


@router.post("", status_code=201, response_model=DataResponse[UserResponse])
async def create_user(
    payload: UserCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    user = User(
        email=payload.email,
        username=payload.username,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        faculty_id=payload.faculty_id,
        role=payload.role,
    )
    await records.save(db, user)
    return DataResponse(message="สร้างผู้ใช้สำเร็จ", data=UserResponse.model_validate(user))
