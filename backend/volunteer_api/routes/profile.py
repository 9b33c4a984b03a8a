"""Profile handler group (/api/profile): the signed-in user's own record."""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.user import ProfileUpdate, UserResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import get_current_user
from volunteer_api.services.file_service import profile_images

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("", response_model=DataResponse[UserResponse])
async def get_profile(user: User = Depends(get_current_user)):
    return DataResponse(data=UserResponse.model_validate(user))


@router.put("", response_model=DataResponse[UserResponse])
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await records.save(db, user)
    return DataResponse(message="บันทึกข้อมูลสำเร็จ", data=UserResponse.model_validate(user))


@router.post("/image", response_model=DataResponse[UserResponse])
async def upload_profile_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    content = await image.read()
    stored_path = await profile_images.validate_and_store(image.filename or "image", content)

    previous = user.profile_image
    user.profile_image = stored_path
    await records.save(db, user)
    if previous:
        await profile_images.cleanup_file(previous)
    logger.info("User %d changed profile image", user.id)
    return DataResponse(data=UserResponse.model_validate(user))
