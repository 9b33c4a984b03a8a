"""Contact handler group (/api/contact): public form in, admin inbox out."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import ContactMessage, User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.content import ContactCreate, ContactResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/contact", status_code=201, response_model=DataResponse[ContactResponse])
async def send_message(payload: ContactCreate, db: AsyncSession = Depends(get_db_session)):
    message = await records.save(db, ContactMessage(**payload.model_dump()))
    logger.info("Contact message %d received", message.id)
    return DataResponse(message="ส่งข้อความสำเร็จ", data=ContactResponse.model_validate(message))


@router.get("/contact", response_model=DataResponse[List[ContactResponse]])
async def list_messages(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    messages = await records.list_records(db, ContactMessage, order_by=ContactMessage.created_at.desc())
    return DataResponse(data=[ContactResponse.model_validate(m) for m in messages])
