"""
File handler group (/api/files).

Documents are stored under `uploadsfile/` and served statically at
/uploadsfile/<stored_path>; this group records who uploaded what.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.exceptions import ApiError
from volunteer_api.models import StoredFile, User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.content import StoredFileResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import get_current_user
from volunteer_api.services.file_service import documents

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/files", status_code=201, response_model=DataResponse[StoredFileResponse])
async def upload_file(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    content = await file.read()
    original_name = file.filename or "upload"
    stored_path = await documents.validate_and_store(original_name, content)

    record = StoredFile(
        original_name=original_name,
        stored_path=stored_path,
        content_type=file.content_type or "application/octet-stream",
        size=len(content),
        uploaded_by=user.id,
    )
    try:
        await records.save(db, record)
    except ApiError:
        await documents.cleanup_file(stored_path)
        raise
    return DataResponse(message="อัปโหลดไฟล์สำเร็จ", data=StoredFileResponse.model_validate(record))


@router.get("/files", response_model=DataResponse[List[StoredFileResponse]])
async def list_files(
    uploaded_by: Optional[int] = Query(default=None),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    criteria = [StoredFile.uploaded_by == uploaded_by] if uploaded_by is not None else []
    stored = await records.list_records(db, StoredFile, *criteria, order_by=StoredFile.created_at.desc())
    return DataResponse(data=[StoredFileResponse.model_validate(f) for f in stored])
