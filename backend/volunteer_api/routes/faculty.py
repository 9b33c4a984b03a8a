"""Faculty handler group (/api/faculty)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import Faculty, User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.user import FacultyCreate, FacultyResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import require_admin

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("", response_model=DataResponse[List[FacultyResponse]])
async def list_faculties(db: AsyncSession = Depends(get_db_session)):
    faculties = await records.list_records(db, Faculty, order_by=Faculty.name)
    return DataResponse(data=[FacultyResponse.model_validate(f) for f in faculties])


@router.post("", status_code=201, response_model=DataResponse[FacultyResponse])
async def create_faculty(
    payload: FacultyCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    faculty = await records.save(db, Faculty(name=payload.name))
    return DataResponse(data=FacultyResponse.model_validate(faculty))
