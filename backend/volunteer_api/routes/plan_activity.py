"""Plan-activity handler group (/api/plan-activities)."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import PlanActivity, User
from volunteer_api.schemas.activity import PlanActivityCreate, PlanActivityResponse
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import get_current_user

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/plan-activities", response_model=DataResponse[List[PlanActivityResponse]])
async def list_plan_activities(
    faculty_id: Optional[int] = Query(default=None),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    criteria = [PlanActivity.faculty_id == faculty_id] if faculty_id is not None else []
    plans = await records.list_records(db, PlanActivity, *criteria, order_by=PlanActivity.planned_date)
    return DataResponse(data=[PlanActivityResponse.model_validate(p) for p in plans])


@router.post("/plan-activities", status_code=201, response_model=DataResponse[PlanActivityResponse])
async def create_plan_activity(
    payload: PlanActivityCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    plan = PlanActivity(
        title=payload.title,
        description=payload.description,
        planned_date=payload.planned_date,
        faculty_id=payload.faculty_id if payload.faculty_id is not None else user.faculty_id,
        created_by=user.id,
    )
    await records.save(db, plan)
    return DataResponse(data=PlanActivityResponse.model_validate(plan))
