"""
Activity handler group (/api/activities).

Listing is public and filterable by status and category; creating requires a
signed-in user, who becomes the activity's creator.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.exceptions import DataValidationError
from volunteer_api.models import Activity, ActivityCategory, Category, User
from volunteer_api.schemas.activity import ActivityCreate, ActivityResponse
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/activities", response_model=DataResponse[List[ActivityResponse]])
async def list_activities(
    status: Optional[str] = Query(default=None, max_length=20),
    category_id: Optional[int] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
):
    criteria = []
    if status:
        criteria.append(Activity.status == status)
    if category_id is not None:
        criteria.append(
            Activity.id.in_(
                select(ActivityCategory.activity_id).where(ActivityCategory.category_id == category_id)
            )
        )
    activities = await records.list_records(
        db, Activity, *criteria, order_by=Activity.created_at.desc(), limit=limit, offset=offset
    )
    return DataResponse(data=[ActivityResponse.model_validate(a) for a in activities])


@router.get("/activities/{activity_id}", response_model=DataResponse[ActivityResponse])
async def get_activity(activity_id: int, db: AsyncSession = Depends(get_db_session)):
    activity = await records.get_or_404(db, Activity, activity_id, "กิจกรรม")
    return DataResponse(data=ActivityResponse.model_validate(activity))


@router.post("/activities", status_code=201, response_model=DataResponse[ActivityResponse])
async def create_activity(
    payload: ActivityCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    categories: List[Category] = []
    if payload.category_ids:
        wanted = set(payload.category_ids)
        result = await db.execute(select(Category).where(Category.id.in_(wanted)))
        categories = list(result.scalars().all())
        unknown = sorted(wanted - {c.id for c in categories})
        if unknown:
            raise DataValidationError(errors=[f"category_ids: unknown category {cid}" for cid in unknown])

    activity = Activity(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        start_date=payload.start_date,
        end_date=payload.end_date,
        max_participants=payload.max_participants,
        created_by=user.id,
        categories=categories,
    )
    await records.save(db, activity)
    logger.info("User %d created activity %d", user.id, activity.id)
    return DataResponse(message="สร้างกิจกรรมสำเร็จ", data=ActivityResponse.model_validate(activity))
