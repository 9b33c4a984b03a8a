"""Category handler group (/api/category)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import get_db_session
from volunteer_api.models import Category, User
from volunteer_api.schemas.activity import CategoryCreate, CategoryResponse
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import require_admin

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("", response_model=DataResponse[List[CategoryResponse]])
async def list_categories(db: AsyncSession = Depends(get_db_session)):
    categories = await records.list_records(db, Category, order_by=Category.name)
    return DataResponse(data=[CategoryResponse.model_validate(c) for c in categories])


@router.post("", status_code=201, response_model=DataResponse[CategoryResponse])
async def create_category(
    payload: CategoryCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    category = await records.save(db, Category(name=payload.name))
    return DataResponse(data=CategoryResponse.model_validate(category))
