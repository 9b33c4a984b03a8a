"""
Record helpers shared by the handler groups.

Handlers flush inside the request so they can return generated ids; this is
where unique violations surface, and they are translated here the same way
get_db_session() translates them at commit.
"""

import logging
from typing import Any, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import Base, translate_integrity_error
from volunteer_api.exceptions import NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


async def save(db: AsyncSession, record: ModelT) -> ModelT:
    """Adds `record` and flushes; DuplicateError/DataValidationError on constraint failure."""
    db.add(record)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        error = translate_integrity_error(exc)
        logger.info("Rejected %s: %s", type(record).__name__, error.errors)
        raise error from exc
    return record


async def get_or_404(db: AsyncSession, model: Type[ModelT], record_id: Any, resource: Optional[str] = None) -> ModelT:
    record = await db.get(model, record_id)
    if record is None:
        raise NotFoundError.for_record(resource or model.__tablename__, record_id)
    return record


async def list_records(
    db: AsyncSession,
    model: Type[ModelT],
    *criteria: Any,
    order_by: Any = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Sequence[ModelT]:
    query = select(model).where(*criteria)
    query = query.order_by(order_by if order_by is not None else model.id)
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()
