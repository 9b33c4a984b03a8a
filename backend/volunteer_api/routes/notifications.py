"""
Volunteer API — Notifications Handler Group (/api/notifications)
=================================================================

GET    ""                       own notifications, newest first
PATCH  "/{notification_id}/read" mark one of one's own as read
POST   ""                       admin: create and push to the recipient
WS     "/ws?token=<jwt>"        real-time channel; receives each new
                                notification as JSON

The WebSocket authenticates once at connect time with the same token rules
as HTTP (query parameter here, since browsers cannot set headers on a
WebSocket handshake). An invalid token closes the socket with 4401.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.database import async_session_factory, get_db_session
from volunteer_api.exceptions import AuthTokenError, NotFoundError
from volunteer_api.models import Notification, User
from volunteer_api.schemas.common import ERROR_RESPONSES, DataResponse
from volunteer_api.schemas.content import NotificationCreate, NotificationResponse
from volunteer_api.services import records
from volunteer_api.services.auth_service import (
    extract_token,
    get_current_user,
    require_admin,
    user_from_token,
)
from volunteer_api.services.notification_hub import CLOSE_UNAUTHORIZED, hub

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("", response_model=DataResponse[List[NotificationResponse]])
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    notifications = await records.list_records(
        db, Notification, Notification.user_id == user.id, order_by=Notification.created_at.desc()
    )
    return DataResponse(data=[NotificationResponse.model_validate(n) for n in notifications])


@router.patch("/{notification_id}/read", response_model=DataResponse[NotificationResponse])
async def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    notification = await records.get_or_404(db, Notification, notification_id, "การแจ้งเตือน")
    # Someone else's notification is reported as absent, not forbidden
    if notification.user_id != user.id:
        raise NotFoundError.for_record("การแจ้งเตือน", notification_id)
    notification.is_read = True
    await records.save(db, notification)
    return DataResponse(data=NotificationResponse.model_validate(notification))


@router.post("", status_code=201, response_model=DataResponse[NotificationResponse])
async def create_notification(
    payload: NotificationCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    await records.get_or_404(db, User, payload.user_id, "ผู้ใช้")
    notification = await records.save(db, Notification(user_id=payload.user_id, message=payload.message))
    body = NotificationResponse.model_validate(notification)
    delivered = await hub.push(payload.user_id, {"type": "notification", "data": body.model_dump(mode="json")})
    logger.info("Notification %d created; pushed to %d socket(s)", notification.id, delivered)
    return DataResponse(data=body)


@router.websocket("/ws")
async def notification_socket(websocket: WebSocket):
    token = websocket.query_params.get("token") or extract_token(websocket)
    try:
        async with async_session_factory() as db:
            user = await user_from_token(db, token)
    except AuthTokenError as exc:
        logger.info("Rejected notification socket: %s", exc.context.get("reason", exc.message))
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return

    await hub.connect(user.id, websocket)
    try:
        while True:
            # Client messages are ignored; receiving detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(user.id, websocket)
        logger.info("Notification socket closed for user %d", user.id)
