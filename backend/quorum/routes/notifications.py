"""
Quorum Backend - Notification Route Handlers
============================================

What:  The signed-in user's notification bell: list and mark read.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import settings
from quorum.database import get_db_session
from quorum.exceptions import UnauthenticatedError
from quorum.identity import get_current_user_id
from quorum.schemas.common import ErrorResponse
from quorum.schemas.notification import NotificationListResponse, NotificationResponse
from quorum.services.notification_service import notification_service

router = APIRouter(prefix="/api", tags=["Notifications"])


def _require_user(user_id: Optional[UUID]) -> UUID:
    if user_id is None:
        raise UnauthenticatedError(message="Please sign in to see your notifications")
    return user_id


@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="List my notifications",
)
async def list_notifications(
    limit: int = Query(default=settings.notifications_page_size, ge=1, le=50),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_notifications(db, _require_user(user_id), limit=limit)


@router.post(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        403: {"description": "Not your notification", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Mark a notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    return await notification_service.mark_read(db, _require_user(user_id), notification_id)
