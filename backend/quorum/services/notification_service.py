"""
Quorum Backend - Notification Service
=====================================

What:  Writes and reads in-app notifications.
How:   notify() adds a row to the caller's session, so a notification is
       committed together with the answer/accept that produced it, or not
       at all.
Who:   AnswerService (producers) and the notifications routes (readers).
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import settings
from quorum.exceptions import ForbiddenError, NotFoundError
from quorum.models.notification import Notification
from quorum.schemas.notification import NotificationListResponse, NotificationResponse

logger = logging.getLogger(__name__)


class NotificationService:

    async def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        question_id: Optional[UUID] = None,
        answer_id: Optional[UUID] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            question_id=question_id,
            answer_id=answer_id,
        )
        db.add(notification)
        await db.flush()
        logger.debug("Queued %s notification for %s", type, user_id)
        return notification

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: Optional[int] = None,
    ) -> NotificationListResponse:
        """Latest notifications first, plus the total unread count."""
        limit = limit or settings.notifications_page_size
        result = await db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        notifications = list(result.scalars().all())

        unread_result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        unread_count = unread_result.scalar() or 0

        return NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
            unread_count=unread_count,
        )

    async def mark_read(
        self, db: AsyncSession, user_id: UUID, notification_id: UUID
    ) -> NotificationResponse:
        """
        Mark one of the caller's notifications as read.

        Raises:
            NotFoundError: no such notification
            ForbiddenError: it belongs to someone else
        """
        result = await db.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))
        if notification.user_id != user_id:
            raise ForbiddenError(
                message="You can only update your own notifications",
                action="mark_notification_read",
            )

        if not notification.read:
            notification.read = True
            await db.flush()

        return NotificationResponse.model_validate(notification)


notification_service = NotificationService()
