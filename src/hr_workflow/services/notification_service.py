"""Notification inbox for the current user."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import NotFound, PermissionDenied
from hr_workflow.identity import Actor
from hr_workflow.models import Notification


class NotificationService:
    """Read side of notifications plus the read-flag flip."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_notifications(self, actor: Actor, limit: int = 10) -> tuple[list[Notification], int]:
        """Latest notifications for the actor and their unread count."""
        result = await self.session.execute(
            select(Notification)
            .where(Notification.recipient_id == actor.id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        unread = await self.session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == actor.id, Notification.is_read.is_(False))
        )
        return list(result.scalars().all()), unread or 0

    async def mark_read(self, actor: Actor, notification_id: UUID) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification", notification_id)
        if notification.recipient_id != actor.id:
            raise PermissionDenied("You don't have permission to update this notification")
        notification.is_read = True
        await self.session.flush()
        return notification

    async def mark_all_read(self, actor: Actor) -> int:
        """Mark every unread notification of the actor as read; returns the count."""
        result = await self.session.execute(
            update(Notification)
            .where(Notification.recipient_id == actor.id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
