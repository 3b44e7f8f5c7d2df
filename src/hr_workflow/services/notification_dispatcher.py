"""Notification dispatcher for task and salary events.

The dispatcher provides:
- Role-driven recipient selection (assignee, or every admin)
- Fan-out: one notification record per recipient
- Error isolation: a failed write is logged and never propagates, so the
  mutation that triggered the event stays committed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_workflow.identity import Actor, Role
from hr_workflow.models import Notification, User

logger = logging.getLogger(__name__)

DASHBOARD_LINK = "/dashboard"


class NotificationType(str, Enum):
    """Notification kinds."""

    TASK_ASSIGNMENT = "TASK_ASSIGNMENT"
    TASK_UPDATE = "TASK_UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    GENERAL = "GENERAL"


class TaskEventKind(str, Enum):
    """Task mutations that produce notifications."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    NOTE_ADDED = "note_added"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class TaskEvent:
    """A committed (or, for deletion, imminent) task mutation."""

    kind: TaskEventKind
    task_id: UUID
    task_title: str
    assignee_user_id: UUID
    actor: Actor
    old_status: str | None = None
    new_status: str | None = None


@dataclass(frozen=True)
class SalaryPaidEvent:
    """A salary record transitioned from unpaid to paid."""

    salary_id: UUID
    employee_user_id: UUID
    month_label: str
    actor: Actor


@dataclass(frozen=True)
class NotificationDraft:
    """A notification record waiting to be written."""

    recipient_id: UUID
    title: str
    message: str
    type: NotificationType
    link: str


@runtime_checkable
class AdminRoster(Protocol):
    """Source of the current admin user ids."""

    async def list_admins(self) -> list[UUID]:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Persists a single notification."""

    async def create(self, draft: NotificationDraft) -> None:
        ...


def task_link(task_id: UUID) -> str:
    """Deep link to a task."""
    return f"/dashboard/tasks?taskId={task_id}"


_UPDATE_PHRASES = {
    TaskEventKind.NOTE_ADDED: "has a new note",
    TaskEventKind.UPDATED: "details were updated",
    TaskEventKind.DELETED: "has been deleted",
}


def needs_admin_roster(event: TaskEvent) -> bool:
    """Whether the event fans out to every admin."""
    return (
        event.kind in (TaskEventKind.STATUS_CHANGED, TaskEventKind.NOTE_ADDED, TaskEventKind.UPDATED)
        and not event.actor.is_admin
    )


def build_task_notifications(event: TaskEvent, admin_ids: list[UUID]) -> list[NotificationDraft]:
    """Derive the notification records for a task event.

    Admin actions notify the assignee; assignee actions notify each admin.
    Creation and deletion always notify the assignee.
    """
    link = task_link(event.task_id)
    by = event.actor.display_name

    if event.kind == TaskEventKind.CREATED:
        return [
            NotificationDraft(
                recipient_id=event.assignee_user_id,
                title="New Task Assigned",
                message=f"You've been assigned to a new task: {event.task_title}",
                type=NotificationType.TASK_ASSIGNMENT,
                link=link,
            )
        ]

    if event.kind == TaskEventKind.STATUS_CHANGED:
        title = "Task Status Updated"
        message = (
            f'Task "{event.task_title}" status changed from '
            f"{event.old_status} to {event.new_status} by {by}"
        )
        notification_type = NotificationType.STATUS_CHANGE
    else:
        title = "Task Updated"
        message = f'Task "{event.task_title}" {_UPDATE_PHRASES[event.kind]} by {by}'
        notification_type = NotificationType.TASK_UPDATE

    if needs_admin_roster(event):
        recipients = list(admin_ids)
    else:
        recipients = [event.assignee_user_id]

    return [
        NotificationDraft(
            recipient_id=recipient,
            title=title,
            message=message,
            type=notification_type,
            link=link,
        )
        for recipient in recipients
    ]


def build_salary_paid_notification(event: SalaryPaidEvent) -> NotificationDraft:
    return NotificationDraft(
        recipient_id=event.employee_user_id,
        title="Salary Paid",
        message=f"Your salary for {event.month_label} has been paid",
        type=NotificationType.GENERAL,
        link=DASHBOARD_LINK,
    )


class SqlAdminRoster:
    """Admin roster backed by the users table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_admins(self) -> list[UUID]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(User.user_id).where(User.role == Role.ADMIN.value).order_by(User.created_at)
            )
            return list(result.scalars().all())


class SqlNotificationSink:
    """Writes each notification in its own short transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, draft: NotificationDraft) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    Notification(
                        recipient_id=draft.recipient_id,
                        title=draft.title,
                        message=draft.message,
                        type=draft.type.value,
                        link=draft.link,
                        is_read=False,
                    )
                )


class NotificationDispatcher:
    """Best-effort notification fan-out.

    Usage:
        dispatcher = NotificationDispatcher(SqlNotificationSink(factory), SqlAdminRoster(factory))
        delivered = await dispatcher.dispatch_task_event(event)

    Recipients are written one at a time; ordering between recipients
    carries no meaning.
    """

    def __init__(self, sink: NotificationSink, roster: AdminRoster):
        self._sink = sink
        self._roster = roster

    async def dispatch_task_event(self, event: TaskEvent) -> int:
        """Create the notifications for a task event.

        Returns the number of notifications written.
        """
        admin_ids: list[UUID] = []
        if needs_admin_roster(event):
            try:
                admin_ids = await self._roster.list_admins()
            except Exception:
                logger.exception("Could not load admin roster for task %s", event.task_id)
                return 0

        drafts = build_task_notifications(event, admin_ids)
        return await self._deliver(drafts, f"task {event.task_id} ({event.kind.value})")

    async def dispatch_salary_paid(self, event: SalaryPaidEvent) -> int:
        """Tell the employee their salary was paid."""
        draft = build_salary_paid_notification(event)
        return await self._deliver([draft], f"salary {event.salary_id}")

    async def _deliver(self, drafts: list[NotificationDraft], context: str) -> int:
        delivered = 0
        for draft in drafts:
            try:
                await self._sink.create(draft)
                delivered += 1
            except Exception:
                logger.exception(
                    "Notification to %s failed for %s",
                    draft.recipient_id,
                    context,
                )
        return delivered
