"""Tests for notification fan-out."""

import logging
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select

from hr_workflow.identity import Actor, Role
from hr_workflow.models import Notification
from hr_workflow.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationDraft,
    NotificationType,
    SalaryPaidEvent,
    SqlAdminRoster,
    SqlNotificationSink,
    TaskEvent,
    TaskEventKind,
    build_task_notifications,
    needs_admin_roster,
    task_link,
)

ADMIN = Actor(id=uuid4(), role=Role.ADMIN, name="Alice Admin")
ASSIGNEE_ID = uuid4()
ASSIGNEE = Actor(id=ASSIGNEE_ID, role=Role.EMPLOYEE, name="Eve Employee")
TASK_ID = uuid4()


class FakeRoster:
    def __init__(self, admin_ids: list[UUID], fail: bool = False):
        self.admin_ids = admin_ids
        self.fail = fail
        self.calls = 0

    async def list_admins(self) -> list[UUID]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("roster unavailable")
        return list(self.admin_ids)


class FakeSink:
    """Records drafts; fails for the recipients listed in ``fail_for``."""

    def __init__(self, fail_for: set[UUID] | None = None):
        self.fail_for = fail_for or set()
        self.created: list[NotificationDraft] = []

    async def create(self, draft: NotificationDraft) -> None:
        if draft.recipient_id in self.fail_for:
            raise RuntimeError("write failed")
        self.created.append(draft)


def task_event(kind: TaskEventKind, actor: Actor, **kwargs) -> TaskEvent:
    return TaskEvent(
        kind=kind,
        task_id=TASK_ID,
        task_title="Write report",
        assignee_user_id=ASSIGNEE_ID,
        actor=actor,
        **kwargs,
    )


class TestBuildTaskNotifications:
    def test_creation_notifies_assignee(self):
        drafts = build_task_notifications(task_event(TaskEventKind.CREATED, ADMIN), [])

        assert len(drafts) == 1
        assert drafts[0].recipient_id == ASSIGNEE_ID
        assert drafts[0].title == "New Task Assigned"
        assert drafts[0].message == "You've been assigned to a new task: Write report"
        assert drafts[0].type == NotificationType.TASK_ASSIGNMENT
        assert drafts[0].link == f"/dashboard/tasks?taskId={TASK_ID}"

    def test_admin_status_change_notifies_assignee(self):
        event = task_event(
            TaskEventKind.STATUS_CHANGED, ADMIN, old_status="DONE", new_status="PENDING"
        )
        drafts = build_task_notifications(event, [uuid4()])

        assert [d.recipient_id for d in drafts] == [ASSIGNEE_ID]
        assert drafts[0].message == (
            'Task "Write report" status changed from DONE to PENDING by Alice Admin'
        )
        assert drafts[0].type == NotificationType.STATUS_CHANGE

    def test_assignee_status_change_notifies_every_admin(self):
        admins = [uuid4(), uuid4()]
        event = task_event(
            TaskEventKind.STATUS_CHANGED, ASSIGNEE, old_status="PENDING", new_status="IN_PROGRESS"
        )
        drafts = build_task_notifications(event, admins)

        assert [d.recipient_id for d in drafts] == admins
        assert all(d.title == "Task Status Updated" for d in drafts)

    def test_note_by_assignee_goes_to_admins(self):
        admins = [uuid4()]
        drafts = build_task_notifications(task_event(TaskEventKind.NOTE_ADDED, ASSIGNEE), admins)

        assert drafts[0].recipient_id == admins[0]
        assert drafts[0].message == 'Task "Write report" has a new note by Eve Employee'
        assert drafts[0].type == NotificationType.TASK_UPDATE

    def test_deletion_notifies_assignee(self):
        drafts = build_task_notifications(task_event(TaskEventKind.DELETED, ADMIN), [])

        assert drafts[0].recipient_id == ASSIGNEE_ID
        assert drafts[0].message == 'Task "Write report" has been deleted by Alice Admin'

    def test_unnamed_actor_falls_back_to_role(self):
        anonymous_admin = Actor(id=uuid4(), role=Role.ADMIN)
        drafts = build_task_notifications(task_event(TaskEventKind.UPDATED, anonymous_admin), [])

        assert drafts[0].message.endswith("details were updated by Admin")


class TestNotificationDispatcher:
    async def test_fan_out_one_per_admin(self):
        admins = [uuid4(), uuid4(), uuid4()]
        sink = FakeSink()
        dispatcher = NotificationDispatcher(sink, FakeRoster(admins))

        delivered = await dispatcher.dispatch_task_event(task_event(TaskEventKind.NOTE_ADDED, ASSIGNEE))

        assert delivered == 3
        assert sorted(d.recipient_id for d in sink.created) == sorted(admins)

    async def test_roster_not_consulted_for_admin_actions(self):
        roster = FakeRoster([uuid4()])
        dispatcher = NotificationDispatcher(FakeSink(), roster)

        await dispatcher.dispatch_task_event(task_event(TaskEventKind.UPDATED, ADMIN))

        assert roster.calls == 0

    async def test_failed_write_does_not_stop_others(self, caplog):
        """One failing recipient is logged; the rest still get theirs."""
        admins = [uuid4(), uuid4(), uuid4()]
        sink = FakeSink(fail_for={admins[1]})
        dispatcher = NotificationDispatcher(sink, FakeRoster(admins))

        with caplog.at_level(logging.ERROR):
            delivered = await dispatcher.dispatch_task_event(
                task_event(TaskEventKind.STATUS_CHANGED, ASSIGNEE, old_status="PENDING", new_status="IN_PROGRESS")
            )

        assert delivered == 2
        assert {d.recipient_id for d in sink.created} == {admins[0], admins[2]}
        assert "Notification to" in caplog.text

    async def test_roster_failure_is_swallowed(self):
        dispatcher = NotificationDispatcher(FakeSink(), FakeRoster([], fail=True))

        delivered = await dispatcher.dispatch_task_event(task_event(TaskEventKind.NOTE_ADDED, ASSIGNEE))

        assert delivered == 0

    async def test_salary_paid(self):
        sink = FakeSink()
        dispatcher = NotificationDispatcher(sink, FakeRoster([]))

        await dispatcher.dispatch_salary_paid(
            SalaryPaidEvent(salary_id=uuid4(), employee_user_id=ASSIGNEE_ID, month_label="March 2024", actor=ADMIN)
        )

        assert sink.created[0].type == NotificationType.GENERAL
        assert sink.created[0].message == "Your salary for March 2024 has been paid"
        assert sink.created[0].link == "/dashboard"


class TestSqlAdapters:
    async def test_roster_and_sink(self, session_factory, session, admin_user, second_admin, test_employee):
        roster = SqlAdminRoster(session_factory)
        sink = SqlNotificationSink(session_factory)

        admins = await roster.list_admins()
        assert set(admins) == {admin_user.user_id, second_admin.user_id}

        await sink.create(
            NotificationDraft(
                recipient_id=test_employee.user_id,
                title="Task Updated",
                message="hello",
                type=NotificationType.TASK_UPDATE,
                link=task_link(TASK_ID),
            )
        )

        result = await session.execute(select(Notification))
        stored = result.scalars().one()
        assert stored.recipient_id == test_employee.user_id
        assert stored.type == "TASK_UPDATE"
        assert stored.is_read is False


@pytest.mark.parametrize("kind", [TaskEventKind.CREATED, TaskEventKind.DELETED])
def test_assignee_events_never_need_roster(kind):
    assert needs_admin_roster(task_event(kind, ASSIGNEE)) is False
