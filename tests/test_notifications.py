"""Notification inbox tests."""

import pytest

from hr_workflow.errors import PermissionDenied
from hr_workflow.identity import Actor, Role
from hr_workflow.models import Notification
from hr_workflow.services.notification_service import NotificationService


@pytest.fixture
async def inbox(session_factory, test_employee):
    """Three unread notifications for the test employee."""
    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Notification(
                        recipient_id=test_employee.user_id,
                        title=f"Notice {i}",
                        message="hello",
                        type="GENERAL",
                    )
                    for i in range(3)
                ]
            )


class TestNotificationInbox:
    async def test_list_with_unread_count(self, orchestrator_for, test_employee, inbox):
        result = await orchestrator_for(test_employee.user).get_my_notifications(limit=2)

        assert result.success is True
        assert len(result.data["notifications"]) == 2
        assert result.data["unread_count"] == 3

    async def test_mark_read(self, orchestrator_for, test_employee, inbox):
        employee = orchestrator_for(test_employee.user)
        listing = await employee.get_my_notifications()
        first = listing.data["notifications"][0]

        result = await employee.mark_notification_read(first.notification_id)

        assert result.success is True
        after = await employee.get_my_notifications()
        assert after.data["unread_count"] == 2

    async def test_mark_all_read(self, orchestrator_for, test_employee, inbox):
        employee = orchestrator_for(test_employee.user)

        result = await employee.mark_all_notifications_read()

        assert result.data == {"updated": 3}
        assert (await employee.get_my_notifications()).data["unread_count"] == 0

    async def test_only_recipient_may_mark_read(self, session, test_employee, other_employee, inbox):
        service = NotificationService(session)
        items, _ = await service.get_notifications(
            Actor(id=test_employee.user_id, role=Role.EMPLOYEE)
        )

        with pytest.raises(PermissionDenied):
            await service.mark_read(Actor(id=other_employee.user_id, role=Role.EMPLOYEE), items[0].notification_id)
