"""Workflow orchestrator - the operation surface consumed by the portal.

Each operation:
1. Resolves the caller through the identity context
2. Runs the primary mutation and its audit record in one transaction
3. Dispatches notifications after that transaction, best-effort
4. Returns an OperationResult instead of raising across the boundary
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_workflow.config import get_settings
from hr_workflow.errors import NotFound, PermissionDenied, Unauthorized, WorkflowError
from hr_workflow.identity import Actor, IdentityContext
from hr_workflow.services.dashboard_service import DashboardService
from hr_workflow.services.employee_service import EmployeeService
from hr_workflow.services.notification_dispatcher import (
    NotificationDispatcher,
    SalaryPaidEvent,
    SqlAdminRoster,
    SqlNotificationSink,
)
from hr_workflow.services.notification_service import NotificationService
from hr_workflow.services.project_service import ProjectService
from hr_workflow.services.salary_ledger import SalaryChange, SalaryLedger, format_month
from hr_workflow.services.state_machine import TaskStateMachine
from hr_workflow.services.task_service import TaskService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Structured outcome returned to the portal.

    ``error`` names the failure class (e.g. ``"ImmutableRecord"``) so the
    transport can pick a status code; it is None on success.
    """

    success: bool
    message: str
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> OperationResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error: str | None = None) -> OperationResult:
        return cls(success=False, message=message, error=error)


class WorkflowOrchestrator:
    """Coordinates the task state machine, salary ledger and notifications."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        identity: IdentityContext,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self._session_factory = session_factory
        self._identity = identity
        self._dispatcher = dispatcher or NotificationDispatcher(
            SqlNotificationSink(session_factory),
            SqlAdminRoster(session_factory),
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def create_task(
        self,
        *,
        project_id: UUID,
        assigned_to_id: UUID,
        title: str,
        description: str | None = None,
        due_date: date | None = None,
    ) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                task, event = await TaskService(session).create_task(
                    actor,
                    project_id=project_id,
                    assigned_to_id=assigned_to_id,
                    title=title,
                    description=description,
                    due_date=due_date,
                )
            await self._dispatcher.dispatch_task_event(event)
            return OperationResult.ok("Task created successfully", task)

        return await self._run("Failed to create task", op)

    async def update_task_details(
        self,
        task_id: UUID,
        *,
        title: str,
        description: str | None = None,
        due_date: date | None = None,
    ) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                task, event = await TaskService(session).update_task_details(
                    actor, task_id, title=title, description=description, due_date=due_date
                )
            await self._dispatcher.dispatch_task_event(event)
            return OperationResult.ok("Task updated successfully", task)

        return await self._run("Failed to update task", op)

    async def update_task_status(
        self, task_id: UUID, status: str, note: str | None = None
    ) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                task, event = await TaskService(session).request_transition(
                    actor, task_id, status, note
                )
            await self._dispatcher.dispatch_task_event(event)
            return OperationResult.ok("Task status updated successfully", task)

        return await self._run("Failed to update task status", op)

    async def add_task_note(self, task_id: UUID, note: str) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                action, event = await TaskService(session).add_note(actor, task_id, note)
            await self._dispatcher.dispatch_task_event(event)
            return OperationResult.ok("Note added successfully", action)

        return await self._run("Failed to add note", op)

    async def delete_task(self, task_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                event = await TaskService(session).prepare_delete(actor, task_id)
            # The assignee hears about the task while it still exists
            await self._dispatcher.dispatch_task_event(event)
            async with self._transaction() as session:
                await TaskService(session).delete_task(actor, task_id)
            return OperationResult.ok("Task deleted successfully")

        return await self._run("Failed to delete task", op)

    async def get_task_details(self, task_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                task, actions = await TaskService(session).get_task_details(actor, task_id)
            return OperationResult.ok(
                "Task loaded",
                {
                    "task": task,
                    "actions": actions,
                    "next_statuses": TaskStateMachine.get_next_statuses(actor, task.status),
                },
            )

        return await self._run("Failed to load task", op)

    async def get_my_tasks(self) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                tasks = await TaskService(session).get_my_tasks(actor)
            return OperationResult.ok("Tasks loaded", tasks)

        return await self._run("Failed to load tasks", op)

    async def get_project_tasks(self, project_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                project, grouped = await TaskService(session).get_project_tasks(actor, project_id)
            return OperationResult.ok("Tasks loaded", {"project": project, "tasks": grouped})

        return await self._run("Failed to load project tasks", op)

    async def get_all_tasks(self) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                tasks, counts = await TaskService(session).get_all_tasks(actor)
            return OperationResult.ok("Tasks loaded", {"tasks": tasks, "status_counts": counts})

        return await self._run("Failed to load tasks", op)

    # ------------------------------------------------------------------
    # Salaries
    # ------------------------------------------------------------------

    async def create_salary(
        self,
        *,
        employee_id: UUID,
        month: str | date,
        base_salary: Decimal | int | float | str,
        changes: Sequence[SalaryChange] = (),
        is_paid: bool = False,
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                salary = await SalaryLedger(session).create_salary(
                    employee_id, month, base_salary, changes, is_paid
                )
            return OperationResult.ok("Salary created successfully", salary)

        return await self._run("Failed to create salary", op)

    async def update_salary(
        self,
        salary_id: UUID,
        *,
        base_salary: Decimal | int | float | str,
        changes: Sequence[SalaryChange] = (),
        is_paid: bool = False,
    ) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_admin()
            async with self._transaction() as session:
                ledger = SalaryLedger(session)
                existing = await ledger.get_salary(salary_id, load_employee=True)
                if existing is None:
                    raise NotFound("Salary record", salary_id)
                was_paid = existing.is_paid
                employee_user_id = existing.employee.user_id
                salary = await ledger.update_salary(salary_id, base_salary, changes, is_paid)
                event = None
                if salary.is_paid and not was_paid:
                    event = SalaryPaidEvent(
                        salary_id=salary.salary_id,
                        employee_user_id=employee_user_id,
                        month_label=format_month(salary.month),
                        actor=actor,
                    )
            if event is not None:
                await self._dispatcher.dispatch_salary_paid(event)
            return OperationResult.ok("Salary updated successfully", salary)

        return await self._run("Failed to update salary", op)

    async def delete_salary(self, salary_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                await SalaryLedger(session).delete_salary(salary_id)
            return OperationResult.ok("Salary deleted successfully")

        return await self._run("Failed to delete salary", op)

    async def generate_monthly_salaries(self, month: str | date) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                result = await SalaryLedger(session).generate_monthly_salaries(month)
            return OperationResult.ok(result.message, result)

        return await self._run("Failed to generate monthly salaries", op)

    async def list_salaries(
        self,
        page: int = 1,
        limit: int = 10,
        employee_id: UUID | None = None,
        month: str | None = None,
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                items, total = await SalaryLedger(session).list_salaries(
                    page, limit, employee_id, month
                )
            return OperationResult.ok("Salaries loaded", _page(items, total, page, limit))

        return await self._run("Failed to load salaries", op)

    async def get_my_salaries(
        self, page: int = 1, limit: int = 10, month: str | None = None
    ) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                employee = await EmployeeService(session).get_employee_for_user(actor.id)
                if employee is None:
                    raise NotFound("Employee record")
                items, total = await SalaryLedger(session).list_salaries(
                    page, limit, employee.employee_id, month
                )
            return OperationResult.ok("Salaries loaded", _page(items, total, page, limit))

        return await self._run("Failed to load salaries", op)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, name: str, description: str | None = None) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                project = await ProjectService(session).create_project(name, description)
            return OperationResult.ok("Project created successfully", project)

        return await self._run("Failed to create project", op)

    async def update_project(
        self, project_id: UUID, name: str, description: str | None = None
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                project = await ProjectService(session).update_project(project_id, name, description)
            return OperationResult.ok("Project updated successfully", project)

        return await self._run("Failed to update project", op)

    async def toggle_project_archive(self, project_id: UUID, is_archived: bool) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                project = await ProjectService(session).set_archived(project_id, is_archived)
            verb = "archived" if is_archived else "unarchived"
            return OperationResult.ok(f"Project {verb} successfully", project)

        return await self._run("Failed to update project archive status", op)

    async def delete_project(self, project_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                await ProjectService(session).delete_project(project_id)
            return OperationResult.ok("Project deleted successfully")

        return await self._run("Failed to delete project", op)

    async def list_projects(
        self,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        show_archived: bool = False,
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                rows, total = await ProjectService(session).list_projects(
                    page, limit, search, show_archived
                )
            return OperationResult.ok("Projects loaded", _page(rows, total, page, limit))

        return await self._run("Failed to load projects", op)

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    async def create_employee(
        self,
        *,
        name: str,
        email: str,
        employment_date: date,
        basic_salary: Decimal | int | float | str,
        is_active: bool = True,
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                employee = await EmployeeService(session).create_employee(
                    name=name,
                    email=email,
                    employment_date=employment_date,
                    basic_salary=basic_salary,
                    is_active=is_active,
                )
            return OperationResult.ok("Employee created successfully.", employee)

        return await self._run("Failed to create employee.", op)

    async def update_employee(
        self,
        employee_id: UUID,
        *,
        name: str,
        email: str,
        employment_date: date,
        basic_salary: Decimal | int | float | str,
        is_active: bool = True,
    ) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                employee = await EmployeeService(session).update_employee(
                    employee_id,
                    name=name,
                    email=email,
                    employment_date=employment_date,
                    basic_salary=basic_salary,
                    is_active=is_active,
                )
            return OperationResult.ok("Employee updated successfully.", employee)

        return await self._run("Failed to update employee.", op)

    async def delete_employee(self, employee_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                await EmployeeService(session).delete_employee(employee_id)
            return OperationResult.ok("Employee deleted successfully.")

        return await self._run("Failed to delete employee.", op)

    async def list_active_employees(self) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                employees = await EmployeeService(session).list_active_employees()
            return OperationResult.ok("Employees loaded", employees)

        return await self._run("Failed to load employees", op)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def get_my_notifications(self, limit: int | None = None) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                items, unread = await NotificationService(session).get_notifications(
                    actor, limit or get_settings().notification_limit
                )
            return OperationResult.ok(
                "Notifications loaded", {"notifications": items, "unread_count": unread}
            )

        return await self._run("Failed to load notifications", op)

    async def mark_notification_read(self, notification_id: UUID) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                await NotificationService(session).mark_read(actor, notification_id)
            return OperationResult.ok("Notification marked as read")

        return await self._run("Failed to mark notification as read", op)

    async def mark_all_notifications_read(self) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                count = await NotificationService(session).mark_all_read(actor)
            return OperationResult.ok("All notifications marked as read", {"updated": count})

        return await self._run("Failed to mark all notifications as read", op)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def get_admin_dashboard(self, today: date | None = None) -> OperationResult:
        async def op() -> OperationResult:
            await self._require_admin()
            async with self._transaction() as session:
                stats = await DashboardService(session, today).admin_stats()
            return OperationResult.ok("Dashboard stats loaded", stats)

        return await self._run("Failed to fetch dashboard stats", op)

    async def get_my_dashboard(self, today: date | None = None) -> OperationResult:
        async def op() -> OperationResult:
            actor = await self._require_actor()
            async with self._transaction() as session:
                stats = await DashboardService(session, today).employee_stats(actor.id)
            return OperationResult.ok("Dashboard stats loaded", stats)

        return await self._run("Failed to fetch dashboard stats", op)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _require_actor(self) -> Actor:
        actor = await self._identity.current_actor()
        if actor is None:
            raise Unauthorized()
        return actor

    async def _require_admin(self) -> Actor:
        actor = await self._require_actor()
        if not actor.is_admin:
            raise PermissionDenied("Only admin users can perform this action")
        return actor

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """One session, one transaction: commit on success, roll back on error."""
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    async def _run(
        self, failure_message: str, operation: Callable[[], Awaitable[OperationResult]]
    ) -> OperationResult:
        """Run one attempt of an operation and map failures to results."""
        try:
            return await operation()
        except WorkflowError as exc:
            return OperationResult.fail(exc.message, type(exc).__name__)
        except Exception:
            logger.exception(failure_message)
            return OperationResult.fail(failure_message, "InternalError")


def _page(items: list[Any], total: int, page: int, limit: int) -> dict[str, Any]:
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total_count": total,
            "total_pages": (total + limit - 1) // limit if limit else 0,
        },
    }
