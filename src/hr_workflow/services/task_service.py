"""Task service - task mutations with their audit trail."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_workflow.errors import InvalidTransitionError, NotFound, PermissionDenied, ValidationFailed
from hr_workflow.identity import Actor
from hr_workflow.models import Employee, Project, Task, TaskAction
from hr_workflow.models.base import utcnow
from hr_workflow.services.notification_dispatcher import TaskEvent, TaskEventKind
from hr_workflow.services.state_machine import TaskStateMachine, TaskStatus

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000

# Lifecycle order for listings (string order would put DONE first)
_STATUS_RANK = case(
    {TaskStatus.PENDING.value: 0, TaskStatus.IN_PROGRESS.value: 1, TaskStatus.DONE.value: 2},
    value=Task.status,
)


def validate_details(title: str, description: str | None) -> None:
    """Reject task titles and descriptions outside the allowed lengths."""
    if len(title.strip()) < TITLE_MIN_LENGTH:
        raise ValidationFailed("Task title must be at least 2 characters")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationFailed("Task title cannot exceed 100 characters")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationFailed("Description cannot exceed 1000 characters")


class TaskService:
    """Service for the task lifecycle.

    Every mutation appends exactly one TaskAction in the caller's
    transaction and returns the TaskEvent to hand to the dispatcher once
    that transaction has committed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_task(self, task_id: UUID, load_actions: bool = False) -> Task | None:
        """Load a task with its assignee (and optionally its action history)."""
        options = [selectinload(Task.assignee).selectinload(Employee.user), selectinload(Task.project)]
        if load_actions:
            options.append(selectinload(Task.actions).selectinload(TaskAction.user))
        result = await self.session.execute(
            select(Task).where(Task.task_id == task_id).options(*options)
        )
        return result.scalar_one_or_none()

    async def create_task(
        self,
        actor: Actor,
        *,
        project_id: UUID,
        assigned_to_id: UUID,
        title: str,
        description: str | None = None,
        due_date: date | None = None,
    ) -> tuple[Task, TaskEvent]:
        """Create a task in PENDING and record its creation."""
        self._require_admin(actor)
        validate_details(title, description)

        project = await self.session.get(Project, project_id)
        if project is None:
            raise NotFound("Project", project_id)
        if project.is_archived:
            raise ValidationFailed("Cannot add tasks to an archived project")

        employee = await self.session.get(Employee, assigned_to_id)
        if employee is None:
            raise NotFound("Employee", assigned_to_id)
        if not employee.is_active:
            raise ValidationFailed("Cannot assign tasks to an inactive employee")

        task = Task(
            project_id=project_id,
            assigned_to_id=assigned_to_id,
            title=title,
            description=description,
            due_date=due_date,
            status=TaskStateMachine.INITIAL_STATUS.value,
        )
        self.session.add(task)
        await self.session.flush()

        self._record_action(
            task.task_id,
            actor,
            description="Task created",
            new_status=TaskStateMachine.INITIAL_STATUS.value,
        )
        await self.session.flush()
        logger.info("Task %s created in project %s", task.task_id, project_id)

        event = TaskEvent(
            kind=TaskEventKind.CREATED,
            task_id=task.task_id,
            task_title=task.title,
            assignee_user_id=employee.user_id,
            actor=actor,
        )
        return task, event

    async def update_task_details(
        self,
        actor: Actor,
        task_id: UUID,
        *,
        title: str,
        description: str | None = None,
        due_date: date | None = None,
    ) -> tuple[Task, TaskEvent]:
        """Edit title, description and due date."""
        self._require_admin(actor)
        validate_details(title, description)
        task = await self._require_task(task_id)

        task.title = title
        task.description = description
        task.due_date = due_date
        task.updated_at = utcnow()
        self._record_action(task.task_id, actor, description="Task details updated")
        await self.session.flush()

        return task, self._event(TaskEventKind.UPDATED, task, actor)

    async def request_transition(
        self,
        actor: Actor,
        task_id: UUID,
        requested_status: str,
        note: str | None = None,
    ) -> tuple[Task, TaskEvent]:
        """Validate and apply a status change against the stored status.

        Raises:
            PermissionDenied: actor is neither admin nor the assignee
            InvalidTransitionError: the actor's policy rejects the move, or
                the status changed underneath this request
        """
        to_status = TaskStateMachine.parse_status(requested_status).value
        task = await self._require_task(task_id, for_update=True)
        self._check_access(task, actor, "You don't have permission to update this task")

        from_status = task.status
        TaskStateMachine.validate_transition(actor, from_status, to_status)

        # Conditional update: only applies if nobody moved the task meanwhile
        result = await self.session.execute(
            update(Task)
            .where(Task.task_id == task_id, Task.status == from_status)
            .values(status=to_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidTransitionError(
                from_status,
                to_status,
                "Task status changed concurrently; reload the task and try again",
            )

        self._record_action(
            task.task_id,
            actor,
            description=TaskStateMachine.describe(from_status, to_status),
            old_status=from_status,
            new_status=to_status,
            note=note or None,
        )
        await self.session.flush()
        await self.session.refresh(task, attribute_names=["status", "updated_at"])
        logger.info("Task %s status %s -> %s by %s", task_id, from_status, to_status, actor.id)

        return task, self._event(
            TaskEventKind.STATUS_CHANGED,
            task,
            actor,
            old_status=from_status,
            new_status=to_status,
        )

    async def add_note(self, actor: Actor, task_id: UUID, note: str) -> tuple[TaskAction, TaskEvent]:
        """Attach a free-text note to the task history."""
        if not note or not note.strip():
            raise ValidationFailed("Note cannot be empty")
        task = await self._require_task(task_id)
        self._check_access(task, actor, "You don't have permission to add notes to this task")

        action = self._record_action(task.task_id, actor, description="Note added", note=note)
        await self.session.flush()
        return action, self._event(TaskEventKind.NOTE_ADDED, task, actor)

    async def prepare_delete(self, actor: Actor, task_id: UUID) -> TaskEvent:
        """Check a deletion is allowed and return the event announcing it."""
        self._require_admin(actor)
        task = await self._require_task(task_id)
        return self._event(TaskEventKind.DELETED, task, actor)

    async def delete_task(self, actor: Actor, task_id: UUID) -> None:
        """Remove the task's actions, then the task."""
        self._require_admin(actor)
        exists = await self.session.scalar(select(Task.task_id).where(Task.task_id == task_id))
        if exists is None:
            raise NotFound("Task", task_id)

        await self.session.execute(
            delete(TaskAction)
            .where(TaskAction.task_id == task_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(Task).where(Task.task_id == task_id).execution_options(synchronize_session=False)
        )
        logger.info("Task %s deleted by %s", task_id, actor.id)

    async def get_task_details(self, actor: Actor, task_id: UUID) -> tuple[Task, list[TaskAction]]:
        """Task plus its full history, newest action first."""
        task = await self._require_task(task_id)
        self._check_access(task, actor, "You don't have permission to view this task")

        result = await self.session.execute(
            select(TaskAction)
            .where(TaskAction.task_id == task_id)
            .options(selectinload(TaskAction.user))
            .order_by(TaskAction.created_at.desc())
        )
        return task, list(result.scalars().all())

    async def get_my_tasks(self, actor: Actor) -> list[Task]:
        """Tasks assigned to the caller's employee record."""
        employee = await self.session.scalar(select(Employee).where(Employee.user_id == actor.id))
        if employee is None:
            raise NotFound("Employee record")

        result = await self.session.execute(
            select(Task)
            .where(Task.assigned_to_id == employee.employee_id)
            .options(selectinload(Task.project))
            .order_by(_STATUS_RANK, Task.due_date.asc(), Task.updated_at.desc())
        )
        return list(result.scalars().all())

    async def get_project_tasks(self, actor: Actor, project_id: UUID) -> tuple[Project, dict[str, list[Task]]]:
        """Tasks of one project grouped by status."""
        project = await self.session.get(Project, project_id)
        if project is None:
            raise NotFound("Project", project_id)

        query = (
            select(Task)
            .where(Task.project_id == project_id)
            .options(selectinload(Task.assignee).selectinload(Employee.user))
            .order_by(Task.updated_at.desc())
        )
        if not actor.is_admin:
            query = query.join(Employee, Task.assigned_to_id == Employee.employee_id).where(
                Employee.user_id == actor.id
            )
        result = await self.session.execute(query)
        tasks = result.scalars().all()

        grouped: dict[str, list[Task]] = {s.value: [] for s in TaskStateMachine.ORDER}
        for task in tasks:
            grouped[task.status].append(task)
        return project, grouped

    async def get_all_tasks(self, actor: Actor) -> tuple[list[Task], dict[str, int]]:
        """Every task with per-status counts (admin only)."""
        self._require_admin(actor, "Only admin users can view all tasks")
        result = await self.session.execute(
            select(Task)
            .options(selectinload(Task.project), selectinload(Task.assignee).selectinload(Employee.user))
            .order_by(_STATUS_RANK, Task.due_date.asc(), Task.updated_at.desc())
        )
        tasks = list(result.scalars().all())
        counts = {s.value: 0 for s in TaskStateMachine.ORDER}
        for task in tasks:
            counts[task.status] += 1
        return tasks, counts

    async def _require_task(self, task_id: UUID, for_update: bool = False) -> Task:
        query = (
            select(Task)
            .where(Task.task_id == task_id)
            .options(selectinload(Task.assignee).selectinload(Employee.user))
        )
        if for_update:
            query = query.with_for_update(of=Task).execution_options(populate_existing=True)
        result = await self.session.execute(query)
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFound("Task", task_id)
        return task

    def _check_access(self, task: Task, actor: Actor, message: str) -> None:
        """Only admins and the assignee may touch a task."""
        if actor.is_admin:
            return
        if task.assignee.user_id != actor.id:
            raise PermissionDenied(message)

    def _require_admin(self, actor: Actor, message: str | None = None) -> None:
        if not actor.is_admin:
            raise PermissionDenied(message or "Only admin users can manage tasks")

    def _record_action(
        self,
        task_id: UUID,
        actor: Actor,
        *,
        description: str,
        old_status: str | None = None,
        new_status: str | None = None,
        note: str | None = None,
    ) -> TaskAction:
        action = TaskAction(
            task_id=task_id,
            user_id=actor.id,
            description=description,
            old_status=old_status,
            new_status=new_status,
            note=note,
        )
        self.session.add(action)
        return action

    def _event(
        self,
        kind: TaskEventKind,
        task: Task,
        actor: Actor,
        old_status: str | None = None,
        new_status: str | None = None,
    ) -> TaskEvent:
        return TaskEvent(
            kind=kind,
            task_id=task.task_id,
            task_title=task.title,
            assignee_user_id=task.assignee.user_id,
            actor=actor,
            old_status=old_status,
            new_status=new_status,
        )
