"""Project, task and task action (audit trail) models."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_workflow.models.base import Base, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from hr_workflow.models.employee import Employee, User


class Project(Base, TimestampMixin, UpdatedAtMixin):
    """Project owning zero or more tasks."""

    __tablename__ = "project"

    project_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    tasks: Mapped[list[Task]] = relationship(back_populates="project")


class Task(Base, TimestampMixin, UpdatedAtMixin):
    """Unit of work assigned to exactly one employee within one project."""

    __tablename__ = "task"

    task_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("project.project_id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_to_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'DONE')",
            name="task_status_check",
        ),
        Index("ix_task_assigned_to_id", "assigned_to_id"),
        Index("ix_task_project_id", "project_id"),
    )

    # Relationships
    project: Mapped[Project] = relationship(back_populates="tasks")
    assignee: Mapped[Employee] = relationship(back_populates="tasks")
    actions: Mapped[list[TaskAction]] = relationship(
        back_populates="task",
        order_by="TaskAction.created_at",
    )


class TaskAction(Base, TimestampMixin):
    """Append-only audit entry for a single task mutation."""

    __tablename__ = "task_action"

    task_action_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("task.task_id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    old_status: Mapped[str | None] = mapped_column(String, nullable=True)
    new_status: Mapped[str | None] = mapped_column(String, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_task_action_task_id", "task_id"),)

    # Relationships
    task: Mapped[Task] = relationship(back_populates="actions")
    user: Mapped[User] = relationship()
