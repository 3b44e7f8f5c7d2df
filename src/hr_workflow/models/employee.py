"""User account and employee models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_workflow.models.base import Base, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from hr_workflow.models.notification import Notification
    from hr_workflow.models.project import Task
    from hr_workflow.models.salary import Salary


class User(Base, TimestampMixin):
    """Portal user account. Authentication itself lives outside this package."""

    __tablename__ = "app_user"

    user_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="EMPLOYEE")

    __table_args__ = (
        CheckConstraint("role IN ('ADMIN', 'EMPLOYEE')", name="app_user_role_check"),
    )

    # Relationships
    employee: Mapped[Employee | None] = relationship(back_populates="user", uselist=False)
    notifications: Mapped[list[Notification]] = relationship(back_populates="recipient")


class Employee(Base, TimestampMixin, UpdatedAtMixin):
    """Employee record, 1:1 with a user account."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    employee_code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)
    employment_date: Mapped[date] = mapped_column(Date, nullable=False)
    basic_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("basic_salary > 0", name="employee_basic_salary_positive"),
    )

    # Relationships
    user: Mapped[User] = relationship(back_populates="employee")
    tasks: Mapped[list[Task]] = relationship(back_populates="assignee")
    salaries: Mapped[list[Salary]] = relationship(back_populates="employee")
