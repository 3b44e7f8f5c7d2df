"""Monthly salary record model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_workflow.models.base import Base, JSONType, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from hr_workflow.models.employee import Employee


class Salary(Base, TimestampMixin, UpdatedAtMixin):
    """One payroll record per employee per calendar month.

    ``changes`` holds the embedded adjustments as a JSON list of
    ``{"value": "<decimal>", "type": "BONUS" | "DEDUCTION", "note": str}``.
    ``payable`` is a denormalized cache of base salary plus adjustments.
    """

    __tablename__ = "salary"

    salary_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    month: Mapped[date] = mapped_column(Date, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    changes: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    payable: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", name="salary_employee_month_unique"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="salaries")
