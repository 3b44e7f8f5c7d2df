"""Dashboard statistics - read-only aggregates for the portal home page.

Counts come straight from SQL aggregates. Payable totals are rebuilt from
base salary and adjustments, never summed from the cached column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import NotFound
from hr_workflow.models import Employee, Project, Salary, Task, User
from hr_workflow.services.salary_ledger import (
    compute_payable,
    decode_changes,
    format_month,
    with_payable,
)
from hr_workflow.services.state_machine import TaskStatus

logger = logging.getLogger(__name__)

TREND_MONTHS = 3
TOP_LIMIT = 5
ZERO = Decimal("0.00")


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(month: date, delta: int) -> date:
    """First day of the month ``delta`` months away from ``month``."""
    index = month.year * 12 + (month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def month_bounds(month: date) -> tuple[datetime, datetime]:
    """UTC [start, end) timestamps of a calendar month."""
    start = month_start(month)
    end = add_months(start, 1)
    return (
        datetime(start.year, start.month, 1, tzinfo=timezone.utc),
        datetime(end.year, end.month, 1, tzinfo=timezone.utc),
    )


def percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


@dataclass(frozen=True)
class MonthTotal:
    month: date
    label: str
    total: Decimal


@dataclass(frozen=True)
class NamedCount:
    id: UUID
    name: str
    count: int


@dataclass(frozen=True)
class TaskCounts:
    pending: int = 0
    in_progress: int = 0
    done: int = 0

    @classmethod
    def from_rows(cls, rows: Any) -> TaskCounts:
        counts = dict(rows)
        return cls(
            pending=counts.get(TaskStatus.PENDING.value, 0),
            in_progress=counts.get(TaskStatus.IN_PROGRESS.value, 0),
            done=counts.get(TaskStatus.DONE.value, 0),
        )


@dataclass(frozen=True)
class AdminDashboard:
    """Company-wide figures for the admin home page."""

    # Employees
    active_employees: int
    inactive_employees: int
    new_hires_this_month: int
    attrition_rate: float
    # Salaries
    month_base_total: Decimal
    month_payable_total: Decimal
    paid_total: Decimal
    unpaid_total: Decimal
    average_salary: Decimal
    salary_trend: list[MonthTotal]
    # Projects
    active_projects: int
    archived_projects: int
    projects_with_delays: list[NamedCount]
    # Tasks
    tasks_by_status: TaskCounts
    overdue_tasks: int
    tasks_completed_this_month: int
    tasks_pending_this_month: int
    task_completion_rate: float
    top_employees_by_tasks: list[NamedCount]


@dataclass(frozen=True)
class AssignedProject:
    id: UUID
    name: str
    is_archived: bool
    task_count: int


@dataclass(frozen=True)
class EmployeeDashboard:
    """Personal figures for an employee's home page."""

    tasks_by_status: TaskCounts
    overdue_tasks: int
    tasks_completed_this_month: int
    average_completion_days: float
    salary_month: str
    current_month_salary: Decimal
    salary_is_paid: bool
    salary_history: list[Salary] = field(default_factory=list)
    assigned_projects: list[AssignedProject] = field(default_factory=list)


class DashboardService:
    """Service for dashboard aggregates.

    ``today`` anchors every "this month" window; it defaults to the current
    UTC date.
    """

    def __init__(self, session: AsyncSession, today: date | None = None):
        self.session = session
        self.today = today or datetime.now(timezone.utc).date()

    async def admin_stats(self) -> AdminDashboard:
        this_month = month_start(self.today)
        start, end = month_bounds(this_month)

        active, inactive = await self._employee_counts()
        new_hires = await self._count(
            select(func.count())
            .select_from(Employee)
            .where(Employee.employment_date >= this_month)
            .where(Employee.employment_date < add_months(this_month, 1))
        )

        month_base = await self.session.scalar(
            select(func.coalesce(func.sum(Salary.base_salary), 0)).where(Salary.month == this_month)
        )
        trend_months = [add_months(this_month, -i) for i in reversed(range(TREND_MONTHS))]
        month_totals = await self._payable_by_month(trend_months)
        paid_total, unpaid_total = await self._payable_by_paid_flag()
        month_payable = month_totals[this_month]

        archived_projects = await self._count(
            select(func.count()).select_from(Project).where(Project.is_archived.is_(True))
        )
        active_projects = await self._count(
            select(func.count()).select_from(Project).where(Project.is_archived.is_(False))
        )

        completed = await self._count(
            select(func.count())
            .select_from(Task)
            .where(Task.status == TaskStatus.DONE.value)
            .where(Task.updated_at >= start, Task.updated_at < end)
        )
        pending = await self._count(
            select(func.count())
            .select_from(Task)
            .where(Task.status != TaskStatus.DONE.value)
            .where(Task.created_at >= start, Task.created_at < end)
        )

        stats = AdminDashboard(
            active_employees=active,
            inactive_employees=inactive,
            new_hires_this_month=new_hires,
            attrition_rate=percentage(inactive, active + inactive),
            month_base_total=Decimal(month_base or 0).quantize(ZERO),
            month_payable_total=month_payable,
            paid_total=paid_total,
            unpaid_total=unpaid_total,
            average_salary=(month_payable / active).quantize(ZERO) if active else ZERO,
            salary_trend=[
                MonthTotal(month=m, label=m.strftime("%b %Y"), total=month_totals[m])
                for m in trend_months
            ],
            active_projects=active_projects,
            archived_projects=archived_projects,
            projects_with_delays=await self._projects_with_delays(),
            tasks_by_status=await self._task_counts(),
            overdue_tasks=await self._count(self._overdue_query()),
            tasks_completed_this_month=completed,
            tasks_pending_this_month=pending,
            task_completion_rate=percentage(completed, completed + pending),
            top_employees_by_tasks=await self._top_employees_by_tasks(),
        )
        logger.debug("Admin dashboard computed for %s", this_month.isoformat())
        return stats

    async def employee_stats(self, user_id: UUID) -> EmployeeDashboard:
        employee = await self.session.scalar(select(Employee).where(Employee.user_id == user_id))
        if employee is None:
            raise NotFound("Employee record")
        employee_id = employee.employee_id

        this_month = month_start(self.today)
        start, end = month_bounds(this_month)

        completed = await self._count(
            select(func.count())
            .select_from(Task)
            .where(Task.assigned_to_id == employee_id)
            .where(Task.status == TaskStatus.DONE.value)
            .where(Task.updated_at >= start, Task.updated_at < end)
        )

        result = await self.session.execute(
            select(Salary)
            .where(Salary.employee_id == employee_id)
            .where(Salary.month >= add_months(this_month, -(TREND_MONTHS - 1)))
            .order_by(Salary.month.desc())
            .limit(TREND_MONTHS)
        )
        history = [with_payable(s) for s in result.scalars().all()]
        current = next((s for s in history if s.month == this_month), None)

        return EmployeeDashboard(
            tasks_by_status=await self._task_counts(employee_id),
            overdue_tasks=await self._count(
                self._overdue_query().where(Task.assigned_to_id == employee_id)
            ),
            tasks_completed_this_month=completed,
            average_completion_days=await self._average_completion_days(employee_id),
            salary_month=format_month(this_month),
            current_month_salary=current.payable if current is not None else ZERO,
            salary_is_paid=current.is_paid if current is not None else False,
            salary_history=history,
            assigned_projects=await self._assigned_projects(employee_id),
        )

    async def _count(self, query) -> int:
        return await self.session.scalar(query) or 0

    async def _employee_counts(self) -> tuple[int, int]:
        result = await self.session.execute(
            select(Employee.is_active, func.count()).group_by(Employee.is_active)
        )
        counts = {bool(is_active): n for is_active, n in result.all()}
        return counts.get(True, 0), counts.get(False, 0)

    async def _task_counts(self, employee_id: UUID | None = None) -> TaskCounts:
        query = select(Task.status, func.count()).group_by(Task.status)
        if employee_id is not None:
            query = query.where(Task.assigned_to_id == employee_id)
        result = await self.session.execute(query)
        return TaskCounts.from_rows(result.all())

    def _overdue_query(self):
        return (
            select(func.count())
            .select_from(Task)
            .where(Task.due_date < self.today)
            .where(Task.status != TaskStatus.DONE.value)
        )

    async def _payable_by_month(self, months: list[date]) -> dict[date, Decimal]:
        totals = {m: ZERO for m in months}
        result = await self.session.execute(
            select(Salary.month, Salary.base_salary, Salary.changes).where(Salary.month.in_(months))
        )
        for month, base_salary, changes in result.all():
            totals[month] += compute_payable(base_salary, decode_changes(changes))
        return totals

    async def _payable_by_paid_flag(self) -> tuple[Decimal, Decimal]:
        paid = unpaid = ZERO
        result = await self.session.execute(
            select(Salary.is_paid, Salary.base_salary, Salary.changes)
        )
        for is_paid, base_salary, changes in result.all():
            amount = compute_payable(base_salary, decode_changes(changes))
            if is_paid:
                paid += amount
            else:
                unpaid += amount
        return paid, unpaid

    async def _projects_with_delays(self) -> list[NamedCount]:
        overdue = func.count(Task.task_id).label("overdue")
        result = await self.session.execute(
            select(Project.project_id, Project.name, overdue)
            .join(Task, Task.project_id == Project.project_id)
            .where(Task.due_date < self.today)
            .where(Task.status != TaskStatus.DONE.value)
            .group_by(Project.project_id, Project.name)
            .order_by(overdue.desc(), Project.name)
            .limit(TOP_LIMIT)
        )
        return [NamedCount(id=row[0], name=row[1], count=row[2]) for row in result.all()]

    async def _top_employees_by_tasks(self) -> list[NamedCount]:
        assigned = func.count(Task.task_id).label("assigned")
        result = await self.session.execute(
            select(Employee.employee_id, User.name, assigned)
            .join(User, User.user_id == Employee.user_id)
            .outerjoin(Task, Task.assigned_to_id == Employee.employee_id)
            .group_by(Employee.employee_id, User.name)
            .order_by(assigned.desc(), User.name)
            .limit(TOP_LIMIT)
        )
        return [NamedCount(id=row[0], name=row[1], count=row[2]) for row in result.all()]

    async def _average_completion_days(self, employee_id: UUID) -> float:
        """Mean whole days from creation to the last update of done tasks."""
        result = await self.session.execute(
            select(Task.created_at, Task.updated_at)
            .where(Task.assigned_to_id == employee_id)
            .where(Task.status == TaskStatus.DONE.value)
        )
        rows = result.all()
        if not rows:
            return 0.0
        days = [_whole_days(created, updated) for created, updated in rows]
        return round(sum(days) / len(days), 2)

    async def _assigned_projects(self, employee_id: UUID) -> list[AssignedProject]:
        result = await self.session.execute(
            select(Project.project_id, Project.name, Project.is_archived, func.count(Task.task_id))
            .join(Task, Task.project_id == Project.project_id)
            .where(Task.assigned_to_id == employee_id)
            .group_by(Project.project_id, Project.name, Project.is_archived)
            .order_by(Project.name)
        )
        return [
            AssignedProject(id=row[0], name=row[1], is_archived=row[2], task_count=row[3])
            for row in result.all()
        ]


def _whole_days(start: datetime, end: datetime) -> int:
    # Partial days round up
    seconds = abs((end - start).total_seconds())
    return int(-(-seconds // 86400))
