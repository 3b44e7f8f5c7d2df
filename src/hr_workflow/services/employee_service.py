"""Employee service - user/employee records and 6-digit employee codes."""

from __future__ import annotations

import logging
import random
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_workflow.config import get_settings
from hr_workflow.errors import NotFound, RecordInUse, ValidationFailed
from hr_workflow.identity import Role
from hr_workflow.models import Employee, Salary, Task, TaskAction, User
from hr_workflow.models.base import utcnow
from hr_workflow.services.salary_ledger import to_amount

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


class EmployeeService:
    """Service for employee records.

    Employee codes are sampled at random in [100000, 999999] and re-sampled
    until the store confirms the value unused; the unique constraint on
    ``employee.employee_code`` backs the check inside the same transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        rng: random.Random | None = None,
        max_attempts: int | None = None,
    ):
        self.session = session
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts or get_settings().employee_code_max_attempts

    async def generate_employee_code(self) -> str:
        """Return a 6-digit code not yet used by any employee."""
        for _ in range(self._max_attempts):
            code = str(self._rng.randint(CODE_MIN, CODE_MAX))
            taken = await self.session.scalar(
                select(exists().where(Employee.employee_code == code))
            )
            if not taken:
                return code
        raise RuntimeError(f"No free employee code after {self._max_attempts} attempts")

    async def get_employee(self, employee_id: UUID) -> Employee | None:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id)
            .options(selectinload(Employee.user))
        )
        return result.scalar_one_or_none()

    async def get_employee_for_user(self, user_id: UUID) -> Employee | None:
        return await self.session.scalar(select(Employee).where(Employee.user_id == user_id))

    async def create_employee(
        self,
        *,
        name: str,
        email: str,
        employment_date: date,
        basic_salary: Decimal | int | float | str,
        is_active: bool = True,
    ) -> Employee:
        """Create the user account and its employee record together."""
        salary = self._validate(name, basic_salary)
        await self._ensure_email_free(email)

        code = await self.generate_employee_code()
        user = User(name=name, email=email, role=Role.EMPLOYEE.value)
        employee = Employee(
            user=user,
            employee_code=code,
            employment_date=employment_date,
            basic_salary=salary,
            is_active=is_active,
        )
        self.session.add(employee)
        await self.session.flush()
        logger.info("Employee %s created (code %s)", employee.employee_id, employee.employee_code)
        return employee

    async def update_employee(
        self,
        employee_id: UUID,
        *,
        name: str,
        email: str,
        employment_date: date,
        basic_salary: Decimal | int | float | str,
        is_active: bool = True,
    ) -> Employee:
        salary = self._validate(name, basic_salary)
        employee = await self.get_employee(employee_id)
        if employee is None:
            raise NotFound("Employee", employee_id)
        if email != employee.user.email:
            await self._ensure_email_free(email)

        employee.user.name = name
        employee.user.email = email
        employee.employment_date = employment_date
        employee.basic_salary = salary
        employee.is_active = is_active
        employee.updated_at = utcnow()
        await self.session.flush()
        return employee

    async def has_history(self, employee: Employee) -> bool:
        """Whether salary records, tasks or authored task actions reference the employee."""
        return bool(
            await self.session.scalar(
                select(
                    or_(
                        exists().where(Salary.employee_id == employee.employee_id),
                        exists().where(Task.assigned_to_id == employee.employee_id),
                        exists().where(TaskAction.user_id == employee.user_id),
                    )
                )
            )
        )

    async def delete_employee(self, employee_id: UUID) -> None:
        """Hard-delete an employee and its user account when no history exists."""
        employee = await self.get_employee(employee_id)
        if employee is None:
            raise NotFound("Employee", employee_id)
        if await self.has_history(employee):
            raise RecordInUse(
                "Cannot delete an employee with salary or task history. Deactivate them instead."
            )

        user_id = employee.user_id
        self.session.expunge(employee)
        await self.session.execute(
            delete(Employee)
            .where(Employee.employee_id == employee_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(User).where(User.user_id == user_id).execution_options(synchronize_session=False)
        )
        logger.info("Employee %s deleted", employee_id)

    async def list_active_employees(self) -> list[Employee]:
        """Active employees ordered by name, for task assignment."""
        result = await self.session.execute(
            select(Employee)
            .join(User, Employee.user_id == User.user_id)
            .where(Employee.is_active.is_(True))
            .options(selectinload(Employee.user))
            .order_by(User.name)
        )
        return list(result.scalars().all())

    def _validate(self, name: str, basic_salary: Decimal | int | float | str) -> Decimal:
        if len(name.strip()) < 2:
            raise ValidationFailed("Name must be at least 2 characters.")
        salary = to_amount(basic_salary)
        if salary <= 0:
            raise ValidationFailed("Salary must be a positive number.")
        return salary

    async def _ensure_email_free(self, email: str) -> None:
        taken = await self.session.scalar(select(exists().where(User.email == email)))
        if taken:
            raise ValidationFailed("Email already exists.")
