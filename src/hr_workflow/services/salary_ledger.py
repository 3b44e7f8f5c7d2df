"""Salary ledger - payable computation and paid-record immutability.

Provides:
- Pure payable computation (base salary plus signed adjustments)
- Sign/type validation of adjustments before anything is persisted
- Idempotent monthly generation via (employee_id, month) uniqueness
- Guarded updates and deletes: paid records are frozen
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from hr_workflow.errors import (
    DuplicateSalaryPeriod,
    ImmutableRecord,
    InvalidAdjustment,
    NotFound,
    ValidationFailed,
)
from hr_workflow.models import Employee, Salary
from hr_workflow.models.base import utcnow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_NOTE_LENGTH = 100
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


class SalaryChangeType(str, Enum):
    """Adjustment kinds."""

    BONUS = "BONUS"
    DEDUCTION = "DEDUCTION"


def to_amount(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric input to a cent-precision Decimal."""
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Invalid amount: {value!r}")


@dataclass(frozen=True)
class SalaryChange:
    """A signed bonus or deduction embedded in a salary record."""

    value: Decimal
    type: SalaryChangeType
    note: str

    @classmethod
    def create(cls, value: Decimal | int | float | str, type: str, note: str) -> SalaryChange:
        """Build a change from loosely typed input."""
        try:
            change_type = SalaryChangeType(type)
        except ValueError:
            raise InvalidAdjustment(f"Unknown adjustment type: {type}")
        return cls(value=to_amount(value), type=change_type, note=note)

    @property
    def sign_matches(self) -> bool:
        """BONUS must be positive, DEDUCTION must be negative."""
        if self.type == SalaryChangeType.BONUS:
            return self.value > 0
        return self.value < 0

    def to_json(self) -> dict[str, Any]:
        return {"value": str(self.value), "type": self.type.value, "note": self.note}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> SalaryChange:
        return cls.create(data["value"], data["type"], data.get("note", ""))


def compute_payable(base_salary: Decimal, changes: Iterable[SalaryChange]) -> Decimal:
    """Payable amount: base salary plus the sum of all change values."""
    return to_amount(base_salary) + sum((c.value for c in changes), Decimal("0"))


def validate_changes(changes: Sequence[SalaryChange]) -> None:
    """Reject adjustments that are zero, unlabelled or carry the wrong sign."""
    for change in changes:
        if change.value == 0:
            raise InvalidAdjustment("Value cannot be zero")
        if not change.note or not change.note.strip():
            raise InvalidAdjustment("Note is required")
        if len(change.note) > MAX_NOTE_LENGTH:
            raise InvalidAdjustment("Note is too long")
        if not change.sign_matches:
            raise InvalidAdjustment()


def parse_month(value: str | date) -> date:
    """Normalize a YYYY-MM string (or any date) to the first of its month."""
    if isinstance(value, date):
        return value.replace(day=1)
    match = _MONTH_RE.match(value.strip())
    if not match:
        raise ValidationFailed("Invalid month format. Use YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationFailed("Invalid month format. Use YYYY-MM")
    return date(year, month, 1)


def format_month(month: date) -> str:
    """Human-readable month, e.g. 'March 2024'."""
    return month.strftime("%B %Y")


def decode_changes(raw: list[dict[str, Any]] | None) -> list[SalaryChange]:
    """Decode adjustments as stored in the JSON column."""
    return [SalaryChange.from_json(item) for item in raw or []]


def changes_of(salary: Salary) -> list[SalaryChange]:
    """Decode the embedded adjustments of a stored salary record."""
    return decode_changes(salary.changes)


def payable_of(salary: Salary) -> Decimal:
    """Recompute payable from the record rather than trusting the cached column."""
    return compute_payable(salary.base_salary, changes_of(salary))


def with_payable(salary: Salary) -> Salary:
    """Overwrite the loaded payable with the recomputed amount.

    The value is set as committed state, so the session does not flush it.
    """
    set_committed_value(salary, "payable", payable_of(salary))
    return salary


def _matches(
    salary: Salary, base_salary: Decimal | int | float | str, changes: Sequence[SalaryChange]
) -> bool:
    try:
        base = to_amount(base_salary)
    except ValidationFailed:
        return False
    return to_amount(salary.base_salary) == base and changes_of(salary) == list(changes)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a monthly generation run."""

    month: date
    created: int
    skipped: int

    @property
    def message(self) -> str:
        return f"Generated {self.created} salary records (Skipped {self.skipped} existing records)"


class SalaryLedger:
    """Service for salary records.

    Notes:
    - At most one record per (employee_id, month); the unique constraint is
      the source of truth and inserts go through ON CONFLICT DO NOTHING.
    - Paid records reject every update and delete through conditional
      statements, so a concurrent payment cannot be overwritten.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_salary(self, salary_id: UUID, load_employee: bool = False) -> Salary | None:
        """Load a salary record."""
        query = select(Salary).where(Salary.salary_id == salary_id)
        if load_employee:
            query = query.options(selectinload(Salary.employee).selectinload(Employee.user))
        result = await self.session.execute(query)
        salary = result.scalar_one_or_none()
        return with_payable(salary) if salary is not None else None

    async def create_salary(
        self,
        employee_id: UUID,
        month: str | date,
        base_salary: Decimal | int | float | str,
        changes: Sequence[SalaryChange] = (),
        is_paid: bool = False,
    ) -> Salary:
        """Create a salary record for one employee and month.

        Raises DuplicateSalaryPeriod if the period already has a record.
        """
        month_date = parse_month(month)
        base = self._validate_base(base_salary)
        validate_changes(changes)

        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee", employee_id)

        salary_id = await self._insert_if_absent(
            employee_id=employee_id,
            month=month_date,
            base_salary=base,
            changes=changes,
            is_paid=is_paid,
        )
        if salary_id is None:
            raise DuplicateSalaryPeriod(
                "A salary record already exists for this employee in "
                f"{format_month(month_date)}"
            )

        salary = await self.get_salary(salary_id)
        if salary is None:
            raise NotFound("Salary record", salary_id)
        logger.info(
            "Created salary %s for employee %s (%s)", salary_id, employee_id, month_date.isoformat()
        )
        return salary

    async def update_salary(
        self,
        salary_id: UUID,
        base_salary: Decimal | int | float | str,
        changes: Sequence[SalaryChange] = (),
        is_paid: bool = False,
    ) -> Salary:
        """Update amounts and paid flag of an unpaid salary record.

        The only transition permitted on a paid record is re-asserting
        ``is_paid=True`` with identical amounts, which is a no-op. The paid
        guard runs before input validation.
        """
        salary = await self.get_salary(salary_id)
        if salary is None:
            raise NotFound("Salary record", salary_id)

        if salary.is_paid:
            if not (is_paid and _matches(salary, base_salary, changes)):
                raise ImmutableRecord()
            return salary

        base = self._validate_base(base_salary)
        validate_changes(changes)

        result = await self.session.execute(
            update(Salary)
            .where(Salary.salary_id == salary_id, Salary.is_paid.is_(False))
            .values(
                base_salary=base,
                changes=[c.to_json() for c in changes],
                payable=compute_payable(base, changes),
                is_paid=is_paid,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Paid between our read and the write
            raise ImmutableRecord()

        await self.session.refresh(
            salary, attribute_names=["base_salary", "changes", "payable", "is_paid", "updated_at"]
        )
        if is_paid:
            logger.info("Salary %s marked as paid", salary_id)
        return salary

    async def delete_salary(self, salary_id: UUID) -> None:
        """Delete an unpaid salary record."""
        salary = await self.get_salary(salary_id)
        if salary is None:
            raise NotFound("Salary record", salary_id)
        if salary.is_paid:
            raise ImmutableRecord("Cannot delete a paid salary record")

        result = await self.session.execute(
            delete(Salary)
            .where(Salary.salary_id == salary_id, Salary.is_paid.is_(False))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ImmutableRecord("Cannot delete a paid salary record")
        self.session.expunge(salary)

    async def generate_monthly_salaries(self, month: str | date) -> GenerationResult:
        """Create one unpaid record per active employee for the month.

        Safe to re-run: employees that already have a record are skipped.
        """
        month_date = parse_month(month)

        result = await self.session.execute(
            select(Employee).where(Employee.is_active.is_(True)).order_by(Employee.employee_code)
        )
        employees = result.scalars().all()
        if not employees:
            raise ValidationFailed("No active employees found")

        created = 0
        skipped = 0
        for employee in employees:
            salary_id = await self._insert_if_absent(
                employee_id=employee.employee_id,
                month=month_date,
                base_salary=to_amount(employee.basic_salary),
                changes=(),
                is_paid=False,
            )
            if salary_id is None:
                skipped += 1
            else:
                created += 1

        logger.info(
            "Generated salaries for %s: created=%d skipped=%d",
            month_date.isoformat(),
            created,
            skipped,
        )
        return GenerationResult(month=month_date, created=created, skipped=skipped)

    async def list_salaries(
        self,
        page: int = 1,
        limit: int = 10,
        employee_id: UUID | None = None,
        month: str | date | None = None,
    ) -> tuple[list[Salary], int]:
        """Paginated salary records, newest month first."""
        query = select(Salary)
        if employee_id is not None:
            query = query.where(Salary.employee_id == employee_id)
        if month:
            query = query.where(Salary.month == parse_month(month))

        total = await self.session.scalar(select(func.count()).select_from(query.subquery())) or 0

        query = (
            query.options(selectinload(Salary.employee).selectinload(Employee.user))
            .order_by(Salary.month.desc(), Salary.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [with_payable(s) for s in result.scalars().all()], total

    def _validate_base(self, base_salary: Decimal | int | float | str) -> Decimal:
        base = to_amount(base_salary)
        if base <= 0:
            raise ValidationFailed("Base salary must be positive")
        return base

    async def _insert_if_absent(
        self,
        *,
        employee_id: UUID,
        month: date,
        base_salary: Decimal,
        changes: Sequence[SalaryChange],
        is_paid: bool,
    ) -> UUID | None:
        """Atomically create the (employee, month) record unless one exists.

        Returns the new salary_id, or None if the period was already taken.
        """
        salary_id = uuid4()
        now = utcnow()
        values = {
            "salary_id": salary_id,
            "employee_id": employee_id,
            "month": month,
            "base_salary": base_salary,
            "changes": [c.to_json() for c in changes],
            "payable": compute_payable(base_salary, changes),
            "is_paid": is_paid,
            "created_at": now,
            "updated_at": now,
        }

        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(Salary).values(**values).on_conflict_do_nothing(
                index_elements=["employee_id", "month"]
            )
        elif dialect == "sqlite":
            stmt = sqlite_insert(Salary).values(**values).on_conflict_do_nothing(
                index_elements=["employee_id", "month"]
            )
        else:
            return await self._insert_with_savepoint(values)

        result = await self.session.execute(stmt)
        return salary_id if result.rowcount == 1 else None

    async def _insert_with_savepoint(self, values: dict[str, Any]) -> UUID | None:
        """Fallback for dialects without ON CONFLICT: rely on the unique constraint."""
        try:
            async with self.session.begin_nested():
                self.session.add(Salary(**values))
        except IntegrityError:
            return None
        return values["salary_id"]
