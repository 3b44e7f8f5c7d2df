"""Employee record tests."""

import random
from datetime import date

import pytest
from sqlalchemy import select

from hr_workflow.models import User
from hr_workflow.services.employee_service import EmployeeService


class SequenceRng:
    """Stand-in for random.Random that yields a fixed sequence."""

    def __init__(self, *values: int):
        self._values = iter(values)

    def randint(self, a: int, b: int) -> int:
        return next(self._values)


class TestEmployeeCodes:
    async def test_code_is_six_digits(self, session):
        code = await EmployeeService(session, rng=random.Random(7)).generate_employee_code()

        assert len(code) == 6
        assert 100000 <= int(code) <= 999999

    async def test_collision_is_resampled(self, session, test_employee):
        service = EmployeeService(session, rng=SequenceRng(100001, 100001, 654321))

        assert await service.generate_employee_code() == "654321"

    async def test_gives_up_after_max_attempts(self, session, test_employee):
        service = EmployeeService(session, rng=SequenceRng(*[100001] * 5), max_attempts=3)

        with pytest.raises(RuntimeError):
            await service.generate_employee_code()


class TestEmployeeLifecycle:
    async def test_create_employee(self, session_factory, orchestrator_for, admin_user):
        result = await orchestrator_for(admin_user).create_employee(
            name="Nina New",
            email="nina@example.com",
            employment_date=date(2024, 2, 1),
            basic_salary="2800",
        )

        assert result.success is True
        assert result.message == "Employee created successfully."
        employee = result.data
        assert len(employee.employee_code) == 6
        assert employee.user.role == "EMPLOYEE"

        async with session_factory() as session:
            user = await session.scalar(select(User).where(User.email == "nina@example.com"))
        assert user.user_id == employee.user_id

    async def test_duplicate_email(self, orchestrator_for, admin_user, test_employee):
        result = await orchestrator_for(admin_user).create_employee(
            name="Eve Again",
            email=test_employee.user.email,
            employment_date=date(2024, 2, 1),
            basic_salary="2800",
        )

        assert result.success is False
        assert result.message == "Email already exists."

    async def test_update_employee(self, orchestrator_for, admin_user, test_employee):
        result = await orchestrator_for(admin_user).update_employee(
            test_employee.employee_id,
            name="Eve Renamed",
            email="eve.renamed@example.com",
            employment_date=test_employee.employment_date,
            basic_salary="3100",
            is_active=False,
        )

        assert result.success is True
        assert result.data.user.name == "Eve Renamed"
        assert result.data.is_active is False

    async def test_delete_blocked_by_history(self, orchestrator_for, admin_user, test_employee):
        admin = orchestrator_for(admin_user)
        await admin.generate_monthly_salaries("2024-03")

        result = await admin.delete_employee(test_employee.employee_id)

        assert result.success is False
        assert result.error == "RecordInUse"

    async def test_delete_without_history(self, session_factory, orchestrator_for, admin_user, test_employee):
        result = await orchestrator_for(admin_user).delete_employee(test_employee.employee_id)

        assert result.success is True
        async with session_factory() as session:
            assert await session.get(User, test_employee.user_id) is None

    async def test_list_active(self, orchestrator_for, admin_user, test_employee, add_employee):
        await add_employee("Ian Inactive", "100009", is_active=False)

        result = await orchestrator_for(admin_user).list_active_employees()

        assert [e.employee_id for e in result.data] == [test_employee.employee_id]
