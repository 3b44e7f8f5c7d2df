"""Salary workflow tests through the orchestrator."""

from decimal import Decimal

from sqlalchemy import select

from hr_workflow.models import Notification, Salary
from hr_workflow.services.salary_ledger import SalaryChange


class TestSalaryLifecycle:
    async def test_generate_bonus_pay_then_frozen(
        self, session_factory, orchestrator_for, admin_user, test_employee
    ):
        """Generate 3000, add a 500 bonus, mark paid, then a deduction is refused."""
        admin = orchestrator_for(admin_user)

        generated = await admin.generate_monthly_salaries("2024-03")
        assert generated.success is True
        assert generated.message == "Generated 1 salary records (Skipped 0 existing records)"

        listing = await admin.list_salaries(month="2024-03")
        (salary,) = listing.data["items"]
        assert salary.base_salary == Decimal("3000.00")
        assert salary.changes == []
        assert salary.payable == Decimal("3000.00")
        assert salary.is_paid is False

        perf = SalaryChange.create("500", "BONUS", "perf")
        updated = await admin.update_salary(salary.salary_id, base_salary="3000", changes=[perf])
        assert updated.success is True
        assert updated.data.payable == Decimal("3500.00")

        paid = await admin.update_salary(
            salary.salary_id, base_salary="3000", changes=[perf], is_paid=True
        )
        assert paid.success is True

        refused = await admin.update_salary(
            salary.salary_id,
            base_salary="3000",
            changes=[perf, SalaryChange.create("-100", "DEDUCTION", "late")],
            is_paid=True,
        )
        assert refused.success is False
        assert refused.error == "ImmutableRecord"
        assert refused.message == "Cannot modify a paid salary record"

        deleted = await admin.delete_salary(salary.salary_id)
        assert deleted.success is False
        assert deleted.error == "ImmutableRecord"

        async with session_factory() as session:
            stored = await session.get(Salary, salary.salary_id)
            assert stored.payable == Decimal("3500.00")
            assert stored.is_paid is True

    async def test_paid_transition_notifies_employee_once(
        self, session_factory, orchestrator_for, admin_user, test_employee
    ):
        admin = orchestrator_for(admin_user)
        created = await admin.create_salary(
            employee_id=test_employee.employee_id, month="2024-04", base_salary="3000"
        )
        salary_id = created.data.salary_id

        await admin.update_salary(salary_id, base_salary="3000", is_paid=True)
        await admin.update_salary(salary_id, base_salary="3000", is_paid=True)

        async with session_factory() as session:
            result = await session.execute(
                select(Notification).where(Notification.recipient_id == test_employee.user_id)
            )
            notifications = result.scalars().all()
        assert len(notifications) == 1
        assert notifications[0].title == "Salary Paid"
        assert notifications[0].message == "Your salary for April 2024 has been paid"

    async def test_duplicate_period(self, orchestrator_for, admin_user, test_employee):
        admin = orchestrator_for(admin_user)
        kwargs = dict(employee_id=test_employee.employee_id, month="2024-03", base_salary="3000")

        assert (await admin.create_salary(**kwargs)).success is True
        duplicate = await admin.create_salary(**kwargs)

        assert duplicate.success is False
        assert duplicate.error == "DuplicateSalaryPeriod"

    async def test_wrong_sign_rejected_before_persistence(
        self, session_factory, orchestrator_for, admin_user, test_employee
    ):
        result = await orchestrator_for(admin_user).create_salary(
            employee_id=test_employee.employee_id,
            month="2024-03",
            base_salary="3000",
            changes=[SalaryChange.create("-50", "BONUS", "oops")],
        )

        assert result.success is False
        assert result.error == "InvalidAdjustment"
        async with session_factory() as session:
            assert (await session.execute(select(Salary))).first() is None

    async def test_employees_cannot_manage_salaries(self, orchestrator_for, test_employee):
        result = await orchestrator_for(test_employee.user).generate_monthly_salaries("2024-03")

        assert result.success is False
        assert result.error == "PermissionDenied"

    async def test_my_salaries(self, orchestrator_for, admin_user, test_employee, other_employee):
        await orchestrator_for(admin_user).generate_monthly_salaries("2024-03")

        result = await orchestrator_for(test_employee.user).get_my_salaries()

        assert result.success is True
        assert [s.employee_id for s in result.data["items"]] == [test_employee.employee_id]
        assert result.data["pagination"]["total_count"] == 1

    async def test_admin_without_employee_record_has_no_salaries(self, orchestrator_for, admin_user):
        result = await orchestrator_for(admin_user).get_my_salaries()

        assert result.success is False
        assert result.message == "Employee record not found"
