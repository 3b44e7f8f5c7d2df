"""Dashboard statistics tests."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from hr_workflow.api.app import create_app
from hr_workflow.models import Salary
from hr_workflow.services.dashboard_service import add_months, month_bounds, percentage
from hr_workflow.services.salary_ledger import SalaryChange, format_month


@pytest.fixture
def this_month() -> date:
    return datetime.now(timezone.utc).date().replace(day=1)


@pytest.fixture
async def company(
    session_factory,
    orchestrator_for,
    admin_user,
    test_employee,
    other_employee,
    add_employee,
    test_project,
    this_month,
):
    """Three active employees (one hired this month), one inactive, salaries and tasks."""
    admin = orchestrator_for(admin_user)
    await add_employee("Ian Inactive", "100009", is_active=False)
    hired = await admin.create_employee(
        name="Nina New",
        email="nina@example.com",
        employment_date=datetime.now(timezone.utc).date(),
        basic_salary="2800",
    )
    assert hired.success, hired.message

    # Last month: paid 3000 + 500 bonus; this month: generated 3000 + 4200 + 2800
    last = await admin.create_salary(
        employee_id=test_employee.employee_id,
        month=add_months(this_month, -1),
        base_salary="3000",
        changes=[SalaryChange.create("500", "BONUS", "Launch")],
        is_paid=True,
    )
    assert last.success, last.message
    assert (await admin.generate_monthly_salaries(this_month)).data.created == 3

    archived = await admin.create_project("Old Intranet")
    await admin.toggle_project_archive(archived.data.project_id, True)

    overdue = await admin.create_task(
        project_id=test_project.project_id,
        assigned_to_id=test_employee.employee_id,
        title="Fix payroll export",
        due_date=date(2024, 1, 31),
    )
    finished = await admin.create_task(
        project_id=test_project.project_id,
        assigned_to_id=test_employee.employee_id,
        title="Write onboarding guide",
    )
    assert overdue.success and finished.success
    assert (await admin.update_task_status(finished.data.task_id, "DONE")).success

    # The cached column must never feed the totals
    async with session_factory() as session:
        async with session.begin():
            await session.execute(update(Salary).values(payable=Decimal("1.00")))


class TestHelpers:
    def test_add_months_crosses_years(self):
        assert add_months(date(2024, 1, 1), -1) == date(2023, 12, 1)
        assert add_months(date(2024, 11, 1), 2) == date(2025, 1, 1)

    def test_month_bounds(self):
        start, end = month_bounds(date(2024, 12, 17))

        assert start == datetime(2024, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_percentage(self):
        assert percentage(1, 3) == 33.33
        assert percentage(0, 0) == 0.0


class TestAdminDashboard:
    async def test_company_figures(self, company, orchestrator_for, admin_user, this_month):
        result = await orchestrator_for(admin_user).get_admin_dashboard()

        assert result.success is True, result.message
        stats = result.data
        assert (stats.active_employees, stats.inactive_employees) == (3, 1)
        assert stats.new_hires_this_month == 1
        assert stats.attrition_rate == 25.0

        assert stats.month_base_total == Decimal("10000.00")
        assert stats.month_payable_total == Decimal("10000.00")
        assert stats.paid_total == Decimal("3500.00")
        assert stats.unpaid_total == Decimal("10000.00")
        assert stats.average_salary == Decimal("3333.33")
        assert [t.month for t in stats.salary_trend] == [
            add_months(this_month, -2),
            add_months(this_month, -1),
            this_month,
        ]
        assert [t.total for t in stats.salary_trend] == [
            Decimal("0.00"),
            Decimal("3500.00"),
            Decimal("10000.00"),
        ]

        assert (stats.active_projects, stats.archived_projects) == (1, 1)
        assert [(p.name, p.count) for p in stats.projects_with_delays] == [("Website Redesign", 1)]

        assert (stats.tasks_by_status.pending, stats.tasks_by_status.done) == (1, 1)
        assert stats.overdue_tasks == 1
        assert stats.tasks_completed_this_month == 1
        assert stats.tasks_pending_this_month == 1
        assert stats.task_completion_rate == 50.0
        assert (stats.top_employees_by_tasks[0].name, stats.top_employees_by_tasks[0].count) == (
            "Eve Employee",
            2,
        )

    async def test_empty_company(self, orchestrator_for, admin_user):
        stats = (await orchestrator_for(admin_user).get_admin_dashboard()).data

        assert stats.active_employees == 0
        assert stats.average_salary == Decimal("0.00")
        assert stats.task_completion_rate == 0.0
        assert stats.projects_with_delays == []

    async def test_admin_only(self, orchestrator_for, test_employee):
        result = await orchestrator_for(test_employee.user).get_admin_dashboard()

        assert result.success is False
        assert result.error == "PermissionDenied"


class TestEmployeeDashboard:
    async def test_personal_figures(self, company, orchestrator_for, test_employee, this_month):
        result = await orchestrator_for(test_employee.user).get_my_dashboard()

        assert result.success is True, result.message
        stats = result.data
        assert (stats.tasks_by_status.pending, stats.tasks_by_status.in_progress) == (1, 0)
        assert stats.tasks_by_status.done == 1
        assert stats.overdue_tasks == 1
        assert stats.tasks_completed_this_month == 1
        assert 0 <= stats.average_completion_days <= 1

        assert stats.salary_month == format_month(this_month)
        assert stats.current_month_salary == Decimal("3000.00")
        assert stats.salary_is_paid is False
        assert [(s.month, s.payable) for s in stats.salary_history] == [
            (this_month, Decimal("3000.00")),
            (add_months(this_month, -1), Decimal("3500.00")),
        ]
        assert [(p.name, p.is_archived, p.task_count) for p in stats.assigned_projects] == [
            ("Website Redesign", False, 2)
        ]

    async def test_no_salary_this_month(self, orchestrator_for, test_employee):
        stats = (await orchestrator_for(test_employee.user).get_my_dashboard()).data

        assert stats.current_month_salary == Decimal("0.00")
        assert stats.salary_history == []
        assert stats.average_completion_days == 0.0

    async def test_requires_employee_record(self, orchestrator_for, admin_user):
        result = await orchestrator_for(admin_user).get_my_dashboard()

        assert result.success is False
        assert result.error == "NotFound"

    async def test_unauthenticated(self, orchestrator_for):
        result = await orchestrator_for(None).get_my_dashboard()

        assert result.error == "Unauthorized"


class TestDashboardEndpoints:
    async def test_admin_and_personal(self, session_factory, company, admin_user, test_employee):
        app = create_app(session_factory=session_factory)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            admin = await client.get(
                "/api/v1/dashboard/admin", headers={"X-User-ID": str(admin_user.user_id)}
            )
            mine = await client.get(
                "/api/v1/dashboard/me", headers={"X-User-ID": str(test_employee.user_id)}
            )

        assert admin.json()["data"]["paid_total"] == "3500.00"
        assert len(admin.json()["data"]["salary_trend"]) == 3
        assert mine.json()["data"]["salary_history"][0]["payable"] == "3000.00"
        assert mine.json()["data"]["assigned_projects"][0]["task_count"] == 2
