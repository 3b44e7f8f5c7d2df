"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hr_workflow.models import Employee, Project, Salary, TaskAction
from hr_workflow.services.salary_ledger import SalaryChange, SalaryChangeType
from hr_workflow.services.state_machine import TaskStatus


# ============================================================================
# Envelope
# ============================================================================


class OperationResponse(BaseModel):
    """Structured result returned by every workflow endpoint."""

    success: bool
    message: str
    data: Any = None


class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


# ============================================================================
# Task schemas
# ============================================================================


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    project_id: UUID
    assigned_to_id: UUID
    title: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    due_date: date | None = None


class TaskUpdate(BaseModel):
    """Schema for editing task details."""

    title: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    due_date: date | None = None


class TaskStatusUpdate(BaseModel):
    """Schema for requesting a status change."""

    status: TaskStatus
    note: str | None = None


class TaskNoteCreate(BaseModel):
    note: str = Field(min_length=1)


class TaskResponse(BaseModel):
    """Schema for task response."""

    model_config = ConfigDict(from_attributes=True)

    task_id: UUID
    project_id: UUID
    assigned_to_id: UUID
    title: str
    description: str | None = None
    due_date: date | None = None
    status: str
    created_at: datetime
    updated_at: datetime


class TaskActionResponse(BaseModel):
    """One entry of a task's history."""

    model_config = ConfigDict(from_attributes=True)

    task_action_id: UUID
    task_id: UUID
    user_id: UUID
    user_name: str | None = None
    description: str
    old_status: str | None = None
    new_status: str | None = None
    note: str | None = None
    created_at: datetime

    @classmethod
    def from_action(cls, action: TaskAction, with_user: bool = False) -> "TaskActionResponse":
        response = cls.model_validate(action)
        if with_user:
            response.user_name = action.user.name
        return response


class TaskDetailResponse(BaseModel):
    task: TaskResponse
    actions: list[TaskActionResponse]
    next_statuses: list[TaskStatus] = Field(default_factory=list)


class TaskBoardResponse(BaseModel):
    """Tasks of one project grouped by status."""

    project_id: UUID
    project_name: str
    tasks: dict[str, list[TaskResponse]]


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    status_counts: dict[str, int]


# ============================================================================
# Project schemas
# ============================================================================


class ProjectCreate(BaseModel):
    """Schema for creating or editing a project."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class ProjectArchive(BaseModel):
    is_archived: bool


class ProjectResponse(BaseModel):
    """Schema for project response."""

    model_config = ConfigDict(from_attributes=True)

    project_id: UUID
    name: str
    description: str | None = None
    is_archived: bool
    task_count: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, project: Project, task_count: int) -> "ProjectResponse":
        response = cls.model_validate(project)
        response.task_count = task_count
        return response


class ProjectListResponse(BaseModel):
    items: list[ProjectResponse]
    pagination: Pagination


# ============================================================================
# Salary schemas
# ============================================================================


class SalaryChangeSchema(BaseModel):
    """A bonus (positive) or deduction (negative) on a salary record."""

    value: Decimal
    type: SalaryChangeType
    note: str = Field(min_length=1, max_length=100)

    def to_change(self) -> SalaryChange:
        return SalaryChange.create(self.value, self.type.value, self.note)


class SalaryCreate(BaseModel):
    """Schema for creating a salary record."""

    employee_id: UUID
    month: str = Field(pattern=r"^\d{4}-\d{2}$", examples=["2024-03"])
    base_salary: Decimal = Field(gt=0)
    changes: list[SalaryChangeSchema] = Field(default_factory=list)
    is_paid: bool = False


class SalaryUpdate(BaseModel):
    """Schema for updating a salary record."""

    base_salary: Decimal = Field(gt=0)
    changes: list[SalaryChangeSchema] = Field(default_factory=list)
    is_paid: bool = False


class SalaryGenerate(BaseModel):
    month: str = Field(pattern=r"^\d{4}-\d{2}$", examples=["2024-03"])


class SalaryResponse(BaseModel):
    """Schema for salary response."""

    model_config = ConfigDict(from_attributes=True)

    salary_id: UUID
    employee_id: UUID
    month: date
    base_salary: Decimal
    changes: list[SalaryChangeSchema]
    payable: Decimal
    is_paid: bool
    employee_code: str | None = None
    employee_name: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_salary(cls, salary: Salary, with_employee: bool = False) -> "SalaryResponse":
        response = cls.model_validate(salary)
        if with_employee:
            response.employee_code = salary.employee.employee_code
            response.employee_name = salary.employee.user.name
        return response


class SalaryListResponse(BaseModel):
    items: list[SalaryResponse]
    pagination: Pagination


class GenerationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: date
    created: int
    skipped: int


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeCreate(BaseModel):
    """Schema for creating or editing an employee."""

    name: str = Field(min_length=2)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    employment_date: date
    basic_salary: Decimal = Field(gt=0)
    is_active: bool = True


class EmployeeResponse(BaseModel):
    """Schema for employee response."""

    employee_id: UUID
    user_id: UUID
    employee_code: str
    name: str
    email: str
    employment_date: date
    basic_salary: Decimal
    is_active: bool

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeResponse":
        return cls(
            employee_id=employee.employee_id,
            user_id=employee.user_id,
            employee_code=employee.employee_code,
            name=employee.user.name,
            email=employee.user.email,
            employment_date=employee.employment_date,
            basic_salary=employee.basic_salary,
            is_active=employee.is_active,
        )


# ============================================================================
# Notification schemas
# ============================================================================


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    model_config = ConfigDict(from_attributes=True)

    notification_id: UUID
    title: str
    message: str
    type: str
    link: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


# ============================================================================
# Dashboard schemas
# ============================================================================


class MonthTotalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: date
    label: str
    total: Decimal


class NamedCountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    count: int


class TaskCountsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pending: int
    in_progress: int
    done: int


class AdminDashboardResponse(BaseModel):
    """Company-wide dashboard figures."""

    model_config = ConfigDict(from_attributes=True)

    active_employees: int
    inactive_employees: int
    new_hires_this_month: int
    attrition_rate: float
    month_base_total: Decimal
    month_payable_total: Decimal
    paid_total: Decimal
    unpaid_total: Decimal
    average_salary: Decimal
    salary_trend: list[MonthTotalResponse]
    active_projects: int
    archived_projects: int
    projects_with_delays: list[NamedCountResponse]
    tasks_by_status: TaskCountsResponse
    overdue_tasks: int
    tasks_completed_this_month: int
    tasks_pending_this_month: int
    task_completion_rate: float
    top_employees_by_tasks: list[NamedCountResponse]


class AssignedProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    is_archived: bool
    task_count: int


class EmployeeDashboardResponse(BaseModel):
    """Personal dashboard figures."""

    model_config = ConfigDict(from_attributes=True)

    tasks_by_status: TaskCountsResponse
    overdue_tasks: int
    tasks_completed_this_month: int
    average_completion_days: float
    salary_month: str
    current_month_salary: Decimal
    salary_is_paid: bool
    salary_history: list[SalaryResponse]
    assigned_projects: list[AssignedProjectResponse]
