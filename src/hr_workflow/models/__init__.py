"""ORM models."""

from hr_workflow.models.base import Base, TimestampMixin, UpdatedAtMixin
from hr_workflow.models.employee import Employee, User
from hr_workflow.models.notification import Notification
from hr_workflow.models.project import Project, Task, TaskAction
from hr_workflow.models.salary import Salary

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "User",
    "Employee",
    "Project",
    "Task",
    "TaskAction",
    "Salary",
    "Notification",
]
