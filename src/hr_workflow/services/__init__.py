"""HR workflow services."""

from hr_workflow.services.dashboard_service import DashboardService
from hr_workflow.services.employee_service import EmployeeService
from hr_workflow.services.notification_dispatcher import NotificationDispatcher, NotificationType
from hr_workflow.services.notification_service import NotificationService
from hr_workflow.services.orchestrator import OperationResult, WorkflowOrchestrator
from hr_workflow.services.project_service import ProjectService
from hr_workflow.services.salary_ledger import SalaryChange, SalaryChangeType, SalaryLedger
from hr_workflow.services.state_machine import TaskStateMachine, TaskStatus
from hr_workflow.services.task_service import TaskService

__all__ = [
    "DashboardService",
    "EmployeeService",
    "NotificationDispatcher",
    "NotificationType",
    "NotificationService",
    "OperationResult",
    "WorkflowOrchestrator",
    "ProjectService",
    "SalaryChange",
    "SalaryChangeType",
    "SalaryLedger",
    "TaskStateMachine",
    "TaskStatus",
    "TaskService",
]
