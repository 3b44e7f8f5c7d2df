"""API routes."""

from hr_workflow.api.routes.dashboard import router as dashboard_router
from hr_workflow.api.routes.employees import router as employees_router
from hr_workflow.api.routes.health import router as health_router
from hr_workflow.api.routes.notifications import router as notifications_router
from hr_workflow.api.routes.projects import router as projects_router
from hr_workflow.api.routes.salaries import router as salaries_router
from hr_workflow.api.routes.tasks import router as tasks_router

__all__ = [
    "dashboard_router",
    "employees_router",
    "health_router",
    "notifications_router",
    "projects_router",
    "salaries_router",
    "tasks_router",
]
