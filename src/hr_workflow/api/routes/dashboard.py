"""Dashboard statistics endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import (
    AdminDashboardResponse,
    EmployeeDashboardResponse,
    OperationResponse,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/admin", response_model=OperationResponse)
async def admin_dashboard(orchestrator: Orchestrator) -> JSONResponse:
    """Headcount, payroll totals, project and task figures (admin only)."""
    result = await orchestrator.get_admin_dashboard()
    return to_response(result, AdminDashboardResponse.model_validate)


@router.get("/me", response_model=OperationResponse)
async def my_dashboard(orchestrator: Orchestrator) -> JSONResponse:
    """The caller's task counts, recent salaries and projects."""
    result = await orchestrator.get_my_dashboard()
    return to_response(result, EmployeeDashboardResponse.model_validate)
