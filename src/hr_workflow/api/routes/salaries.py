"""Salary API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import (
    GenerationResponse,
    OperationResponse,
    Pagination,
    SalaryCreate,
    SalaryGenerate,
    SalaryListResponse,
    SalaryResponse,
    SalaryUpdate,
)

router = APIRouter(prefix="/salaries", tags=["salaries"])


def _salary_page(data: dict) -> SalaryListResponse:
    return SalaryListResponse(
        items=[SalaryResponse.from_salary(s, with_employee=True) for s in data["items"]],
        pagination=Pagination(**data["pagination"]),
    )


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
async def create_salary(orchestrator: Orchestrator, payload: SalaryCreate) -> JSONResponse:
    result = await orchestrator.create_salary(
        employee_id=payload.employee_id,
        month=payload.month,
        base_salary=payload.base_salary,
        changes=[c.to_change() for c in payload.changes],
        is_paid=payload.is_paid,
    )
    return to_response(result, SalaryResponse.from_salary, status.HTTP_201_CREATED)


@router.get("", response_model=OperationResponse)
async def list_salaries(
    orchestrator: Orchestrator,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    employee_id: UUID | None = None,
    month: Annotated[str | None, Query(pattern=r"^\d{4}-\d{2}$")] = None,
) -> JSONResponse:
    """List salary records, newest month first (admin only)."""
    result = await orchestrator.list_salaries(page, limit, employee_id, month)
    return to_response(result, _salary_page)


@router.get("/mine", response_model=OperationResponse)
async def list_my_salaries(
    orchestrator: Orchestrator,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    month: Annotated[str | None, Query(pattern=r"^\d{4}-\d{2}$")] = None,
) -> JSONResponse:
    result = await orchestrator.get_my_salaries(page, limit, month)
    return to_response(result, _salary_page)


@router.post("/generate", response_model=OperationResponse)
async def generate_monthly_salaries(orchestrator: Orchestrator, payload: SalaryGenerate) -> JSONResponse:
    """Create one unpaid record per active employee; safe to repeat."""
    result = await orchestrator.generate_monthly_salaries(payload.month)
    return to_response(result, GenerationResponse.model_validate)


@router.put("/{salary_id}", response_model=OperationResponse)
async def update_salary(
    orchestrator: Orchestrator,
    salary_id: Annotated[UUID, Path()],
    payload: SalaryUpdate,
) -> JSONResponse:
    """Update an unpaid record or mark it paid. Paid records are frozen."""
    result = await orchestrator.update_salary(
        salary_id,
        base_salary=payload.base_salary,
        changes=[c.to_change() for c in payload.changes],
        is_paid=payload.is_paid,
    )
    return to_response(result, SalaryResponse.from_salary)


@router.delete("/{salary_id}", response_model=OperationResponse)
async def delete_salary(
    orchestrator: Orchestrator,
    salary_id: Annotated[UUID, Path()],
) -> JSONResponse:
    result = await orchestrator.delete_salary(salary_id)
    return to_response(result)
