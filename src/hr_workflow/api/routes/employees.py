"""Employee API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import EmployeeCreate, EmployeeResponse, OperationResponse

router = APIRouter(prefix="/employees", tags=["employees"])


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(orchestrator: Orchestrator, payload: EmployeeCreate) -> JSONResponse:
    """Create the user account and employee record with a fresh employee code."""
    result = await orchestrator.create_employee(**payload.model_dump())
    return to_response(result, EmployeeResponse.from_employee, status.HTTP_201_CREATED)


@router.get("", response_model=OperationResponse)
async def list_active_employees(orchestrator: Orchestrator) -> JSONResponse:
    result = await orchestrator.list_active_employees()
    return to_response(result, lambda employees: [EmployeeResponse.from_employee(e) for e in employees])


@router.put("/{employee_id}", response_model=OperationResponse)
async def update_employee(
    orchestrator: Orchestrator,
    employee_id: Annotated[UUID, Path()],
    payload: EmployeeCreate,
) -> JSONResponse:
    result = await orchestrator.update_employee(employee_id, **payload.model_dump())
    return to_response(result, EmployeeResponse.from_employee)


@router.delete("/{employee_id}", response_model=OperationResponse)
async def delete_employee(
    orchestrator: Orchestrator,
    employee_id: Annotated[UUID, Path()],
) -> JSONResponse:
    result = await orchestrator.delete_employee(employee_id)
    return to_response(result)
