"""Task API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import (
    OperationResponse,
    TaskActionResponse,
    TaskCreate,
    TaskDetailResponse,
    TaskListResponse,
    TaskNoteCreate,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
async def create_task(orchestrator: Orchestrator, payload: TaskCreate) -> JSONResponse:
    """Create a task in PENDING and notify the assignee."""
    result = await orchestrator.create_task(
        project_id=payload.project_id,
        assigned_to_id=payload.assigned_to_id,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
    )
    return to_response(result, TaskResponse.model_validate, status.HTTP_201_CREATED)


@router.get("", response_model=OperationResponse)
async def list_all_tasks(orchestrator: Orchestrator) -> JSONResponse:
    """Every task with per-status counts (admin only)."""
    result = await orchestrator.get_all_tasks()
    return to_response(
        result,
        lambda data: TaskListResponse(
            tasks=[TaskResponse.model_validate(t) for t in data["tasks"]],
            status_counts=data["status_counts"],
        ),
    )


@router.get("/mine", response_model=OperationResponse)
async def list_my_tasks(orchestrator: Orchestrator) -> JSONResponse:
    result = await orchestrator.get_my_tasks()
    return to_response(result, lambda tasks: [TaskResponse.model_validate(t) for t in tasks])


@router.get("/{task_id}", response_model=OperationResponse)
async def get_task(
    orchestrator: Orchestrator,
    task_id: Annotated[UUID, Path()],
) -> JSONResponse:
    """Task with its history, newest entry first."""
    result = await orchestrator.get_task_details(task_id)
    return to_response(
        result,
        lambda data: TaskDetailResponse(
            task=TaskResponse.model_validate(data["task"]),
            actions=[TaskActionResponse.from_action(a, with_user=True) for a in data["actions"]],
            next_statuses=data["next_statuses"],
        ),
    )


@router.put("/{task_id}", response_model=OperationResponse)
async def update_task(
    orchestrator: Orchestrator,
    task_id: Annotated[UUID, Path()],
    payload: TaskUpdate,
) -> JSONResponse:
    result = await orchestrator.update_task_details(
        task_id,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
    )
    return to_response(result, TaskResponse.model_validate)


@router.patch("/{task_id}/status", response_model=OperationResponse)
async def update_task_status(
    orchestrator: Orchestrator,
    task_id: Annotated[UUID, Path()],
    payload: TaskStatusUpdate,
) -> JSONResponse:
    """Request a status change; the caller's role decides what is allowed."""
    result = await orchestrator.update_task_status(task_id, payload.status.value, payload.note)
    return to_response(result, TaskResponse.model_validate)


@router.post("/{task_id}/notes", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
async def add_task_note(
    orchestrator: Orchestrator,
    task_id: Annotated[UUID, Path()],
    payload: TaskNoteCreate,
) -> JSONResponse:
    result = await orchestrator.add_task_note(task_id, payload.note)
    return to_response(result, TaskActionResponse.model_validate, status.HTTP_201_CREATED)


@router.delete("/{task_id}", response_model=OperationResponse)
async def delete_task(
    orchestrator: Orchestrator,
    task_id: Annotated[UUID, Path()],
) -> JSONResponse:
    result = await orchestrator.delete_task(task_id)
    return to_response(result)
