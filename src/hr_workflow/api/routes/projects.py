"""Project API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import (
    OperationResponse,
    Pagination,
    ProjectArchive,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    TaskBoardResponse,
    TaskResponse,
)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
async def create_project(orchestrator: Orchestrator, payload: ProjectCreate) -> JSONResponse:
    result = await orchestrator.create_project(payload.name, payload.description)
    return to_response(result, ProjectResponse.model_validate, status.HTTP_201_CREATED)


@router.get("", response_model=OperationResponse)
async def list_projects(
    orchestrator: Orchestrator,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    search: str = "",
    show_archived: bool = False,
) -> JSONResponse:
    """List projects with task counts, newest first."""
    result = await orchestrator.list_projects(page, limit, search, show_archived)
    return to_response(
        result,
        lambda data: ProjectListResponse(
            items=[ProjectResponse.from_row(project, count) for project, count in data["items"]],
            pagination=Pagination(**data["pagination"]),
        ),
    )


@router.put("/{project_id}", response_model=OperationResponse)
async def update_project(
    orchestrator: Orchestrator,
    project_id: Annotated[UUID, Path()],
    payload: ProjectCreate,
) -> JSONResponse:
    result = await orchestrator.update_project(project_id, payload.name, payload.description)
    return to_response(result, ProjectResponse.model_validate)


@router.patch("/{project_id}/archive", response_model=OperationResponse)
async def toggle_project_archive(
    orchestrator: Orchestrator,
    project_id: Annotated[UUID, Path()],
    payload: ProjectArchive,
) -> JSONResponse:
    result = await orchestrator.toggle_project_archive(project_id, payload.is_archived)
    return to_response(result, ProjectResponse.model_validate)


@router.delete("/{project_id}", response_model=OperationResponse)
async def delete_project(
    orchestrator: Orchestrator,
    project_id: Annotated[UUID, Path()],
) -> JSONResponse:
    """Delete a project; projects that own tasks must be archived instead."""
    result = await orchestrator.delete_project(project_id)
    return to_response(result)


@router.get("/{project_id}/tasks", response_model=OperationResponse)
async def list_project_tasks(
    orchestrator: Orchestrator,
    project_id: Annotated[UUID, Path()],
) -> JSONResponse:
    result = await orchestrator.get_project_tasks(project_id)
    return to_response(
        result,
        lambda data: TaskBoardResponse(
            project_id=data["project"].project_id,
            project_name=data["project"].name,
            tasks={
                status_value: [TaskResponse.model_validate(t) for t in tasks]
                for status_value, tasks in data["tasks"].items()
            },
        ),
    )
