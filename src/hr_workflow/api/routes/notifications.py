"""Notification inbox endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query
from fastapi.responses import JSONResponse

from hr_workflow.api.dependencies import Orchestrator
from hr_workflow.api.results import to_response
from hr_workflow.api.schemas import (
    NotificationListResponse,
    NotificationResponse,
    OperationResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=OperationResponse)
async def list_notifications(
    orchestrator: Orchestrator,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> JSONResponse:
    """Latest notifications of the caller plus the unread count."""
    result = await orchestrator.get_my_notifications(limit)
    return to_response(
        result,
        lambda data: NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in data["notifications"]],
            unread_count=data["unread_count"],
        ),
    )


@router.post("/read-all", response_model=OperationResponse)
async def mark_all_read(orchestrator: Orchestrator) -> JSONResponse:
    result = await orchestrator.mark_all_notifications_read()
    return to_response(result)


@router.post("/{notification_id}/read", response_model=OperationResponse)
async def mark_read(
    orchestrator: Orchestrator,
    notification_id: Annotated[UUID, Path()],
) -> JSONResponse:
    result = await orchestrator.mark_notification_read(notification_id)
    return to_response(result)
