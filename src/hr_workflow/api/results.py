"""Mapping of orchestrator results onto HTTP responses."""

from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from hr_workflow.api.schemas import OperationResponse
from hr_workflow.services.orchestrator import OperationResult


def to_response(
    result: OperationResult,
    serialize: Callable[[Any], Any] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Render an OperationResult as the ``{success, message, data}`` envelope.

    Domain failures stay HTTP 200 with ``success: false``; only a missing
    identity becomes a 401.
    """
    if result.error == "Unauthorized":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)

    data = None
    if result.success and result.data is not None:
        data = serialize(result.data) if serialize else result.data
    body = OperationResponse(success=result.success, message=result.message, data=data)
    return JSONResponse(
        status_code=status_code if result.success else status.HTTP_200_OK,
        content=body.model_dump(mode="json"),
    )
