"""Translate workflow errors into HTTP responses.

Every StudioflowError becomes a JSON body of the form
``{"error": <code>, "detail": <message>}`` with a status code chosen by
error family.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import status as http_status
from fastapi.responses import JSONResponse

from studioflow.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StudioflowError,
    TransientIOError,
    ValidationError,
)
from studioflow.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = get_logger(__name__)

# Checked in order; subclasses before their parents
STATUS_CODES: tuple[tuple[type[StudioflowError], int], ...] = (
    (PermissionDeniedError, http_status.HTTP_403_FORBIDDEN),
    (ValidationError, http_status.HTTP_400_BAD_REQUEST),
    (NotFoundError, http_status.HTTP_404_NOT_FOUND),
    (ConflictError, http_status.HTTP_409_CONFLICT),
    (TransientIOError, http_status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: StudioflowError) -> int:
    """Pick the HTTP status code for a workflow error."""
    for error_type, status_code in STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return http_status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_workflow_error(request: Request, exc: StudioflowError) -> JSONResponse:
    """Render a StudioflowError as a JSON error body."""
    status_code = status_for(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "workflow_error",
        method=request.method,
        path=request.url.path,
        error_code=exc.code,
        status_code=status_code,
        detail=exc.message,
        **exc.context,
    )

    headers = {"Retry-After": "1"} if isinstance(exc, TransientIOError) else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the workflow error handler on an application."""
    app.add_exception_handler(StudioflowError, handle_workflow_error)
