"""Unit tests for translating workflow errors into HTTP responses."""

from __future__ import annotations

import uuid

import pytest
from fastapi import FastAPI
from starlette.requests import Request
from httpx import ASGITransport, AsyncClient

from studioflow.database.models.rendering import RenderingVersionStatus
from studioflow.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StaleVersionError,
    StudioflowError,
    TransientIOError,
    ValidationError,
    VersionLockedError,
)
from studioflow.web.errors import handle_workflow_error, register_error_handlers, status_for
from studioflow.workflow.state_machine import VersionAction


@pytest.mark.parametrize(
    "error,status_code",
    [
        (ValidationError("bad input"), 400),
        (InvalidTransitionError(RenderingVersionStatus.IN_PROGRESS, VersionAction.REOPEN), 400),
        (PermissionDeniedError("not yours"), 403),
        (NotFoundError("Stage", uuid.uuid4()), 404),
        (ConflictError("duplicate"), 409),
        (VersionLockedError(uuid.uuid4(), RenderingVersionStatus.PUSHED_TO_CLIENT, "rename"), 409),
        (StaleVersionError("reload"), 409),
        (TransientIOError("database down"), 503),
        (StudioflowError("unclassified"), 500),
    ],
)
def test_status_for(error, status_code):
    assert status_for(error) == status_code


@pytest.fixture
def error_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/locked")
    async def locked() -> None:
        raise VersionLockedError("abc", RenderingVersionStatus.PUSHED_TO_CLIENT, "upload assets")

    @app.get("/transient")
    async def transient() -> None:
        raise TransientIOError("Database temporarily unavailable")

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Rendering version", "abc")

    return app


class TestErrorHandler:
    @pytest.mark.asyncio
    async def test_conflict_body(self, error_app: FastAPI) -> None:
        transport = ASGITransport(app=error_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/locked")

        assert response.status_code == 409
        assert response.json() == {
            "error": "version_locked",
            "detail": "Version abc is locked in status PUSHED_TO_CLIENT; cannot upload assets",
        }

    @pytest.mark.asyncio
    async def test_transient_sets_retry_after(self, error_app: FastAPI) -> None:
        transport = ASGITransport(app=error_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/transient")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["error"] == "transient_io"

    @pytest.mark.asyncio
    async def test_not_found(self, error_app: FastAPI) -> None:
        transport = ASGITransport(app=error_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Rendering version abc not found"


@pytest.mark.asyncio
async def test_unclassified_error_renders_as_server_error() -> None:
    request = Request({"type": "http", "method": "POST", "path": "/renderings", "headers": []})

    response = await handle_workflow_error(request, StudioflowError("unclassified"))

    assert response.status_code == 500
    assert response.body == b'{"error":"studioflow_error","detail":"unclassified"}'
