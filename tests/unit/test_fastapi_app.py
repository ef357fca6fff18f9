"""Unit tests for FastAPI application setup.

Tests cover:
- Application factory creates FastAPI instance with workflow services
- CORS middleware is configured from config
- Request logging middleware echoes correlation IDs, tags the actor,
  quiets reads and warns on slow requests
- Readiness endpoint verifies database connectivity and studio tables
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from httpx import ASGITransport, AsyncClient

from studioflow import __version__
from studioflow.config import StudioflowConfig, WebConfig, WebhookConfig, WebhookEndpointConfig
from studioflow.web.app import create_app
from studioflow.database.models import Base
from studioflow.web.middleware import ACTOR_HEADER, CORRELATION_HEADER, RequestLoggingMiddleware
from studioflow.web.webhooks import WebhookDispatcher
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.orchestration import StageOrchestrator
from studioflow.workflow.renderings import RenderingWorkflow


class TestCreateApp:
    """Test application factory function."""

    def test_returns_fastapi_instance(self) -> None:
        app = create_app()
        assert isinstance(app, FastAPI)
        assert app.title == "Studioflow"
        assert app.version == __version__

    def test_app_stores_config_in_state(self) -> None:
        config = StudioflowConfig()
        app = create_app(config)
        assert app.state.config is config

    def test_workflow_services_share_config(self) -> None:
        config = StudioflowConfig()
        app = create_app(config)

        assert isinstance(app.state.renderings, RenderingWorkflow)
        assert isinstance(app.state.floorplans, FloorplanWorkflow)
        assert isinstance(app.state.orchestrator, StageOrchestrator)
        assert app.state.orchestrator.config is config.workflow
        assert app.state.session_factory is None

    def test_dispatcher_uses_configured_endpoints(self) -> None:
        endpoint = WebhookEndpointConfig(url="https://hooks.example.com/in", secret="s")
        app = create_app(StudioflowConfig(webhooks=WebhookConfig(endpoints=[endpoint])))

        assert isinstance(app.state.dispatcher, WebhookDispatcher)
        assert app.state.dispatcher.endpoints == [endpoint]

    def test_routes_are_registered(self) -> None:
        paths = {route.path for route in create_app().routes}

        for path in (
            "/health/",
            "/projects",
            "/team",
            "/stages/{stage_id}/workspace",
            "/renderings/{version_id}/push-to-client",
            "/approvals/{approval_id}/decision",
            "/floorplan-approvals/{version_id}/actions",
            "/assets/{asset_id}",
            "/chat/{stage_id}",
            "/activity/{entity_id}",
        ):
            assert path in paths


class TestMiddleware:
    def test_cors_uses_config_origins(self) -> None:
        origins = ["https://studio.example.com"]
        app = create_app(StudioflowConfig(web=WebConfig(cors_origins=origins)))

        cors = [m for m in app.user_middleware if m.cls == CORSMiddleware]
        assert len(cors) == 1
        assert cors[0].kwargs["allow_origins"] == origins
        assert cors[0].kwargs["allow_credentials"] is True

    def test_logging_middleware_is_registered(self) -> None:
        app = create_app()
        assert any(m.cls == RequestLoggingMiddleware for m in app.user_middleware)

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self) -> None:
        app = create_app()
        app.state.session_factory = MagicMock()

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            given = await client.get("/health/", headers={CORRELATION_HEADER: "corr-1"})
            generated = await client.get("/health/")

        assert given.headers[CORRELATION_HEADER] == "corr-1"
        assert generated.headers[CORRELATION_HEADER]

    @pytest.mark.asyncio
    async def test_writes_logged_at_info_with_actor(self) -> None:
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.post("/renderings/{version_id}/actions")
        async def act(version_id: str) -> dict[str, str]:
            return {"status": "COMPLETED"}

        actor_id = str(uuid.uuid4())
        with (
            patch("studioflow.web.middleware.logger") as log,
            patch("studioflow.web.middleware.bind_actor_context") as bind,
        ):
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                await client.post("/renderings/v1/actions", headers={ACTOR_HEADER: actor_id})

        bind.assert_called_once_with(actor_id)
        completed = [c for c in log.info.call_args_list if c.args[0] == "request_completed"]
        assert completed[0].kwargs["write"] is True
        assert completed[0].kwargs["status_code"] == 200

    @pytest.mark.asyncio
    async def test_health_checks_logged_at_debug(self) -> None:
        app = create_app()
        app.state.session_factory = MagicMock()

        with patch("studioflow.web.middleware.logger") as log:
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                await client.get("/health/", headers={ACTOR_HEADER: "not-a-uuid"})

        assert log.info.call_count == 0
        assert [c.args[0] for c in log.debug.call_args_list] == [
            "request_started",
            "request_completed",
        ]

    @pytest.mark.asyncio
    async def test_slow_request_warning(self) -> None:
        app = create_app(StudioflowConfig(web=WebConfig(slow_request_ms=500)))
        app.state.session_factory = MagicMock()

        with (
            patch("studioflow.web.middleware.logger") as log,
            patch("studioflow.web.middleware.time") as clock,
        ):
            clock.perf_counter.side_effect = [10.0, 10.75]
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                await client.get("/health/")

        log.warning.assert_called_once()
        assert log.warning.call_args.args[0] == "slow_request"
        assert log.warning.call_args.kwargs["duration_ms"] == 750.0
        assert log.warning.call_args.kwargs["threshold_ms"] == 500


def _session_factory(session: AsyncMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=None)
    return factory


class TestHealthEndpoints:
    """Test liveness and readiness checks."""

    @pytest.mark.asyncio
    async def test_health_returns_ok(self) -> None:
        app = create_app()
        app.state.session_factory = MagicMock()

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_ready_when_all_studio_tables_exist(self) -> None:
        app = create_app()
        session = AsyncMock()
        session.run_sync = AsyncMock(return_value=[*Base.metadata.tables, "alembic_version"])
        app.state.session_factory = _session_factory(session)

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "connected", "missing_tables": []}
        session.run_sync.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_ready_when_tables_are_missing(self) -> None:
        app = create_app()
        session = AsyncMock()
        present = [name for name in Base.metadata.tables if name != "activity_log"]
        session.run_sync = AsyncMock(return_value=present)
        app.state.session_factory = _session_factory(session)

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/health/ready")

        assert response.json() == {
            "status": "unhealthy",
            "database": "connected",
            "missing_tables": ["activity_log"],
        }

    @pytest.mark.asyncio
    async def test_readiness_when_database_unreachable(self) -> None:
        app = create_app()
        session_factory = MagicMock()
        session_factory.return_value.__aenter__ = AsyncMock(
            side_effect=OSError("Database connection failed")
        )
        session_factory.return_value.__aexit__ = AsyncMock(return_value=None)
        app.state.session_factory = session_factory

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "unhealthy",
            "database": "disconnected",
            "missing_tables": [],
        }
