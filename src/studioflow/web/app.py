"""FastAPI application factory for Studioflow.

This module provides the main application factory function that creates
and configures a FastAPI application with:
- CORS middleware for the studio front end
- Request logging middleware with correlation IDs
- Database connection lifecycle management
- Workflow services (version workflows, stage orchestrator, webhooks)
- A single handler mapping workflow errors to JSON responses

Example usage:
    >>> from studioflow.config import StudioflowConfig
    >>> from studioflow.web.app import create_app
    >>>
    >>> app = create_app(StudioflowConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studioflow import __version__
from studioflow.config import StudioflowConfig
from studioflow.database.connection import get_engine, get_session_factory
from studioflow.logging import get_logger
from studioflow.web.errors import register_error_handlers
from studioflow.web.middleware import RequestLoggingMiddleware
from studioflow.web.routes.activity import create_activity_router
from studioflow.web.routes.approvals import create_approvals_router
from studioflow.web.routes.assets import create_assets_router
from studioflow.web.routes.comments import create_comments_router
from studioflow.web.routes.floorplans import create_floorplans_router
from studioflow.web.routes.health import create_health_router
from studioflow.web.routes.projects import create_projects_router
from studioflow.web.routes.renderings import create_renderings_router
from studioflow.web.routes.stages import create_stages_router
from studioflow.web.routes.team import create_team_router
from studioflow.web.webhooks import WebhookDispatcher
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.orchestration import StageOrchestrator
from studioflow.workflow.renderings import RenderingWorkflow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

APP_VERSION = __version__


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle with database connections.

    Creates the engine and session factory on startup unless a test has
    already placed a session factory on app.state, and closes the engine
    and the webhook HTTP client on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, cleans up on context exit
    """
    config: StudioflowConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = None
    if getattr(app.state, "session_factory", None) is None:
        engine = get_engine(config.database)
        app.state.engine = engine
        app.state.session_factory = get_session_factory(engine)
        logger.info(
            "database_pool_initialized",
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
        )

    yield

    logger.info("app_shutdown_begin")
    await app.state.dispatcher.close()
    if engine is not None:
        await engine.dispose()
        logger.info("database_pool_disposed")


def create_app(config: StudioflowConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional StudioflowConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = StudioflowConfig()

    app = FastAPI(
        title="Studioflow",
        version=APP_VERSION,
        description="Workflow backend for interior design studio projects",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.session_factory = None
    app.state.renderings = RenderingWorkflow(config.workflow)
    app.state.floorplans = FloorplanWorkflow(config.workflow)
    app.state.orchestrator = StageOrchestrator(config.workflow)
    app.state.dispatcher = WebhookDispatcher.from_config(config.webhooks)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, slow_request_ms=config.web.slow_request_ms)
    register_error_handlers(app)

    for router in (
        create_health_router(),
        create_projects_router(),
        create_team_router(),
        create_stages_router(),
        create_renderings_router(),
        create_approvals_router(),
        create_floorplans_router(),
        create_assets_router(),
        create_comments_router(),
        create_activity_router(),
    ):
        app.include_router(router)

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        webhook_endpoints=len(config.webhooks.endpoints),
        version=APP_VERSION,
    )

    return app
