"""Request dependencies shared by the API routers.

Mutating endpoints go through WorkflowRunner: the workflow operation and
the stage orchestrator run inside one committed session_scope(), and the
resulting events are handed to the webhook dispatcher once the response
has been sent.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

from fastapi import BackgroundTasks, Depends, Header, Request

from studioflow.database.connection import session_scope
from studioflow.errors import ValidationError
from studioflow.logging import bind_actor_context
from studioflow.workflow.events import OperationResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from studioflow.web.webhooks import WebhookDispatcher
    from studioflow.workflow.floorplans import FloorplanWorkflow
    from studioflow.workflow.orchestration import StageOrchestrator
    from studioflow.workflow.renderings import RenderingWorkflow

T = TypeVar("T")

ACTOR_HEADER = "X-Actor-Id"


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Dependency that retrieves session factory from app state."""
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_renderings(request: Request) -> RenderingWorkflow:
    return request.app.state.renderings  # type: ignore[no-any-return]


def get_floorplans(request: Request) -> FloorplanWorkflow:
    return request.app.state.floorplans  # type: ignore[no-any-return]


def require_actor(x_actor_id: str | None = Header(default=None)) -> UUID:  # noqa: B008
    """Resolve the acting team member from the X-Actor-Id header.

    Raises:
        ValidationError: If the header is missing or not a UUID.
    """
    if not x_actor_id:
        raise ValidationError(f"{ACTOR_HEADER} header is required")
    try:
        actor_id = UUID(x_actor_id)
    except ValueError as exc:
        raise ValidationError(f"{ACTOR_HEADER} must be a UUID") from exc
    bind_actor_context(str(actor_id))
    return actor_id


class WorkflowRunner:
    """Runs workflow operations as committed units of work.

    Attributes:
        session_factory: Factory for database sessions.
        orchestrator: Applies automatic stage moves for emitted events.
        dispatcher: Delivers events after commit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: StageOrchestrator,
        dispatcher: WebhookDispatcher,
        background: BackgroundTasks | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher
        self.background = background

    async def run(
        self,
        operation: Callable[[AsyncSession], Awaitable[OperationResult[T]]],
    ) -> OperationResult[T]:
        """Execute a mutating operation, commit, then publish its events.

        Args:
            operation: Coroutine function taking the session.

        Returns:
            The operation's result; its events include automatic stage moves.
        """
        async with session_scope(self.session_factory) as session:
            result = await operation(session)
            events = await self.orchestrator.settle(session, result)

        result.events = events
        if events:
            if self.background is not None:
                self.background.add_task(self.dispatcher.publish, events)
            else:
                await self.dispatcher.publish(events)
        return result

    async def read(self, query: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Execute a read-only query with the same error translation."""
        async with session_scope(self.session_factory) as session:
            return await query(session)


def get_runner(
    request: Request,
    background: BackgroundTasks,
    session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
        get_session_factory
    ),
) -> WorkflowRunner:
    """Dependency providing a WorkflowRunner bound to the request."""
    return WorkflowRunner(
        session_factory,
        request.app.state.orchestrator,
        request.app.state.dispatcher,
        background,
    )
