"""Cross-stage reactions to workflow events.

Workflow operations only change their own entities and report what
happened as events. The StageOrchestrator turns those events into
automatic stage moves within the same transaction:

- a rendering pushed to the client starts the room's CLIENT_APPROVAL stage
- a client revision request reopens the room's completed THREE_D stage
- a client approval completes the room's CLIENT_APPROVAL stage

Each reaction can be switched off in WorkflowConfig.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.config import WorkflowConfig
from studioflow.database.models.approval import ApprovalDecision
from studioflow.database.models.stage import StageStatus, StageType
from studioflow.database.queries.stage import get_room_stage
from studioflow.errors import InvalidTransitionError
from studioflow.workflow.events import (
    ClientDecisionRecorded,
    OperationResult,
    VersionPushedToClient,
    WorkflowEvent,
)
from studioflow.workflow.stages import apply_stage_action
from studioflow.workflow.state_machine import StageAction

logger = structlog.get_logger(__name__)


class StageOrchestrator:
    """Applies automatic stage transitions for workflow events.

    Attributes:
        config: Switches for each automatic transition.
    """

    def __init__(self, config: WorkflowConfig | None = None) -> None:
        self.config = config or WorkflowConfig()
        self._logger = logger.bind(component="StageOrchestrator")

    async def settle(self, session: AsyncSession, result: OperationResult) -> list[WorkflowEvent]:
        """Apply a result's events and return them together with the follow-ups.

        Args:
            session: The session the operation ran in.
            result: Outcome of a workflow operation.

        Returns:
            The operation's events followed by any automatic stage changes,
            ready for delivery after commit.
        """
        follow_ups = await self.apply(session, result.events)
        return [*result.events, *follow_ups]

    async def apply(
        self,
        session: AsyncSession,
        events: Sequence[WorkflowEvent],
    ) -> list[WorkflowEvent]:
        """React to events from a workflow operation.

        Args:
            session: The session the operation ran in.
            events: Events returned by the operation.

        Returns:
            StageStatusChanged events for the stages that moved.
        """
        produced: list[WorkflowEvent] = []
        for event in events:
            if isinstance(event, VersionPushedToClient):
                if self.config.auto_start_client_approval:
                    produced.extend(
                        await self._move(
                            session,
                            event.room_id,
                            StageType.CLIENT_APPROVAL,
                            StageStatus.NOT_STARTED,
                            StageAction.START,
                        )
                    )
            elif isinstance(event, ClientDecisionRecorded) and event.room_id is not None:
                produced.extend(await self._on_rendering_decision(session, event))
        return produced

    async def _on_rendering_decision(
        self,
        session: AsyncSession,
        event: ClientDecisionRecorded,
    ) -> list[WorkflowEvent]:
        if event.decision == ApprovalDecision.REVISION_REQUESTED.value:
            if not self.config.reopen_rendering_stage_on_revision:
                return []
            return await self._move(
                session,
                event.room_id,
                StageType.THREE_D,
                StageStatus.COMPLETED,
                StageAction.REOPEN,
            )
        if not self.config.complete_client_approval_on_approval:
            return []
        return await self._move(
            session,
            event.room_id,
            StageType.CLIENT_APPROVAL,
            StageStatus.IN_PROGRESS,
            StageAction.COMPLETE,
        )

    async def _move(
        self,
        session: AsyncSession,
        room_id: UUID,
        stage_type: StageType,
        required_status: StageStatus,
        action: StageAction,
    ) -> list[WorkflowEvent]:
        """Apply an automatic action if the stage is in the expected status."""
        stage = await get_room_stage(session, room_id, stage_type)
        if stage is None or stage.status is not required_status:
            return []
        try:
            result = await apply_stage_action(session, stage, action, None, automatic=True)
        except InvalidTransitionError as e:
            # Log but don't fail the operation that triggered the move
            self._logger.warning(
                "automatic_stage_transition_failed",
                stage_id=str(stage.id),
                action=action.value,
                error=str(e),
            )
            return []

        self._logger.info(
            "automatic_stage_transition",
            room_id=str(room_id),
            stage_type=stage_type.value,
            action=action.value,
        )
        return list(result.events)
