"""Stage routing and the stage status workflow.

Every stage type maps to exactly one workspace. The workspace payload is
assembled here so the API and CLI show the same thing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import Asset
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.rendering import RenderingVersion
from studioflow.database.models.stage import Stage, StageStatus, StageType
from studioflow.database.queries.approval import list_approval_assets, list_client_approvals
from studioflow.database.queries.asset import list_stage_assets
from studioflow.database.queries.project import get_room
from studioflow.database.queries.rendering import list_rendering_versions
from studioflow.database.queries.stage import get_stage
from studioflow.database.queries.team import get_team_member
from studioflow.errors import NotFoundError, ValidationError
from studioflow.workflow.activity import (
    STAGE_LABELS,
    StageStatusDetails,
    UpdateDetails,
    record_activity,
)
from studioflow.workflow.approvals import ApprovalSnapshot
from studioflow.workflow.comments import CommentView, list_thread
from studioflow.workflow.events import OperationResult, StageStatusChanged
from studioflow.workflow.state_machine import STAGE_TRANSITIONS, StageAction, next_status

logger = structlog.get_logger(__name__)


class WorkspaceKind(str, Enum):
    """The workspace a stage is rendered in."""

    DESIGN_BOARD = "design_board"
    RENDERING = "rendering"
    CLIENT_APPROVAL = "client_approval"
    DRAWINGS = "drawings"
    FFE = "ffe"


WORKSPACE_ROUTES: dict[StageType, WorkspaceKind] = {
    StageType.DESIGN: WorkspaceKind.DESIGN_BOARD,
    StageType.THREE_D: WorkspaceKind.RENDERING,
    StageType.CLIENT_APPROVAL: WorkspaceKind.CLIENT_APPROVAL,
    StageType.DRAWINGS: WorkspaceKind.DRAWINGS,
    StageType.FFE: WorkspaceKind.FFE,
}

UPDATABLE_FIELDS = frozenset({"assigned_to", "due_date"})


def route_stage(stage: Stage | StageType | str) -> WorkspaceKind:
    """Pick the workspace for a stage.

    Args:
        stage: A Stage, a StageType, or a stage type name.

    Returns:
        The WorkspaceKind for the stage type.

    Raises:
        ValidationError: If the stage type is unknown.
    """
    raw = stage.type if isinstance(stage, Stage) else stage
    try:
        stage_type = StageType(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown stage type: {raw}", stage_type=str(raw)) from exc
    kind = WORKSPACE_ROUTES.get(stage_type)
    if kind is None:
        raise ValidationError(f"No workspace for stage type {stage_type.value}")
    return kind


@dataclass
class StageWorkspace:
    """Everything a stage workspace shows.

    Only the collections relevant to the workspace kind are filled.
    """

    stage: Stage
    kind: WorkspaceKind
    renderings: list[RenderingVersion] = field(default_factory=list)
    approvals: list[ApprovalSnapshot] = field(default_factory=list)
    notes: list[CommentView] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)


async def load_stage(session: AsyncSession, stage_id: UUID) -> Stage:
    """Load a stage or raise NotFoundError."""
    stage = await get_stage(session, stage_id)
    if stage is None:
        raise NotFoundError("Stage", stage_id)
    return stage


async def build_workspace(session: AsyncSession, stage_id: UUID) -> StageWorkspace:
    """Assemble the payload of the stage's workspace."""
    stage = await load_stage(session, stage_id)
    workspace = StageWorkspace(stage=stage, kind=route_stage(stage))

    if workspace.kind is WorkspaceKind.RENDERING:
        workspace.renderings = await list_rendering_versions(session, stage.id)
    elif workspace.kind is WorkspaceKind.CLIENT_APPROVAL:
        for approval in await list_client_approvals(session, stage_id=stage.id):
            assets = await list_approval_assets(session, approval.id)
            workspace.approvals.append(ApprovalSnapshot(approval, assets))
    else:
        workspace.notes = await list_thread(session, CommentTarget.STAGE, stage.id)
        workspace.assets = await list_stage_assets(session, stage.id)
    return workspace


async def apply_stage_action(
    session: AsyncSession,
    stage: Stage,
    action: StageAction,
    actor_id: UUID | None,
    automatic: bool = False,
) -> OperationResult[Stage]:
    """Move a loaded stage along STAGE_TRANSITIONS.

    Args:
        session: Active async database session.
        stage: The stage to move.
        action: Requested action.
        actor_id: Acting user, None for automatic moves.
        automatic: Whether the move was triggered by another stage's event.

    Returns:
        Result holding the stage and a StageStatusChanged event.

    Raises:
        InvalidTransitionError: If the action is not allowed.
    """
    current = stage.status
    target = next_status(STAGE_TRANSITIONS, current, action, str(stage.id))
    now = datetime.now(timezone.utc)

    stage.status = target
    if target is StageStatus.IN_PROGRESS:
        stage.completed_at = None
        stage.completed_by = None
        if stage.started_at is None:
            stage.started_at = now
    elif target is StageStatus.COMPLETED:
        stage.completed_at = now
        stage.completed_by = actor_id
    elif target is StageStatus.NOT_STARTED:
        stage.started_at = None
        stage.completed_at = None
        stage.completed_by = None
    await session.flush()

    room = await get_room(session, stage.room_id)
    activity = await record_activity(
        session,
        StageStatusDetails(
            stage_type=stage.type.value,
            from_status=current.value,
            to_status=target.value,
            automatic=automatic,
        ),
        entity_type="stage",
        entity_id=stage.id,
        actor_id=actor_id,
        stage_id=stage.id,
        project_id=room.project_id if room else None,
    )
    logger.info(
        "stage_transition",
        stage_id=str(stage.id),
        stage_type=stage.type.value,
        from_status=current.value,
        to_status=target.value,
        automatic=automatic,
    )
    event = StageStatusChanged(
        stage_id=stage.id,
        room_id=stage.room_id,
        stage_type=stage.type.value,
        from_status=current.value,
        to_status=target.value,
        automatic=automatic,
        actor_id=actor_id,
    )
    return OperationResult(stage, activity, [event])


async def transition_stage(
    session: AsyncSession,
    stage_id: UUID,
    action: StageAction | str,
    actor_id: UUID,
) -> OperationResult[Stage]:
    """User-requested stage status change."""
    try:
        parsed = StageAction(action)
    except ValueError as exc:
        raise ValidationError(f"Unknown stage action: {action}") from exc
    stage = await load_stage(session, stage_id)
    return await apply_stage_action(session, stage, parsed, actor_id)


async def update_stage(
    session: AsyncSession,
    stage_id: UUID,
    actor_id: UUID,
    changes: Mapping[str, Any],
) -> OperationResult[Stage]:
    """Change a stage's assignee or due date.

    Args:
        session: Active async database session.
        stage_id: The stage.
        actor_id: Acting user.
        changes: Subset of {"assigned_to", "due_date"}; None clears a field.

    Raises:
        ValidationError: Unknown fields, or an assignee who is not on the team.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update stage fields: {', '.join(sorted(unknown))}")
    stage = await load_stage(session, stage_id)

    fields = []
    if "assigned_to" in changes and changes["assigned_to"] != stage.assigned_to:
        assignee = changes["assigned_to"]
        if assignee is not None and await get_team_member(session, assignee) is None:
            raise ValidationError(f"Team member {assignee} does not exist")
        stage.assigned_to = assignee
        fields.append("assigned_to")
    if "due_date" in changes and changes["due_date"] != stage.due_date:
        due: date | None = changes["due_date"]
        stage.due_date = due
        fields.append("due_date")
    if not fields:
        return OperationResult(stage)

    await session.flush()
    room = await get_room(session, stage.room_id)
    activity = await record_activity(
        session,
        UpdateDetails(entity="stage", label=STAGE_LABELS[stage.type.value], fields=fields),
        entity_type="stage",
        entity_id=stage.id,
        actor_id=actor_id,
        stage_id=stage.id,
        project_id=room.project_id if room else None,
    )
    return OperationResult(stage, activity)
