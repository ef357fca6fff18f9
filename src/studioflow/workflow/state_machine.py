"""Transition tables for Studioflow workflows.

Each workflow (rendering versions, floorplan versions, stages) has exactly
one authoritative table mapping (status, action) to the next status. Every
status change in the workflow layer goes through next_status(), so no
operation can produce a status outside these graphs.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

from studioflow.database.models.floorplan import FloorplanVersionStatus
from studioflow.database.models.rendering import RenderingVersionStatus
from studioflow.database.models.stage import StageStatus
from studioflow.errors import InvalidTransitionError

StatusT = TypeVar("StatusT", bound=Enum)
ActionT = TypeVar("ActionT", bound=Enum)


class VersionAction(str, Enum):
    """Actions that move a rendering or floorplan version.

    Attributes:
        COMPLETE: Sign the version off internally.
        REOPEN: Return to editing after completion or a revision request.
        PUSH_TO_CLIENT: Send the version to the client.
        FOLLOW_UP: Record that the client has been chased (floorplans).
        APPROVE: Client approved.
        REQUEST_REVISION: Client asked for changes.
    """

    COMPLETE = "complete"
    REOPEN = "reopen"
    PUSH_TO_CLIENT = "push_to_client"
    FOLLOW_UP = "follow_up"
    APPROVE = "approve"
    REQUEST_REVISION = "request_revision"


class StageAction(str, Enum):
    """Actions that move a stage."""

    START = "start"
    COMPLETE = "complete"
    REOPEN = "reopen"
    MARK_NOT_APPLICABLE = "mark_not_applicable"
    RESET = "reset"


RENDERING_TRANSITIONS: dict[
    RenderingVersionStatus, dict[VersionAction, RenderingVersionStatus]
] = {
    RenderingVersionStatus.IN_PROGRESS: {
        VersionAction.COMPLETE: RenderingVersionStatus.COMPLETED,
    },
    RenderingVersionStatus.COMPLETED: {
        VersionAction.REOPEN: RenderingVersionStatus.IN_PROGRESS,
        VersionAction.PUSH_TO_CLIENT: RenderingVersionStatus.PUSHED_TO_CLIENT,
    },
    RenderingVersionStatus.PUSHED_TO_CLIENT: {
        VersionAction.APPROVE: RenderingVersionStatus.CLIENT_APPROVED,
        VersionAction.REQUEST_REVISION: RenderingVersionStatus.REVISION_REQUESTED,
    },
    RenderingVersionStatus.CLIENT_APPROVED: {},  # Terminal
    RenderingVersionStatus.REVISION_REQUESTED: {
        VersionAction.REOPEN: RenderingVersionStatus.IN_PROGRESS,
    },
}

FLOORPLAN_TRANSITIONS: dict[
    FloorplanVersionStatus, dict[VersionAction, FloorplanVersionStatus]
] = {
    FloorplanVersionStatus.DRAFT: {
        VersionAction.COMPLETE: FloorplanVersionStatus.READY_FOR_CLIENT,
    },
    FloorplanVersionStatus.READY_FOR_CLIENT: {
        VersionAction.REOPEN: FloorplanVersionStatus.DRAFT,
        VersionAction.PUSH_TO_CLIENT: FloorplanVersionStatus.SENT_TO_CLIENT,
    },
    FloorplanVersionStatus.SENT_TO_CLIENT: {
        VersionAction.FOLLOW_UP: FloorplanVersionStatus.FOLLOW_UP_REQUIRED,
        VersionAction.APPROVE: FloorplanVersionStatus.CLIENT_APPROVED,
        VersionAction.REQUEST_REVISION: FloorplanVersionStatus.REVISION_REQUESTED,
    },
    FloorplanVersionStatus.FOLLOW_UP_REQUIRED: {
        VersionAction.FOLLOW_UP: FloorplanVersionStatus.FOLLOW_UP_REQUIRED,
        VersionAction.APPROVE: FloorplanVersionStatus.CLIENT_APPROVED,
        VersionAction.REQUEST_REVISION: FloorplanVersionStatus.REVISION_REQUESTED,
    },
    FloorplanVersionStatus.CLIENT_APPROVED: {},  # Terminal
    FloorplanVersionStatus.REVISION_REQUESTED: {
        VersionAction.REOPEN: FloorplanVersionStatus.DRAFT,
    },
}

STAGE_TRANSITIONS: dict[StageStatus, dict[StageAction, StageStatus]] = {
    StageStatus.NOT_STARTED: {
        StageAction.START: StageStatus.IN_PROGRESS,
        StageAction.MARK_NOT_APPLICABLE: StageStatus.NOT_APPLICABLE,
    },
    StageStatus.IN_PROGRESS: {
        StageAction.COMPLETE: StageStatus.COMPLETED,
        StageAction.MARK_NOT_APPLICABLE: StageStatus.NOT_APPLICABLE,
    },
    StageStatus.COMPLETED: {
        StageAction.REOPEN: StageStatus.IN_PROGRESS,
    },
    StageStatus.NOT_APPLICABLE: {
        StageAction.RESET: StageStatus.NOT_STARTED,
    },
}


def next_status(
    table: Mapping[StatusT, Mapping[ActionT, StatusT]],
    current: StatusT,
    action: ActionT,
    entity_id: str | None = None,
) -> StatusT:
    """Look up the status an action leads to.

    Args:
        table: One of the transition tables in this module.
        current: Current status.
        action: Requested action.
        entity_id: Identifier used in the error message.

    Returns:
        The target status.

    Raises:
        InvalidTransitionError: If the action is not allowed from current.
    """
    targets = table.get(current, {})
    if action not in targets:
        raise InvalidTransitionError(current, action, entity_id)
    return targets[action]


def allowed_actions(
    table: Mapping[StatusT, Mapping[ActionT, StatusT]],
    current: StatusT,
) -> list[ActionT]:
    """Actions that are legal from the current status, in table order."""
    return list(table.get(current, {}).keys())
