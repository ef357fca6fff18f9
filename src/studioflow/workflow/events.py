"""Workflow events and operation results.

Workflow operations never call out to other stages or external services.
Instead they return the events describing what happened; the stage
orchestrator reacts to them inside the same transaction and the webhook
dispatcher delivers them after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from studioflow.database.models.activity import ActivityLog

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WorkflowEvent:
    """Base class for events emitted by workflow operations.

    Attributes:
        name: Dotted event name used on the wire.
        occurred_at: When the event was produced.
    """

    name: ClassVar[str] = "workflow.event"

    occurred_at: datetime = field(default_factory=_now, kw_only=True)


@dataclass(frozen=True)
class VersionPushedToClient(WorkflowEvent):
    """A rendering version was pushed to the client for approval."""

    name: ClassVar[str] = "rendering.pushed_to_client"

    version_id: UUID
    approval_id: UUID
    stage_id: UUID
    room_id: UUID
    project_id: UUID
    label: str
    asset_ids: tuple[UUID, ...]
    actor_id: UUID | None


@dataclass(frozen=True)
class FloorplanSentToClient(WorkflowEvent):
    """A floorplan version went to the client.

    When mark_only is False the email integration should send the included
    assets; when True the email was sent outside the system.
    """

    name: ClassVar[str] = "floorplan.sent_to_client"

    version_id: UUID
    approval_id: UUID
    project_id: UUID
    label: str
    asset_ids: tuple[UUID, ...]
    mark_only: bool
    actor_id: UUID | None


@dataclass(frozen=True)
class ClientDecisionRecorded(WorkflowEvent):
    """The client approved or requested revisions on a snapshot.

    Attributes:
        version_kind: "rendering" or "floorplan".
        stage_id: Rendering stage of the originating version (renderings only).
        room_id: Room of the originating version (renderings only).
    """

    name: ClassVar[str] = "approval.decision_recorded"

    approval_id: UUID
    decision: str
    message: str | None
    version_kind: str
    version_id: UUID
    project_id: UUID
    stage_id: UUID | None
    room_id: UUID | None
    actor_id: UUID | None


@dataclass(frozen=True)
class MentionCreated(WorkflowEvent):
    """A team member was newly mentioned in a comment."""

    name: ClassVar[str] = "comment.mention_created"

    comment_id: UUID
    user_id: UUID
    author_id: UUID
    target_type: str
    target_id: UUID
    stage_id: UUID | None


@dataclass(frozen=True)
class StageStatusChanged(WorkflowEvent):
    """A stage moved to a new status, by a user or automatically."""

    name: ClassVar[str] = "stage.status_changed"

    stage_id: UUID
    room_id: UUID
    stage_type: str
    from_status: str
    to_status: str
    automatic: bool
    actor_id: UUID | None


@dataclass
class OperationResult(Generic[T]):
    """Typed outcome of a workflow operation.

    Attributes:
        value: The entity the operation produced or changed.
        activity: The activity entry appended by the operation.
        events: Events for the orchestrator and webhook delivery.
    """

    value: T
    activity: ActivityLog | None = None
    events: list[WorkflowEvent] = field(default_factory=list)


@dataclass(frozen=True)
class DeletionReport:
    """What a version delete removed.

    Attributes:
        version_id: The deleted version.
        label: Its label at delete time.
        status: Its status at delete time.
        was_pushed: The version had been sent to the client.
        had_client_approval: A snapshot of it had been approved.
        counts: Number of removed notes, approvals and assets.
    """

    version_id: UUID
    label: str
    status: str
    was_pushed: bool
    had_client_approval: bool
    counts: dict[str, int]
