"""Response schemas shared by several routers.

Request schemas live next to the endpoints that accept them; the models
here describe entities that appear in more than one resource.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, computed_field

from studioflow.database.models.approval import ApprovalDecision
from studioflow.database.models.asset import AssetType
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.floorplan import FloorplanVersionStatus
from studioflow.database.models.rendering import RenderingVersionStatus
from studioflow.database.models.stage import StageStatus, StageType
from studioflow.database.models.team import TeamRole
from studioflow.workflow.approvals import ApprovalSnapshot
from studioflow.workflow.comments import CommentView
from studioflow.workflow.decisions import RevisionItem
from studioflow.workflow.events import DeletionReport
from studioflow.workflow.locks import FLOORPLAN_LOCKED_STATUSES, RENDERING_LOCKED_STATUSES
from studioflow.workflow.stages import route_stage
from studioflow.workflow.state_machine import (
    FLOORPLAN_TRANSITIONS,
    RENDERING_TRANSITIONS,
    STAGE_TRANSITIONS,
    allowed_actions,
)


class StageResponse(BaseModel):
    """A room stage with the workspace it opens in."""

    id: UUID
    room_id: UUID
    type: StageType
    status: StageStatus
    assigned_to: UUID | None
    due_date: date | None
    started_at: datetime | None
    completed_at: datetime | None
    completed_by: UUID | None
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def workspace(self) -> str:
        return route_stage(self.type).value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def allowed_actions(self) -> list[str]:
        return [action.value for action in allowed_actions(STAGE_TRANSITIONS, self.status)]


class TeamMemberResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: TeamRole

    model_config = {"from_attributes": True}


class AssetResponse(BaseModel):
    """An uploaded file or link."""

    id: UUID
    title: str
    url: str
    asset_type: AssetType
    size_bytes: int | None
    mime_type: str | None
    description: str | None
    uploaded_by: UUID | None
    rendering_version_id: UUID | None
    stage_id: UUID | None
    section: str | None
    project_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class RenderingVersionResponse(BaseModel):
    """A rendering version.

    Attributes:
        display_name: Custom name when set, otherwise the label.
        revision: Token to send back as expected_revision.
        locked: Whether assets, name and notes are frozen.
        allowed_actions: Actions legal from the current status.
    """

    id: UUID
    stage_id: UUID
    room_id: UUID
    sequence: int
    label: str
    custom_name: str | None
    display_name: str
    status: RenderingVersionStatus
    created_by: UUID | None
    completed_at: datetime | None
    completed_by: UUID | None
    pushed_to_client_at: datetime | None
    source_file_path: str | None
    revision: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def locked(self) -> bool:
        return self.status in RENDERING_LOCKED_STATUSES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def allowed_actions(self) -> list[str]:
        return [action.value for action in allowed_actions(RENDERING_TRANSITIONS, self.status)]


class FloorplanVersionResponse(BaseModel):
    """A floorplan approval version."""

    id: UUID
    project_id: UUID
    sequence: int
    label: str
    status: FloorplanVersionStatus
    notes: str | None
    created_by: UUID | None
    principal_approved_at: datetime | None
    principal_approved_by: UUID | None
    sent_to_client_at: datetime | None
    sent_by: UUID | None
    follow_up_completed_at: datetime | None
    follow_up_notes: str | None
    revision_items: list[RevisionItem]
    source_file_path: str | None
    revision: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def locked(self) -> bool:
        return self.status in FLOORPLAN_LOCKED_STATUSES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def allowed_actions(self) -> list[str]:
        return [action.value for action in allowed_actions(FLOORPLAN_TRANSITIONS, self.status)]


class ApprovalAssetResponse(BaseModel):
    """An asset frozen into a client approval snapshot."""

    id: UUID
    asset_id: UUID | None
    title: str
    url: str
    asset_type: AssetType
    include_in_email: bool
    display_order: int

    model_config = {"from_attributes": True}


class ApprovalResponse(BaseModel):
    """A client approval snapshot and its assets."""

    id: UUID
    version_kind: str
    rendering_version_id: UUID | None
    floorplan_version_id: UUID | None
    stage_id: UUID | None
    project_id: UUID
    label: str
    decision: ApprovalDecision
    decided_at: datetime | None
    decided_by: UUID | None
    client_message: str | None
    sent_by: UUID | None
    created_at: datetime
    assets: list[ApprovalAssetResponse]

    @classmethod
    def from_snapshot(cls, snapshot: ApprovalSnapshot) -> ApprovalResponse:
        approval = snapshot.approval
        return cls(
            id=approval.id,
            version_kind=snapshot.version_kind,
            rendering_version_id=approval.rendering_version_id,
            floorplan_version_id=approval.floorplan_version_id,
            stage_id=approval.stage_id,
            project_id=approval.project_id,
            label=approval.label,
            decision=approval.decision,
            decided_at=approval.decided_at,
            decided_by=approval.decided_by,
            client_message=approval.client_message,
            sent_by=approval.sent_by,
            created_at=approval.created_at,
            assets=[ApprovalAssetResponse.model_validate(a) for a in snapshot.assets],
        )


class MentionResponse(BaseModel):
    user_id: UUID
    display_name: str

    model_config = {"from_attributes": True}


class CommentResponse(BaseModel):
    """A note or chat message.

    Deleted chat messages keep their place in the thread with empty content.
    ``html`` carries the text with mentions wrapped in highlight spans.
    """

    id: UUID
    target_type: CommentTarget
    target_id: UUID
    stage_id: UUID | None
    section: str | None
    parent_id: UUID | None
    author_id: UUID
    content: str
    html: str
    is_edited: bool
    is_deleted: bool
    created_at: datetime
    edited_at: datetime | None
    mentions: list[MentionResponse]
    replies: list[CommentResponse]

    @classmethod
    def from_view(cls, view: CommentView) -> CommentResponse:
        comment = view.comment
        return cls(
            id=comment.id,
            target_type=comment.target_type,
            target_id=comment.target_id,
            stage_id=comment.stage_id,
            section=comment.section,
            parent_id=comment.parent_id,
            author_id=comment.author_id,
            content=view.text,
            html=view.html,
            is_edited=comment.is_edited,
            is_deleted=comment.is_deleted,
            created_at=comment.created_at,
            edited_at=comment.edited_at,
            mentions=[MentionResponse.model_validate(m) for m in view.mentions],
            replies=[cls.from_view(reply) for reply in view.replies],
        )


class ActivityEntryResponse(BaseModel):
    """One timeline row with its rendered sentence."""

    id: int
    action: str
    actor_id: UUID | None
    entity_type: str
    entity_id: UUID
    details: dict[str, Any]
    sentence: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DeletionResponse(BaseModel):
    """What a version delete removed."""

    version_id: UUID
    label: str
    status: str
    was_pushed: bool
    had_client_approval: bool
    counts: dict[str, int]

    model_config = {"from_attributes": True}

    @classmethod
    def from_report(cls, report: DeletionReport) -> DeletionResponse:
        return cls.model_validate(report)
