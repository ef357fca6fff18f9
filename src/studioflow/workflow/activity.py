"""Activity log emission and timeline rendering.

Each action tag has exactly one detail model. Details are validated before
insertion, stored as JSON, and parsed back through the same discriminated
union when the timeline is rendered, so every stored entry can be turned
into a human-readable sentence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.activity import ActivityAction, ActivityLog
from studioflow.database.queries.activity import insert_activity, list_activity

logger = structlog.get_logger(__name__)

ENTITY_LABELS = {
    "project": "project",
    "room": "room",
    "stage": "stage",
    "rendering_version": "rendering version",
    "floorplan_version": "floorplan version",
    "asset": "asset",
    "comment": "comment",
    "team_member": "team member",
}

STAGE_LABELS = {
    "DESIGN": "Design",
    "THREE_D": "3D Rendering",
    "CLIENT_APPROVAL": "Client Approval",
    "DRAWINGS": "Drawings",
    "FFE": "FFE",
}


def _humanize(value: str) -> str:
    return value.replace("_", " ").lower()


class _Details(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def describe(self) -> str:  # pragma: no cover - overridden by every variant
        raise NotImplementedError


class CreateDetails(_Details):
    action: Literal["CREATE"] = "CREATE"
    entity: str
    label: str | None = None
    name: str | None = None

    def describe(self) -> str:
        noun = ENTITY_LABELS.get(self.entity, self.entity)
        subject = self.name or self.label
        return f"Created {noun} {subject}" if subject else f"Created {noun}"


class UploadDetails(_Details):
    action: Literal["UPLOAD"] = "UPLOAD"
    asset_id: UUID
    title: str
    asset_type: str
    label: str | None = None

    def describe(self) -> str:
        if self.label:
            return f"Uploaded '{self.title}' to {self.label}"
        return f"Uploaded '{self.title}'"


class CompleteDetails(_Details):
    action: Literal["COMPLETE"] = "COMPLETE"
    label: str

    def describe(self) -> str:
        return f"Marked {self.label} as complete"


class ReopenDetails(_Details):
    action: Literal["REOPEN"] = "REOPEN"
    label: str
    from_status: str

    def describe(self) -> str:
        return f"Reopened {self.label} (was {_humanize(self.from_status)})"


class PushDetails(_Details):
    action: Literal["PUSH_TO_CLIENT"] = "PUSH_TO_CLIENT"
    label: str
    approval_id: UUID
    asset_ids: list[UUID]
    mark_only: bool = False

    def describe(self) -> str:
        count = len(self.asset_ids)
        noun = "asset" if count == 1 else "assets"
        if self.mark_only:
            return f"Marked {self.label} as sent to client with {count} {noun}"
        return f"Sent {self.label} to client with {count} {noun}"


class ClientDecisionDetails(_Details):
    action: Literal["CLIENT_DECISION"] = "CLIENT_DECISION"
    label: str
    approval_id: UUID
    decision: Literal["APPROVED", "REVISION_REQUESTED"]
    message: str | None = None
    revision_items: list[str] = Field(default_factory=list)

    def describe(self) -> str:
        if self.decision == "APPROVED":
            return f"Client approved {self.label}"
        sentence = f"Client requested revisions on {self.label}"
        if self.message:
            sentence += f": {self.message}"
        return sentence


class DeleteDetails(_Details):
    action: Literal["DELETE"] = "DELETE"
    entity: str
    label: str
    status: str
    was_pushed: bool = False
    had_client_approval: bool = False
    asset_count: int = 0

    def describe(self) -> str:
        noun = ENTITY_LABELS.get(self.entity, self.entity)
        sentence = f"Deleted {noun} {self.label}"
        if self.was_pushed:
            sentence += " (it had been sent to the client)"
        return sentence


class RenameDetails(_Details):
    action: Literal["RENAME"] = "RENAME"
    label: str
    old_name: str | None = None
    new_name: str | None = None

    def describe(self) -> str:
        if self.new_name:
            return f"Renamed {self.old_name or self.label} to {self.new_name}"
        return f"Reset the name of {self.label}"


class UpdateDetails(_Details):
    action: Literal["UPDATE"] = "UPDATE"
    entity: str
    label: str | None = None
    fields: list[str]

    def describe(self) -> str:
        noun = ENTITY_LABELS.get(self.entity, self.entity)
        target = f"{noun} {self.label}" if self.label else noun
        return f"Updated {', '.join(self.fields)} on {target}"


class FollowUpDetails(_Details):
    action: Literal["FOLLOW_UP"] = "FOLLOW_UP"
    label: str
    notes: str | None = None

    def describe(self) -> str:
        sentence = f"Followed up with client on {self.label}"
        if self.notes:
            sentence += f": {self.notes}"
        return sentence


class RevisionProgressDetails(_Details):
    action: Literal["REVISION_PROGRESS"] = "REVISION_PROGRESS"
    label: str
    completed: int
    total: int

    def describe(self) -> str:
        return (
            f"Updated revision progress on {self.label}: "
            f"{self.completed}/{self.total} completed"
        )


class AssetUpdateDetails(_Details):
    action: Literal["ASSET_UPDATE"] = "ASSET_UPDATE"
    asset_id: UUID
    title: str
    fields: list[str]

    def describe(self) -> str:
        return f"Updated {', '.join(self.fields)} of '{self.title}'"


class AssetDeleteDetails(_Details):
    action: Literal["ASSET_DELETE"] = "ASSET_DELETE"
    asset_id: UUID
    title: str

    def describe(self) -> str:
        return f"Removed '{self.title}'"


class CommentDetails(_Details):
    action: Literal["COMMENT"] = "COMMENT"
    comment_id: UUID
    target_type: str
    change: Literal["posted", "edited", "deleted"] = "posted"
    mention_ids: list[UUID] = Field(default_factory=list)

    def describe(self) -> str:
        noun = "message" if self.target_type == "CHAT" else "note"
        sentence = f"{self.change.capitalize()} a {noun}"
        if self.mention_ids:
            count = len(self.mention_ids)
            sentence += f" mentioning {count} {'person' if count == 1 else 'people'}"
        return sentence


class StageStatusDetails(_Details):
    action: Literal["STAGE_STATUS"] = "STAGE_STATUS"
    stage_type: str
    from_status: str
    to_status: str
    automatic: bool = False

    def describe(self) -> str:
        stage = STAGE_LABELS.get(self.stage_type, self.stage_type)
        sentence = (
            f"Moved {stage} from {_humanize(self.from_status)} to {_humanize(self.to_status)}"
        )
        if self.automatic:
            sentence += " automatically"
        return sentence


ActivityDetails = Annotated[
    Union[
        CreateDetails,
        UploadDetails,
        CompleteDetails,
        ReopenDetails,
        PushDetails,
        ClientDecisionDetails,
        DeleteDetails,
        RenameDetails,
        UpdateDetails,
        FollowUpDetails,
        RevisionProgressDetails,
        AssetUpdateDetails,
        AssetDeleteDetails,
        CommentDetails,
        StageStatusDetails,
    ],
    Field(discriminator="action"),
]

_details_adapter: TypeAdapter[Any] = TypeAdapter(ActivityDetails)


def parse_details(payload: dict[str, Any]) -> _Details:
    """Validate a stored payload back into its detail model.

    Raises:
        pydantic.ValidationError: If the payload does not match any variant.
    """
    return _details_adapter.validate_python(payload)


async def record_activity(
    session: AsyncSession,
    details: _Details,
    entity_type: str,
    entity_id: UUID,
    actor_id: UUID | None,
    stage_id: UUID | None = None,
    project_id: UUID | None = None,
) -> ActivityLog:
    """Append one activity entry for a state-changing action.

    Args:
        session: Active async database session.
        details: Detail model for the action tag.
        entity_type: Kind of entity, e.g. "rendering_version".
        entity_id: Identifier of the entity.
        actor_id: Acting user, None for automatic changes.
        stage_id: Stage timeline to file the entry under.
        project_id: Project timeline to file the entry under.

    Returns:
        The persisted ActivityLog row.
    """
    payload = details.model_dump(mode="json")
    # Round-trip through the union so only known shapes are ever stored
    parse_details(payload)
    entry = await insert_activity(
        session,
        action=ActivityAction(payload["action"]),
        entity_type=entity_type,
        entity_id=entity_id,
        details=payload,
        actor_id=actor_id,
        stage_id=stage_id,
        project_id=project_id,
    )
    logger.info(
        "activity_recorded",
        action=payload["action"],
        entity_type=entity_type,
        entity_id=str(entity_id),
    )
    return entry


def describe(entry: ActivityLog) -> str:
    """Render an activity entry as a timeline sentence."""
    try:
        details = parse_details(entry.details)
    except PydanticValidationError:
        logger.warning(
            "activity_details_unreadable",
            activity_id=entry.id,
            action=entry.action.value,
        )
        noun = ENTITY_LABELS.get(entry.entity_type, entry.entity_type)
        return f"{_humanize(entry.action.value).capitalize()} {noun}"
    return details.describe()


@dataclass(frozen=True)
class TimelineEntry:
    """One rendered timeline row."""

    id: int
    action: str
    actor_id: UUID | None
    entity_type: str
    entity_id: UUID
    details: dict[str, Any]
    sentence: str
    created_at: datetime


async def timeline(
    session: AsyncSession,
    stage_id: UUID | None = None,
    project_id: UUID | None = None,
    entity_id: UUID | None = None,
    limit: int = 100,
) -> list[TimelineEntry]:
    """Build a newest-first timeline for a stage, project or entity.

    Args:
        session: Active async database session.
        stage_id: Filter to one stage.
        project_id: Filter to one project.
        entity_id: Filter to one entity.
        limit: Maximum number of rows.

    Returns:
        Timeline rows with rendered sentences.
    """
    entries = await list_activity(
        session,
        stage_id=stage_id,
        project_id=project_id,
        entity_id=entity_id,
        limit=limit,
    )
    return [
        TimelineEntry(
            id=entry.id,
            action=entry.action.value,
            actor_id=entry.actor_id,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            details=entry.details,
            sentence=describe(entry),
            created_at=entry.created_at,
        )
        for entry in entries
    ]
