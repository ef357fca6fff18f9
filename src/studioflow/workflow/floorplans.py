"""Floorplan approval version workflow.

Floorplan versions belong to a project. They collect drawings, are signed
off by the principal (READY_FOR_CLIENT), are sent to the client with the
attachments flagged include_in_email, and wait for a decision, optionally
passing through FOLLOW_UP_REQUIRED when the client has to be chased.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.config import WorkflowConfig
from studioflow.database.models.activity import ActivityLog
from studioflow.database.models.approval import ApprovalDecision, ClientApprovalVersion
from studioflow.database.models.asset import Asset, AssetType
from studioflow.database.models.floorplan import (
    FloorplanVersion,
    FloorplanVersionAsset,
    FloorplanVersionStatus,
)
from studioflow.database.queries.approval import create_client_approval, list_client_approvals
from studioflow.database.queries.asset import create_asset, get_asset
from studioflow.database.queries.floorplan import (
    create_floorplan_version,
    delete_floorplan_version,
    get_current_floorplan_version,
    get_floorplan_link,
    get_floorplan_version,
    link_floorplan_asset,
    list_floorplan_assets,
)
from studioflow.database.queries.project import get_project
from studioflow.errors import ConflictError, NotFoundError, ValidationError
from studioflow.workflow.activity import (
    AssetUpdateDetails,
    ClientDecisionDetails,
    CompleteDetails,
    CreateDetails,
    DeleteDetails,
    FollowUpDetails,
    PushDetails,
    ReopenDetails,
    RevisionProgressDetails,
    UpdateDetails,
    UploadDetails,
    record_activity,
)
from studioflow.workflow.decisions import (
    RevisionItemInput,
    normalize_revision_items,
    revision_progress,
    stamp_decision,
    validate_decision,
)
from studioflow.workflow.events import (
    ClientDecisionRecorded,
    DeletionReport,
    FloorplanSentToClient,
    OperationResult,
)
from studioflow.workflow.labels import allocate_floorplan_sequence, format_label
from studioflow.workflow.locks import ensure_revision, ensure_unlocked, touch_version
from studioflow.workflow.state_machine import FLOORPLAN_TRANSITIONS, VersionAction, next_status

logger = structlog.get_logger(__name__)


class FloorplanWorkflow:
    """Operations on floorplan approval versions.

    Attributes:
        config: Workflow configuration.
    """

    def __init__(self, config: WorkflowConfig | None = None) -> None:
        self.config = config or WorkflowConfig()
        self._logger = logger.bind(component="FloorplanWorkflow")

    async def get(self, session: AsyncSession, version_id: UUID) -> FloorplanVersion:
        """Load a floorplan version or raise NotFoundError."""
        version = await get_floorplan_version(session, version_id)
        if version is None:
            raise NotFoundError("Floorplan version", version_id)
        return version

    async def current(self, session: AsyncSession, project_id: UUID) -> FloorplanVersion | None:
        """The project's current floorplan version: the highest sequence."""
        return await get_current_floorplan_version(session, project_id)

    def transition(
        self,
        version: FloorplanVersion,
        action: VersionAction,
    ) -> FloorplanVersionStatus:
        """Move a version along FLOORPLAN_TRANSITIONS.

        Returns:
            The status the version was in before the move.

        Raises:
            InvalidTransitionError: If the action is not allowed.
        """
        current = version.status
        version.status = next_status(FLOORPLAN_TRANSITIONS, current, action, str(version.id))

        self._logger.info(
            "floorplan_version_transition",
            version_id=str(version.id),
            action=action.value,
            from_status=current.value,
            to_status=version.status.value,
        )
        return current

    async def _record(
        self,
        session: AsyncSession,
        version: FloorplanVersion,
        details: BaseModel,
        actor_id: UUID | None,
    ) -> ActivityLog:
        return await record_activity(
            session,
            details,
            entity_type="floorplan_version",
            entity_id=version.id,
            actor_id=actor_id,
            project_id=version.project_id,
        )

    async def create(
        self,
        session: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
        source_file_path: str | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Create the project's next floorplan version in DRAFT.

        Raises:
            NotFoundError: If the project does not exist.
        """
        if await get_project(session, project_id) is None:
            raise NotFoundError("Project", project_id)

        sequence = await allocate_floorplan_sequence(session, project_id)
        version = await create_floorplan_version(
            session,
            project_id=project_id,
            sequence=sequence,
            label=format_label(sequence),
            created_by=actor_id,
            notes=notes.strip() if notes and notes.strip() else None,
            source_file_path=source_file_path,
        )
        activity = await self._record(
            session,
            version,
            CreateDetails(entity="floorplan_version", label=version.label),
            actor_id,
        )
        return OperationResult(version, activity)

    async def upload_asset(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        title: str,
        url: str,
        asset_type: AssetType = AssetType.FLOORPLAN_PDF,
        size_bytes: int | None = None,
        mime_type: str | None = None,
        description: str | None = None,
        include_in_email: bool = True,
        expected_revision: int | None = None,
    ) -> OperationResult[Asset]:
        """Store a new drawing in the project library and attach it."""
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        ensure_unlocked(version, "upload assets")
        if not title.strip():
            raise ValidationError("Asset title must not be empty")

        asset = await create_asset(
            session,
            title=title.strip(),
            url=url,
            asset_type=asset_type,
            size_bytes=size_bytes,
            mime_type=mime_type,
            description=description,
            uploaded_by=actor_id,
            project_id=version.project_id,
        )
        await link_floorplan_asset(session, version.id, asset.id, include_in_email)
        touch_version(version)
        activity = await self._record(
            session,
            version,
            UploadDetails(
                asset_id=asset.id,
                title=asset.title,
                asset_type=asset.asset_type.value,
                label=version.label,
            ),
            actor_id,
        )
        return OperationResult(asset, activity)

    async def attach_asset(
        self,
        session: AsyncSession,
        version_id: UUID,
        asset_id: UUID,
        actor_id: UUID,
        include_in_email: bool = True,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersionAsset]:
        """Attach an existing project library asset to a version.

        Raises:
            ValidationError: If the asset belongs to another project.
            ConflictError: If the asset is already attached.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        ensure_unlocked(version, "attach assets")
        asset = await get_asset(session, asset_id)
        if asset is None:
            raise NotFoundError("Asset", asset_id)
        if asset.project_id != version.project_id:
            raise ValidationError(
                f"Asset {asset_id} is not in this project's floorplan library"
            )
        if await get_floorplan_link(session, version.id, asset.id) is not None:
            raise ConflictError(f"Asset {asset_id} is already attached to {version.label}")

        link = await link_floorplan_asset(session, version.id, asset.id, include_in_email)
        touch_version(version)
        activity = await self._record(
            session,
            version,
            UploadDetails(
                asset_id=asset.id,
                title=asset.title,
                asset_type=asset.asset_type.value,
                label=version.label,
            ),
            actor_id,
        )
        return OperationResult(link, activity)

    async def set_asset_inclusion(
        self,
        session: AsyncSession,
        version_id: UUID,
        asset_id: UUID,
        actor_id: UUID,
        include_in_email: bool | None = None,
        display_order: int | None = None,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersionAsset]:
        """Change whether an attachment goes out with the email, or its position.

        Raises:
            VersionLockedError: If the version has gone to the client.
            NotFoundError: If the asset is not attached to the version.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        ensure_unlocked(version, "change attachments")
        link = await get_floorplan_link(session, version.id, asset_id)
        if link is None:
            raise NotFoundError("Floorplan attachment", asset_id)
        if display_order is not None and display_order < 0:
            raise ValidationError("display_order must not be negative")

        fields = []
        if include_in_email is not None and include_in_email != link.include_in_email:
            link.include_in_email = include_in_email
            fields.append("include_in_email")
        if display_order is not None and display_order != link.display_order:
            link.display_order = display_order
            fields.append("display_order")
        if not fields:
            return OperationResult(link)

        touch_version(version)
        await session.flush()
        asset = await get_asset(session, asset_id)
        activity = await self._record(
            session,
            version,
            AssetUpdateDetails(asset_id=asset_id, title=asset.title, fields=fields),
            actor_id,
        )
        return OperationResult(link, activity)

    async def complete(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Principal sign-off: DRAFT to READY_FOR_CLIENT."""
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        self.transition(version, VersionAction.COMPLETE)
        version.principal_approved_at = datetime.now(timezone.utc)
        version.principal_approved_by = actor_id

        activity = await self._record(
            session, version, CompleteDetails(label=version.label), actor_id
        )
        return OperationResult(version, activity)

    async def reopen(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Return a READY_FOR_CLIENT or REVISION_REQUESTED version to DRAFT.

        Principal sign-off is cleared; requested revision items are kept so
        the drafter can work through them.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        previous = self.transition(version, VersionAction.REOPEN)
        version.principal_approved_at = None
        version.principal_approved_by = None

        activity = await self._record(
            session,
            version,
            ReopenDetails(label=version.label, from_status=previous.value),
            actor_id,
        )
        return OperationResult(version, activity)

    async def send_to_client(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        mark_only: bool = False,
        expected_revision: int | None = None,
    ) -> OperationResult[ClientApprovalVersion]:
        """Send a READY_FOR_CLIENT version to the client.

        The snapshot holds the attachments flagged include_in_email. With
        mark_only the email was sent outside Studioflow and the event tells
        the email integration not to send it again.

        Raises:
            InvalidTransitionError: If the version is not READY_FOR_CLIENT.
            ValidationError: If no attachment is flagged for the email.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        next_status(
            FLOORPLAN_TRANSITIONS, version.status, VersionAction.PUSH_TO_CLIENT, str(version.id)
        )

        included = [
            asset for link, asset in await list_floorplan_assets(session, version.id)
            if link.include_in_email
        ]
        if not included:
            raise ValidationError(
                f"{version.label} has no attachments selected for the client email"
            )

        approval, _ = await create_client_approval(
            session,
            project_id=version.project_id,
            label=version.label,
            assets=included,
            sent_by=actor_id,
            floorplan_version_id=version.id,
        )
        self.transition(version, VersionAction.PUSH_TO_CLIENT)
        version.sent_to_client_at = datetime.now(timezone.utc)
        version.sent_by = actor_id

        activity = await self._record(
            session,
            version,
            PushDetails(
                label=version.label,
                approval_id=approval.id,
                asset_ids=[asset.id for asset in included],
                mark_only=mark_only,
            ),
            actor_id,
        )
        event = FloorplanSentToClient(
            version_id=version.id,
            approval_id=approval.id,
            project_id=version.project_id,
            label=version.label,
            asset_ids=tuple(asset.id for asset in included),
            mark_only=mark_only,
            actor_id=actor_id,
        )
        return OperationResult(approval, activity, [event])

    async def record_follow_up(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Log that the client was chased for an answer."""
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        self.transition(version, VersionAction.FOLLOW_UP)
        cleaned = notes.strip() if notes and notes.strip() else None
        version.follow_up_completed_at = datetime.now(timezone.utc)
        version.follow_up_notes = cleaned

        activity = await self._record(
            session, version, FollowUpDetails(label=version.label, notes=cleaned), actor_id
        )
        return OperationResult(version, activity)

    async def record_client_decision(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        decision: ApprovalDecision | str,
        message: str | None = None,
        revision_items: Sequence[RevisionItemInput] | None = None,
        approval_id: UUID | None = None,
    ) -> OperationResult[ClientApprovalVersion]:
        """Record the client's answer on one of the version's snapshots.

        Without approval_id the newest snapshot is decided. A revision
        request needs a message or at least one revision item; the items
        replace the version's revision list.

        Raises:
            InvalidTransitionError: If the version is not waiting on the client.
            ConflictError: If there is no pending snapshot to decide.
        """
        parsed, cleaned, items = validate_decision(
            decision, message, revision_items, allow_items_instead_of_message=True
        )
        version = await self.get(session, version_id)
        action = (
            VersionAction.APPROVE
            if parsed is ApprovalDecision.APPROVED
            else VersionAction.REQUEST_REVISION
        )
        approvals = await list_client_approvals(session, floorplan_version_id=version.id)
        if approval_id is None:
            pending = approvals[0] if approvals else None
        else:
            pending = next(
                (approval for approval in approvals if approval.id == approval_id), None
            )
        if pending is None:
            raise ConflictError(f"{version.label} has no snapshot awaiting a decision")

        stamp_decision(pending, parsed, cleaned, actor_id)
        self.transition(version, action)
        if parsed is ApprovalDecision.REVISION_REQUESTED:
            version.revision_items = [item.model_dump() for item in items]

        activity = await self._record(
            session,
            version,
            ClientDecisionDetails(
                label=version.label,
                approval_id=pending.id,
                decision=parsed.value,
                message=cleaned,
                revision_items=[item.text for item in items],
            ),
            actor_id,
        )
        event = ClientDecisionRecorded(
            approval_id=pending.id,
            decision=parsed.value,
            message=cleaned,
            version_kind="floorplan",
            version_id=version.id,
            project_id=version.project_id,
            stage_id=None,
            room_id=None,
            actor_id=actor_id,
        )
        return OperationResult(pending, activity, [event])

    async def update_notes(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        notes: str | None,
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Replace the internal notes. Notes stay editable in every status."""
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        version.notes = notes.strip() if notes and notes.strip() else None

        activity = await self._record(
            session,
            version,
            UpdateDetails(entity="floorplan_version", label=version.label, fields=["notes"]),
            actor_id,
        )
        return OperationResult(version, activity)

    async def update_revision_items(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        items: Sequence[RevisionItemInput],
        expected_revision: int | None = None,
    ) -> OperationResult[FloorplanVersion]:
        """Replace the itemised revision list, including which items are done.

        Args:
            session: Active async database session.
            version_id: The floorplan version.
            actor_id: Who is updating the list.
            items: The full list; strings are taken as open items.
            expected_revision: Optional optimistic concurrency token.

        Raises:
            ValidationError: If the client already approved the version or an
                item is malformed.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        if version.status is FloorplanVersionStatus.CLIENT_APPROVED:
            raise ValidationError(f"{version.label} is approved; revision items are closed")
        cleaned = normalize_revision_items(items)
        version.revision_items = [item.model_dump() for item in cleaned]
        completed, total = revision_progress(cleaned)

        activity = await self._record(
            session,
            version,
            RevisionProgressDetails(label=version.label, completed=completed, total=total),
            actor_id,
        )
        return OperationResult(version, activity)

    async def delete(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
    ) -> OperationResult[DeletionReport]:
        """Delete a version in any status with its notes, snapshots and drawings."""
        version = await self.get(session, version_id)
        approvals = await list_client_approvals(session, floorplan_version_id=version.id)
        label = version.label
        status = version.status.value
        project_id = version.project_id
        was_pushed = version.sent_to_client_at is not None
        had_client_approval = any(
            approval.decision is ApprovalDecision.APPROVED for approval in approvals
        )

        counts = await delete_floorplan_version(session, version)
        activity = await record_activity(
            session,
            DeleteDetails(
                entity="floorplan_version",
                label=label,
                status=status,
                was_pushed=was_pushed,
                had_client_approval=had_client_approval,
                asset_count=counts["assets"],
            ),
            entity_type="floorplan_version",
            entity_id=version_id,
            actor_id=actor_id,
            project_id=project_id,
        )
        report = DeletionReport(
            version_id=version_id,
            label=label,
            status=status,
            was_pushed=was_pushed,
            had_client_approval=had_client_approval,
            counts=counts,
        )
        return OperationResult(report, activity)
