"""Rendering version workflow.

Rendering versions live in a room's THREE_D stage and move through
RENDERING_TRANSITIONS. Every public operation loads the version, checks the
lock and revision rules, applies the change, appends exactly one activity
entry and returns an OperationResult. Nothing here commits; callers wrap
operations in session_scope().
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.config import WorkflowConfig
from studioflow.database.models.approval import ApprovalDecision, ClientApprovalVersion
from studioflow.database.models.asset import Asset, AssetType
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.rendering import RenderingVersion, RenderingVersionStatus
from studioflow.database.models.stage import StageType
from studioflow.database.queries.approval import (
    create_client_approval,
    get_client_approval,
    list_client_approvals,
)
from studioflow.database.queries.asset import create_asset, get_assets
from studioflow.database.queries.comment import create_comment
from studioflow.database.queries.project import get_room
from studioflow.database.queries.rendering import (
    create_rendering_version,
    delete_rendering_version,
    get_rendering_version,
)
from studioflow.database.queries.stage import get_room_stage, get_stage
from studioflow.errors import NotFoundError, ValidationError
from studioflow.workflow.activity import (
    ClientDecisionDetails,
    CompleteDetails,
    CreateDetails,
    DeleteDetails,
    PushDetails,
    RenameDetails,
    ReopenDetails,
    UploadDetails,
    record_activity,
)
from studioflow.workflow.decisions import stamp_decision, validate_decision
from studioflow.workflow.events import (
    ClientDecisionRecorded,
    DeletionReport,
    OperationResult,
    VersionPushedToClient,
)
from studioflow.workflow.labels import allocate_rendering_sequence, format_label
from studioflow.workflow.locks import ensure_revision, ensure_unlocked, touch_version
from studioflow.workflow.state_machine import RENDERING_TRANSITIONS, VersionAction, next_status

logger = structlog.get_logger(__name__)

REVISION_NOTE_PREFIX = "REVISION REQUESTED: "


class RenderingWorkflow:
    """Operations on rendering versions.

    Attributes:
        config: Workflow configuration (custom name limits).
    """

    def __init__(self, config: WorkflowConfig | None = None) -> None:
        self.config = config or WorkflowConfig()
        self._logger = logger.bind(component="RenderingWorkflow")

    async def get(self, session: AsyncSession, version_id: UUID) -> RenderingVersion:
        """Load a rendering version or raise NotFoundError."""
        version = await get_rendering_version(session, version_id)
        if version is None:
            raise NotFoundError("Rendering version", version_id)
        return version

    def transition(
        self,
        version: RenderingVersion,
        action: VersionAction,
        actor_id: UUID | None,
    ) -> RenderingVersionStatus:
        """Move a version along RENDERING_TRANSITIONS.

        Args:
            version: The version to move.
            action: Requested action.
            actor_id: Who is acting.

        Returns:
            The status the version was in before the move.

        Raises:
            InvalidTransitionError: If the action is not allowed.
        """
        current = version.status
        version.status = next_status(RENDERING_TRANSITIONS, current, action, str(version.id))
        version.updated_by = actor_id

        self._logger.info(
            "rendering_version_transition",
            version_id=str(version.id),
            action=action.value,
            from_status=current.value,
            to_status=version.status.value,
        )
        return current

    def _clean_name(self, custom_name: str | None) -> str | None:
        name = custom_name.strip() if custom_name else ""
        if len(name) > self.config.max_custom_name_length:
            raise ValidationError(
                f"Custom name is longer than {self.config.max_custom_name_length} characters"
            )
        return name or None

    async def _project_id(self, session: AsyncSession, room_id: UUID) -> UUID:
        room = await get_room(session, room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room.project_id

    async def create(
        self,
        session: AsyncSession,
        stage_id: UUID,
        actor_id: UUID,
        custom_name: str | None = None,
        source_file_path: str | None = None,
    ) -> OperationResult[RenderingVersion]:
        """Create the next rendering version of a THREE_D stage.

        Args:
            session: Active async database session.
            stage_id: The THREE_D stage.
            actor_id: Creating team member.
            custom_name: Optional custom name.
            source_file_path: Optional cloud drive path of the working file.

        Returns:
            Result holding the new IN_PROGRESS version.

        Raises:
            NotFoundError: If the stage does not exist.
            ValidationError: If the stage is not a THREE_D stage.
        """
        stage = await get_stage(session, stage_id)
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        if stage.type is not StageType.THREE_D:
            raise ValidationError(
                f"Rendering versions belong to THREE_D stages, not {stage.type.value}",
                stage_id=str(stage_id),
            )

        name = self._clean_name(custom_name)
        sequence = await allocate_rendering_sequence(session, stage.id)
        version = await create_rendering_version(
            session,
            stage_id=stage.id,
            room_id=stage.room_id,
            sequence=sequence,
            label=format_label(sequence),
            created_by=actor_id,
            custom_name=name,
            source_file_path=source_file_path,
        )
        activity = await record_activity(
            session,
            CreateDetails(entity="rendering_version", label=version.label, name=name),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=stage.id,
            project_id=await self._project_id(session, stage.room_id),
        )
        return OperationResult(version, activity)

    async def upload_asset(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        title: str,
        url: str,
        asset_type: AssetType = AssetType.RENDER,
        size_bytes: int | None = None,
        mime_type: str | None = None,
        description: str | None = None,
        expected_revision: int | None = None,
    ) -> OperationResult[Asset]:
        """Attach an uploaded file to an unlocked version.

        Raises:
            VersionLockedError: If the version has gone to the client.
        """
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
            rendering_version_id=version.id,
        )
        touch_version(version, actor_id)
        activity = await record_activity(
            session,
            UploadDetails(
                asset_id=asset.id,
                title=asset.title,
                asset_type=asset.asset_type.value,
                label=version.display_name,
            ),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=await self._project_id(session, version.room_id),
        )
        return OperationResult(asset, activity)

    async def complete(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        expected_revision: int | None = None,
    ) -> OperationResult[RenderingVersion]:
        """Sign off an IN_PROGRESS version."""
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        self.transition(version, VersionAction.COMPLETE, actor_id)
        version.completed_at = datetime.now(timezone.utc)
        version.completed_by = actor_id

        activity = await record_activity(
            session,
            CompleteDetails(label=version.display_name),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=await self._project_id(session, version.room_id),
        )
        return OperationResult(version, activity)

    async def reopen(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        expected_revision: int | None = None,
    ) -> OperationResult[RenderingVersion]:
        """Return a COMPLETED or REVISION_REQUESTED version to IN_PROGRESS.

        Completion stamps are cleared. A version that is waiting on the
        client (PUSHED_TO_CLIENT) or was approved cannot be reopened.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        previous = self.transition(version, VersionAction.REOPEN, actor_id)
        version.completed_at = None
        version.completed_by = None

        activity = await record_activity(
            session,
            ReopenDetails(label=version.display_name, from_status=previous.value),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=await self._project_id(session, version.room_id),
        )
        return OperationResult(version, activity)

    async def rename(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        custom_name: str | None,
        expected_revision: int | None = None,
    ) -> OperationResult[RenderingVersion]:
        """Set or clear a version's custom name.

        An empty or whitespace-only name clears it, so the label shows again.
        Renaming an unchanged name is a no-op without an activity entry.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        ensure_unlocked(version, "rename")
        name = self._clean_name(custom_name)
        if name == version.custom_name:
            return OperationResult(version)

        old_name = version.custom_name
        version.custom_name = name
        version.updated_by = actor_id
        activity = await record_activity(
            session,
            RenameDetails(label=version.label, old_name=old_name, new_name=name),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=await self._project_id(session, version.room_id),
        )
        return OperationResult(version, activity)

    async def push_to_client(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
        asset_ids: Sequence[UUID],
        expected_revision: int | None = None,
    ) -> OperationResult[ClientApprovalVersion]:
        """Send a completed version to the client.

        A ClientApprovalVersion snapshot is created holding exactly the
        selected assets; unselected assets stay on the version.

        Args:
            session: Active async database session.
            version_id: The COMPLETED version.
            actor_id: Who is pushing.
            asset_ids: Selected assets of the version, in display order.
            expected_revision: Optional optimistic concurrency token.

        Returns:
            Result holding the new snapshot and a VersionPushedToClient event.

        Raises:
            InvalidTransitionError: If the version is not COMPLETED.
            ValidationError: If the selection is empty or contains foreign assets.
        """
        version = await self.get(session, version_id)
        ensure_revision(version, expected_revision)
        next_status(
            RENDERING_TRANSITIONS, version.status, VersionAction.PUSH_TO_CLIENT, str(version.id)
        )

        selected = list(dict.fromkeys(asset_ids))
        if not selected:
            raise ValidationError("Select at least one asset to send to the client")
        assets = await get_assets(session, selected)
        if len(assets) != len(selected) or any(
            asset.rendering_version_id != version.id for asset in assets
        ):
            raise ValidationError(
                f"Selected assets must belong to version {version.label}",
                version_id=str(version.id),
            )

        project_id = await self._project_id(session, version.room_id)
        approval_stage = await get_room_stage(session, version.room_id, StageType.CLIENT_APPROVAL)
        approval, _ = await create_client_approval(
            session,
            project_id=project_id,
            label=version.label,
            assets=assets,
            sent_by=actor_id,
            rendering_version_id=version.id,
            stage_id=approval_stage.id if approval_stage else None,
        )

        self.transition(version, VersionAction.PUSH_TO_CLIENT, actor_id)
        version.pushed_to_client_at = datetime.now(timezone.utc)

        activity = await record_activity(
            session,
            PushDetails(
                label=version.display_name,
                approval_id=approval.id,
                asset_ids=[asset.id for asset in assets],
            ),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=project_id,
        )
        event = VersionPushedToClient(
            version_id=version.id,
            approval_id=approval.id,
            stage_id=version.stage_id,
            room_id=version.room_id,
            project_id=project_id,
            label=version.label,
            asset_ids=tuple(asset.id for asset in assets),
            actor_id=actor_id,
        )
        return OperationResult(approval, activity, [event])

    async def record_client_decision(
        self,
        session: AsyncSession,
        approval_id: UUID,
        actor_id: UUID,
        decision: ApprovalDecision | str,
        message: str | None = None,
    ) -> OperationResult[ClientApprovalVersion]:
        """Record the client's answer on a rendering snapshot.

        APPROVED moves the version to CLIENT_APPROVED. REVISION_REQUESTED
        needs a non-blank message, moves the version to REVISION_REQUESTED
        and leaves the message as a note on the version.

        Raises:
            ValidationError: Unknown decision or a revision request without a message.
            ConflictError: The snapshot already holds a decision.
        """
        approval = await get_client_approval(session, approval_id)
        if approval is None:
            raise NotFoundError("Client approval", approval_id)
        if approval.rendering_version_id is None:
            raise ValidationError(
                f"Client approval {approval_id} is not for a rendering version"
            )
        parsed, cleaned, _ = validate_decision(decision, message)
        version = await self.get(session, approval.rendering_version_id)

        stamp_decision(approval, parsed, cleaned, actor_id)
        action = (
            VersionAction.APPROVE
            if parsed is ApprovalDecision.APPROVED
            else VersionAction.REQUEST_REVISION
        )
        self.transition(version, action, actor_id)

        if parsed is ApprovalDecision.REVISION_REQUESTED:
            await create_comment(
                session,
                target_type=CommentTarget.RENDERING_VERSION,
                target_id=version.id,
                author_id=actor_id,
                content=f"{REVISION_NOTE_PREFIX}{cleaned}",
                stage_id=version.stage_id,
            )

        project_id = await self._project_id(session, version.room_id)
        activity = await record_activity(
            session,
            ClientDecisionDetails(
                label=version.display_name,
                approval_id=approval.id,
                decision=parsed.value,
                message=cleaned,
            ),
            entity_type="rendering_version",
            entity_id=version.id,
            actor_id=actor_id,
            stage_id=version.stage_id,
            project_id=project_id,
        )
        event = ClientDecisionRecorded(
            approval_id=approval.id,
            decision=parsed.value,
            message=cleaned,
            version_kind="rendering",
            version_id=version.id,
            project_id=project_id,
            stage_id=version.stage_id,
            room_id=version.room_id,
            actor_id=actor_id,
        )
        return OperationResult(approval, activity, [event])

    async def delete(
        self,
        session: AsyncSession,
        version_id: UUID,
        actor_id: UUID,
    ) -> OperationResult[DeletionReport]:
        """Delete a version in any status, with its assets, notes and snapshots.

        The report says whether the version had been pushed or approved so
        the caller can surface the stronger warning.
        """
        version = await self.get(session, version_id)
        approvals = await list_client_approvals(session, rendering_version_id=version.id)
        report_label = version.display_name
        status = version.status.value
        was_pushed = version.pushed_to_client_at is not None
        had_client_approval = any(
            approval.decision is ApprovalDecision.APPROVED for approval in approvals
        )
        stage_id = version.stage_id
        project_id = await self._project_id(session, version.room_id)

        counts = await delete_rendering_version(session, version)
        activity = await record_activity(
            session,
            DeleteDetails(
                entity="rendering_version",
                label=report_label,
                status=status,
                was_pushed=was_pushed,
                had_client_approval=had_client_approval,
                asset_count=counts["assets"],
            ),
            entity_type="rendering_version",
            entity_id=version_id,
            actor_id=actor_id,
            stage_id=stage_id,
            project_id=project_id,
        )
        report = DeletionReport(
            version_id=version_id,
            label=report_label,
            status=status,
            was_pushed=was_pushed,
            had_client_approval=had_client_approval,
            counts=counts,
        )
        return OperationResult(report, activity)
