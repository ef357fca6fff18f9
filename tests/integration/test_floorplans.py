"""Integration tests for the floorplan approval workflow."""

from __future__ import annotations

import uuid

import pytest

from studioflow.database.connection import session_scope
from studioflow.database.models.activity import ActivityAction
from studioflow.database.models.approval import ApprovalDecision
from studioflow.database.models.asset import AssetType
from studioflow.database.models.floorplan import FloorplanVersionStatus
from studioflow.database.queries.approval import list_approval_assets
from studioflow.database.queries.asset import get_asset
from studioflow.database.queries.floorplan import list_floorplan_assets
from studioflow.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StaleVersionError,
    ValidationError,
    VersionLockedError,
)
from studioflow.workflow.events import FloorplanSentToClient
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.projects import start_project


@pytest.fixture
def workflow() -> FloorplanWorkflow:
    return FloorplanWorkflow()


async def _ready_version(session_factory, workflow, studio):
    """A READY_FOR_CLIENT version with one included and one excluded drawing."""
    async with session_scope(session_factory) as session:
        version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
        plan = await workflow.upload_asset(
            session, version.id, studio.sammy_id, "Ground floor", "https://x.example.com/gf.pdf"
        )
        cad = await workflow.upload_asset(
            session,
            version.id,
            studio.sammy_id,
            "Ground floor CAD",
            "https://x.example.com/gf.dwg",
            asset_type=AssetType.FLOORPLAN_CAD,
            include_in_email=False,
        )
        await workflow.complete(session, version.id, studio.sammy_id)
    return version.id, plan.value.id, cad.value.id


async def _sent_version(session_factory, workflow, studio):
    version_id, plan_id, cad_id = await _ready_version(session_factory, workflow, studio)
    async with session_scope(session_factory) as session:
        result = await workflow.send_to_client(session, version_id, studio.sammy_id)
    return version_id, result.value.id


@pytest.mark.asyncio
class TestVersions:
    async def test_create_in_draft_with_project_labels(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            first = await workflow.create(
                session, studio.project_id, studio.sammy_id, notes="  first pass "
            )
            second = await workflow.create(session, studio.project_id, studio.sammy_id)
            current = await workflow.current(session, studio.project_id)

        assert first.value.label == "v1"
        assert first.value.notes == "first pass"
        assert first.value.status is FloorplanVersionStatus.DRAFT
        assert second.value.label == "v2"
        assert current.id == second.value.id

    async def test_unknown_project(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            with pytest.raises(NotFoundError):
                await workflow.create(session, uuid.uuid4(), studio.sammy_id)

    async def test_complete_and_reopen_track_principal_sign_off(
        self, session_factory, studio, workflow
    ):
        version_id, _, _ = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            version = await workflow.get(session, version_id)
            assert version.status is FloorplanVersionStatus.READY_FOR_CLIENT
            assert version.principal_approved_by == studio.sammy_id

            reopened = await workflow.reopen(session, version_id, studio.sammy_id)

        assert reopened.value.status is FloorplanVersionStatus.DRAFT
        assert reopened.value.principal_approved_at is None

    async def test_draft_cannot_be_reopened(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            with pytest.raises(InvalidTransitionError):
                await workflow.reopen(session, version.id, studio.sammy_id)


@pytest.mark.asyncio
class TestAttachments:
    async def test_upload_links_into_project_library(self, session_factory, studio, workflow):
        version_id, plan_id, cad_id = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            links = await list_floorplan_assets(session, version_id)
            plan = await get_asset(session, plan_id)

        assert [(asset.id, link.include_in_email) for link, asset in links] == [
            (plan_id, True),
            (cad_id, False),
        ]
        assert [link.display_order for link, _ in links] == [0, 1]
        assert plan.project_id == studio.project_id
        assert plan.rendering_version_id is None

    async def test_attach_existing_asset_to_next_version(self, session_factory, studio, workflow):
        _, plan_id, _ = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            v2 = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            link = await workflow.attach_asset(session, v2.id, plan_id, studio.sammy_id)
            assert link.value.include_in_email is True

            with pytest.raises(ConflictError, match="already attached"):
                await workflow.attach_asset(session, v2.id, plan_id, studio.sammy_id)

    async def test_attach_asset_from_other_project(self, session_factory, studio, workflow):
        _, plan_id, _ = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            other = (await start_project(session, studio.sammy_id, "Other House")).value
            version = (await workflow.create(session, other.id, studio.sammy_id)).value
            with pytest.raises(ValidationError, match="floorplan library"):
                await workflow.attach_asset(session, version.id, plan_id, studio.sammy_id)

    async def test_set_inclusion_and_order(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            asset = await workflow.upload_asset(
                session, version.id, studio.sammy_id, "Plan", "https://x.example.com/p.pdf"
            )

            changed = await workflow.set_asset_inclusion(
                session,
                version.id,
                asset.value.id,
                studio.sammy_id,
                include_in_email=False,
                display_order=4,
            )
            unchanged = await workflow.set_asset_inclusion(
                session, version.id, asset.value.id, studio.sammy_id, include_in_email=False
            )

        assert changed.value.include_in_email is False
        assert changed.value.display_order == 4
        assert changed.activity.details["fields"] == ["include_in_email", "display_order"]
        assert unchanged.activity is None

    async def test_attachment_changes_advance_revision(self, session_factory, studio, workflow):
        async def revision(version_id):
            async with session_scope(session_factory) as session:
                return (await workflow.get(session, version_id)).revision

        async with session_scope(session_factory) as session:
            first = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            second = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
        async with session_scope(session_factory) as session:
            plan = (
                await workflow.upload_asset(
                    session, first.id, studio.sammy_id, "Plan", "https://x.example.com/p.pdf"
                )
            ).value
        assert await revision(first.id) == 2

        async with session_scope(session_factory) as session:
            await workflow.attach_asset(session, second.id, plan.id, studio.sammy_id)
        assert await revision(second.id) == 2

        async with session_scope(session_factory) as session:
            await workflow.set_asset_inclusion(
                session, second.id, plan.id, studio.sammy_id, include_in_email=False
            )
        assert await revision(second.id) == 3

        async with session_scope(session_factory) as session:
            with pytest.raises(StaleVersionError):
                await workflow.complete(session, second.id, studio.sammy_id, expected_revision=2)

    async def test_inclusion_locked_after_send(self, session_factory, studio, workflow):
        version_id, plan_id, _ = await _ready_version(session_factory, workflow, studio)
        async with session_scope(session_factory) as session:
            await workflow.send_to_client(session, version_id, studio.sammy_id)

        async with session_scope(session_factory) as session:
            with pytest.raises(VersionLockedError):
                await workflow.set_asset_inclusion(
                    session, version_id, plan_id, studio.sammy_id, include_in_email=False
                )


@pytest.mark.asyncio
class TestSendToClient:
    async def test_snapshot_holds_included_attachments(self, session_factory, studio, workflow):
        version_id, plan_id, _ = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            result = await workflow.send_to_client(session, version_id, studio.sammy_id)
            snapshot = await list_approval_assets(session, result.value.id)
            version = await workflow.get(session, version_id)

        assert [row.asset_id for row in snapshot] == [plan_id]
        assert version.status is FloorplanVersionStatus.SENT_TO_CLIENT
        assert version.sent_by == studio.sammy_id
        (event,) = result.events
        assert isinstance(event, FloorplanSentToClient)
        assert event.mark_only is False
        assert event.asset_ids == (plan_id,)

    async def test_mark_only(self, session_factory, studio, workflow):
        version_id, _, _ = await _ready_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            result = await workflow.send_to_client(
                session, version_id, studio.sammy_id, mark_only=True
            )

        assert result.events[0].mark_only is True
        assert result.activity.details["mark_only"] is True

    async def test_needs_an_included_attachment(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            await workflow.upload_asset(
                session,
                version.id,
                studio.sammy_id,
                "CAD",
                "https://x.example.com/p.dwg",
                include_in_email=False,
            )
            await workflow.complete(session, version.id, studio.sammy_id)

            with pytest.raises(ValidationError, match="no attachments selected"):
                await workflow.send_to_client(session, version.id, studio.sammy_id)

    async def test_draft_cannot_be_sent(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            with pytest.raises(InvalidTransitionError):
                await workflow.send_to_client(session, version.id, studio.sammy_id)


@pytest.mark.asyncio
class TestClientResponse:
    async def test_follow_up_then_approval(self, session_factory, studio, workflow):
        version_id, approval_id = await _sent_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            followed = await workflow.record_follow_up(
                session, version_id, studio.sammy_id, " called the client "
            )
            assert followed.value.status is FloorplanVersionStatus.FOLLOW_UP_REQUIRED
            assert followed.value.follow_up_notes == "called the client"

            result = await workflow.record_client_decision(
                session, version_id, studio.aaron_id, "APPROVED"
            )
            version = await workflow.get(session, version_id)

        assert result.value.id == approval_id
        assert result.value.decision is ApprovalDecision.APPROVED
        assert version.status is FloorplanVersionStatus.CLIENT_APPROVED
        assert result.events[0].version_kind == "floorplan"
        assert result.events[0].room_id is None

    async def test_revision_items_replace_list(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            result = await workflow.record_client_decision(
                session,
                version_id,
                studio.aaron_id,
                ApprovalDecision.REVISION_REQUESTED,
                revision_items=["move island", "  ", "wider door"],
            )
            version = await workflow.get(session, version_id)

        assert result.value.decision is ApprovalDecision.REVISION_REQUESTED
        assert version.status is FloorplanVersionStatus.REVISION_REQUESTED
        assert version.revision_items == [
            {"text": "move island", "completed": False},
            {"text": "wider door", "completed": False},
        ]
        assert result.activity.details["revision_items"] == ["move island", "wider door"]

    async def test_decision_for_unknown_snapshot(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            with pytest.raises(ConflictError, match="no snapshot"):
                await workflow.record_client_decision(
                    session, version_id, studio.aaron_id, "APPROVED", approval_id=uuid.uuid4()
                )

    async def test_revision_needs_message_or_items(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)

        async with session_scope(session_factory) as session:
            with pytest.raises(ValidationError):
                await workflow.record_client_decision(
                    session, version_id, studio.aaron_id, "REVISION_REQUESTED"
                )


@pytest.mark.asyncio
class TestEditing:
    async def test_notes_editable_after_approval(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)
        async with session_scope(session_factory) as session:
            await workflow.record_client_decision(session, version_id, studio.aaron_id, "APPROVED")

        async with session_scope(session_factory) as session:
            result = await workflow.update_notes(
                session, version_id, studio.sammy_id, "Signed off on site"
            )

        assert result.value.notes == "Signed off on site"
        assert result.activity.action is ActivityAction.UPDATE

    async def test_revision_items_closed_after_approval(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)
        async with session_scope(session_factory) as session:
            await workflow.record_client_decision(session, version_id, studio.aaron_id, "APPROVED")

        async with session_scope(session_factory) as session:
            with pytest.raises(ValidationError, match="revision items are closed"):
                await workflow.update_revision_items(
                    session, version_id, studio.sammy_id, ["one more"]
                )

    async def test_revision_items_editable_in_draft(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            result = await workflow.update_revision_items(
                session, version.id, studio.sammy_id, [" a ", "b"]
            )

        assert result.value.revision_items == [
            {"text": "a", "completed": False},
            {"text": "b", "completed": False},
        ]

    async def test_revision_progress_is_tracked(self, session_factory, studio, workflow):
        version_id, _ = await _sent_version(session_factory, workflow, studio)
        async with session_scope(session_factory) as session:
            await workflow.record_client_decision(
                session,
                version_id,
                studio.aaron_id,
                "REVISION_REQUESTED",
                revision_items=["Widen hallway", "Move laundry", "Add pantry"],
            )

        async with session_scope(session_factory) as session:
            result = await workflow.update_revision_items(
                session,
                version_id,
                studio.sammy_id,
                [
                    {"text": "Widen hallway", "completed": True},
                    {"text": "Move laundry", "completed": False},
                    {"text": "Add pantry", "completed": True},
                ],
            )

        assert [item["completed"] for item in result.value.revision_items] == [True, False, True]
        assert result.activity.action is ActivityAction.REVISION_PROGRESS
        assert result.activity.details["completed"] == 2
        assert result.activity.details["total"] == 3

    async def test_malformed_revision_item_rejected(self, session_factory, studio, workflow):
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            with pytest.raises(ValidationError, match="Invalid revision item"):
                await workflow.update_revision_items(
                    session, version.id, studio.sammy_id, [{"done": True}]
                )


@pytest.mark.asyncio
class TestDelete:
    async def test_delete_keeps_shared_drawings(self, session_factory, studio, workflow):
        v1_id, plan_id, cad_id = await _ready_version(session_factory, workflow, studio)
        async with session_scope(session_factory) as session:
            v2 = (await workflow.create(session, studio.project_id, studio.sammy_id)).value
            await workflow.attach_asset(session, v2.id, plan_id, studio.sammy_id)

        async with session_scope(session_factory) as session:
            result = await workflow.delete(session, v1_id, studio.sammy_id)

        async with session_scope(session_factory) as session:
            shared = await get_asset(session, plan_id)
            orphan = await get_asset(session, cad_id)

        assert result.value.counts == {"notes": 0, "approvals": 0, "assets": 1}
        assert result.value.was_pushed is False
        assert shared is not None
        assert orphan is None
