"""Integration tests for rooms, stages and stage workspaces."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from studioflow.database.connection import session_scope
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.stage import STAGE_SEQUENCE, StageStatus, StageType
from studioflow.database.models.team import TeamRole
from studioflow.database.queries.stage import list_room_stages
from studioflow.database.queries.team import list_team_members
from studioflow.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from studioflow.workflow.approvals import load_snapshot
from studioflow.workflow.assets import upload_stage_asset
from studioflow.workflow.comments import post_comment
from studioflow.workflow.events import StageStatusChanged
from studioflow.workflow.projects import add_room, add_team_member
from studioflow.workflow.renderings import RenderingWorkflow
from studioflow.workflow.stages import (
    WorkspaceKind,
    build_workspace,
    transition_stage,
    update_stage,
)
from studioflow.workflow.state_machine import StageAction


@pytest.mark.asyncio
class TestProjectSetup:
    async def test_room_gets_five_stages_in_order(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            room, stages = (
                await add_room(session, studio.project_id, studio.sammy_id, "Kitchen", "kitchen")
            ).value
            stored = await list_room_stages(session, room.id)

        assert [s.type for s in stages] == list(STAGE_SEQUENCE)
        assert [s.type for s in stored] == list(STAGE_SEQUENCE)
        assert {s.status for s in stored} == {StageStatus.NOT_STARTED}
        assert room.room_type == "kitchen"

    async def test_room_needs_existing_project(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(NotFoundError):
                await add_room(session, uuid.uuid4(), studio.sammy_id, "Kitchen")

    async def test_blank_room_name(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(ValidationError, match="Room name"):
                await add_room(session, studio.project_id, studio.sammy_id, "  ")

    async def test_roster_order_and_email_case(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            members = await list_team_members(session)

        assert [m.name for m in members] == ["Sammy Lee", "Aaron Smith"]
        assert members[0].email == "sammy@example.com"
        assert members[0].role is TeamRole.DESIGNER

    async def test_duplicate_email_conflicts(self, session_factory, studio):
        with pytest.raises(ConflictError):
            async with session_scope(session_factory) as session:
                await add_team_member(session, None, "Other Sammy", "SAMMY@example.com")


@pytest.mark.asyncio
class TestStageTransitions:
    async def test_start_complete_reopen(self, session_factory, studio):
        stage_id = studio.design_stage_id
        async with session_scope(session_factory) as session:
            started = await transition_stage(session, stage_id, "start", studio.sammy_id)
            first_start = started.value.started_at
            completed = await transition_stage(
                session, stage_id, StageAction.COMPLETE, studio.sammy_id
            )
            assert completed.value.completed_by == studio.sammy_id

            reopened = await transition_stage(session, stage_id, "reopen", studio.aaron_id)

        assert reopened.value.status is StageStatus.IN_PROGRESS
        assert reopened.value.started_at == first_start
        assert reopened.value.completed_at is None
        (event,) = reopened.events
        assert isinstance(event, StageStatusChanged)
        assert (event.from_status, event.to_status, event.automatic) == (
            "COMPLETED",
            "IN_PROGRESS",
            False,
        )

    async def test_not_applicable_and_reset(self, session_factory, studio):
        stage_id = studio.stage_ids[StageType.FFE]
        async with session_scope(session_factory) as session:
            await transition_stage(session, stage_id, "mark_not_applicable", studio.sammy_id)
            reset = await transition_stage(session, stage_id, "reset", studio.sammy_id)

        assert reset.value.status is StageStatus.NOT_STARTED

    async def test_invalid_and_unknown_actions(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(
                InvalidTransitionError, match="Cannot complete from status NOT_STARTED"
            ):
                await transition_stage(session, studio.design_stage_id, "complete", studio.sammy_id)
            with pytest.raises(ValidationError, match="Unknown stage action"):
                await transition_stage(session, studio.design_stage_id, "skip", studio.sammy_id)

    async def test_transition_is_logged(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            result = await transition_stage(
                session, studio.rendering_stage_id, "start", studio.sammy_id
            )

        assert result.activity.details["stage_type"] == "THREE_D"
        assert result.activity.actor_id == studio.sammy_id
        assert result.activity.project_id == studio.project_id


@pytest.mark.asyncio
class TestUpdateStage:
    async def test_assign_and_schedule(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            result = await update_stage(
                session,
                studio.design_stage_id,
                studio.sammy_id,
                {"assigned_to": studio.aaron_id, "due_date": date(2026, 11, 30)},
            )
            again = await update_stage(
                session, studio.design_stage_id, studio.sammy_id, {"assigned_to": studio.aaron_id}
            )

        assert result.value.assigned_to == studio.aaron_id
        assert result.value.due_date == date(2026, 11, 30)
        assert result.activity.details["fields"] == ["assigned_to", "due_date"]
        assert again.activity is None

    async def test_rejects_other_fields(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(ValidationError, match="status"):
                await update_stage(
                    session, studio.design_stage_id, studio.sammy_id, {"status": "COMPLETED"}
                )

    async def test_assignee_must_be_on_team(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(ValidationError, match="does not exist"):
                await update_stage(
                    session, studio.design_stage_id, studio.sammy_id, {"assigned_to": uuid.uuid4()}
                )


@pytest.mark.asyncio
class TestWorkspace:
    async def test_rendering_workspace(self, session_factory, studio):
        workflow = RenderingWorkflow()
        async with session_scope(session_factory) as session:
            await workflow.create(session, studio.rendering_stage_id, studio.sammy_id)
            await workflow.create(session, studio.rendering_stage_id, studio.sammy_id)
            workspace = await build_workspace(session, studio.rendering_stage_id)

        assert workspace.kind is WorkspaceKind.RENDERING
        assert [v.label for v in workspace.renderings] == ["v2", "v1"]
        assert workspace.notes == []

    async def test_client_approval_workspace(self, session_factory, studio):
        workflow = RenderingWorkflow()
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.rendering_stage_id, studio.sammy_id)).value
            asset = await workflow.upload_asset(
                session, version.id, studio.sammy_id, "View", "https://x.example.com/v.png"
            )
            await workflow.complete(session, version.id, studio.sammy_id)
            pushed = await workflow.push_to_client(
                session, version.id, studio.sammy_id, [asset.value.id]
            )
            workspace = await build_workspace(session, studio.approval_stage_id)
            snapshot = await load_snapshot(session, pushed.value.id)

        assert workspace.kind is WorkspaceKind.CLIENT_APPROVAL
        (approval,) = workspace.approvals
        assert approval.approval.id == pushed.value.id
        assert approval.version_kind == "rendering"
        assert [a.title for a in approval.assets] == ["View"]
        assert snapshot.assets[0].asset_id == asset.value.id

    async def test_design_board_workspace(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            await post_comment(
                session, studio.sammy_id, CommentTarget.STAGE, studio.design_stage_id, "palette"
            )
            await upload_stage_asset(
                session, studio.design_stage_id, studio.sammy_id, "Mood",
                "https://x.example.com/m.jpg",
            )
            workspace = await build_workspace(session, studio.design_stage_id)

        assert workspace.kind is WorkspaceKind.DESIGN_BOARD
        assert [n.text for n in workspace.notes] == ["palette"]
        assert [a.title for a in workspace.assets] == ["Mood"]

    async def test_unknown_stage(self, session_factory, studio):
        async with session_scope(session_factory) as session:
            with pytest.raises(NotFoundError):
                await build_workspace(session, uuid.uuid4())
