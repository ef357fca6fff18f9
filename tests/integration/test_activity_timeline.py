"""Integration tests for the activity log and timelines."""

from __future__ import annotations

import uuid

import pytest

from studioflow.database.connection import session_scope
from studioflow.database.models.activity import ActivityAction
from studioflow.database.queries.activity import insert_activity
from studioflow.workflow.activity import timeline
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.renderings import RenderingWorkflow


@pytest.mark.asyncio
class TestTimeline:
    async def test_stage_timeline_newest_first(self, session_factory, studio):
        workflow = RenderingWorkflow()
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.rendering_stage_id, studio.sammy_id)).value
            await workflow.upload_asset(
                session, version.id, studio.sammy_id, "Kitchen", "https://x.example.com/k.png"
            )
            await workflow.complete(session, version.id, studio.aaron_id)

        async with session_scope(session_factory) as session:
            rows = await timeline(session, stage_id=studio.rendering_stage_id)

        assert [row.sentence for row in rows] == [
            "Marked v1 as complete",
            "Uploaded 'Kitchen' to v1",
            "Created rendering version v1",
        ]
        assert [row.actor_id for row in rows] == [studio.aaron_id, studio.sammy_id, studio.sammy_id]
        assert rows[0].id > rows[1].id > rows[2].id

    async def test_history_survives_delete(self, session_factory, studio):
        workflow = RenderingWorkflow()
        async with session_scope(session_factory) as session:
            version = (await workflow.create(session, studio.rendering_stage_id, studio.sammy_id)).value
            await workflow.delete(session, version.id, studio.sammy_id)

        async with session_scope(session_factory) as session:
            rows = await timeline(session, entity_id=version.id)

        assert [row.action for row in rows] == ["DELETE", "CREATE"]
        assert rows[0].sentence == "Deleted rendering version v1"

    async def test_project_timeline_and_limit(self, session_factory, studio):
        floorplans = FloorplanWorkflow()
        async with session_scope(session_factory) as session:
            for _ in range(3):
                await floorplans.create(session, studio.project_id, studio.sammy_id)

        async with session_scope(session_factory) as session:
            everything = await timeline(session, project_id=studio.project_id)
            latest = await timeline(session, project_id=studio.project_id, limit=2)

        assert [row.sentence for row in latest] == [
            "Created floorplan version v3",
            "Created floorplan version v2",
        ]
        # project and room creation from the seed come last
        assert [row.sentence for row in everything[-2:]] == [
            "Created room Living Room",
            "Created project Harbour House",
        ]

    async def test_unreadable_details_fall_back(self, session_factory, studio):
        entity_id = uuid.uuid4()
        async with session_scope(session_factory) as session:
            await insert_activity(
                session,
                action=ActivityAction.FOLLOW_UP,
                entity_type="floorplan_version",
                entity_id=entity_id,
                details={"unexpected": True},
                actor_id=None,
                project_id=studio.project_id,
            )

        async with session_scope(session_factory) as session:
            (row,) = await timeline(session, entity_id=entity_id)

        assert row.sentence == "Follow up floorplan version"
