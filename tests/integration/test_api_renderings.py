"""Integration tests for rendering version and client approval endpoints."""

from __future__ import annotations

import uuid
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from studioflow.workflow.events import (
    ClientDecisionRecorded,
    StageStatusChanged,
    VersionPushedToClient,
)


async def _completed(async_client: AsyncClient, studio) -> dict[str, Any]:
    """Create a version, upload two renders and complete it."""
    created = await async_client.post(
        f"/stages/{studio.rendering_stage_id}/renderings", json={}, headers=studio.actor()
    )
    version = created.json()
    asset_ids = []
    for title in ("Kitchen", "Lounge"):
        uploaded = await async_client.post(
            f"/renderings/{version['id']}/assets",
            json={"title": title, "url": f"https://x.example.com/{title.lower()}.png"},
            headers=studio.actor(),
        )
        asset_ids.append(uploaded.json()["id"])
    completed = await async_client.post(
        f"/renderings/{version['id']}/actions",
        json={"action": "complete"},
        headers=studio.actor(),
    )
    return {"version": completed.json(), "asset_ids": asset_ids}


@pytest.mark.asyncio
class TestVersions:
    async def test_create_and_list(self, async_client, studio):
        url = f"/stages/{studio.rendering_stage_id}/renderings"
        first = await async_client.post(url, json={}, headers=studio.actor())
        second = await async_client.post(
            url, json={"custom_name": "Evening light"}, headers=studio.actor()
        )

        assert first.status_code == 201
        assert first.json()["label"] == "v1"
        assert first.json()["locked"] is False
        assert first.json()["allowed_actions"] == ["complete"]
        assert second.json()["display_name"] == "Evening light"

        listed = await async_client.get(url)
        assert [v["label"] for v in listed.json()] == ["v2", "v1"]

    async def test_only_rendering_stages_have_versions(self, async_client, studio):
        response = await async_client.post(
            f"/stages/{studio.design_stage_id}/renderings", json={}, headers=studio.actor()
        )

        assert response.status_code == 400

    async def test_detail(self, async_client, studio):
        prepared = await _completed(async_client, studio)

        response = await async_client.get(f"/renderings/{prepared['version']['id']}")

        body = response.json()
        assert body["version"]["status"] == "COMPLETED"
        assert body["version"]["allowed_actions"] == ["reopen", "push_to_client"]
        assert [a["title"] for a in body["assets"]] == ["Kitchen", "Lounge"]
        assert body["approvals"] == []

    async def test_rename_requires_name(self, async_client, studio):
        prepared = await _completed(async_client, studio)
        url = f"/renderings/{prepared['version']['id']}/actions"

        missing = await async_client.post(url, json={"action": "rename"}, headers=studio.actor())
        renamed = await async_client.post(
            url, json={"action": "rename", "custom_name": "Final"}, headers=studio.actor()
        )

        assert missing.status_code == 400
        assert renamed.json()["display_name"] == "Final"

    async def test_stale_revision(self, async_client, studio):
        prepared = await _completed(async_client, studio)
        version = prepared["version"]
        url = f"/renderings/{version['id']}/actions"

        reopened = await async_client.post(
            url,
            json={"action": "reopen", "expected_revision": version["revision"]},
            headers=studio.actor(),
        )
        stale = await async_client.post(
            url,
            json={"action": "complete", "expected_revision": version["revision"]},
            headers=studio.actor(),
        )

        assert reopened.status_code == 200
        assert reopened.json()["revision"] > version["revision"]
        assert stale.status_code == 409
        assert stale.json()["error"] == "stale_version"

    async def test_delete_reports_counts(self, async_client, studio):
        prepared = await _completed(async_client, studio)

        response = await async_client.delete(
            f"/renderings/{prepared['version']['id']}", headers=studio.actor()
        )

        assert response.status_code == 200
        body = response.json()
        assert body["label"] == "v1"
        assert body["was_pushed"] is False
        assert body["counts"]["assets"] == 2

        gone = await async_client.get(f"/renderings/{prepared['version']['id']}")
        assert gone.status_code == 404


@pytest.mark.asyncio
class TestClientApproval:
    async def test_push_snapshot_and_lock(self, async_client, studio):
        prepared = await _completed(async_client, studio)
        version_id = prepared["version"]["id"]

        pushed = await async_client.post(
            f"/renderings/{version_id}/push-to-client",
            json={"asset_ids": prepared["asset_ids"][:1]},
            headers=studio.actor(),
        )

        assert pushed.status_code == 201
        approval = pushed.json()
        assert approval["version_kind"] == "rendering"
        assert approval["decision"] == "PENDING"
        assert [a["title"] for a in approval["assets"]] == ["Kitchen"]

        locked = await async_client.post(
            f"/renderings/{version_id}/assets",
            json={"title": "Late", "url": "https://x.example.com/late.png"},
            headers=studio.actor(),
        )
        assert locked.status_code == 409
        assert locked.json()["error"] == "version_locked"

        approval_stage = await async_client.get(f"/stages/{studio.approval_stage_id}")
        assert approval_stage.json()["status"] == "IN_PROGRESS"

    async def test_push_needs_completed_version(self, async_client, studio):
        created = await async_client.post(
            f"/stages/{studio.rendering_stage_id}/renderings", json={}, headers=studio.actor()
        )

        response = await async_client.post(
            f"/renderings/{created.json()['id']}/push-to-client",
            json={"asset_ids": [str(uuid.uuid4())]},
            headers=studio.actor(),
        )

        assert response.status_code in (400, 409)

    async def test_decision_endpoint(self, async_client, studio):
        prepared = await _completed(async_client, studio)
        version_id = prepared["version"]["id"]
        pushed = await async_client.post(
            f"/renderings/{version_id}/push-to-client",
            json={"asset_ids": prepared["asset_ids"]},
            headers=studio.actor(),
        )
        approval_id = pushed.json()["id"]

        missing_message = await async_client.post(
            f"/approvals/{approval_id}/decision",
            json={"decision": "REVISION_REQUESTED"},
            headers=studio.actor(),
        )
        approved = await async_client.post(
            f"/approvals/{approval_id}/decision",
            json={"decision": "APPROVED", "message": "Love it"},
            headers=studio.actor(studio.aaron_id),
        )
        again = await async_client.post(
            f"/approvals/{approval_id}/decision",
            json={"decision": "APPROVED"},
            headers=studio.actor(),
        )

        assert missing_message.status_code == 400
        assert approved.status_code == 200
        assert approved.json()["decision"] == "APPROVED"
        assert approved.json()["decided_by"] == str(studio.aaron_id)
        assert again.status_code == 409

        version = await async_client.get(f"/renderings/{version_id}")
        assert version.json()["version"]["status"] == "CLIENT_APPROVED"
        snapshot = await async_client.get(f"/approvals/{approval_id}")
        assert len(snapshot.json()["assets"]) == 2

    async def test_events_published_after_response(self, app, async_client, studio):
        dispatcher = MagicMock()
        dispatcher.publish = AsyncMock(return_value=True)
        app.state.dispatcher = dispatcher
        prepared = await _completed(async_client, studio)
        dispatcher.publish.reset_mock()

        pushed = await async_client.post(
            f"/renderings/{prepared['version']['id']}/push-to-client",
            json={"asset_ids": prepared["asset_ids"]},
            headers=studio.actor(),
        )
        await async_client.post(
            f"/approvals/{pushed.json()['id']}/decision",
            json={"decision": "APPROVED"},
            headers=studio.actor(),
        )

        batches = [call.args[0] for call in dispatcher.publish.call_args_list]
        assert [[type(e) for e in batch] for batch in batches] == [
            [VersionPushedToClient, StageStatusChanged],
            [ClientDecisionRecorded, StageStatusChanged],
        ]


@pytest.mark.asyncio
class TestNotes:
    async def test_post_and_list(self, async_client, studio):
        created = await async_client.post(
            f"/stages/{studio.rendering_stage_id}/renderings", json={}, headers=studio.actor()
        )
        url = f"/renderings/{created.json()['id']}/notes"

        posted = await async_client.post(
            url, json={"content": "@Aaron Smith check the glare"}, headers=studio.actor()
        )
        listed = await async_client.get(url)

        assert posted.status_code == 201
        assert posted.json()["mentions"] == [
            {"user_id": str(studio.aaron_id), "display_name": "Aaron Smith"}
        ]
        assert [n["content"] for n in listed.json()] == ["@Aaron Smith check the glare"]

    async def test_unknown_version(self, async_client, studio):
        response = await async_client.get(f"/renderings/{uuid.uuid4()}/notes")

        assert response.status_code == 404
