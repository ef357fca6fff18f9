"""Integration tests for floorplan approval endpoints."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient


async def _ready(async_client: AsyncClient, studio) -> tuple[str, str, str]:
    """Create a version with a plan (emailed) and a CAD file (not emailed), then sign it off."""
    created = await async_client.post(
        f"/projects/{studio.project_id}/floorplan-approvals",
        json={"notes": "first layout"},
        headers=studio.actor(),
    )
    version_id = created.json()["id"]
    plan = await async_client.post(
        f"/floorplan-approvals/{version_id}/assets",
        json={"title": "Ground floor", "url": "https://x.example.com/gf.pdf"},
        headers=studio.actor(),
    )
    cad = await async_client.post(
        f"/floorplan-approvals/{version_id}/assets",
        json={
            "title": "Ground floor CAD",
            "url": "https://x.example.com/gf.dwg",
            "asset_type": "FLOORPLAN_CAD",
            "include_in_email": False,
        },
        headers=studio.actor(),
    )
    await async_client.post(
        f"/floorplan-approvals/{version_id}/actions",
        json={"action": "complete"},
        headers=studio.actor(),
    )
    return version_id, plan.json()["asset_id"], cad.json()["asset_id"]


@pytest.mark.asyncio
class TestVersions:
    async def test_create_and_list(self, async_client, studio):
        url = f"/projects/{studio.project_id}/floorplan-approvals"
        first = await async_client.post(url, json={}, headers=studio.actor())
        await async_client.post(url, json={}, headers=studio.actor())

        assert first.status_code == 201
        assert first.json()["status"] == "DRAFT"
        listed = await async_client.get(url)
        assert [v["label"] for v in listed.json()] == ["v2", "v1"]

    async def test_unknown_project(self, async_client, studio):
        response = await async_client.post(
            f"/projects/{uuid.uuid4()}/floorplan-approvals", json={}, headers=studio.actor()
        )

        assert response.status_code == 404

    async def test_detail_lists_attachments_in_order(self, async_client, studio):
        version_id, plan_id, cad_id = await _ready(async_client, studio)

        body = (await async_client.get(f"/floorplan-approvals/{version_id}")).json()

        assert body["version"]["status"] == "READY_FOR_CLIENT"
        assert [(a["asset_id"], a["include_in_email"]) for a in body["attachments"]] == [
            (plan_id, True),
            (cad_id, False),
        ]
        assert body["attachments"][0]["asset"]["title"] == "Ground floor"

    async def test_patch_requires_a_field(self, async_client, studio):
        version_id, _, _ = await _ready(async_client, studio)

        empty = await async_client.patch(
            f"/floorplan-approvals/{version_id}", json={}, headers=studio.actor()
        )
        notes = await async_client.patch(
            f"/floorplan-approvals/{version_id}",
            json={"notes": "kitchen island moved"},
            headers=studio.actor(),
        )

        assert empty.status_code == 400
        assert notes.json()["notes"] == "kitchen island moved"

    async def test_upload_needs_a_source(self, async_client, studio):
        created = await async_client.post(
            f"/projects/{studio.project_id}/floorplan-approvals", json={}, headers=studio.actor()
        )

        response = await async_client.post(
            f"/floorplan-approvals/{created.json()['id']}/assets",
            json={"title": "No url"},
            headers=studio.actor(),
        )

        assert response.status_code == 422


@pytest.mark.asyncio
class TestAttachments:
    async def test_change_inclusion_before_send(self, async_client, studio):
        created = await async_client.post(
            f"/projects/{studio.project_id}/floorplan-approvals", json={}, headers=studio.actor()
        )
        version_id = created.json()["id"]
        plan = await async_client.post(
            f"/floorplan-approvals/{version_id}/assets",
            json={"title": "Plan", "url": "https://x.example.com/p.pdf"},
            headers=studio.actor(),
        )

        response = await async_client.patch(
            f"/floorplan-approvals/{version_id}/assets/{plan.json()['asset_id']}",
            json={"include_in_email": False, "display_order": 3},
            headers=studio.actor(),
        )

        assert response.status_code == 200
        assert response.json()["include_in_email"] is False
        assert response.json()["display_order"] == 3

    async def test_attach_library_asset_to_next_version(self, async_client, studio):
        _, plan_id, _ = await _ready(async_client, studio)
        created = await async_client.post(
            f"/projects/{studio.project_id}/floorplan-approvals", json={}, headers=studio.actor()
        )
        url = f"/floorplan-approvals/{created.json()['id']}/assets"

        attached = await async_client.post(url, json={"asset_id": plan_id}, headers=studio.actor())
        duplicate = await async_client.post(
            url, json={"asset_id": plan_id}, headers=studio.actor()
        )

        assert attached.status_code == 201
        assert attached.json()["asset"]["title"] == "Ground floor"
        assert duplicate.status_code == 409


@pytest.mark.asyncio
class TestClientRound:
    async def test_send_follow_up_and_approve(self, async_client, studio):
        version_id, plan_id, _ = await _ready(async_client, studio)
        actions = f"/floorplan-approvals/{version_id}/actions"

        sent = await async_client.post(
            actions, json={"action": "send_to_client"}, headers=studio.actor()
        )
        chased = await async_client.post(
            actions,
            json={"action": "follow_up", "notes": "called Jo"},
            headers=studio.actor(),
        )
        approved = await async_client.post(
            f"/floorplan-approvals/{version_id}/decision",
            json={"decision": "APPROVED"},
            headers=studio.actor(),
        )

        assert sent.json()["status"] == "SENT_TO_CLIENT"
        assert sent.json()["locked"] is True
        assert sent.json()["allowed_actions"] == ["follow_up", "approve", "request_revision"]
        assert chased.json()["status"] == "FOLLOW_UP_REQUIRED"
        assert chased.json()["follow_up_notes"] == "called Jo"
        assert approved.status_code == 200
        assert approved.json()["version_kind"] == "floorplan"
        assert [a["asset_id"] for a in approved.json()["assets"]] == [plan_id]

        detail = (await async_client.get(f"/floorplan-approvals/{version_id}")).json()
        assert detail["version"]["status"] == "CLIENT_APPROVED"

    async def test_revision_items(self, async_client, studio):
        version_id, _, _ = await _ready(async_client, studio)
        await async_client.post(
            f"/floorplan-approvals/{version_id}/actions",
            json={"action": "mark_sent"},
            headers=studio.actor(),
        )

        response = await async_client.post(
            f"/floorplan-approvals/{version_id}/decision",
            json={
                "decision": "REVISION_REQUESTED",
                "revision_items": ["Widen hallway", "Move laundry"],
            },
            headers=studio.actor(),
        )

        assert response.json()["decision"] == "REVISION_REQUESTED"
        version = (await async_client.get(f"/floorplan-approvals/{version_id}")).json()
        assert version["version"]["status"] == "REVISION_REQUESTED"
        assert version["version"]["revision_items"] == [
            {"text": "Widen hallway", "completed": False},
            {"text": "Move laundry", "completed": False},
        ]

        progress = await async_client.patch(
            f"/floorplan-approvals/{version_id}",
            json={
                "revision_items": [
                    {"text": "Widen hallway", "completed": True},
                    "Move laundry",
                ]
            },
            headers=studio.actor(),
        )
        timeline = (await async_client.get(f"/activity/{version_id}")).json()

        assert progress.status_code == 200
        assert [item["completed"] for item in progress.json()["revision_items"]] == [True, False]
        assert timeline[0]["action"] == "REVISION_PROGRESS"
        assert timeline[0]["sentence"] == "Updated revision progress on v1: 1/2 completed"

    async def test_decision_before_send(self, async_client, studio):
        version_id, _, _ = await _ready(async_client, studio)

        response = await async_client.post(
            f"/floorplan-approvals/{version_id}/decision",
            json={"decision": "APPROVED"},
            headers=studio.actor(),
        )

        assert response.status_code == 409
        assert "has not been sent" in response.json()["detail"]

    async def test_locked_after_send(self, async_client, studio):
        version_id, plan_id, _ = await _ready(async_client, studio)
        await async_client.post(
            f"/floorplan-approvals/{version_id}/actions",
            json={"action": "send_to_client"},
            headers=studio.actor(),
        )

        response = await async_client.patch(
            f"/floorplan-approvals/{version_id}/assets/{plan_id}",
            json={"include_in_email": False},
            headers=studio.actor(),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "version_locked"


@pytest.mark.asyncio
class TestDeleteAndNotes:
    async def test_delete(self, async_client, studio):
        version_id, _, _ = await _ready(async_client, studio)

        response = await async_client.delete(
            f"/floorplan-approvals/{version_id}", headers=studio.actor()
        )

        assert response.status_code == 200
        assert response.json()["counts"]["assets"] == 2
        gone = await async_client.get(f"/floorplan-approvals/{version_id}")
        assert gone.status_code == 404

    async def test_notes(self, async_client, studio):
        version_id, _, _ = await _ready(async_client, studio)
        url = f"/floorplan-approvals/{version_id}/notes"

        posted = await async_client.post(
            url, json={"content": "@aaron check door swings"}, headers=studio.actor()
        )
        listed = await async_client.get(url)

        assert posted.status_code == 201
        assert posted.json()["target_type"] == "FLOORPLAN_VERSION"
        assert [n["mentions"][0]["display_name"] for n in listed.json()] == ["Aaron Smith"]
