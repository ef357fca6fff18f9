"""Integration tests for the webhook dispatcher.

Covers payload formatting, HMAC signatures, retry with backoff, and
ordered delivery of workflow events. HTTP traffic is intercepted with
respx so no real requests leave the process.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
import respx

from studioflow.config import WebhookConfig, WebhookEndpointConfig
from studioflow.web.webhooks import WebhookDispatcher, WebhookPayload
from studioflow.workflow.events import StageStatusChanged, VersionPushedToClient

HOOK_URL = "https://hooks.example.com/studioflow"


def _pushed_event() -> VersionPushedToClient:
    return VersionPushedToClient(
        version_id=uuid4(),
        approval_id=uuid4(),
        stage_id=uuid4(),
        room_id=uuid4(),
        project_id=uuid4(),
        label="v2",
        asset_ids=(uuid4(),),
        actor_id=uuid4(),
    )


def _stage_event() -> StageStatusChanged:
    return StageStatusChanged(
        stage_id=uuid4(),
        room_id=uuid4(),
        stage_type="CLIENT_APPROVAL",
        from_status="NOT_STARTED",
        to_status="IN_PROGRESS",
        automatic=True,
        actor_id=None,
    )


@pytest.fixture
def endpoint() -> WebhookEndpointConfig:
    return WebhookEndpointConfig(url=HOOK_URL, secret="shared-secret", retry_count=2)


@pytest_asyncio.fixture
async def dispatcher(endpoint: WebhookEndpointConfig):
    instance = WebhookDispatcher([endpoint])
    yield instance
    await instance.close()


class TestWebhookPayload:
    def test_from_event(self):
        event = _pushed_event()

        payload = WebhookPayload.from_event(event)
        body = json.loads(payload.model_dump_json())

        assert body["event"] == "rendering.pushed_to_client"
        assert body["timestamp"] == event.occurred_at.isoformat()
        assert body["data"]["label"] == "v2"
        assert body["data"]["version_id"] == str(event.version_id)
        assert body["data"]["asset_ids"] == [str(event.asset_ids[0])]
        assert "occurred_at" not in body["data"]

    def test_from_config(self, endpoint):
        dispatcher = WebhookDispatcher.from_config(WebhookConfig(endpoints=[endpoint]))

        assert dispatcher.endpoints == [endpoint]


@pytest.mark.asyncio
class TestDelivery:
    @respx.mock
    async def test_signed_delivery(self, dispatcher):
        route = respx.post(HOOK_URL).mock(return_value=httpx.Response(200))

        delivered = await dispatcher.send(_pushed_event())

        assert delivered is True
        request = route.calls.last.request
        expected = hmac.new(b"shared-secret", request.content, hashlib.sha256).hexdigest()
        assert request.headers["X-Studioflow-Signature"] == expected
        assert request.headers["X-Studioflow-Event"] == "rendering.pushed_to_client"
        assert request.headers["Content-Type"] == "application/json"
        assert "X-Studioflow-Timestamp" in request.headers

    @respx.mock
    async def test_unsigned_without_secret(self):
        dispatcher = WebhookDispatcher([WebhookEndpointConfig(url=HOOK_URL)])
        route = respx.post(HOOK_URL).mock(return_value=httpx.Response(204))

        assert await dispatcher.send(_stage_event()) is True
        assert "X-Studioflow-Signature" not in route.calls.last.request.headers
        await dispatcher.close()

    @respx.mock
    async def test_retries_then_succeeds(self, dispatcher):
        route = respx.post(HOOK_URL).mock(
            side_effect=[httpx.Response(502), httpx.ConnectError("refused"), httpx.Response(200)]
        )

        with patch("studioflow.web.webhooks.asyncio.sleep", new_callable=AsyncMock) as sleep:
            delivered = await dispatcher.send(_pushed_event())

        assert delivered is True
        assert route.call_count == 3
        assert [call.args[0] for call in sleep.await_args_list] == [1, 2]

    @respx.mock
    async def test_retries_exhausted(self, dispatcher):
        route = respx.post(HOOK_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with patch("studioflow.web.webhooks.asyncio.sleep", new_callable=AsyncMock):
            delivered = await dispatcher.send(_pushed_event())

        assert delivered is False
        assert route.call_count == 3

    @respx.mock
    async def test_disabled_endpoint_is_skipped(self):
        dispatcher = WebhookDispatcher([WebhookEndpointConfig(url=HOOK_URL, enabled=False)])
        route = respx.post(HOOK_URL).mock(return_value=httpx.Response(200))

        assert await dispatcher.send(_pushed_event()) is True
        assert route.call_count == 0

    async def test_no_endpoints(self):
        dispatcher = WebhookDispatcher()

        assert await dispatcher.send(_pushed_event()) is True
        assert await dispatcher.publish([]) is True


@pytest.mark.asyncio
class TestPublish:
    @respx.mock
    async def test_events_delivered_in_order(self, dispatcher):
        route = respx.post(HOOK_URL).mock(return_value=httpx.Response(200))

        delivered = await dispatcher.publish([_pushed_event(), _stage_event()])

        assert delivered is True
        assert [call.request.headers["X-Studioflow-Event"] for call in route.calls] == [
            "rendering.pushed_to_client",
            "stage.status_changed",
        ]

    @respx.mock
    async def test_one_failure_reports_false_but_continues(self):
        dispatcher = WebhookDispatcher([WebhookEndpointConfig(url=HOOK_URL, retry_count=0)])
        route = respx.post(HOOK_URL).mock(
            side_effect=[httpx.Response(500), httpx.Response(200)]
        )

        delivered = await dispatcher.publish([_pushed_event(), _stage_event()])

        assert delivered is False
        assert route.call_count == 2
        await dispatcher.close()
