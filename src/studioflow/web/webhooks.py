"""Webhook dispatcher for Studioflow workflow events.

Workflow operations return events instead of calling other systems. Once
the unit of work has committed, the dispatcher posts each event to the
configured endpoints. It supports:
- Multiple webhook endpoints with per-endpoint configuration
- HMAC-SHA256 signatures over the raw JSON body
- Retry logic with exponential backoff on delivery failures
- Structured event payloads with timestamps

Delivery failures are logged and reported through the return value; they
never propagate into the request that produced the events.

Example webhook configuration:
    [[webhooks.endpoints]]
    url = "https://mail.example.com/hooks/studioflow"
    secret = "your-secret-key"
    retry_count = 3

    dispatcher = WebhookDispatcher.from_config(config.webhooks)
    await dispatcher.publish(events)
"""

from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import hmac
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import BaseModel, Field

from studioflow.config import WebhookEndpointConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studioflow.config import WebhookConfig
    from studioflow.workflow.events import WorkflowEvent

logger = structlog.get_logger(__name__)


class WebhookPayload(BaseModel):
    """Structured payload for webhook delivery.

    Attributes:
        event: Dotted event name, e.g. "rendering.pushed_to_client".
        timestamp: ISO 8601 timestamp when the event occurred.
        data: Event fields.
    """

    event: str = Field(..., description="The workflow event name")
    timestamp: str = Field(..., description="ISO 8601 timestamp of the event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")

    @classmethod
    def from_event(cls, event: WorkflowEvent) -> WebhookPayload:
        """Build a payload from a workflow event."""
        data = dataclasses.asdict(event)
        occurred_at: datetime = data.pop("occurred_at")
        return cls(event=event.name, timestamp=occurred_at.isoformat(), data=data)


class WebhookDispatcher:
    """Delivers workflow events to configured endpoints.

    Attributes:
        endpoints: Configured webhook endpoints.
        logger: Structured logger for this dispatcher.
    """

    def __init__(self, endpoints: list[WebhookEndpointConfig] | None = None) -> None:
        """Initialize the webhook dispatcher.

        Args:
            endpoints: Webhook endpoints to send events to.
                      If None, no webhooks will be sent.
        """
        self.endpoints = endpoints or []
        self.logger = logger.bind(component="webhook_dispatcher")
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: WebhookConfig) -> WebhookDispatcher:
        """Create a dispatcher for the endpoints in the webhooks config section."""
        return cls(endpoints=list(config.endpoints))

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _sign_payload(self, payload: str, secret: str) -> str:
        """Generate the hex HMAC-SHA256 signature for a payload."""
        return hmac.new(
            secret.encode(),
            payload.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _build_headers(
        self,
        event_name: str,
        payload_str: str,
        secret: str | None,
    ) -> dict[str, str]:
        timestamp = str(int(datetime.now(timezone.utc).timestamp()))
        headers = {
            "Content-Type": "application/json",
            "X-Studioflow-Event": event_name,
            "X-Studioflow-Timestamp": timestamp,
        }

        if secret:
            headers["X-Studioflow-Signature"] = self._sign_payload(payload_str, secret)

        return headers

    async def _send_to_endpoint(
        self,
        endpoint: WebhookEndpointConfig,
        payload: WebhookPayload,
    ) -> bool:
        """Send a payload to a single endpoint with retries.

        Args:
            endpoint: The endpoint configuration.
            payload: The payload to send.

        Returns:
            True if delivery was successful, False otherwise.
        """
        if not endpoint.enabled:
            self.logger.debug(
                "webhook_endpoint_disabled",
                url=endpoint.url,
                event_type=payload.event,
            )
            return True

        payload_str = payload.model_dump_json()
        headers = self._build_headers(payload.event, payload_str, endpoint.secret)

        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(endpoint.retry_count + 1):
            try:
                response = await client.post(
                    endpoint.url,
                    content=payload_str,
                    headers=headers,
                    timeout=endpoint.timeout_seconds,
                )

                if response.is_success:
                    self.logger.info(
                        "webhook_delivered",
                        url=endpoint.url,
                        event_type=payload.event,
                        status_code=response.status_code,
                        attempt=attempt + 1,
                    )
                    return True

                self.logger.warning(
                    "webhook_rejected",
                    url=endpoint.url,
                    event_type=payload.event,
                    status_code=response.status_code,
                    attempt=attempt + 1,
                )
                last_error = httpx.HTTPStatusError(
                    f"HTTP {response.status_code}",
                    request=response.request,
                    response=response,
                )

            except httpx.TimeoutException as e:
                last_error = e
                self.logger.warning(
                    "webhook_timed_out",
                    url=endpoint.url,
                    event_type=payload.event,
                    attempt=attempt + 1,
                    error=str(e),
                )

            except httpx.RequestError as e:
                last_error = e
                self.logger.warning(
                    "webhook_request_failed",
                    url=endpoint.url,
                    event_type=payload.event,
                    attempt=attempt + 1,
                    error=str(e),
                )

            # Exponential backoff before retry (1s, 2s, 4s, ...)
            if attempt < endpoint.retry_count:
                await asyncio.sleep(2**attempt)

        self.logger.error(
            "webhook_delivery_exhausted",
            url=endpoint.url,
            event_type=payload.event,
            retry_count=endpoint.retry_count,
            error=str(last_error),
        )
        return False

    async def send(self, event: WorkflowEvent) -> bool:
        """Send one workflow event to every configured endpoint.

        Args:
            event: The event to deliver.

        Returns:
            True if delivery to all enabled endpoints succeeded, False otherwise.
        """
        if not self.endpoints:
            self.logger.debug("webhook_no_endpoints", event_type=event.name)
            return True

        payload = WebhookPayload.from_event(event)
        results = await asyncio.gather(
            *(self._send_to_endpoint(endpoint, payload) for endpoint in self.endpoints),
            return_exceptions=True,
        )

        all_success = True
        for endpoint, result in zip(self.endpoints, results):
            if isinstance(result, Exception):
                self.logger.error(
                    "webhook_unexpected_error",
                    url=endpoint.url,
                    event_type=event.name,
                    error=str(result),
                )
                all_success = False
            elif result is not True:
                all_success = False

        return all_success

    async def publish(self, events: Sequence[WorkflowEvent]) -> bool:
        """Deliver events in the order they were produced.

        Args:
            events: Events returned by a committed unit of work.

        Returns:
            True if every event reached every enabled endpoint.
        """
        if not events:
            return True

        self.logger.info(
            "webhook_publish",
            event_count=len(events),
            endpoint_count=len(self.endpoints),
        )
        delivered = True
        for event in events:
            delivered = await self.send(event) and delivered
        return delivered
