"""Tests for WebhookConsumer - httpx MockTransport stands in for the endpoint."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from smartbee.consumers.webhook import WebhookConsumer
from smartbee.models import MonitorUpdate

# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


def _update(new_critical: list[str] | None = None) -> MonitorUpdate:
    keys = new_critical or []
    return MonitorUpdate(
        cycle=3,
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
        critical_keys=keys,
        new_critical_keys=keys,
    )


class _Endpoint:
    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json={"ok": self.status < 400})


# -----------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------


class TestWebhookConsumer:
    """WebhookConsumer with a mocked HTTP transport."""

    @pytest.mark.asyncio
    async def test_posts_update_json(self) -> None:
        endpoint = _Endpoint()
        consumer = WebhookConsumer(
            url="http://hooks.test/alerts",
            headers={"Authorization": "Bearer hook"},
            transport=httpx.MockTransport(endpoint),
        )
        await consumer.open()
        await consumer.handle(_update(["temperatura|3"]))
        await consumer.close()

        assert len(endpoint.requests) == 1
        request = endpoint.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://hooks.test/alerts"
        assert request.headers["Authorization"] == "Bearer hook"
        assert request.headers["Content-Type"] == "application/json"
        body = json.loads(request.content)
        assert body["new_critical_keys"] == ["temperatura|3"]

    def test_only_alerts_by_default(self) -> None:
        consumer = WebhookConsumer(url="http://hooks.test/alerts")
        assert consumer.consumer_config.only_alerts is True
        assert not consumer.accepts(_update())
        assert consumer.accepts(_update(["humedad|1"]))

    def test_only_alerts_can_be_disabled(self) -> None:
        consumer = WebhookConsumer(url="http://hooks.test/alerts", only_alerts=False)
        assert consumer.accepts(_update())

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        consumer = WebhookConsumer(url="http://hooks.test/alerts", transport=httpx.MockTransport(_Endpoint(503)))
        await consumer.open()
        with pytest.raises(httpx.HTTPStatusError):
            await consumer.handle(_update(["peso|2"]))
        await consumer.close()

    @pytest.mark.asyncio
    async def test_handle_before_open(self) -> None:
        consumer = WebhookConsumer(url="http://hooks.test/alerts")
        with pytest.raises(RuntimeError, match="not connected"):
            await consumer.handle(_update(["peso|2"]))

    @pytest.mark.asyncio
    async def test_close_without_open(self) -> None:
        consumer = WebhookConsumer(url="http://hooks.test/alerts")
        await consumer.close()
