"""Webhook consumer - POSTs monitor updates as JSON to an HTTP endpoint.

By default only cycles that raise new critical alerts (or fail) are sent,
which makes this a simple alert-forwarding hook for chat or paging tools.
"""

from __future__ import annotations

import logging

import httpx

from smartbee.consumers.base import Consumer
from smartbee.models import MonitorUpdate

__all__ = ["WebhookConsumer"]

logger = logging.getLogger("smartbee.consumers.webhook")


class WebhookConsumer(Consumer):
    """POST monitor updates as JSON to an HTTP endpoint.

    Parameters:
        url: Target endpoint (must accept ``POST``).
        headers: Extra HTTP headers (e.g. ``{"Authorization": "Bearer …"}``).
        timeout_s: Per-request timeout in seconds.
        only_alerts: Send only updates with new critical keys (default ``True``).
        transport: Optional httpx transport (used by tests).
        **kwargs: Forwarded to :class:`Consumer`.
    """

    def __init__(
        self,
        *,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float = 10.0,
        only_alerts: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs,
    ) -> None:
        super().__init__(only_alerts=only_alerts, **kwargs)
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            headers=self._headers,
            transport=self._transport,
        )
        logger.info("WebhookConsumer ready - target: %s", self._url)

    async def handle(self, update: MonitorUpdate) -> None:
        if self._client is None:
            raise RuntimeError("WebhookConsumer is not connected")

        resp = await self._client.post(self._url, content=update.to_json())
        resp.raise_for_status()

        logger.debug(
            "POST %s - cycle %d, %d new critical - HTTP %d",
            self._url,
            update.cycle,
            len(update.new_critical_keys),
            resp.status_code,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("WebhookConsumer closed")
