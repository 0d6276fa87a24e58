# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Outbound replay of completion payloads to the webhook endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from polaris.core.config import Settings
from polaris.core.constants import SIGNATURE_HEADER, WebhookType
from polaris.core.exceptions import DeliveryError
from polaris.models.webhook import DeliveryResponse
from polaris.webhooks.signing import sign

logger = logging.getLogger("polaris.delivery")


class DeliveryClient:
    """POSTs a signed payload, exactly once per call.

    The body is signed at send time with the current secret.  Retrying is
    the caller's business; this client never retries on its own.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._secret = settings.webhook_secret
        self._base_url = settings.webhook_base_url.rstrip("/")
        self._timeout = settings.delivery_timeout
        self._user_agent = settings.delivery_user_agent
        self._client = client

    def url_for(self, webhook_type: WebhookType | str) -> str:
        """Endpoint URL for a webhook type under the configured base URL."""
        return f"{self._base_url}/api/webhooks/{webhook_type}"

    async def deliver(self, url: str, payload: dict[str, Any]) -> DeliveryResponse:
        """Sign and POST *payload* to *url*.

        Non-2xx answers are returned, not raised.  Timeouts and transport
        failures raise :class:`DeliveryError`.
        """
        if not self._secret:
            raise DeliveryError("Webhook secret is not configured")

        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: sign(body, self._secret),
            "User-Agent": self._user_agent,
        }

        # httpx times each phase separately; the outer deadline caps the whole call.
        try:
            async with asyncio.timeout(self._timeout):
                if self._client is not None:
                    response = await self._client.post(
                        url, content=body, headers=headers, timeout=self._timeout
                    )
                else:
                    async with httpx.AsyncClient(timeout=self._timeout) as client:
                        response = await client.post(url, content=body, headers=headers)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise DeliveryError(f"Webhook delivery to {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Webhook delivery to {url} failed: {exc}") from exc

        logger.info("Delivered webhook to %s: HTTP %d", url, response.status_code)
        return DeliveryResponse(status_code=response.status_code, body=_decode(response))


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None
