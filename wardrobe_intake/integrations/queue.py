"""Async client for the HTTP job queue (QStash publish API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.core.exceptions import QueuePublishFailed

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PublishResult:
    message_id: str | None
    deduplicated: bool = False


class JobQueue:
    """Publishes jobs for at-least-once delivery to an HTTP destination.

    The queue collapses publishes sharing a deduplication id, retries failed
    deliveries ``retries`` times and abandons a delivery after ``timeout``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return self._settings.queue_configured

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def ping(self) -> bool:
        """Return ``True`` if the queue accepts our token."""

        if not self._settings.qstash_token:
            raise RuntimeError("QSTASH_TOKEN is not configured.")
        response = await self._get_client().get(
            f"{self._settings.qstash_url.rstrip('/')}/v2/schedules",
            headers={"Authorization": f"Bearer {self._settings.qstash_token}"},
        )
        return response.is_success

    async def close(self) -> None:
        """Close the underlying HTTP client."""

        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def publish(
        self,
        destination: str,
        body: Mapping[str, Any],
        *,
        dedupe_key: str,
        retries: int,
        timeout_seconds: int,
    ) -> PublishResult:
        """Enqueue ``body`` for POST delivery to ``destination``.

        Any non-success answer means the job was not enqueued.
        """

        if not self._settings.qstash_token:
            raise QueuePublishFailed("QSTASH_TOKEN is not configured")

        publish_url = f"{self._settings.qstash_url.rstrip('/')}/v2/publish/{destination}"
        headers = {
            "Authorization": f"Bearer {self._settings.qstash_token}",
            "Content-Type": "application/json",
            "Upstash-Method": "POST",
            "Upstash-Content-Type": "application/json",
            "Upstash-Deduplication-Id": dedupe_key,
            "Upstash-Retries": str(retries),
            "Upstash-Timeout": f"{timeout_seconds}s",
        }

        try:
            response = await self._get_client().post(publish_url, json=dict(body), headers=headers)
        except httpx.HTTPError as exc:
            raise QueuePublishFailed(str(exc)) from exc

        if response.is_error:
            raise QueuePublishFailed(response.text[:300], status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict):
            payload = {}

        result = PublishResult(
            message_id=payload.get("messageId"),
            deduplicated=bool(payload.get("deduplicated", False)),
        )
        logger.info(
            "Queued job dedupe_key=%s message_id=%s deduplicated=%s",
            dedupe_key,
            result.message_id,
            result.deduplicated,
        )
        return result

    async def post_direct(self, destination: str, body: Mapping[str, Any]) -> int:
        """POST straight to the worker, bypassing the queue. Returns the status code."""

        headers = {}
        if self._settings.internal_api_token:
            headers["X-Internal-Token"] = self._settings.internal_api_token
        response = await self._get_client().post(
            destination,
            json=dict(body),
            headers=headers,
            timeout=self._settings.queue_timeout_seconds,
        )
        response.raise_for_status()
        return response.status_code
