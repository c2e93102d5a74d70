"""Tests for the HTTP job queue client."""

from __future__ import annotations

import json

import httpx
import pytest

from tests.fakes import FakeQueueApi, make_settings
from wardrobe_intake.core.exceptions import QueuePublishFailed
from wardrobe_intake.integrations.queue import JobQueue

WORKER_URL = "https://worker.test/process"


def _queue(queue_api: FakeQueueApi, **overrides) -> JobQueue:
    settings = make_settings(qstash_token="qstash-token", process_worker_url=WORKER_URL, **overrides)
    return JobQueue(settings, transport=httpx.MockTransport(queue_api))


@pytest.mark.asyncio
async def test_publish_sends_delivery_headers(queue_api: FakeQueueApi) -> None:
    queue = _queue(queue_api)

    result = await queue.publish(
        WORKER_URL,
        {"wardrobe_video_id": "v1"},
        dedupe_key="wv-v1-s2-f60-w768-c8",
        retries=3,
        timeout_seconds=300,
    )

    assert result.message_id == "msg_1"
    request = queue_api.published[0]
    assert str(request.url).startswith("https://queue.test/v2/publish/")
    assert str(request.url).endswith("worker.test/process")
    assert request.headers["authorization"] == "Bearer qstash-token"
    assert request.headers["upstash-deduplication-id"] == "wv-v1-s2-f60-w768-c8"
    assert request.headers["upstash-retries"] == "3"
    assert request.headers["upstash-timeout"] == "300s"
    assert request.headers["upstash-method"] == "POST"
    assert json.loads(request.content) == {"wardrobe_video_id": "v1"}
    await queue.close()


@pytest.mark.asyncio
async def test_publish_error_status_raises(queue_api: FakeQueueApi) -> None:
    queue_api.publish_status = 429
    queue = _queue(queue_api)

    with pytest.raises(QueuePublishFailed) as excinfo:
        await queue.publish(WORKER_URL, {}, dedupe_key="k", retries=0, timeout_seconds=10)

    assert excinfo.value.upstream_status == 429
    assert "quota exceeded" in excinfo.value.message


@pytest.mark.asyncio
async def test_publish_without_token_raises() -> None:
    queue = JobQueue(make_settings(qstash_token=""))

    with pytest.raises(QueuePublishFailed):
        await queue.publish(WORKER_URL, {}, dedupe_key="k", retries=0, timeout_seconds=10)


@pytest.mark.asyncio
async def test_publish_transport_error_is_wrapped() -> None:
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    settings = make_settings(qstash_token="t", process_worker_url=WORKER_URL)
    queue = JobQueue(settings, transport=httpx.MockTransport(_boom))

    with pytest.raises(QueuePublishFailed) as excinfo:
        await queue.publish(WORKER_URL, {}, dedupe_key="k", retries=0, timeout_seconds=10)

    assert "connection refused" in excinfo.value.message


@pytest.mark.asyncio
async def test_post_direct_sends_internal_token(queue_api: FakeQueueApi) -> None:
    queue = _queue(queue_api)

    status_code = await queue.post_direct(WORKER_URL, {"wardrobe_video_id": "v1"})

    assert status_code == 202
    assert queue_api.direct[0].headers["x-internal-token"] == "internal-secret"


def test_configured_needs_token_and_worker() -> None:
    assert JobQueue(make_settings(qstash_token="t", process_worker_url=WORKER_URL)).configured
    assert not JobQueue(make_settings(qstash_token="t")).configured
    assert not JobQueue(make_settings(process_worker_url=WORKER_URL)).configured


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["accepted", ["queued"], [], 42, None])
async def test_publish_tolerates_non_object_replies(reply) -> None:
    def _reply(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=reply)

    queue = JobQueue(
        make_settings(qstash_token="t", process_worker_url=WORKER_URL),
        transport=httpx.MockTransport(_reply),
    )

    result = await queue.publish(WORKER_URL, {}, dedupe_key="k", retries=0, timeout_seconds=10)

    assert result.message_id is None
    assert result.deduplicated is False
