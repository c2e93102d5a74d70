"""Connectivity checks for the blob store, job queue and vision provider."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.integrations.label_provider import LabelProvider
from wardrobe_intake.integrations.queue import JobQueue
from wardrobe_intake.storage.blob_gateway import BlobGateway


@dataclass(slots=True)
class IntegrationCheckResult:
    """Structured result describing the integration check outcome."""

    name: str
    success: bool
    message: str


async def _run_check(
    name: str,
    factory: Callable[[], Awaitable[bool]],
    success_message: str,
) -> IntegrationCheckResult:
    try:
        result = await factory()
    except Exception as exc:  # reported, not raised
        return IntegrationCheckResult(name=name, success=False, message=str(exc))

    if result:
        return IntegrationCheckResult(name=name, success=True, message=success_message)
    return IntegrationCheckResult(
        name=name,
        success=False,
        message="Service responded with non-success status.",
    )


async def check_blob_store(settings: Settings | None = None) -> IntegrationCheckResult:
    """Ping the Supabase Storage API and return the result."""

    gateway = BlobGateway(settings)

    async def _ping() -> bool:
        try:
            return await gateway.ping()
        finally:
            await gateway.close()

    return await _run_check(
        name="Blob store",
        factory=_ping,
        success_message=f"Bucket '{gateway.bucket}' is reachable.",
    )


async def check_job_queue(settings: Settings | None = None) -> IntegrationCheckResult:
    """Ping the QStash API and return the result."""

    queue = JobQueue(settings)

    async def _ping() -> bool:
        try:
            return await queue.ping()
        finally:
            await queue.close()

    return await _run_check(
        name="Job queue",
        factory=_ping,
        success_message="QStash API is reachable.",
    )


async def check_label_provider(settings: Settings | None = None) -> IntegrationCheckResult:
    """Ping the vision model provider and return the result."""

    provider = LabelProvider(settings)

    async def _ping() -> bool:
        try:
            return await provider.ping()
        finally:
            await provider.close()

    return await _run_check(
        name="Vision",
        factory=_ping,
        success_message="Vision provider is reachable.",
    )


async def run_all_checks(settings: Settings | None = None) -> list[IntegrationCheckResult]:
    """Execute all integration checks concurrently."""

    settings = settings or get_settings()
    return list(
        await asyncio.gather(
            check_blob_store(settings),
            check_job_queue(settings),
            check_label_provider(settings),
        )
    )
