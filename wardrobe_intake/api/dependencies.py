"""Service wiring shared by the routers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wardrobe_intake.config.settings import Settings
from wardrobe_intake.integrations.label_provider import LabelProvider
from wardrobe_intake.integrations.queue import JobQueue
from wardrobe_intake.services.candidates import CandidateQueryService
from wardrobe_intake.services.garments import GarmentService
from wardrobe_intake.services.videos import VideoJobOrchestrator
from wardrobe_intake.storage.blob_gateway import BlobGateway
from wardrobe_intake.workers.background import BackgroundTaskRunner


@dataclass(slots=True)
class Services:
    """Long-lived clients and services owned by one application instance."""

    session_factory: async_sessionmaker[AsyncSession]
    blob_gateway: BlobGateway
    job_queue: JobQueue
    runner: BackgroundTaskRunner
    label_provider: LabelProvider
    videos: VideoJobOrchestrator
    candidates: CandidateQueryService
    garments: GarmentService

    @classmethod
    def build(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        blob_gateway: BlobGateway | None = None,
        job_queue: JobQueue | None = None,
        label_provider: LabelProvider | None = None,
    ) -> "Services":
        blob_gateway = blob_gateway or BlobGateway(settings)
        job_queue = job_queue or JobQueue(settings)
        label_provider = label_provider or LabelProvider(settings)
        runner = BackgroundTaskRunner()
        return cls(
            session_factory=session_factory,
            blob_gateway=blob_gateway,
            job_queue=job_queue,
            runner=runner,
            label_provider=label_provider,
            videos=VideoJobOrchestrator(job_queue, runner, session_factory, settings),
            candidates=CandidateQueryService(blob_gateway, settings),
            garments=GarmentService(label_provider),
        )

    async def close(self) -> None:
        await self.runner.drain()
        await self.blob_gateway.close()
        await self.job_queue.close()
        await self.label_provider.close()


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a session bound to this application's engine."""

    async with request.app.state.services.session_factory() as session:
        yield session
