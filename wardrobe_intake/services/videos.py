"""Wardrobe video lifecycle and processing job dispatch."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.core.exceptions import (
    InvalidTransition,
    NotFound,
    QueuePublishFailed,
    RecordStoreError,
    ValidationError,
)
from wardrobe_intake.core.numbers import clamp_int
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db import models
from wardrobe_intake.db.rows import VideoRow
from wardrobe_intake.integrations.queue import JobQueue
from wardrobe_intake.metrics.prometheus_exporter import (
    process_dispatch_total,
    queue_publish_failures_total,
    videos_created_total,
)
from wardrobe_intake.services.video_status import PROCESSABLE_STATUSES, VideoStatus
from wardrobe_intake.workers.background import BackgroundTaskRunner

logger = logging.getLogger(__name__)

# (minimum, maximum, default) for each job parameter; shared with the worker.
SAMPLE_EVERY_SECONDS_BOUNDS = (1, 10, 2)
MAX_FRAMES_BOUNDS = (6, 120, 60)
MAX_WIDTH_BOUNDS = (480, 1920, 768)
MAX_CANDIDATES_BOUNDS = (1, 25, 8)


def _bounded(value: Any, bounds: tuple[int, int, int]) -> int:
    minimum, maximum, default = bounds
    if value is None:
        return default
    return clamp_int(value, minimum, maximum, default)


@dataclass(slots=True, frozen=True)
class ProcessOptions:
    """Frame sampling parameters forwarded to the processing worker."""

    sample_every_seconds: int = SAMPLE_EVERY_SECONDS_BOUNDS[2]
    max_frames: int = MAX_FRAMES_BOUNDS[2]
    max_width: int = MAX_WIDTH_BOUNDS[2]
    max_candidates: int = MAX_CANDIDATES_BOUNDS[2]

    @classmethod
    def bounded(
        cls,
        sample_every_seconds: Any = None,
        max_frames: Any = None,
        max_width: Any = None,
        max_candidates: Any = None,
    ) -> "ProcessOptions":
        """Build options from loosely typed input, clamping every field."""

        return cls(
            sample_every_seconds=_bounded(sample_every_seconds, SAMPLE_EVERY_SECONDS_BOUNDS),
            max_frames=_bounded(max_frames, MAX_FRAMES_BOUNDS),
            max_width=_bounded(max_width, MAX_WIDTH_BOUNDS),
            max_candidates=_bounded(max_candidates, MAX_CANDIDATES_BOUNDS),
        )


def build_dedupe_key(wardrobe_video_id: str, options: ProcessOptions) -> str:
    """Identical video and parameters collapse to one job; any change forces a new one."""

    return (
        f"wv-{wardrobe_video_id}"
        f"-s{options.sample_every_seconds}"
        f"-f{options.max_frames}"
        f"-w{options.max_width}"
        f"-c{options.max_candidates}"
    )


def build_job_payload(wardrobe_video_id: str, options: ProcessOptions) -> dict[str, Any]:
    return {"wardrobe_video_id": wardrobe_video_id, **asdict(options)}


@dataclass(slots=True, frozen=True)
class ProcessOutcome:
    """What a process request did."""

    video: VideoRow
    dispatched: bool
    mode: str
    dedupe_key: str | None = None
    message_id: str | None = None


class VideoJobOrchestrator:
    """Owns the video status machine and hands processing jobs to the queue."""

    def __init__(
        self,
        queue: JobQueue,
        runner: BackgroundTaskRunner,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._queue = queue
        self._runner = runner
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def create_video(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        *,
        video_url: str,
        auto_process: bool | None = None,
    ) -> VideoRow:
        """Insert a video in ``uploaded`` and optionally kick off processing."""

        url = (video_url or "").strip()
        if not url:
            raise ValidationError("Missing video_url", field="video_url")

        video = models.WardrobeVideo(
            user_id=tenant.user_id,
            video_url=url,
            status=VideoStatus.UPLOADED.value,
        )
        session.add(video)
        try:
            await session.commit()
            await session.refresh(video)
        except SQLAlchemyError as exc:
            await session.rollback()
            raise RecordStoreError("insert", str(exc)) from exc

        row = VideoRow.model_validate(video)
        videos_created_total.inc()
        logger.info("Created wardrobe video %s", row.id)

        should_process = self._settings.auto_process_on_create if auto_process is None else auto_process
        if should_process:
            self._runner.spawn(
                self._auto_process(tenant, row.id),
                name=f"auto-process:{row.id}",
            )
        return row

    async def list_videos(self, session: AsyncSession, tenant: TenantContext) -> list[VideoRow]:
        """Return the tenant's videos, newest first."""

        stmt = (
            select(models.WardrobeVideo)
            .where(models.WardrobeVideo.user_id == tenant.user_id)
            .order_by(models.WardrobeVideo.created_at.desc())
            .execution_options(populate_existing=True)
        )
        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise RecordStoreError("read", str(exc)) from exc
        return [VideoRow.model_validate(video) for video in result.scalars().all()]

    async def get_video(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
    ) -> VideoRow:
        """Return one video owned by the tenant or raise :class:`NotFound`."""

        stmt = (
            select(models.WardrobeVideo)
            .where(
                models.WardrobeVideo.id == wardrobe_video_id,
                models.WardrobeVideo.user_id == tenant.user_id,
            )
            .execution_options(populate_existing=True)
        )
        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise RecordStoreError("read", str(exc)) from exc
        video = result.scalar_one_or_none()
        if video is None:
            raise NotFound("Video")
        return VideoRow.model_validate(video)

    async def request_processing(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        options: ProcessOptions | None = None,
    ) -> ProcessOutcome:
        """Move a video towards ``processing`` and dispatch its job.

        ``processed`` videos are left alone. ``uploaded``/``failed`` videos are
        flipped with a conditional update; ``processing`` videos keep their
        status but the job is dispatched again, relying on queue dedupe.
        """

        options = options or ProcessOptions()
        video = await self.get_video(session, tenant, wardrobe_video_id)

        if video.status is VideoStatus.PROCESSED:
            process_dispatch_total.labels(mode="none").inc()
            return ProcessOutcome(video=video, dispatched=False, mode="none")

        if video.status.value in PROCESSABLE_STATUSES:
            flipped = await self._mark_processing(session, tenant, video.id)
            if not flipped:
                logger.info("Video %s changed status concurrently; treating as processing", video.id)
            video = video.model_copy(update={"status": VideoStatus.PROCESSING})

        dedupe_key = build_dedupe_key(video.id, options)
        mode, message_id = await self._dispatch(video.id, options, dedupe_key)
        await self._record_dispatch(session, tenant, video.id, dedupe_key, message_id)

        video = video.model_copy(
            update={"last_process_dedupe_key": dedupe_key, "last_process_message_id": message_id}
        )
        return ProcessOutcome(
            video=video,
            dispatched=mode in ("queue", "direct"),
            mode=mode,
            dedupe_key=dedupe_key,
            message_id=message_id,
        )

    async def complete_processing(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        *,
        succeeded: bool,
    ) -> VideoRow:
        """Worker callback: ``processing`` becomes ``processed`` or ``failed``."""

        target = VideoStatus.PROCESSED if succeeded else VideoStatus.FAILED
        stmt = (
            update(models.WardrobeVideo)
            .where(
                models.WardrobeVideo.id == wardrobe_video_id,
                models.WardrobeVideo.user_id == tenant.user_id,
                models.WardrobeVideo.status == VideoStatus.PROCESSING.value,
            )
            .values(status=target.value, last_processed_at=models.utcnow(), updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await session.execute(stmt)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise RecordStoreError("update", str(exc)) from exc

        video = await self.get_video(session, tenant, wardrobe_video_id)
        if result.rowcount == 0 and video.status is not target:
            raise InvalidTransition(video.status.value, target.value)
        logger.info("Video %s finished processing with status %s", video.id, video.status.value)
        return video

    async def _mark_processing(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
    ) -> bool:
        stmt = (
            update(models.WardrobeVideo)
            .where(
                models.WardrobeVideo.id == wardrobe_video_id,
                models.WardrobeVideo.user_id == tenant.user_id,
                models.WardrobeVideo.status.in_(PROCESSABLE_STATUSES),
            )
            .values(status=VideoStatus.PROCESSING.value, updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await session.execute(stmt)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise RecordStoreError("update", str(exc)) from exc
        return result.rowcount > 0

    async def _dispatch(
        self,
        wardrobe_video_id: str,
        options: ProcessOptions,
        dedupe_key: str,
    ) -> tuple[str, str | None]:
        payload = build_job_payload(wardrobe_video_id, options)
        destination = self._settings.process_worker_url

        if self._queue.configured:
            try:
                published = await self._queue.publish(
                    destination,
                    payload,
                    dedupe_key=dedupe_key,
                    retries=self._settings.queue_retries,
                    timeout_seconds=self._settings.queue_timeout_seconds,
                )
            except QueuePublishFailed as exc:
                queue_publish_failures_total.inc()
                logger.warning("Queue publish failed for %s, falling back: %s", wardrobe_video_id, exc)
            else:
                process_dispatch_total.labels(mode="queue").inc()
                return "queue", published.message_id

        if not destination:
            logger.warning("No processing worker configured; video %s not dispatched", wardrobe_video_id)
            process_dispatch_total.labels(mode="skipped").inc()
            return "skipped", None

        self._runner.spawn(
            self._queue.post_direct(destination, payload),
            name=f"process-direct:{wardrobe_video_id}",
        )
        process_dispatch_total.labels(mode="direct").inc()
        return "direct", None

    async def _record_dispatch(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        dedupe_key: str,
        message_id: str | None,
    ) -> None:
        stmt = (
            update(models.WardrobeVideo)
            .where(
                models.WardrobeVideo.id == wardrobe_video_id,
                models.WardrobeVideo.user_id == tenant.user_id,
            )
            .values(last_process_dedupe_key=dedupe_key, last_process_message_id=message_id)
            .execution_options(synchronize_session=False)
        )
        try:
            await session.execute(stmt)
            await session.commit()
        except SQLAlchemyError:
            # Job already dispatched; bookkeeping is best-effort.
            await session.rollback()
            logger.warning("Could not record dispatch for video %s", wardrobe_video_id, exc_info=True)

    async def _auto_process(self, tenant: TenantContext, wardrobe_video_id: str) -> None:
        if self._session_factory is None:
            raise RuntimeError("Auto-process needs a session factory.")

        async with self._session_factory() as session:
            video = await self.get_video(session, tenant, wardrobe_video_id)
            if video.status.value not in PROCESSABLE_STATUSES:
                logger.info("Skipping auto-process for %s in status %s", video.id, video.status.value)
                return
            outcome = await self.request_processing(session, tenant, wardrobe_video_id)
            logger.info("Auto-processed video %s via %s", wardrobe_video_id, outcome.mode)
