"""Read path for frame-derived candidates plus select/discard updates."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.core.exceptions import (
    CandidateExpired,
    InvalidTransition,
    NotFound,
    RecordStoreError,
    ValidationError,
)
from wardrobe_intake.core.numbers import clamp_int
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db import models
from wardrobe_intake.db.rows import CandidateRow
from wardrobe_intake.metrics.prometheus_exporter import signed_url_failures_total
from wardrobe_intake.services.video_status import FROZEN_CANDIDATE_STATUSES, CandidateStatus
from wardrobe_intake.storage.blob_gateway import BlobGateway, clamp_signed_url_ttl
from wardrobe_intake.workers.cleanup import expire_stale_candidates

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL = 1800
DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_ACTIONS = {"select": CandidateStatus.SELECTED.value, "discard": CandidateStatus.DISCARDED.value}
_USER_STATUSES = frozenset(_ACTIONS.values())


def candidate_to_dto(row: CandidateRow) -> dict[str, Any]:
    """camelCase wire shape; database column names stay internal."""

    return {
        "id": row.id,
        "userId": row.user_id,
        "wardrobeVideoId": row.wardrobe_video_id,
        "status": row.status,
        "storageBucket": row.storage_bucket,
        "storagePath": row.storage_path,
        "phash": row.phash,
        "sha256": row.sha256,
        "cropBox": row.crop_box,
        "frameTsMs": row.frame_ts_ms,
        "width": row.width,
        "height": row.height,
        "mimeType": row.mime_type,
        "bytes": row.bytes,
        "qualityScore": row.quality_score,
        "confidence": row.confidence,
        "reasonCodes": list(row.reason_codes),
        "embeddingModel": row.embedding_model,
        "rank": row.rank,
        "expiresAt": row.expires_at.isoformat(),
        "createdAt": row.created_at.isoformat(),
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


@dataclass(slots=True, frozen=True)
class CandidateView:
    """A candidate row enriched with its (optional) signed URL."""

    candidate: CandidateRow
    signed_url: str | None
    signed_url_error: str | None
    signed_url_expires_in_seconds: int

    def to_dto(self) -> dict[str, Any]:
        return {
            **candidate_to_dto(self.candidate),
            "signedUrl": self.signed_url,
            "signedUrlError": self.signed_url_error,
            "signedUrlExpiresInSeconds": self.signed_url_expires_in_seconds,
        }


@dataclass(slots=True, frozen=True)
class CandidateListing:
    wardrobe_video_id: str
    signed_url_expires_in_seconds: int
    candidates: list[CandidateView] = field(default_factory=list)


def resolve_requested_status(status: str | None = None, action: str | None = None) -> str:
    """Accept an explicit status or the select/discard action shorthand."""

    if status in _USER_STATUSES:
        return status
    if action in _ACTIONS:
        return _ACTIONS[action]
    raise ValidationError(
        "status must be 'selected' or 'discarded' (or action: 'select'|'discard')",
        field="status",
    )


class CandidateQueryService:
    """Lists a video's candidates with visibility filtering and signed URLs."""

    def __init__(self, gateway: BlobGateway, settings: Settings | None = None) -> None:
        self._gateway = gateway
        self._settings = settings or get_settings()

    async def list_candidates(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        *,
        include_expired: bool = False,
        include_discarded: bool = False,
        signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL,
        limit: int = DEFAULT_LIMIT,
        now: datetime | None = None,
    ) -> CandidateListing:
        """Return visible candidates ordered by rank (nulls last) then age."""

        now = now or models.utcnow()
        await self._ensure_video_owned(session, tenant, wardrobe_video_id)
        await self._purge_expired(session, tenant, wardrobe_video_id, now)

        candidate = models.WardrobeVideoCandidate
        stmt = select(candidate).where(
            candidate.user_id == tenant.user_id,
            candidate.wardrobe_video_id == wardrobe_video_id,
        )
        if not include_expired:
            stmt = stmt.where(
                candidate.expires_at > now,
                candidate.status != CandidateStatus.EXPIRED.value,
            )
        if not include_discarded:
            stmt = stmt.where(candidate.status != CandidateStatus.DISCARDED.value)
        stmt = (
            stmt.order_by(candidate.rank.asc().nulls_last(), candidate.created_at.asc())
            .limit(clamp_int(limit, 1, MAX_LIMIT, DEFAULT_LIMIT))
            .execution_options(populate_existing=True)
        )

        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise RecordStoreError("read", str(exc)) from exc
        rows = [CandidateRow.model_validate(item) for item in result.scalars().all()]

        ttl = clamp_signed_url_ttl(signed_url_ttl_seconds)
        semaphore = asyncio.Semaphore(max(1, self._settings.signed_url_concurrency))
        views = await asyncio.gather(
            *(self._with_signed_url(row, ttl, now, semaphore) for row in rows)
        )
        return CandidateListing(
            wardrobe_video_id=wardrobe_video_id,
            signed_url_expires_in_seconds=ttl,
            candidates=list(views),
        )

    async def update_status(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        candidate_id: str,
        requested: str,
        *,
        now: datetime | None = None,
    ) -> CandidateRow:
        """Select or discard a candidate; repeating the same request is a no-op."""

        if requested not in _USER_STATUSES:
            raise ValidationError(f"Unsupported candidate status '{requested}'", field="status")

        now = now or models.utcnow()
        row = await self._get_candidate(session, tenant, wardrobe_video_id, candidate_id)
        if row.is_expired(now):
            raise CandidateExpired()
        if row.status == requested:
            return row
        if row.status in FROZEN_CANDIDATE_STATUSES:
            raise InvalidTransition(row.status, requested)

        candidate = models.WardrobeVideoCandidate
        stmt = (
            update(candidate)
            .where(
                candidate.id == candidate_id,
                candidate.wardrobe_video_id == wardrobe_video_id,
                candidate.user_id == tenant.user_id,
            )
            .values(status=requested, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            await session.execute(stmt)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise RecordStoreError("update", str(exc)) from exc

        logger.info("Candidate %s marked %s", candidate_id, requested)
        return await self._get_candidate(session, tenant, wardrobe_video_id, candidate_id)

    async def _ensure_video_owned(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
    ) -> None:
        stmt = select(models.WardrobeVideo.id).where(
            models.WardrobeVideo.id == wardrobe_video_id,
            models.WardrobeVideo.user_id == tenant.user_id,
        )
        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise RecordStoreError("read", str(exc)) from exc
        if result.scalar_one_or_none() is None:
            raise NotFound("Video")

    async def _get_candidate(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        candidate_id: str,
    ) -> CandidateRow:
        candidate = models.WardrobeVideoCandidate
        stmt = (
            select(candidate)
            .where(
                candidate.id == candidate_id,
                candidate.wardrobe_video_id == wardrobe_video_id,
                candidate.user_id == tenant.user_id,
            )
            .execution_options(populate_existing=True)
        )
        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise RecordStoreError("read", str(exc)) from exc
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFound("Candidate")
        return CandidateRow.model_validate(item)

    async def _purge_expired(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        wardrobe_video_id: str,
        now: datetime,
    ) -> None:
        try:
            await expire_stale_candidates(session, tenant, wardrobe_video_id, now)
        except Exception:
            await session.rollback()
            logger.warning("Expired-candidate purge failed for video %s", wardrobe_video_id, exc_info=True)

    async def _with_signed_url(
        self,
        row: CandidateRow,
        ttl: int,
        now: datetime,
        semaphore: asyncio.Semaphore,
    ) -> CandidateView:
        if row.is_expired(now):
            return CandidateView(row, None, "expired", ttl)

        async with semaphore:
            try:
                signed = await self._gateway.create_signed_url(row.storage_path, ttl)
            except Exception as exc:  # one bad object must not hide the rest
                signed_url_failures_total.inc()
                logger.warning("Signed URL failed for candidate %s: %s", row.id, exc)
                return CandidateView(row, None, str(exc), ttl)
        return CandidateView(row, signed.signed_url, None, ttl)
