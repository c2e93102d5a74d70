"""Retention cleanup for expired candidates."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db import models
from wardrobe_intake.services.video_status import CandidateStatus

logger = logging.getLogger(__name__)


async def expire_stale_candidates(
    session: AsyncSession,
    tenant: TenantContext,
    wardrobe_video_id: str,
    now: datetime,
    batch_size: int = 200,
) -> int:
    """
    Mark candidates past ``expires_at`` as ``expired``.

    Runs on read so listings stay clean without a scheduler. Returns the
    number of rows flipped in this batch.
    """

    candidate = models.WardrobeVideoCandidate
    stmt = (
        select(candidate.id)
        .where(
            candidate.user_id == tenant.user_id,
            candidate.wardrobe_video_id == wardrobe_video_id,
            candidate.expires_at < now,
            candidate.status != CandidateStatus.EXPIRED.value,
        )
        .limit(batch_size)
    )
    result = await session.execute(stmt)
    expired_ids = [row_id for row_id in result.scalars().all() if row_id]
    if not expired_ids:
        return 0

    await session.execute(
        update(candidate)
        .where(candidate.id.in_(expired_ids))
        .values(status=CandidateStatus.EXPIRED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    logger.info("Expired %d candidates for video %s", len(expired_ids), wardrobe_video_id)
    return len(expired_ids)
