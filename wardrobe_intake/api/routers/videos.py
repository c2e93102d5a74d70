"""Wardrobe video routes: create, list, process, candidates."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_intake.api.auth import InternalAuthDependency, TenantDependency
from wardrobe_intake.api.dependencies import Services, get_db_session, get_services
from wardrobe_intake.api.schemas import (
    CandidateUpdateRequest,
    CompleteProcessingRequest,
    CreateVideoRequest,
    ProcessEnvelope,
    ProcessRequest,
    VideoEnvelope,
    VideoListEnvelope,
    VideoOut,
)
from wardrobe_intake.core.numbers import clamp_int
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.services.candidates import (
    DEFAULT_LIMIT,
    DEFAULT_SIGNED_URL_TTL,
    MAX_LIMIT,
    candidate_to_dto,
    resolve_requested_status,
)
from wardrobe_intake.services.videos import ProcessOptions

router = APIRouter(prefix="/api/wardrobe-videos", tags=["wardrobe-videos"])

# Signed links handed to the browser live between one minute and one hour.
LIST_TTL_MIN = 60
LIST_TTL_MAX = 3600


@router.get("", response_model=VideoListEnvelope)
async def list_videos(
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> VideoListEnvelope:
    rows = await services.videos.list_videos(session, tenant)
    return VideoListEnvelope(videos=[VideoOut.from_row(row) for row in rows])


@router.post("", response_model=VideoEnvelope)
async def create_video(
    payload: CreateVideoRequest,
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> VideoEnvelope:
    row = await services.videos.create_video(
        session,
        tenant,
        video_url=payload.video_url,
        auto_process=payload.auto_process,
    )
    return VideoEnvelope(video=VideoOut.from_row(row))


@router.post("/{wardrobe_video_id}/process", response_model=ProcessEnvelope)
async def process_video(
    wardrobe_video_id: str,
    payload: ProcessRequest | None = Body(default=None),
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> ProcessEnvelope:
    payload = payload or ProcessRequest()
    options = ProcessOptions.bounded(
        sample_every_seconds=payload.sample_every_seconds,
        max_frames=payload.max_frames,
        max_width=payload.max_width,
        max_candidates=payload.max_candidates,
    )
    outcome = await services.videos.request_processing(session, tenant, wardrobe_video_id, options)
    return ProcessEnvelope(
        video=VideoOut.from_row(outcome.video),
        dispatched=outcome.dispatched,
        mode=outcome.mode,
        dedupe_key=outcome.dedupe_key,
        message_id=outcome.message_id,
    )


@router.post(
    "/{wardrobe_video_id}/process/complete",
    response_model=VideoEnvelope,
    dependencies=[InternalAuthDependency],
)
async def complete_processing(
    wardrobe_video_id: str,
    payload: CompleteProcessingRequest,
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> VideoEnvelope:
    row = await services.videos.complete_processing(
        session,
        tenant,
        wardrobe_video_id,
        succeeded=payload.succeeded,
    )
    return VideoEnvelope(video=VideoOut.from_row(row))


@router.get("/{wardrobe_video_id}/candidates")
async def list_candidates(
    wardrobe_video_id: str,
    include_expired: bool = Query(False),
    include_discarded: bool = Query(False),
    signed_url_ttl_seconds: str | None = Query(None),
    limit: str | None = Query(None),
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> dict:
    """List candidates with short-lived signed URLs; bad numbers fall back to defaults."""

    listing = await services.candidates.list_candidates(
        session,
        tenant,
        wardrobe_video_id,
        include_expired=include_expired,
        include_discarded=include_discarded,
        signed_url_ttl_seconds=clamp_int(
            signed_url_ttl_seconds, LIST_TTL_MIN, LIST_TTL_MAX, DEFAULT_SIGNED_URL_TTL
        ),
        limit=clamp_int(limit, 1, MAX_LIMIT, DEFAULT_LIMIT),
    )
    return {
        "ok": True,
        "wardrobeVideoId": listing.wardrobe_video_id,
        "signedUrlExpiresInSeconds": listing.signed_url_expires_in_seconds,
        "candidates": [view.to_dto() for view in listing.candidates],
    }


@router.patch("/{wardrobe_video_id}/candidates/{candidate_id}")
async def update_candidate(
    wardrobe_video_id: str,
    candidate_id: str,
    payload: CandidateUpdateRequest,
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> dict:
    requested = resolve_requested_status(payload.status, payload.action)
    row = await services.candidates.update_status(
        session,
        tenant,
        wardrobe_video_id,
        candidate_id,
        requested,
    )
    return {"ok": True, "candidate": candidate_to_dto(row)}
