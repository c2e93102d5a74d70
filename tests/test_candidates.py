"""Tests for candidate listing, signed URLs and select/discard updates."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import select

from tests.fakes import FakeStorageApi, add_candidate, add_video, make_settings
from wardrobe_intake.core.exceptions import (
    CandidateExpired,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db import models
from wardrobe_intake.services.candidates import CandidateQueryService, resolve_requested_status
from wardrobe_intake.storage.blob_gateway import BlobGateway
from wardrobe_intake.workers.cleanup import expire_stale_candidates


@pytest.fixture
def service(settings, storage_api: FakeStorageApi) -> CandidateQueryService:
    gateway = BlobGateway(settings, transport=httpx.MockTransport(storage_api))
    return CandidateQueryService(gateway, settings)


@pytest.mark.asyncio
async def test_orders_by_rank_nulls_last_then_age(session, tenant, service) -> None:
    video = await add_video(session)
    now = models.utcnow()
    unranked_old = await add_candidate(session, video, created_at=now - timedelta(minutes=5))
    second = await add_candidate(session, video, rank=2)
    first = await add_candidate(session, video, rank=1)
    unranked_new = await add_candidate(session, video, created_at=now)

    listing = await service.list_candidates(session, tenant, video.id)

    assert [view.candidate.id for view in listing.candidates] == [
        first.id,
        second.id,
        unranked_old.id,
        unranked_new.id,
    ]


@pytest.mark.asyncio
async def test_default_listing_hides_expired_and_discarded(session, tenant, service) -> None:
    video = await add_video(session)
    visible = await add_candidate(session, video, rank=1)
    await add_candidate(session, video, status="discarded", rank=2)
    await add_candidate(session, video, expires_in=timedelta(seconds=-5), rank=3)
    await add_candidate(session, video, status="expired", rank=4)

    listing = await service.list_candidates(session, tenant, video.id)

    assert [view.candidate.id for view in listing.candidates] == [visible.id]


@pytest.mark.asyncio
async def test_include_flags_widen_the_listing(session, tenant, service, storage_api) -> None:
    video = await add_video(session)
    await add_candidate(session, video, rank=1)
    await add_candidate(session, video, status="discarded", rank=2)
    stale = await add_candidate(session, video, expires_in=timedelta(seconds=-5), rank=3)

    listing = await service.list_candidates(
        session, tenant, video.id, include_expired=True, include_discarded=True
    )

    assert len(listing.candidates) == 3
    stale_view = listing.candidates[2]
    assert stale_view.candidate.id == stale.id
    assert stale_view.candidate.status == "expired"
    assert stale_view.signed_url is None
    assert stale_view.signed_url_error == "expired"
    # Only the two live candidates were signed.
    assert len([r for r in storage_api.requests if "/object/sign/" in r.url.path]) == 2


@pytest.mark.asyncio
async def test_one_signing_failure_does_not_hide_the_rest(session, tenant, service, storage_api) -> None:
    video = await add_video(session)
    good = await add_candidate(session, video, rank=1)
    bad = await add_candidate(session, video, rank=2)
    storage_api.failing_paths.add(bad.storage_path)

    listing = await service.list_candidates(session, tenant, video.id, signed_url_ttl_seconds=600)

    good_view, bad_view = listing.candidates
    assert good_view.candidate.id == good.id
    assert good_view.signed_url and good_view.signed_url.startswith("https://store.test/storage/v1/")
    assert good_view.signed_url_error is None
    assert good_view.signed_url_expires_in_seconds == 600
    assert bad_view.signed_url is None
    assert bad_view.signed_url_error.startswith("E_SIGN_URL_FAILED")
    assert listing.signed_url_expires_in_seconds == 600


@pytest.mark.asyncio
async def test_limit_is_clamped(session, tenant, service) -> None:
    video = await add_video(session)
    for rank in range(3):
        await add_candidate(session, video, rank=rank)

    assert len((await service.list_candidates(session, tenant, video.id, limit=0)).candidates) == 1
    assert len((await service.list_candidates(session, tenant, video.id, limit=2)).candidates) == 2


@pytest.mark.asyncio
async def test_unknown_or_foreign_video_is_not_found(session, service) -> None:
    video = await add_video(session, user_id="owner")

    with pytest.raises(NotFound):
        await service.list_candidates(session, TenantContext("intruder"), video.id)
    with pytest.raises(NotFound):
        await service.list_candidates(session, TenantContext("owner"), "missing-video")


@pytest.mark.asyncio
async def test_on_read_purge_marks_expired(session, tenant) -> None:
    video = await add_video(session)
    stale = await add_candidate(session, video, expires_in=timedelta(minutes=-1))
    await add_candidate(session, video)

    flipped = await expire_stale_candidates(session, tenant, video.id, models.utcnow())

    assert flipped == 1
    status = await session.scalar(
        select(models.WardrobeVideoCandidate.status).where(models.WardrobeVideoCandidate.id == stale.id)
    )
    assert status == "expired"
    assert await expire_stale_candidates(session, tenant, video.id, models.utcnow()) == 0


@pytest.mark.asyncio
async def test_select_then_discard(session, tenant, service) -> None:
    video = await add_video(session)
    candidate = await add_candidate(session, video)

    selected = await service.update_status(session, tenant, video.id, candidate.id, "selected")
    assert selected.status == "selected"

    repeated = await service.update_status(session, tenant, video.id, candidate.id, "selected")
    assert repeated.status == "selected"

    discarded = await service.update_status(session, tenant, video.id, candidate.id, "discarded")
    assert discarded.status == "discarded"


@pytest.mark.asyncio
@pytest.mark.parametrize("frozen", ["promoted", "failed"])
async def test_frozen_candidates_reject_changes(session, tenant, service, frozen: str) -> None:
    video = await add_video(session)
    candidate = await add_candidate(session, video, status=frozen)

    with pytest.raises(InvalidTransition):
        await service.update_status(session, tenant, video.id, candidate.id, "selected")


@pytest.mark.asyncio
async def test_expired_candidate_is_gone(session, tenant, service) -> None:
    video = await add_video(session)
    candidate = await add_candidate(session, video, expires_in=timedelta(seconds=-1))

    with pytest.raises(CandidateExpired) as excinfo:
        await service.update_status(session, tenant, video.id, candidate.id, "discarded")

    assert excinfo.value.status_code == 410


@pytest.mark.asyncio
async def test_update_of_foreign_candidate_is_not_found(session, service) -> None:
    video = await add_video(session, user_id="owner")
    candidate = await add_candidate(session, video)

    with pytest.raises(NotFound):
        await service.update_status(session, TenantContext("intruder"), video.id, candidate.id, "selected")


def test_requested_status_accepts_action_shorthand() -> None:
    assert resolve_requested_status(status="selected") == "selected"
    assert resolve_requested_status(action="discard") == "discarded"
    with pytest.raises(ValidationError):
        resolve_requested_status(status="promoted")


@pytest.mark.asyncio
async def test_signing_respects_concurrency_setting(session, tenant) -> None:
    in_flight = 0
    peak = 0

    async def _slow_sign(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, json={"signedURL": "/object/sign/x?token=t"})

    settings = make_settings(signed_url_concurrency=2)
    service = CandidateQueryService(BlobGateway(settings, transport=httpx.MockTransport(_slow_sign)), settings)
    video = await add_video(session)
    for rank in range(6):
        await add_candidate(session, video, rank=rank)

    listing = await service.list_candidates(session, tenant, video.id)

    assert len(listing.candidates) == 6
    assert all(view.signed_url for view in listing.candidates)
    assert peak <= 2


@pytest.mark.asyncio
async def test_purge_failure_does_not_fail_listing(session, tenant, service, mocker) -> None:
    video = await add_video(session)
    live = await add_candidate(session, video, rank=1)
    mocker.patch(
        "wardrobe_intake.services.candidates.expire_stale_candidates",
        side_effect=RuntimeError("cleanup exploded"),
    )

    listing = await service.list_candidates(session, tenant, video.id)

    assert [view.candidate.id for view in listing.candidates] == [live.id]
