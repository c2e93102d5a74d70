"""Tests for garment confirmation and photo ingest."""

from __future__ import annotations

import pytest
import pytest_mock
from sqlalchemy import select

from wardrobe_intake.core.exceptions import ValidationError
from wardrobe_intake.db import models
from wardrobe_intake.integrations.label_provider import LabelProvider, LabelResult
from wardrobe_intake.services.garments import ConfirmGarment, GarmentService


@pytest.fixture
def label_provider(mocker: pytest_mock.MockerFixture):
    provider = mocker.create_autospec(LabelProvider, instance=True)
    provider.analyze = mocker.AsyncMock(return_value=None)
    return provider


@pytest.fixture
def service(label_provider) -> GarmentService:
    return GarmentService(label_provider)


@pytest.mark.asyncio
async def test_confirm_normalizes_and_scores(session, tenant, service: GarmentService) -> None:
    row = await service.confirm_garment(
        session,
        tenant,
        ConfirmGarment(
            image_url="https://cdn.test/sneaker.jpg",
            garment_type="Sneakers",
            catalog_name="White Leather Sneakers",
            wear_temperature="Warm",
            formality_feel="Casual",
        ),
    )

    assert row.category == "shoes"
    assert row.subcategory == "sneakers"
    assert row.wear_temperature == "warm"
    assert row.formality_feel == "casual"
    assert (row.comfort, row.formality) == (5, 1)
    assert row.scoring["matched_rule"] == {"category": "shoes", "subcategory_key": "sneakers"}
    assert row.user_id == tenant.user_id


@pytest.mark.asyncio
async def test_confirm_rejects_unknown_choice(session, tenant, service: GarmentService) -> None:
    with pytest.raises(ValidationError) as excinfo:
        await service.confirm_garment(session, tenant, ConfirmGarment(wear_temperature="scorching"))

    assert excinfo.value.details == {"field": "wear_temperature"}


@pytest.mark.asyncio
async def test_ingest_uses_vision_labels(session, tenant, service, label_provider) -> None:
    label_provider.analyze.return_value = LabelResult(
        catalog_name="Navy Wool Overcoat",
        garment_type="coat",
        subcategory="overcoat",
        tags=["wool", "navy"],
        confidence=0.9,
        model="gpt-4.1-mini",
    )

    row = await service.ingest_photo(session, tenant, " https://cdn.test/coat.jpg ")

    assert row.source == "photo"
    assert row.image_url == "https://cdn.test/coat.jpg"
    assert row.category == "outerwear"
    assert row.subcategory == "overcoat"
    assert (row.comfort, row.formality) == (3, 4)
    assert row.tags == ["wool", "navy"]

    stored = await session.scalar(select(models.Garment).where(models.Garment.id == row.id))
    assert stored.metadata_["vision"]["ok"] is True
    assert stored.metadata_["vision"]["confidence"] == 0.9


@pytest.mark.asyncio
async def test_ingest_survives_vision_failure(session, tenant, service, label_provider) -> None:
    label_provider.analyze.side_effect = RuntimeError("Vision request failed: 500")

    row = await service.ingest_photo(session, tenant, "https://cdn.test/mystery.jpg")

    assert row.category == "tops"
    assert row.subcategory == "tops"
    assert (row.comfort, row.formality) == (3, 3)
    stored = await session.scalar(select(models.Garment).where(models.Garment.id == row.id))
    assert stored.metadata_["vision"]["ok"] is False
    assert "500" in stored.metadata_["vision"]["vision_error"]


@pytest.mark.asyncio
async def test_ingest_requires_image_url(session, tenant, service) -> None:
    with pytest.raises(ValidationError):
        await service.ingest_photo(session, tenant, "  ")
