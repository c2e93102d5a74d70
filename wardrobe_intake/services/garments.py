"""Business logic for confirming and ingesting wardrobe garments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_intake.catalog.category import normalize_category, normalize_label
from wardrobe_intake.core.exceptions import RecordStoreError, ValidationError
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db import models
from wardrobe_intake.db.rows import GarmentRow
from wardrobe_intake.integrations.label_provider import LabelProvider, LabelResult, normalize_tags
from wardrobe_intake.recommender.scoring import FormalityFeel, WearTemperature, compute_scores

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConfirmGarment:
    """What the user confirmed for a garment (all fields may be prefilled defaults)."""

    image_url: str | None = None
    garment_type: str | None = None
    subcategory: str | None = None
    catalog_name: str | None = None
    tags: list[str] = field(default_factory=list)
    wear_temperature: str | None = None
    formality_feel: str | None = None
    source: str = "manual"
    metadata: dict[str, Any] = field(default_factory=dict)


def _parse_choice(value: str | None, choices: type, field_name: str) -> str | None:
    if value is None or not str(value).strip():
        return None
    label = normalize_label(str(value))
    for choice in choices:
        if choice.value == label:
            return choice.value
    allowed = ", ".join(choice.value for choice in choices)
    raise ValidationError(f"{field_name} must be one of: {allowed}", field=field_name)


class GarmentService:
    """Runs the category normalizer and scoring engine, then persists the garment."""

    def __init__(self, label_provider: LabelProvider) -> None:
        self._labels = label_provider

    async def confirm_garment(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        payload: ConfirmGarment,
    ) -> GarmentRow:
        wear_temperature = _parse_choice(payload.wear_temperature, WearTemperature, "wear_temperature")
        formality_feel = _parse_choice(payload.formality_feel, FormalityFeel, "formality_feel")

        normalized = normalize_category(
            garment_type=payload.garment_type,
            subcategory=payload.subcategory,
            title=payload.catalog_name,
            tags=payload.tags,
        )
        scoring = compute_scores(
            normalized.category,
            normalized.subcategory,
            wear_temperature=wear_temperature,
            formality_feel=formality_feel,
        )

        garment = models.Garment(
            user_id=tenant.user_id,
            image_url=payload.image_url,
            source=payload.source,
            catalog_name=(payload.catalog_name or "").strip() or None,
            category=normalized.category.value,
            subcategory=normalized.subcategory,
            tags=normalize_tags(list(payload.tags)),
            wear_temperature=wear_temperature,
            formality_feel=formality_feel,
            comfort=scoring.final.comfort,
            formality=scoring.final.formality,
            scoring=scoring.as_dict(),
            metadata_=dict(payload.metadata),
        )
        session.add(garment)
        try:
            await session.commit()
            await session.refresh(garment)
        except SQLAlchemyError as exc:
            await session.rollback()
            raise RecordStoreError("insert", str(exc)) from exc

        logger.info(
            "Garment %s stored as %s/%s (comfort=%d formality=%d)",
            garment.id,
            garment.category,
            garment.subcategory,
            garment.comfort,
            garment.formality,
        )
        return GarmentRow.model_validate(garment)

    async def ingest_photo(
        self,
        session: AsyncSession,
        tenant: TenantContext,
        image_url: str,
    ) -> GarmentRow:
        """Label a photo and store it; labelling failures still store the item."""

        image_url = (image_url or "").strip()
        if not image_url:
            raise ValidationError("imageUrl is empty", field="imageUrl")

        labels: LabelResult | None = None
        vision_error: str | None = None
        try:
            labels = await self._labels.analyze(image_url)
        except Exception as exc:  # the garment is stored unclassified instead
            vision_error = str(exc) or exc.__class__.__name__
            logger.warning("Vision labelling failed for %s: %s", image_url, vision_error)

        if labels is None:
            vision = {
                "ok": False,
                "reason": "Vision unavailable or failed; inserted without classification.",
                "vision_error": vision_error,
            }
            payload = ConfirmGarment(image_url=image_url, source="photo", metadata={"vision": vision})
        else:
            payload = ConfirmGarment(
                image_url=image_url,
                garment_type=labels.garment_type,
                subcategory=labels.subcategory,
                catalog_name=labels.catalog_name,
                tags=labels.tags,
                source="photo",
                metadata={"vision": {"ok": True, **labels.metadata()}},
            )
        return await self.confirm_garment(session, tenant, payload)
