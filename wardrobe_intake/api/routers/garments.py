"""Garment confirmation and photo ingest routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_intake.api.auth import TenantDependency
from wardrobe_intake.api.dependencies import Services, get_db_session, get_services
from wardrobe_intake.api.schemas import (
    ConfirmGarmentRequest,
    GarmentEnvelope,
    GarmentOut,
    IngestPhotoRequest,
)
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.services.garments import ConfirmGarment

router = APIRouter(prefix="/api/garments", tags=["garments"])


@router.post("/confirm", response_model=GarmentEnvelope)
async def confirm_garment(
    payload: ConfirmGarmentRequest,
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> GarmentEnvelope:
    row = await services.garments.confirm_garment(
        session,
        tenant,
        ConfirmGarment(
            image_url=payload.image_url,
            garment_type=payload.garment_type,
            subcategory=payload.subcategory,
            catalog_name=payload.catalog_name,
            tags=payload.tags,
            wear_temperature=payload.wear_temperature,
            formality_feel=payload.formality_feel,
        ),
    )
    return GarmentEnvelope(garment=GarmentOut.from_row(row))


@router.post("/ingest", response_model=GarmentEnvelope)
async def ingest_photo(
    payload: IngestPhotoRequest,
    tenant: TenantContext = TenantDependency,
    session: AsyncSession = Depends(get_db_session),
    services: Services = Depends(get_services),
) -> GarmentEnvelope:
    row = await services.garments.ingest_photo(session, tenant, payload.image_url)
    return GarmentEnvelope(garment=GarmentOut.from_row(row))
