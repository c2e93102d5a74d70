"""Request and response models for the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wardrobe_intake.db.rows import GarmentRow, VideoRow


class CreateVideoRequest(BaseModel):
    video_url: str = Field(default="", alias="videoUrl")
    auto_process: bool | None = Field(default=None, alias="autoProcess")

    model_config = ConfigDict(populate_by_name=True)


class ProcessRequest(BaseModel):
    """Loosely typed on purpose: every value is clamped, never rejected."""

    sample_every_seconds: Any = None
    max_frames: Any = None
    max_width: Any = None
    max_candidates: Any = None


class CompleteProcessingRequest(BaseModel):
    succeeded: bool = True


class CandidateUpdateRequest(BaseModel):
    status: str | None = None
    action: str | None = None


class ConfirmGarmentRequest(BaseModel):
    image_url: str | None = Field(default=None, alias="imageUrl")
    garment_type: str | None = Field(default=None, alias="garmentType")
    subcategory: str | None = None
    catalog_name: str | None = Field(default=None, alias="catalogName")
    tags: list[str] = Field(default_factory=list)
    wear_temperature: str | None = None
    formality_feel: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class IngestPhotoRequest(BaseModel):
    image_url: str = Field(default="", alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True)


class VideoOut(BaseModel):
    id: str
    user_id: str
    video_url: str
    status: str
    created_at: datetime
    last_processed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: VideoRow) -> "VideoOut":
        return cls(
            id=row.id,
            user_id=row.user_id,
            video_url=row.video_url,
            status=row.status.value,
            created_at=row.created_at,
            last_processed_at=row.last_processed_at,
        )


class VideoEnvelope(BaseModel):
    ok: bool = True
    video: VideoOut


class VideoListEnvelope(BaseModel):
    ok: bool = True
    videos: list[VideoOut]


class ProcessEnvelope(BaseModel):
    ok: bool = True
    video: VideoOut
    dispatched: bool
    mode: str
    dedupe_key: str | None = None
    message_id: str | None = None


class GarmentOut(BaseModel):
    id: str
    user_id: str
    image_url: str | None = None
    source: str
    catalog_name: str | None = None
    category: str
    subcategory: str
    tags: list[str]
    wear_temperature: str | None = None
    formality_feel: str | None = None
    comfort: int
    formality: int
    scoring: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_row(cls, row: GarmentRow) -> "GarmentOut":
        return cls.model_validate(row.model_dump())


class GarmentEnvelope(BaseModel):
    ok: bool = True
    garment: GarmentOut
