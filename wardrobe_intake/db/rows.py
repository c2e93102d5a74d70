"""Explicit row schemas validated at the Record Store boundary."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wardrobe_intake.services.video_status import VideoStatus


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class VideoRow(_Row):
    id: str
    user_id: str
    video_url: str
    status: VideoStatus
    created_at: datetime
    last_process_message_id: str | None = None
    last_process_dedupe_key: str | None = None
    last_processed_at: datetime | None = None

    @field_validator("created_at", "last_processed_at")
    @classmethod
    def to_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class CandidateRow(_Row):
    id: str
    user_id: str
    wardrobe_video_id: str
    status: str
    storage_bucket: str
    storage_path: str
    phash: str = ""
    sha256: str = ""
    crop_box: dict[str, Any] | None = None
    frame_ts_ms: int = 0
    width: int | None = None
    height: int | None = None
    mime_type: str | None = None
    bytes: int | None = None
    quality_score: float | None = None
    confidence: float | None = None
    reason_codes: list[str] = Field(default_factory=list)
    embedding_model: str | None = None
    rank: int | None = None
    expires_at: datetime
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def to_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @field_validator("reason_codes", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class GarmentRow(_Row):
    id: str
    user_id: str
    image_url: str | None = None
    source: str
    catalog_name: str | None = None
    category: str
    subcategory: str
    tags: list[str] = Field(default_factory=list)
    wear_temperature: str | None = None
    formality_feel: str | None = None
    comfort: int
    formality: int
    scoring: dict[str, Any] | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def to_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @field_validator("tags", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value
