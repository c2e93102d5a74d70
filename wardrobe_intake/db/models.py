"""SQLAlchemy models describing the wardrobe intake tables."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from wardrobe_intake.services.video_status import VideoStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for ORM models."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class WardrobeVideo(Base):
    """Uploaded wardrobe video awaiting or done with frame extraction."""

    __tablename__ = "wardrobe_videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        default=VideoStatus.UPLOADED.value,
        nullable=False,
    )
    last_process_message_id: Mapped[str | None] = mapped_column(String(128))
    last_process_dedupe_key: Mapped[str | None] = mapped_column(String(256))
    last_processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    candidates: Mapped[list["WardrobeVideoCandidate"]] = relationship(back_populates="video")


class WardrobeVideoCandidate(Base):
    """Ranked frame-derived photo proposed as a garment image."""

    __tablename__ = "wardrobe_video_candidates"
    __table_args__ = (UniqueConstraint("storage_bucket", "storage_path"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    wardrobe_video_id: Mapped[str] = mapped_column(
        ForeignKey("wardrobe_videos.id"),
        index=True,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    storage_bucket: Mapped[str] = mapped_column(String(64), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    phash: Mapped[str] = mapped_column(String(64), default="")
    sha256: Mapped[str] = mapped_column(String(64), default="")
    crop_box: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    frame_ts_ms: Mapped[int] = mapped_column(Integer, default=0)
    width: Mapped[int | None] = mapped_column(Integer)
    height: Mapped[int | None] = mapped_column(Integer)
    mime_type: Mapped[str | None] = mapped_column(String(32))
    bytes: Mapped[int | None] = mapped_column(Integer)
    quality_score: Mapped[float | None] = mapped_column(Float)
    confidence: Mapped[float | None] = mapped_column(Float)
    reason_codes: Mapped[list[str] | None] = mapped_column(JSON)
    embedding_model: Mapped[str | None] = mapped_column(String(64))
    rank: Mapped[int | None] = mapped_column(Integer)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    video: Mapped[WardrobeVideo] = relationship(back_populates="candidates")


class Garment(Base):
    """Confirmed wardrobe item with its deterministic scores."""

    __tablename__ = "garments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(16), default="photo", nullable=False)
    catalog_name: Mapped[str | None] = mapped_column(String(128))
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    subcategory: Mapped[str] = mapped_column(String(64), nullable=False)
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    wear_temperature: Mapped[str | None] = mapped_column(String(16))
    formality_feel: Mapped[str | None] = mapped_column(String(16))
    comfort: Mapped[int] = mapped_column(Integer, nullable=False)
    formality: Mapped[int] = mapped_column(Integer, nullable=False)
    scoring: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
