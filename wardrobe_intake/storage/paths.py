"""Canonical object paths for candidate images.

Layout: ``<user_id>/<wardrobe_video_id>/candidates/<candidate_id>.webp`` inside
the private candidates bucket. Every caller goes through these helpers; no
other module builds candidate paths by hand.
"""

from __future__ import annotations

from wardrobe_intake.core.exceptions import InvalidSegment

CANDIDATES_BUCKET = "wardrobe-candidates"
CANDIDATE_EXTENSION = ".webp"

_FORBIDDEN = ("/", "\\", "..")


def _safe_segment(value: str | None, field: str) -> str:
    segment = (value or "").strip()
    if not segment:
        raise InvalidSegment(field, reason="missing")
    if any(token in segment for token in _FORBIDDEN):
        raise InvalidSegment(field)
    return segment


def candidate_object_path(user_id: str, wardrobe_video_id: str, candidate_id: str) -> str:
    """Return the storage path of one candidate image."""

    prefix = candidate_prefix(user_id, wardrobe_video_id)
    candidate = _safe_segment(candidate_id, "candidate_id")
    return f"{prefix}{candidate}{CANDIDATE_EXTENSION}"


def candidate_location(user_id: str, wardrobe_video_id: str, candidate_id: str) -> tuple[str, str]:
    """Return ``(storage_bucket, storage_path)`` for one candidate image."""

    return CANDIDATES_BUCKET, candidate_object_path(user_id, wardrobe_video_id, candidate_id)


def candidate_prefix(user_id: str, wardrobe_video_id: str) -> str:
    """Return the prefix under which all candidates of a video live."""

    user = _safe_segment(user_id, "user_id")
    video = _safe_segment(wardrobe_video_id, "wardrobe_video_id")
    return f"{user}/{video}/candidates/"
