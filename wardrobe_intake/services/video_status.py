"""Enumerations describing video and candidate lifecycle states."""

from enum import Enum


class VideoStatus(str, Enum):
    """Finite states a wardrobe video moves through during processing."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


# States from which a process request may flip the row to ``processing``.
PROCESSABLE_STATUSES = (VideoStatus.UPLOADED.value, VideoStatus.FAILED.value)


class CandidateStatus(str, Enum):
    """Candidate states used by this service; producers may add transient ones."""

    ACTIVE = "active"
    PENDING = "pending"
    GENERATED = "generated"
    READY = "ready"
    SELECTED = "selected"
    DISCARDED = "discarded"
    PROMOTED = "promoted"
    EXPIRED = "expired"
    FAILED = "failed"


# Candidates in these states no longer accept select/discard.
FROZEN_CANDIDATE_STATUSES = frozenset(
    {CandidateStatus.PROMOTED.value, CandidateStatus.EXPIRED.value, CandidateStatus.FAILED.value}
)
