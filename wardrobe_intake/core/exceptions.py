"""
Error taxonomy shared by services and the HTTP layer.

Every error carries a stable ``error_code`` so callers can branch without
parsing upstream vendor text. The FastAPI handler at the bottom renders them
as ``{"ok": false, "error": {...}}``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


class IntakeError(Exception):
    """Base exception for wardrobe intake errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "E_INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.error_code, "message": self.message, **self.details}


class ValidationError(IntakeError):
    """Input validation failed."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "E_VALIDATION"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, details={"field": field} if field else None)


class InvalidSegment(IntakeError, ValueError):
    """A storage path segment was empty or could escape its prefix."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "E_INVALID_SEGMENT"

    def __init__(self, field: str, reason: str = "invalid") -> None:
        self.field = field
        message = f"Missing {field}" if reason == "missing" else f"Invalid {field} segment"
        super().__init__(message, details={"field": field})


class StorageUploadFailed(IntakeError):
    """Candidate upload was rejected locally or by the Blob Store."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "E_STORAGE_UPLOAD_FAILED"

    def __init__(
        self,
        reason: str,
        *,
        bucket: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        location = f" (bucket={bucket} path={path})" if bucket and path else ""
        details: dict[str, Any] = {}
        if bucket:
            details["bucket"] = bucket
        if path:
            details["path"] = path
        super().__init__(
            f"{self.error_code}: {reason}{location}",
            status_code=status_code,
            details=details,
        )


class SignUrlFailed(IntakeError):
    """The Blob Store did not return a signed URL."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "E_SIGN_URL_FAILED"

    def __init__(self, reason: str, *, bucket: str, path: str) -> None:
        self.bucket = bucket
        self.path = path
        super().__init__(
            f"{self.error_code}: {reason} (bucket={bucket} path={path})",
            details={"bucket": bucket, "path": path},
        )


class NotFound(IntakeError):
    """Missing rows and rows owned by another tenant look the same."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "E_NOT_FOUND"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")


class CandidateExpired(IntakeError):
    status_code = status.HTTP_410_GONE
    error_code = "E_CANDIDATE_EXPIRED"

    def __init__(self) -> None:
        super().__init__("Candidate has expired")


class InvalidTransition(IntakeError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "E_INVALID_TRANSITION"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")


class RecordStoreError(IntakeError):
    """Record Store read or write failed."""

    error_code = "E_DB_FAILED"

    def __init__(self, operation: str, upstream: str) -> None:
        super().__init__(
            f"{operation} failed: {upstream}",
            error_code=f"E_DB_{operation.upper().replace(' ', '_')}_FAILED",
        )


class QueuePublishFailed(IntakeError):
    """The job queue did not accept the publish request."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "E_QUEUE_PUBLISH_FAILED"

    def __init__(self, upstream: str, *, status_code: int | None = None) -> None:
        self.upstream_status = status_code
        super().__init__(
            f"Queue publish failed: {upstream}",
            details={"upstream_status": status_code} if status_code else None,
        )


class Unauthorized(IntakeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "E_UNAUTHORIZED"


async def intake_exception_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Render an :class:`IntakeError` with the shared envelope."""

    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.to_payload()},
        headers=NO_STORE_HEADERS,
    )
