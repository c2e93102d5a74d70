"""Candidate image upload and signed URL issuance against the Blob Store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from wardrobe_intake.config.settings import Settings, get_settings
from wardrobe_intake.core.exceptions import SignUrlFailed, StorageUploadFailed
from wardrobe_intake.core.numbers import clamp_int
from wardrobe_intake.storage.paths import CANDIDATES_BUCKET, candidate_location

logger = logging.getLogger(__name__)

ACCEPTED_CONTENT_TYPE = "image/webp"
DEFAULT_SIGNED_URL_TTL = 900
MIN_SIGNED_URL_TTL = 10
MAX_SIGNED_URL_TTL = 3600


@dataclass(slots=True, frozen=True)
class UploadResult:
    storage_bucket: str
    storage_path: str
    bytes: int
    content_type: str


@dataclass(slots=True, frozen=True)
class SignedUrl:
    storage_bucket: str
    storage_path: str
    signed_url: str
    expires_in_seconds: int


def clamp_signed_url_ttl(ttl_seconds: Any) -> int:
    """Bound a caller supplied TTL instead of rejecting it."""

    if ttl_seconds is None:
        return DEFAULT_SIGNED_URL_TTL
    return clamp_int(ttl_seconds, MIN_SIGNED_URL_TTL, MAX_SIGNED_URL_TTL, MIN_SIGNED_URL_TTL)


def _upstream_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:300] or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload)
    return str(payload)


class BlobGateway:
    """Thin client over the Supabase Storage REST API for the candidates bucket."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._bucket = CANDIDATES_BUCKET
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def bucket(self) -> str:
        return self._bucket

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        base_url = self._settings.supabase_url.rstrip("/")
        key = self._settings.supabase_service_role_key
        if not base_url:
            raise RuntimeError("Missing Supabase URL. Set SUPABASE_URL (or NEXT_PUBLIC_SUPABASE_URL).")
        if not key:
            raise RuntimeError("Missing Supabase service role key. Set SUPABASE_SERVICE_ROLE_KEY.")

        self._client = httpx.AsyncClient(
            base_url=f"{base_url}/storage/v1",
            timeout=self._settings.request_timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {key}",
                "apikey": key,
                "X-Client-Info": "wardrobe-intake:candidates",
            },
        )
        return self._client

    async def ping(self) -> bool:
        """Return ``True`` if the candidates bucket is visible with our key."""

        response = await self._get_client().get(f"/bucket/{quote(self._bucket)}")
        return response.is_success

    async def close(self) -> None:
        """Close the underlying HTTP client."""

        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def upload(
        self,
        user_id: str,
        wardrobe_video_id: str,
        candidate_id: str,
        data: bytes | bytearray | memoryview,
        *,
        content_type: str = ACCEPTED_CONTENT_TYPE,
        cache_control: int | str = 3600,
        upsert: bool = True,
    ) -> UploadResult:
        """Upload WebP candidate bytes to their canonical path.

        With ``upsert`` the call is safe to retry with identical bytes.
        """

        normalized_type = (content_type or ACCEPTED_CONTENT_TYPE).strip().lower()
        if normalized_type != ACCEPTED_CONTENT_TYPE:
            raise StorageUploadFailed(
                f"invalid content_type={normalized_type} (expected {ACCEPTED_CONTENT_TYPE})",
                status_code=400,
            )

        bucket, storage_path = candidate_location(user_id, wardrobe_video_id, candidate_id)
        payload = bytes(data)
        if not payload:
            raise StorageUploadFailed("empty bytes", status_code=400)

        try:
            client = self._get_client()
            response = await client.post(
                f"/object/{bucket}/{quote(storage_path)}",
                content=payload,
                headers={
                    "Content-Type": normalized_type,
                    "cache-control": f"max-age={str(cache_control).strip()}",
                    "x-upsert": "true" if upsert else "false",
                },
            )
        except (httpx.HTTPError, RuntimeError) as exc:
            raise StorageUploadFailed(str(exc), bucket=bucket, path=storage_path) from exc

        if response.is_error:
            raise StorageUploadFailed(
                _upstream_message(response),
                bucket=bucket,
                path=storage_path,
            )

        logger.debug("Uploaded candidate %s (%d bytes)", storage_path, len(payload))
        return UploadResult(
            storage_bucket=bucket,
            storage_path=storage_path,
            bytes=len(payload),
            content_type=normalized_type,
        )

    async def create_signed_url(
        self,
        storage_path: str,
        ttl_seconds: Any = DEFAULT_SIGNED_URL_TTL,
    ) -> SignedUrl:
        """Issue a time-limited read URL for one candidate object."""

        path = (storage_path or "").strip()
        if not path:
            raise SignUrlFailed("Missing storage_path", bucket=self._bucket, path=path)

        expires_in = clamp_signed_url_ttl(ttl_seconds)
        try:
            client = self._get_client()
            response = await client.post(
                f"/object/sign/{self._bucket}/{quote(path)}",
                json={"expiresIn": expires_in},
            )
        except (httpx.HTTPError, RuntimeError) as exc:
            raise SignUrlFailed(str(exc), bucket=self._bucket, path=path) from exc

        if response.is_error:
            raise SignUrlFailed(_upstream_message(response), bucket=self._bucket, path=path)

        try:
            body = response.json()
        except ValueError as exc:
            raise SignUrlFailed("Malformed sign response", bucket=self._bucket, path=path) from exc

        signed = (body.get("signedURL") or body.get("signedUrl")) if isinstance(body, dict) else None
        if not signed:
            raise SignUrlFailed("No signedUrl returned", bucket=self._bucket, path=path)

        if signed.startswith("/"):
            signed = f"{self._settings.supabase_url.rstrip('/')}/storage/v1{signed}"

        return SignedUrl(
            storage_bucket=self._bucket,
            storage_path=path,
            signed_url=signed,
            expires_in_seconds=expires_in,
        )
