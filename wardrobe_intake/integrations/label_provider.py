"""Garment labelling via an OpenAI-compatible vision model."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from wardrobe_intake.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_TAGS = 30
DEFAULT_CONFIDENCE = 0.6

_TAG_SEPARATORS = re.compile(r"[_-]+")
_WHITESPACE = re.compile(r"\s+")

SYSTEM_PROMPT = """
You analyze a single product photo (clothing, shoes, accessories, or fragrance).
Return ONLY valid JSON (no markdown, no commentary).

Output schema:
{
  "catalog_name": "Title Case 3-6 words",
  "garmentType": "free text type",
  "subcategory": "more specific type or null",
  "brand": "brand if clearly visible else null",
  "color": "main color(s) simple terms or null",
  "material": "material if reasonably inferable else null",
  "size": "size if visible (S/M/L/XL/number) else null",
  "tags": ["6-14 concise tags, no duplicates"],
  "confidence": 0.0-1.0,
  "raw_notes": "one short sentence describing what you saw"
}

If unsure, use null rather than guessing brand/material/size.
""".strip()


class LabelResult(BaseModel):
    """Normalized labels for one garment photo."""

    catalog_name: str = "Unknown Item"
    garment_type: str | None = None
    subcategory: str | None = None
    brand: str | None = None
    color: str | None = None
    material: str | None = None
    size: str | None = None
    tags: list[str] = Field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE
    raw_notes: str | None = None
    model: str | None = None

    def metadata(self) -> dict[str, Any]:
        return {
            "provider": "openai",
            "model": self.model,
            "confidence": self.confidence,
            "garmentType": self.garment_type,
            "subcategory": self.subcategory,
            "brand": self.brand,
            "color": self.color,
            "material": self.material,
            "size": self.size,
            "raw_notes": self.raw_notes,
        }


def normalize_tag(value: Any) -> str:
    text = _TAG_SEPARATORS.sub(" ", str(value).lower().strip())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_tags(values: Any) -> list[str]:
    """Normalize, de-duplicate (keeping first occurrence) and cap the tag list."""

    if not isinstance(values, list):
        return []
    tags: list[str] = []
    for value in values:
        tag = normalize_tag(value)
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def clamp_confidence(value: Any, fallback: float = DEFAULT_CONFIDENCE) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if math.isnan(value):
        return fallback
    return max(0.0, min(1.0, float(value)))


def _title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in value.lower().split())


def _safe_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class LabelProvider:
    """Asks the vision model for catalog labels of a garment image."""

    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client
        if self._client is None and self._settings.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url.rstrip("/"),
                timeout=self._settings.request_timeout,
            )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def analyze(self, image_url: str) -> LabelResult | None:
        """Label the garment at ``image_url``; ``None`` when no API key is configured."""

        if self._client is None:
            return None

        response = await self._client.chat.completions.create(
            model=self._settings.vision_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Analyze this image and extract the JSON fields."},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise RuntimeError("Vision output was not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise RuntimeError("Vision output was not a JSON object")
        return self._coerce(parsed, getattr(response, "model", None))

    async def ping(self) -> bool:
        """Return ``True`` if the upstream service responds to a model listing call."""

        if self._client is None:
            raise RuntimeError("OPENAI_API_KEY is not configured.")
        models = await self._client.models.list()
        return bool(models.data)

    async def close(self) -> None:
        """Release HTTP resources."""

        if self._client is not None:
            await self._client.close()

    def _coerce(self, payload: dict[str, Any], model: str | None) -> LabelResult:
        catalog = _safe_string(payload.get("catalog_name")) or _safe_string(payload.get("title"))
        return LabelResult(
            catalog_name=_title_case(catalog) if catalog else "Unknown Item",
            garment_type=_safe_string(payload.get("garmentType")),
            subcategory=_safe_string(payload.get("subcategory")),
            brand=_safe_string(payload.get("brand")),
            color=_safe_string(payload.get("color")),
            material=_safe_string(payload.get("material")),
            size=_safe_string(payload.get("size")),
            tags=normalize_tags(payload.get("tags")),
            confidence=clamp_confidence(payload.get("confidence")),
            raw_notes=_safe_string(payload.get("raw_notes")),
            model=model or "unknown",
        )
