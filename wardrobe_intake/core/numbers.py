"""Numeric coercion helpers for loosely typed request values."""

from __future__ import annotations

import math
from typing import Any


def clamp_int(value: Any, minimum: int, maximum: int, fallback: int) -> int:
    """Floor ``value`` into ``[minimum, maximum]``; unusable input yields ``fallback``."""

    if isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return max(minimum, min(maximum, math.floor(number)))
