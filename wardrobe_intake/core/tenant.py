"""Tenant scope threaded through every service call."""

from __future__ import annotations

from dataclasses import dataclass

from wardrobe_intake.config.settings import Settings


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Identifies whose rows and objects an operation may touch.

    Today there is a single founder tenant; only the construction of this
    object changes once real authentication lands.
    """

    user_id: str

    @classmethod
    def founder(cls, settings: Settings) -> "TenantContext":
        return cls(user_id=settings.founder_user_id)
