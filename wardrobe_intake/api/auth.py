"""Tenant resolution and route guards."""

from fastapi import Depends, Header

from wardrobe_intake.config.settings import get_settings
from wardrobe_intake.core.exceptions import IntakeError, Unauthorized
from wardrobe_intake.core.tenant import TenantContext


def get_tenant(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> TenantContext:
    """
    Resolve the tenant for the current request.

    Until real sign-in exists every request belongs to the founder account.
    Outside production an ``X-User-Id`` header may override it so tests and
    local tools can exercise tenant isolation.
    """

    settings = get_settings()
    if settings.environment != "prod" and x_user_id and x_user_id.strip():
        return TenantContext(user_id=x_user_id.strip())
    return TenantContext.founder(settings)


def require_internal_token(
    x_internal_token: str | None = Header(default=None, alias="X-Internal-Token"),
) -> None:
    """Protect worker callbacks with the shared internal secret."""

    settings = get_settings()
    expected_token = settings.internal_api_token
    if not expected_token:
        raise IntakeError(
            "Internal token is not configured.",
            status_code=503,
            error_code="E_INTERNAL_TOKEN_MISSING",
        )

    if x_internal_token != expected_token:
        raise Unauthorized("Invalid internal token.")


TenantDependency = Depends(get_tenant)
InternalAuthDependency = Depends(require_internal_token)
