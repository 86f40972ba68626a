"""Tenant validation middleware."""

from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from guild.api.middleware.errors import build_error_response, error_response
from guild.api.schemas.errors import ErrorCode
from guild.core.exceptions import (
    MaintenanceModeError,
    TenantAccessDeniedError,
    TenantInactiveError,
    TenantNotFoundError,
)
from guild.core.organization import OrganizationService
from guild.core.roles import bypasses_maintenance
from guild.db.config import get_async_session
from guild.db.models.organization import Organization

logger = structlog.get_logger()

TENANT_HEADER = "X-Tenant-Code"

# Paths that don't require tenant validation
SKIP_TENANT_PATHS = {
    "/health",
    "/health/db",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}

# Public paths still reachable while the tenant is in maintenance. Login
# decides on the account's stored role once credentials are checked.
MAINTENANCE_OPEN_PATHS = {"/v1/auth/login"}


class TenantValidationMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the X-Tenant-Code header to an organization.

    Ensures the organization exists and is active, that an authenticated
    token was issued for it, and that maintenance mode lets the caller in.

    Requires:
        request.state.token_tenant_id: Set by AuthenticationMiddleware
        request.state.actor_role: Set by AuthenticationMiddleware

    Sets:
        request.state.organization_id: UUID of the validated organization
        request.state.tenant_code: Normalized tenant code
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and validate tenant."""
        if request.method == "OPTIONS" or self._should_skip_validation(request.url.path):
            return await call_next(request)

        tenant_code = (request.headers.get(TENANT_HEADER) or "").strip()
        if not tenant_code:
            return build_error_response(
                request, 400, ErrorCode.INVALID_REQUEST.value, f"Missing {TENANT_HEADER} header"
            )

        try:
            organization = await self._validate_tenant(request, tenant_code)
            self._check_token_tenant(request, organization)
            self._check_maintenance(request, organization)
        except (
            TenantNotFoundError,
            TenantInactiveError,
            TenantAccessDeniedError,
            MaintenanceModeError,
        ) as e:
            return error_response(request, e)

        request.state.organization_id = organization.organization_id
        request.state.tenant_code = organization.tenant_code

        return await call_next(request)

    def _should_skip_validation(self, path: str) -> bool:
        """Check if path should skip tenant validation."""
        return path in SKIP_TENANT_PATHS or path.startswith(("/docs", "/redoc"))

    async def _validate_tenant(self, request: Request, tenant_code: str) -> Organization:
        """Load the organization in a short-lived session of its own.

        Raises:
            TenantNotFoundError: If no organization has the code
            TenantInactiveError: If the organization is deactivated
        """
        async with get_async_session(request.app.state.session_factory) as session:
            service = OrganizationService(session, request.app.state.settings)
            return await service.validate_tenant_active(tenant_code)

    def _check_token_tenant(self, request: Request, organization: Organization) -> None:
        token_tenant_id = getattr(request.state, "token_tenant_id", None)
        if token_tenant_id is not None and token_tenant_id != organization.organization_id:
            logger.warning(
                "cross_tenant_token",
                token_tenant=str(token_tenant_id),
                tenant_code=organization.tenant_code,
            )
            raise TenantAccessDeniedError(organization.tenant_code, request.url.path)

    def _check_maintenance(self, request: Request, organization: Organization) -> None:
        if not organization.is_maintenance_mode:
            return
        role = getattr(request.state, "actor_role", None)
        if role is None and request.url.path in MAINTENANCE_OPEN_PATHS:
            return
        if not bypasses_maintenance(role):
            raise MaintenanceModeError(organization.tenant_code)
