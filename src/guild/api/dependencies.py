"""FastAPI dependencies for API endpoints."""

from typing import Annotated, Callable

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from guild.config.settings import Settings
from guild.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    MaintenanceModeError,
    TenantNotFoundError,
)
from guild.core.organization import OrganizationService
from guild.core.roles import UserRole, bypasses_maintenance, require_role
from guild.db.dependencies import get_db
from guild.db.models.organization import Organization
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.user import UserRepository
from guild.entitlements.service import EntitlementService
from guild.entitlements.types import FeatureEntitlement
from guild.verification.state_machine import effective_status

logger = structlog.get_logger()

# Re-export database dependencies for convenience
__all__ = [
    "get_db",
    "get_settings",
    "get_current_organization",
    "get_current_user",
    "require_roles",
    "require_verified_alumni",
    "require_feature",
    "require_path_feature",
]


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


async def get_current_organization(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Organization:
    """The organization validated by TenantValidationMiddleware, loaded in this session.

    Raises:
        TenantNotFoundError: If the middleware did not run for this path
    """
    organization_id = getattr(request.state, "organization_id", None)
    if organization_id is None:
        raise TenantNotFoundError("missing")
    return await OrganizationService(db, settings).get_organization_or_raise(organization_id)


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    organization: Annotated[Organization, Depends(get_current_organization)],
) -> User:
    """The authenticated user, reloaded so role and status changes apply at once.

    Raises:
        AuthenticationError: If the request carries no token or the account
            is gone or disabled
        MaintenanceModeError: If the stored role may not use the tenant
            during maintenance
    """
    actor_id = getattr(request.state, "actor_id", None)
    if actor_id is None:
        raise AuthenticationError("Authentication required")

    user = await UserRepository(db, organization.organization_id).get(actor_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Account is no longer active")

    # The token's role may be stale
    if organization.is_maintenance_mode and not bypasses_maintenance(user.role):
        raise MaintenanceModeError(organization.tenant_code)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentOrganization = Annotated[Organization, Depends(get_current_organization)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory admitting only users holding one of ``roles``.

    Usage:
        @router.post("/admin/thing")
        async def thing(user: User = Depends(require_roles(UserRole.SUPER_ADMIN))):
            ...
    """
    allowed = frozenset(roles)
    rule = f"route requires one of {sorted(r.value for r in allowed)}"

    async def dependency(user: CurrentUser) -> User:
        require_role(user.role, allowed, rule)
        return user

    return dependency


async def require_verified_alumni(user: CurrentUser) -> User:
    """Admit VERIFIED alumni, and the roles that count as verified.

    Raises:
        AuthorizationError: For PENDING or REJECTED accounts
    """
    if effective_status(user.verification_status, user.role) != VerificationStatus.VERIFIED:
        raise AuthorizationError(f"alumni verification required ({user.verification_status})")
    return user


def require_feature(code: str) -> Callable:
    """Dependency factory gating a route behind a feature entitlement.

    Usage:
        @router.get("/treasury", dependencies=[Depends(require_feature("TREASURY"))])

    Raises:
        FeatureDisabledError: If the feature is off for the organization
    """

    async def dependency(
        db: DbSession,
        settings: AppSettings,
        organization: CurrentOrganization,
        user: CurrentUser,
    ) -> FeatureEntitlement:
        service = EntitlementService(db, settings)
        return await service.require_feature(organization, code, user.role)

    return dependency


async def require_path_feature(
    code: str,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    user: CurrentUser,
) -> FeatureEntitlement:
    """Like ``require_feature`` for routes naming the feature in a ``{code}`` path segment."""
    return await require_feature(code)(db, settings, organization, user)
