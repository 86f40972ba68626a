"""Organization management service for multi-tenancy and subscriptions."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import (
    ConflictError,
    NotFoundError,
    SubscriptionInactiveError,
    TenantInactiveError,
    TenantNotFoundError,
    ValidationError,
)
from guild.core.roles import UserRole, require_role
from guild.db.models.audit import AuditEventType, AuditSeverity
from guild.db.models.organization import Organization, SubscriptionStatus
from guild.db.models.user import User
from guild.db.repositories.organization import OrganizationRepository
from guild.db.repositories.subscription import PlanRepository

logger = structlog.get_logger()

_SUBSCRIPTION_ADMINS = frozenset({UserRole.SUPER_ADMIN, UserRole.DEVELOPER})
_PLATFORM_OPERATORS = frozenset({UserRole.DEVELOPER})


class OrganizationService:
    """Service for organization CRUD and subscription lifecycle.

    All mutations are audit-logged. Methods flush but never commit.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        """Initialize organization service with database session.

        Args:
            db: Async SQLAlchemy session for database operations
            settings: Application settings (default: cached settings)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.organizations = OrganizationRepository(db)
        self.plans = PlanRepository(db)
        self.audit = AuditLogger(db)

    async def create_organization(
        self,
        name: str,
        tenant_code: str,
        plan_code: str | None = None,
        subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL,
        max_users: int | None = None,
        storage_quota_mb: int | None = None,
    ) -> Organization:
        """Create a new organization.

        Quotas default to the plan's limits when a plan is given.

        Args:
            name: Display name
            tenant_code: Unique code clients send in X-Tenant-Code
            plan_code: Subscription plan to start on
            subscription_status: Initial subscription status
            max_users: User quota override
            storage_quota_mb: Storage quota override

        Returns:
            Created Organization instance

        Raises:
            ConflictError: If the tenant code is taken
            NotFoundError: If the plan does not exist
        """
        code = tenant_code.strip().upper()
        if not code:
            raise ValidationError("Tenant code is required", field="tenant_code")
        if await self.organizations.get_by_tenant_code(code) is not None:
            raise ConflictError(f"Tenant code already in use: {code}")

        plan = None
        if plan_code is not None:
            plan = await self.plans.get_by_code(plan_code)
            if plan is None:
                raise NotFoundError("subscription_plan", plan_code)

        organization = Organization(
            name=name,
            tenant_code=code,
            plan_id=plan.plan_id if plan else None,
            subscription_status=subscription_status.value,
            subscription_started_at=datetime.now(UTC),
            max_users=max_users or (plan.max_users if plan else 500),
            storage_quota_mb=storage_quota_mb or (plan.max_storage_mb if plan else 5120),
        )
        await self.organizations.create(organization)

        await self.audit.log_event(
            event_type=AuditEventType.ORGANIZATION_CREATED,
            event_data={
                "organization_id": str(organization.organization_id),
                "name": name,
                "tenant_code": code,
                "plan_code": plan.code if plan else None,
            },
            tenant_id=organization.organization_id,
            resource_type="organization",
            resource_id=str(organization.organization_id),
        )
        logger.info("organization_created", tenant_code=code)

        return organization

    async def get_organization(self, organization_id: UUID) -> Organization | None:
        return await self.organizations.get(organization_id)

    async def get_organization_or_raise(self, organization_id: UUID) -> Organization:
        """Get an organization by ID.

        Raises:
            TenantNotFoundError: If organization does not exist
        """
        organization = await self.organizations.get(organization_id)
        if organization is None:
            raise TenantNotFoundError(organization_id)
        return organization

    async def get_by_tenant_code(self, tenant_code: str) -> Organization | None:
        return await self.organizations.get_by_tenant_code(tenant_code)

    async def validate_tenant_active(self, tenant_code: str) -> Organization:
        """Validate that an organization exists and is active.

        Args:
            tenant_code: The organization's tenant code

        Returns:
            The active Organization instance

        Raises:
            TenantNotFoundError: If organization does not exist
            TenantInactiveError: If organization is deactivated
        """
        organization = await self.organizations.get_by_tenant_code(tenant_code)
        if organization is None:
            raise TenantNotFoundError(tenant_code)
        if not organization.is_active:
            raise TenantInactiveError(tenant_code)
        return organization

    def require_active_subscription(self, organization: Organization) -> None:
        """Raise unless the organization's subscription allows normal use.

        Raises:
            SubscriptionInactiveError: For EXPIRED or SUSPENDED subscriptions,
                and GRACE_PERIOD when grace access is disabled
        """
        allowed = {SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE}
        if self.settings.GRACE_PERIOD_ALLOWS_ACCESS:
            allowed.add(SubscriptionStatus.GRACE_PERIOD)
        if organization.status not in allowed:
            raise SubscriptionInactiveError(organization.subscription_status)

    async def set_maintenance_mode(
        self,
        actor: User,
        organization: Organization,
        enabled: bool,
        message: str | None = None,
    ) -> Organization:
        """Turn maintenance mode on or off."""
        require_role(actor.role, _SUBSCRIPTION_ADMINS, "maintenance mode requires super admin")

        organization.is_maintenance_mode = enabled
        organization.maintenance_message = message if enabled else None
        await self.db.flush()

        await self.audit.log_event(
            event_type=AuditEventType.MAINTENANCE_TOGGLED,
            event_data={"enabled": enabled, "message": message},
            severity=AuditSeverity.WARNING if enabled else AuditSeverity.INFO,
            tenant_id=organization.organization_id,
            user_id=actor.user_id,
            resource_type="organization",
            resource_id=str(organization.organization_id),
        )
        logger.info("maintenance_mode_toggled", enabled=enabled)
        return organization

    async def change_plan(
        self, actor: User, organization: Organization, plan_code: str
    ) -> Organization:
        """Move the organization onto another plan.

        Takes effect for entitlement checks on the next request.

        Raises:
            AuthorizationError: Unless the actor is SUPER_ADMIN or DEVELOPER
            NotFoundError: If the plan does not exist or is retired
        """
        require_role(actor.role, _SUBSCRIPTION_ADMINS, "plan change requires super admin")

        plan = await self.plans.get_by_code(plan_code)
        if plan is None or not plan.is_active:
            raise NotFoundError("subscription_plan", plan_code)

        previous_plan_id = organization.plan_id
        organization.plan_id = plan.plan_id
        organization.max_users = plan.max_users
        organization.storage_quota_mb = plan.max_storage_mb
        if organization.status in {SubscriptionStatus.TRIAL, SubscriptionStatus.EXPIRED}:
            organization.subscription_status = SubscriptionStatus.ACTIVE.value
            organization.subscription_started_at = datetime.now(UTC)
        await self.db.flush()

        await self.audit.log_event(
            event_type=AuditEventType.SUBSCRIPTION_CHANGED,
            event_data={
                "previous_plan_id": str(previous_plan_id) if previous_plan_id else None,
                "plan_code": plan.code,
                "subscription_status": organization.subscription_status,
            },
            tenant_id=organization.organization_id,
            user_id=actor.user_id,
            resource_type="organization",
            resource_id=str(organization.organization_id),
        )
        logger.info("subscription_plan_changed", plan_code=plan.code)
        return organization

    async def suspend_subscription(
        self, actor: User, organization: Organization, reason: str
    ) -> Organization:
        """Suspend the subscription; every non-core feature switches off."""
        require_role(actor.role, _PLATFORM_OPERATORS, "suspension requires developer")
        if not reason or not reason.strip():
            raise ValidationError("Suspension reason is required", field="reason")

        return await self._set_status(
            actor,
            organization,
            SubscriptionStatus.SUSPENDED,
            AuditEventType.SUBSCRIPTION_SUSPENDED,
            suspended_reason=reason.strip(),
        )

    async def reactivate_subscription(
        self, actor: User, organization: Organization
    ) -> Organization:
        require_role(actor.role, _PLATFORM_OPERATORS, "reactivation requires developer")
        return await self._set_status(
            actor,
            organization,
            SubscriptionStatus.ACTIVE,
            AuditEventType.SUBSCRIPTION_REACTIVATED,
            suspended_reason=None,
        )

    async def expire_subscription(self, actor: User, organization: Organization) -> Organization:
        require_role(actor.role, _PLATFORM_OPERATORS, "expiry requires developer")
        return await self._set_status(
            actor,
            organization,
            SubscriptionStatus.EXPIRED,
            AuditEventType.SUBSCRIPTION_EXPIRED,
        )

    async def _set_status(
        self,
        actor: User,
        organization: Organization,
        status: SubscriptionStatus,
        event_type: AuditEventType,
        **changes: str | None,
    ) -> Organization:
        previous = organization.subscription_status
        organization.subscription_status = status.value
        for field, value in changes.items():
            setattr(organization, field, value)
        await self.db.flush()

        await self.audit.log_event(
            event_type=event_type,
            event_data={"previous_status": previous, "status": status.value, **changes},
            severity=AuditSeverity.WARNING,
            tenant_id=organization.organization_id,
            user_id=actor.user_id,
            resource_type="organization",
            resource_id=str(organization.organization_id),
        )
        logger.info("subscription_status_changed", previous=previous, status=status.value)
        return organization
