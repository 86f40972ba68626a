"""Loads entitlement snapshots from the database and applies the resolver."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import (
    FeatureDisabledError,
    FeatureLimitExceededError,
    NotFoundError,
    ValidationError,
)
from guild.core.roles import UserRole, bypasses_feature_gate, require_role
from guild.db.models.audit import AuditEventType
from guild.db.models.organization import Organization
from guild.db.models.subscription import OrganizationFeature
from guild.db.models.user import User
from guild.db.repositories.subscription import (
    FeatureRepository,
    OrganizationFeatureRepository,
    PlanRepository,
)
from guild.entitlements.resolver import plan_matrix, resolve_all, resolve_feature
from guild.entitlements.types import (
    UNLIMITED,
    AddOn,
    FeatureCatalog,
    FeatureEntitlement,
    FeatureSpec,
    PlanSpec,
    TenantSubscription,
)

logger = structlog.get_logger()

_ADDON_ADMINS = frozenset({UserRole.DEVELOPER})


@dataclass
class FeatureMatrix:
    plans: list[PlanSpec]
    features: list[FeatureSpec]
    included: dict[str, dict[str, bool]]


class EntitlementService:
    """Feature entitlement checks for organizations.

    Snapshots are read fresh on every call, so a plan change or add-on is
    visible to the very next request.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.features = FeatureRepository(db)
        self.plans = PlanRepository(db)
        self.audit = AuditLogger(db)

    async def load_catalog(self) -> FeatureCatalog:
        features = [
            FeatureSpec(
                code=f.code,
                name=f.name,
                category=f.category,
                description=f.description,
                is_core=f.is_core,
                is_premium=f.is_premium,
                default_limit=f.default_limit,
                is_active=f.is_active,
            )
            for f in await self.features.list_all()
        ]
        plans = [
            PlanSpec(
                code=p.code,
                name=p.name,
                features={pf.feature.code: pf.limit_override for pf in p.plan_features},
                description=p.description,
                price_monthly=p.price_monthly,
                price_yearly=p.price_yearly,
                max_users=p.max_users,
                max_storage_mb=p.max_storage_mb,
                sort_order=p.sort_order,
                is_active=p.is_active,
            )
            for p in await self.plans.list_all()
        ]
        return FeatureCatalog.from_specs(features, plans)

    async def load_subscription(self, organization: Organization) -> TenantSubscription:
        plan_code = None
        if organization.plan_id is not None:
            plan = await self.plans.get(organization.plan_id)
            plan_code = plan.code if plan else None

        addon_rows = await OrganizationFeatureRepository(
            self.db, organization.organization_id
        ).list_for_organization()
        addons = {
            row.feature.code: AddOn(
                feature_code=row.feature.code,
                is_enabled=row.is_enabled,
                custom_limit=row.custom_limit,
                expires_at=row.expires_at,
            )
            for row in addon_rows
        }
        return TenantSubscription(
            organization_id=organization.organization_id,
            status=organization.status,
            plan_code=plan_code,
            addons=addons,
            grace_period_allows_access=self.settings.GRACE_PERIOD_ALLOWS_ACCESS,
        )

    async def resolve(self, organization: Organization, code: str) -> FeatureEntitlement:
        return resolve_feature(
            await self.load_catalog(), await self.load_subscription(organization), code.upper()
        )

    async def is_feature_enabled(self, organization: Organization, code: str) -> bool:
        return (await self.resolve(organization, code)).enabled

    async def list_entitlements(self, organization: Organization) -> list[FeatureEntitlement]:
        return resolve_all(await self.load_catalog(), await self.load_subscription(organization))

    async def require_feature(
        self, organization: Organization, code: str, role: UserRole | str | None = None
    ) -> FeatureEntitlement:
        """Resolve a feature, raising if it is off for this organization.

        Platform developers are never gated.

        Raises:
            FeatureDisabledError: If the feature is disabled or unknown
        """
        entitlement = await self.resolve(organization, code)
        if entitlement.enabled or bypasses_feature_gate(role):
            return entitlement
        logger.info(
            "feature_access_denied",
            feature_code=entitlement.code,
            source=entitlement.source.value,
        )
        raise FeatureDisabledError(entitlement.code)

    async def check_limit(
        self,
        organization: Organization,
        code: str,
        current_usage: int,
        role: UserRole | str | None = None,
    ) -> FeatureEntitlement:
        """Ensure one more use of a feature fits its limit.

        Raises:
            FeatureDisabledError: If the feature is off
            FeatureLimitExceededError: If ``current_usage`` has reached the limit
        """
        entitlement = await self.require_feature(organization, code, role)
        if bypasses_feature_gate(role) or entitlement.limit == UNLIMITED:
            return entitlement
        if current_usage >= entitlement.limit:
            raise FeatureLimitExceededError(entitlement.code, entitlement.limit, current_usage)
        return entitlement

    async def feature_matrix(self) -> FeatureMatrix:
        catalog = await self.load_catalog()
        return FeatureMatrix(
            plans=sorted(
                (p for p in catalog.plans.values() if p.is_active), key=lambda p: p.sort_order
            ),
            features=sorted(
                (f for f in catalog.features.values() if f.is_active),
                key=lambda f: (f.category, f.code),
            ),
            included=plan_matrix(catalog),
        )

    async def enable_addon(
        self,
        actor: User,
        organization: Organization,
        code: str,
        custom_limit: int | None = None,
        expires_at: datetime | None = None,
    ) -> OrganizationFeature:
        """Switch a feature on for one organization, outside its plan.

        Raises:
            AuthorizationError: Unless the actor is DEVELOPER
            NotFoundError: If the feature is unknown or retired
            ValidationError: If the custom limit is below -1
        """
        require_role(actor.role, _ADDON_ADMINS, "feature add-ons require developer")
        if custom_limit is not None and custom_limit < UNLIMITED:
            raise ValidationError("Limit must be -1 (unlimited) or greater", field="custom_limit")
        return await self._set_addon(
            actor,
            organization,
            code,
            {"is_enabled": True, "custom_limit": custom_limit, "expires_at": expires_at},
            AuditEventType.FEATURE_ADDON_ENABLED,
        )

    async def disable_addon(
        self, actor: User, organization: Organization, code: str
    ) -> OrganizationFeature:
        """Switch a non-core feature off for one organization, even if its plan includes it."""
        require_role(actor.role, _ADDON_ADMINS, "feature add-ons require developer")
        return await self._set_addon(
            actor,
            organization,
            code,
            {"is_enabled": False, "custom_limit": None, "expires_at": None},
            AuditEventType.FEATURE_ADDON_DISABLED,
        )

    async def _set_addon(
        self,
        actor: User,
        organization: Organization,
        code: str,
        values: dict,
        event_type: AuditEventType,
    ) -> OrganizationFeature:
        feature = await self.features.get_by_code(code)
        if feature is None or not feature.is_active:
            raise NotFoundError("feature", code)

        addons = OrganizationFeatureRepository(self.db, organization.organization_id)
        values["enabled_by"] = actor.user_id
        row = await addons.get_for_feature(feature.feature_id)
        if row is None:
            row = await addons.create(
                OrganizationFeature(feature_id=feature.feature_id, feature=feature, **values)
            )
        else:
            await addons.update(row, values)

        await self.audit.log_event(
            event_type=event_type,
            event_data={
                "feature_code": feature.code,
                "custom_limit": row.custom_limit,
                "expires_at": row.expires_at.isoformat() if row.expires_at else None,
            },
            tenant_id=organization.organization_id,
            user_id=actor.user_id,
            resource_type="organization_feature",
            resource_id=str(row.organization_feature_id),
        )
        logger.info("feature_addon_changed", feature_code=feature.code, enabled=row.is_enabled)
        return row
