"""Repositories for the feature catalog, plans and organization add-ons."""

from uuid import UUID

from sqlalchemy import select

from guild.db.models.subscription import Feature, OrganizationFeature, SubscriptionPlan

from .base import BaseRepository, TenantRepository


class FeatureRepository(BaseRepository[Feature, UUID]):
    """Platform-wide feature catalog."""

    resource_name = "feature"

    async def get_by_code(self, code: str) -> Feature | None:
        result = await self.db.execute(select(Feature).where(Feature.code == code.upper()))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Feature]:
        """Every feature, retired ones included."""
        result = await self.db.execute(select(Feature).order_by(Feature.category, Feature.code))
        return list(result.scalars().all())


class PlanRepository(BaseRepository[SubscriptionPlan, UUID]):
    """Subscription plans with their included features."""

    resource_name = "subscription_plan"

    async def get_by_code(self, code: str) -> SubscriptionPlan | None:
        stmt = select(SubscriptionPlan).where(SubscriptionPlan.code == code.upper())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[SubscriptionPlan]:
        """Every plan, so organizations on a retired plan keep their features."""
        stmt = select(SubscriptionPlan).order_by(SubscriptionPlan.sort_order)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class OrganizationFeatureRepository(TenantRepository[OrganizationFeature, UUID]):
    """Add-ons and limit overrides of one organization."""

    resource_name = "organization_feature"

    async def list_for_organization(self) -> list[OrganizationFeature]:
        result = await self.db.execute(self._select())
        return list(result.scalars().unique().all())

    async def get_for_feature(self, feature_id: UUID) -> OrganizationFeature | None:
        stmt = self._select().where(OrganizationFeature.feature_id == feature_id)
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()
