"""Integration tests for entitlement checks backed by the seeded catalog."""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from guild.core.exceptions import (
    AuthorizationError,
    FeatureDisabledError,
    FeatureLimitExceededError,
    NotFoundError,
    ValidationError,
)
from guild.core.organization import OrganizationService
from guild.core.roles import UserRole
from guild.db.models.organization import SubscriptionStatus
from guild.db.models.user import VerificationStatus
from guild.entitlements.catalog import seed_catalog
from guild.entitlements.service import EntitlementService
from guild.entitlements.types import UNLIMITED, EntitlementSource


@pytest.fixture
def service(db_session, test_settings) -> EntitlementService:
    return EntitlementService(db_session, test_settings)


@pytest_asyncio.fixture
async def root(organization, make_user):
    return await make_user(
        organization, "root@example.com", role=UserRole.SUPER_ADMIN,
        status=VerificationStatus.VERIFIED,
    )


@pytest_asyncio.fixture
async def developer(organization, make_user):
    return await make_user(
        organization, "dev@example.com", role=UserRole.DEVELOPER,
        status=VerificationStatus.VERIFIED,
    )


@pytest.mark.asyncio
class TestResolve:
    async def test_treasury_is_off_on_free(self, service, organization):
        entitlement = await service.resolve(organization, "treasury")

        assert not entitlement.enabled
        assert entitlement.source == EntitlementSource.NOT_INCLUDED
        with pytest.raises(FeatureDisabledError) as exc_info:
            await service.require_feature(organization, "TREASURY", UserRole.SUPER_ADMIN)
        assert exc_info.value.feature_code == "TREASURY"

    async def test_developer_is_never_gated(self, service, organization):
        entitlement = await service.require_feature(organization, "TREASURY", UserRole.DEVELOPER)

        assert not entitlement.enabled

    async def test_unknown_feature_is_refused(self, service, organization):
        with pytest.raises(FeatureDisabledError):
            await service.require_feature(organization, "TELEPORTATION", UserRole.USER)

    async def test_plan_change_is_visible_immediately(
        self, service, db_session, organization, root, test_settings
    ):
        await OrganizationService(db_session, test_settings).change_plan(
            root, organization, "STARTER"
        )

        entitlement = await service.require_feature(organization, "TREASURY", root.role)

        assert entitlement.enabled
        assert entitlement.source == EntitlementSource.PLAN

    async def test_list_entitlements_covers_catalog(self, service, organization):
        entitlements = {e.code: e for e in await service.list_entitlements(organization)}

        assert entitlements["DASHBOARD"].source == EntitlementSource.CORE
        assert entitlements["POSTS"].limit == 10
        assert not entitlements["API_ACCESS"].enabled

    async def test_suspension_keeps_only_core(
        self, service, db_session, organization, developer, test_settings
    ):
        await OrganizationService(db_session, test_settings).suspend_subscription(
            developer, organization, "Payment overdue"
        )

        assert await service.is_feature_enabled(organization, "DIRECTORY")
        posts = await service.resolve(organization, "POSTS")
        assert not posts.enabled
        assert posts.source == EntitlementSource.SUBSCRIPTION_INACTIVE

    async def test_grace_period_setting(self, db_session, make_organization, test_settings):
        organization = await make_organization(
            "LATE", status=SubscriptionStatus.GRACE_PERIOD
        )
        strict = test_settings.model_copy(update={"GRACE_PERIOD_ALLOWS_ACCESS": False})

        assert await EntitlementService(db_session, test_settings).is_feature_enabled(
            organization, "POSTS"
        )
        assert not await EntitlementService(db_session, strict).is_feature_enabled(
            organization, "POSTS"
        )


@pytest.mark.asyncio
class TestLimits:
    async def test_usage_below_limit(self, service, organization):
        entitlement = await service.check_limit(organization, "POSTS", 9)

        assert entitlement.limit == 10

    async def test_usage_at_limit(self, service, organization):
        with pytest.raises(FeatureLimitExceededError) as exc_info:
            await service.check_limit(organization, "POSTS", 10)

        assert exc_info.value.limit == 10
        assert exc_info.value.current_usage == 10

    async def test_unlimited_core_feature(self, service, organization):
        entitlement = await service.check_limit(organization, "DASHBOARD", 10_000)

        assert entitlement.limit == UNLIMITED


@pytest.mark.asyncio
class TestAddOns:
    async def test_developer_enables_feature_outside_plan(self, service, organization,
                                                          developer):
        row = await service.enable_addon(developer, organization, "ANALYTICS", custom_limit=5)

        assert row.is_enabled
        entitlement = await service.resolve(organization, "ANALYTICS")
        assert entitlement.enabled
        assert entitlement.source == EntitlementSource.ADDON
        assert entitlement.limit == 5

    async def test_addon_overrides_plan_limit(self, service, organization, developer):
        await service.enable_addon(developer, organization, "POSTS", custom_limit=UNLIMITED)

        assert (await service.resolve(organization, "POSTS")).is_unlimited

    async def test_expired_addon_is_ignored(self, service, organization, developer):
        await service.enable_addon(
            developer,
            organization,
            "ANALYTICS",
            expires_at=datetime.now(UTC) - timedelta(minutes=1),
        )

        assert not await service.is_feature_enabled(organization, "ANALYTICS")

    async def test_disable_switches_plan_feature_off(self, service, organization, developer):
        await service.disable_addon(developer, organization, "POSTS")

        assert not await service.is_feature_enabled(organization, "POSTS")

        await service.enable_addon(developer, organization, "POSTS")
        assert await service.is_feature_enabled(organization, "POSTS")

    async def test_super_admin_cannot_manage_addons(self, service, organization, root):
        with pytest.raises(AuthorizationError):
            await service.enable_addon(root, organization, "ANALYTICS")

    async def test_unknown_feature(self, service, organization, developer):
        with pytest.raises(NotFoundError):
            await service.enable_addon(developer, organization, "TELEPORTATION")

    async def test_limit_below_unlimited_is_refused(self, service, organization, developer):
        with pytest.raises(ValidationError):
            await service.enable_addon(developer, organization, "ANALYTICS", custom_limit=-2)


@pytest.mark.asyncio
class TestMatrix:
    async def test_matrix_follows_catalog(self, service, organization):
        matrix = await service.feature_matrix()

        assert [p.code for p in matrix.plans] == ["FREE", "STARTER", "PROFESSIONAL", "ENTERPRISE"]
        assert matrix.included["FREE"]["TREASURY"] is False
        assert matrix.included["STARTER"]["TREASURY"] is True
        assert all(matrix.included["ENTERPRISE"].values())

    async def test_reseeding_is_idempotent(self, service, db_session, organization):
        await seed_catalog(db_session)
        await db_session.commit()

        matrix = await service.feature_matrix()

        assert len(matrix.plans) == 4
        assert matrix.included["FREE"]["POSTS"] is True
