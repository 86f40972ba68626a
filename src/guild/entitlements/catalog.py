"""Default feature catalog and subscription plans."""

from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from guild.db.models.subscription import Feature, PlanFeature, SubscriptionPlan
from guild.db.repositories.subscription import FeatureRepository, PlanRepository
from guild.entitlements.types import UNLIMITED, FeatureCatalog, FeatureSpec, PlanSpec

logger = structlog.get_logger()

DEFAULT_FEATURES: list[FeatureSpec] = [
    # Core, on for every organization
    FeatureSpec("DASHBOARD", "Dashboard", "CORE", "Basic dashboard access", is_core=True),
    FeatureSpec("PROFILE", "User Profile", "CORE", "User profile management", is_core=True),
    FeatureSpec("DIRECTORY", "Alumni Directory", "CORE", "View alumni directory", is_core=True),
    # Social
    FeatureSpec("POSTS", "Posts & Feed", "SOCIAL", "Create and view posts"),
    FeatureSpec("POLLS", "Polls", "SOCIAL", "Create and participate in polls"),
    FeatureSpec("GROUPS", "Groups", "SOCIAL", "Create and manage groups", is_premium=True),
    # Events
    FeatureSpec("EVENTS", "Events", "EVENTS", "View and register for events"),
    FeatureSpec(
        "EVENT_MANAGEMENT", "Event Management", "EVENTS", "Create and manage events",
        is_premium=True,
    ),
    FeatureSpec(
        "EVENT_TICKETING", "Event Ticketing", "EVENTS", "QR code ticketing for events",
        is_premium=True,
    ),
    # Gallery
    FeatureSpec("GALLERY", "Photo Gallery", "GALLERY", "View photo albums"),
    FeatureSpec(
        "GALLERY_MANAGEMENT", "Gallery Management", "GALLERY", "Create and manage albums",
        is_premium=True,
    ),
    # Financial
    FeatureSpec(
        "TREASURY", "Treasury", "FINANCIAL", "View treasury and transactions", is_premium=True
    ),
    FeatureSpec("DONATIONS", "Donations", "FINANCIAL", "Accept donations", is_premium=True),
    FeatureSpec(
        "MEMBERSHIP_FEES", "Membership Fees", "FINANCIAL", "Collect membership fees",
        is_premium=True,
    ),
    # Support
    FeatureSpec(
        "SUPPORT_TICKETS", "Support Tickets", "SUPPORT", "Support ticket system", is_premium=True
    ),
    FeatureSpec(
        "LIFELINK", "LifeLink", "SUPPORT", "Blood donation and emergency help", is_premium=True
    ),
    # Administration
    FeatureSpec(
        "USER_MANAGEMENT", "User Management", "ADMIN", "Manage users and roles", is_premium=True
    ),
    FeatureSpec("ANALYTICS", "Analytics", "ADMIN", "View analytics and reports", is_premium=True),
    FeatureSpec(
        "NOTIFICATIONS", "Push Notifications", "ADMIN", "Send push notifications", is_premium=True
    ),
    FeatureSpec("EMAIL_CAMPAIGNS", "Email Campaigns", "ADMIN", "Send bulk emails", is_premium=True),
    # Advanced
    FeatureSpec(
        "MERCHANDISE", "Merchandise Store", "ADVANCED", "Sell merchandise", is_premium=True
    ),
    FeatureSpec(
        "CUSTOM_BRANDING", "Custom Branding", "ADVANCED", "Custom logo and colors", is_premium=True
    ),
    FeatureSpec("API_ACCESS", "API Access", "ADVANCED", "REST API access", is_premium=True),
]

_FREE = ["DASHBOARD", "PROFILE", "DIRECTORY", "POSTS", "POLLS", "EVENTS", "GALLERY"]
_STARTER = _FREE + [
    "GROUPS",
    "EVENT_MANAGEMENT",
    "GALLERY_MANAGEMENT",
    "SUPPORT_TICKETS",
    "TREASURY",
]
_PROFESSIONAL = _STARTER + [
    "EVENT_TICKETING",
    "DONATIONS",
    "MEMBERSHIP_FEES",
    "LIFELINK",
    "USER_MANAGEMENT",
    "ANALYTICS",
    "NOTIFICATIONS",
]
_ENTERPRISE = [f.code for f in DEFAULT_FEATURES]

# Monthly quotas per plan (posts, events, photos)
_PLAN_LIMITS: dict[str, dict[str, int]] = {
    "FREE": {"POSTS": 10, "EVENTS": 2, "GALLERY": 100},
    "STARTER": {"POSTS": 50, "EVENTS": 10, "GALLERY": 500},
    "PROFESSIONAL": {"POSTS": 200, "EVENTS": 50, "GALLERY": 2000},
    "ENTERPRISE": {"POSTS": UNLIMITED, "EVENTS": UNLIMITED, "GALLERY": UNLIMITED},
}


def _included(plan_code: str, codes: list[str]) -> dict[str, int | None]:
    limits = _PLAN_LIMITS.get(plan_code, {})
    return {code: limits.get(code) for code in codes}


DEFAULT_PLANS: list[PlanSpec] = [
    PlanSpec(
        code="FREE",
        name="Free",
        description="Basic features for small alumni groups",
        features=_included("FREE", _FREE),
        max_users=100,
        max_storage_mb=1024,
        sort_order=1,
    ),
    PlanSpec(
        code="STARTER",
        name="Starter",
        description="Essential features for growing alumni networks",
        features=_included("STARTER", _STARTER),
        price_monthly=Decimal("999"),
        price_yearly=Decimal("9990"),
        max_users=500,
        max_storage_mb=5120,
        sort_order=2,
    ),
    PlanSpec(
        code="PROFESSIONAL",
        name="Professional",
        description="Full-featured plan for active alumni associations",
        features=_included("PROFESSIONAL", _PROFESSIONAL),
        price_monthly=Decimal("2499"),
        price_yearly=Decimal("24990"),
        max_users=2000,
        max_storage_mb=20480,
        sort_order=3,
    ),
    PlanSpec(
        code="ENTERPRISE",
        name="Enterprise",
        description="Complete solution for large alumni organizations",
        features=_included("ENTERPRISE", _ENTERPRISE),
        price_monthly=Decimal("4999"),
        price_yearly=Decimal("49990"),
        max_users=10000,
        max_storage_mb=102400,
        sort_order=4,
    ),
]


def default_catalog() -> FeatureCatalog:
    """The built-in catalog as an in-memory snapshot."""
    return FeatureCatalog.from_specs(DEFAULT_FEATURES, DEFAULT_PLANS)


async def seed_catalog(
    db: AsyncSession,
    features: list[FeatureSpec] | None = None,
    plans: list[PlanSpec] | None = None,
) -> None:
    """Insert or update the catalog rows.

    Safe to run repeatedly: existing features and plans are updated in
    place and each plan's feature set is made to match its definition exactly.
    Flushes; the caller commits.
    """
    features = features if features is not None else DEFAULT_FEATURES
    plans = plans if plans is not None else DEFAULT_PLANS
    feature_repo = FeatureRepository(db)
    plan_repo = PlanRepository(db)

    rows: dict[str, Feature] = {}
    for definition in features:
        row = await feature_repo.get_by_code(definition.code)
        if row is None:
            row = await feature_repo.create(Feature(code=definition.code, name=definition.name))
        await feature_repo.update(
            row,
            {
                "name": definition.name,
                "description": definition.description,
                "category": definition.category,
                "is_core": definition.is_core,
                "is_premium": definition.is_premium,
                "default_limit": definition.default_limit,
                "is_active": definition.is_active,
            },
        )
        rows[definition.code] = row

    for definition in plans:
        plan = await plan_repo.get_by_code(definition.code)
        if plan is None:
            plan = await plan_repo.create(
                SubscriptionPlan(code=definition.code, name=definition.name, plan_features=[])
            )
        await plan_repo.update(
            plan,
            {
                "name": definition.name,
                "description": definition.description,
                "price_monthly": definition.price_monthly,
                "price_yearly": definition.price_yearly,
                "max_users": definition.max_users,
                "max_storage_mb": definition.max_storage_mb,
                "sort_order": definition.sort_order,
                "is_active": definition.is_active,
            },
        )

        existing = {pf.feature.code: pf for pf in plan.plan_features}
        for code, limit in definition.features.items():
            if code in existing:
                existing.pop(code).limit_override = limit
            else:
                plan.plan_features.append(PlanFeature(feature=rows[code], limit_override=limit))
        for stale in existing.values():
            plan.plan_features.remove(stale)
        await db.flush()

    logger.info("feature_catalog_seeded", features=len(features), plans=len(plans))
