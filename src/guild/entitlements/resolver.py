"""Feature entitlement resolution.

Pure functions over a ``FeatureCatalog`` and a ``TenantSubscription``: no
I/O and no caching, so the result always reflects the snapshots passed in.

A feature is enabled when it is core, or when the subscription is active
and either the plan includes it or an unexpired add-on enables it. An
EXPIRED or SUSPENDED subscription disables every non-core feature,
whatever the plan or add-ons say.

Limit precedence: add-on ``custom_limit``, then the plan's override, then
the feature default, then unlimited.
"""

from datetime import UTC, datetime

from guild.entitlements.types import (
    UNLIMITED,
    AddOn,
    EntitlementSource,
    FeatureCatalog,
    FeatureEntitlement,
    FeatureSpec,
    PlanSpec,
    TenantSubscription,
)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def active_addon(
    subscription: TenantSubscription, code: str, now: datetime | None = None
) -> AddOn | None:
    """The add-on for ``code`` unless it has expired."""
    addon = subscription.addons.get(code)
    if addon is None:
        return None
    if addon.expires_at is not None and _aware(addon.expires_at) <= (now or datetime.now(UTC)):
        return None
    return addon


def effective_limit(
    feature: FeatureSpec, plan: PlanSpec | None, addon: AddOn | None
) -> int:
    if addon is not None and addon.custom_limit is not None:
        return addon.custom_limit
    if plan is not None and plan.features.get(feature.code) is not None:
        return plan.features[feature.code]
    if feature.default_limit is not None:
        return feature.default_limit
    return UNLIMITED


def resolve_feature(
    catalog: FeatureCatalog,
    subscription: TenantSubscription,
    code: str,
    now: datetime | None = None,
) -> FeatureEntitlement:
    """Resolve one feature for one organization.

    Unknown or retired feature codes resolve to disabled.
    """
    feature = catalog.features.get(code)
    if feature is None or not feature.is_active:
        return FeatureEntitlement(
            code=code, enabled=False, limit=0, source=EntitlementSource.UNKNOWN_FEATURE
        )

    plan = catalog.plans.get(subscription.plan_code) if subscription.plan_code else None
    addon = active_addon(subscription, code, now)

    if feature.is_core:
        enabled, source = True, EntitlementSource.CORE
    elif not subscription.is_active:
        enabled, source = False, EntitlementSource.SUBSCRIPTION_INACTIVE
    elif addon is not None:
        enabled, source = addon.is_enabled, EntitlementSource.ADDON
    elif plan is not None and code in plan.features:
        enabled, source = True, EntitlementSource.PLAN
    else:
        enabled, source = False, EntitlementSource.NOT_INCLUDED

    return FeatureEntitlement(
        code=code,
        enabled=enabled,
        limit=effective_limit(feature, plan, addon) if enabled else 0,
        source=source,
        name=feature.name,
        category=feature.category,
        is_core=feature.is_core,
        is_premium=feature.is_premium,
    )


def resolve_all(
    catalog: FeatureCatalog,
    subscription: TenantSubscription,
    now: datetime | None = None,
) -> list[FeatureEntitlement]:
    """Resolve every active catalog feature, ordered by category then code."""
    now = now or datetime.now(UTC)
    features = sorted(
        (f for f in catalog.features.values() if f.is_active),
        key=lambda f: (f.category, f.code),
    )
    return [resolve_feature(catalog, subscription, f.code, now) for f in features]


def plan_matrix(catalog: FeatureCatalog) -> dict[str, dict[str, bool]]:
    """Which plan includes which feature, core features counting as included."""
    plans = sorted(
        (p for p in catalog.plans.values() if p.is_active), key=lambda p: p.sort_order
    )
    features = sorted(
        (f for f in catalog.features.values() if f.is_active), key=lambda f: (f.category, f.code)
    )
    return {
        plan.code: {f.code: f.is_core or f.code in plan.features for f in features}
        for plan in plans
    }
