"""Feature entitlements: catalog, resolver and enforcement."""

from guild.entitlements.catalog import (
    DEFAULT_FEATURES,
    DEFAULT_PLANS,
    default_catalog,
    seed_catalog,
)
from guild.entitlements.resolver import resolve_all, resolve_feature
from guild.entitlements.service import EntitlementService, FeatureMatrix
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

__all__ = [
    "DEFAULT_FEATURES",
    "DEFAULT_PLANS",
    "UNLIMITED",
    "AddOn",
    "EntitlementService",
    "EntitlementSource",
    "FeatureCatalog",
    "FeatureEntitlement",
    "FeatureMatrix",
    "FeatureSpec",
    "PlanSpec",
    "TenantSubscription",
    "default_catalog",
    "resolve_all",
    "resolve_feature",
    "seed_catalog",
]
