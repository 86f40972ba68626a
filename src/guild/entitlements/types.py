"""Immutable snapshots the entitlement resolver works on."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from guild.db.models.organization import SubscriptionStatus

# Limit value meaning "no limit".
UNLIMITED = -1


class EntitlementSource(str, Enum):
    """Why a feature resolved the way it did."""

    CORE = "core"
    PLAN = "plan"
    ADDON = "addon"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"
    NOT_INCLUDED = "not_included"
    UNKNOWN_FEATURE = "unknown_feature"


@dataclass(frozen=True)
class FeatureSpec:
    code: str
    name: str
    category: str = "GENERAL"
    description: str | None = None
    is_core: bool = False
    is_premium: bool = False
    default_limit: int | None = None
    is_active: bool = True


@dataclass(frozen=True)
class PlanSpec:
    """A plan and the features it includes.

    ``features`` maps each included feature code to its plan-level limit
    override (None when the plan keeps the feature's default).
    """

    code: str
    name: str
    features: Mapping[str, int | None] = field(default_factory=dict)
    description: str | None = None
    price_monthly: Decimal = Decimal("0")
    price_yearly: Decimal = Decimal("0")
    max_users: int = 100
    max_storage_mb: int = 1024
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class AddOn:
    """Per-organization switch for one feature outside its plan."""

    feature_code: str
    is_enabled: bool = True
    custom_limit: int | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class FeatureCatalog:
    """Platform-wide features and plans, keyed by code."""

    features: Mapping[str, FeatureSpec]
    plans: Mapping[str, PlanSpec]

    @classmethod
    def from_specs(cls, features: list[FeatureSpec], plans: list[PlanSpec]) -> "FeatureCatalog":
        return cls(
            features={f.code: f for f in features},
            plans={p.code: p for p in plans},
        )


@dataclass(frozen=True)
class TenantSubscription:
    """An organization's subscription at the moment of the check."""

    organization_id: UUID
    status: SubscriptionStatus
    plan_code: str | None = None
    addons: Mapping[str, AddOn] = field(default_factory=dict)
    grace_period_allows_access: bool = True

    @property
    def is_active(self) -> bool:
        if self.status in {SubscriptionStatus.EXPIRED, SubscriptionStatus.SUSPENDED}:
            return False
        if self.status == SubscriptionStatus.GRACE_PERIOD:
            return self.grace_period_allows_access
        return True


@dataclass(frozen=True)
class FeatureEntitlement:
    """Resolved state of one feature for one organization."""

    code: str
    enabled: bool
    limit: int
    source: EntitlementSource
    name: str | None = None
    category: str | None = None
    is_core: bool = False
    is_premium: bool = False

    @property
    def is_unlimited(self) -> bool:
        return self.limit == UNLIMITED
