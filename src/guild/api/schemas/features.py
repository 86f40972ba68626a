"""API schemas for feature entitlements."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from guild.entitlements.types import EntitlementSource


class FeatureEntitlementResponse(BaseModel):
    """Resolved state of one feature for the caller's organization."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    enabled: bool
    limit: int
    source: EntitlementSource
    name: str | None = None
    category: str | None = None
    is_core: bool = False
    is_premium: bool = False


class FeatureListResponse(BaseModel):
    plan_code: str | None
    subscription_status: str
    features: list[FeatureEntitlementResponse]


class PlanSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    price_monthly: Decimal
    price_yearly: Decimal
    max_users: int
    max_storage_mb: int


class FeatureSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    category: str
    is_core: bool
    is_premium: bool


class FeatureMatrixResponse(BaseModel):
    plans: list[PlanSummary]
    features: list[FeatureSummary]
    included: dict[str, dict[str, bool]]
