"""Feature entitlement endpoints for the caller's organization."""

from typing import Annotated

from fastapi import APIRouter, Depends

from guild.api.dependencies import (
    AppSettings,
    CurrentOrganization,
    CurrentUser,
    DbSession,
    require_path_feature,
)
from guild.api.schemas.features import (
    FeatureEntitlementResponse,
    FeatureListResponse,
    FeatureMatrixResponse,
    FeatureSummary,
    PlanSummary,
)
from guild.entitlements.service import EntitlementService
from guild.entitlements.types import FeatureEntitlement

router = APIRouter(prefix="/features", tags=["features"])


@router.get("", response_model=FeatureListResponse, summary="Resolved entitlements")
async def list_features(
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    user: CurrentUser,
) -> FeatureListResponse:
    service = EntitlementService(db, settings)
    subscription = await service.load_subscription(organization)
    entitlements = await service.list_entitlements(organization)
    return FeatureListResponse(
        plan_code=subscription.plan_code,
        subscription_status=subscription.status.value,
        features=[FeatureEntitlementResponse.model_validate(e) for e in entitlements],
    )


@router.get("/matrix", response_model=FeatureMatrixResponse, summary="Plan by feature matrix")
async def feature_matrix(
    db: DbSession,
    settings: AppSettings,
    user: CurrentUser,
) -> FeatureMatrixResponse:
    matrix = await EntitlementService(db, settings).feature_matrix()
    return FeatureMatrixResponse(
        plans=[PlanSummary.model_validate(p) for p in matrix.plans],
        features=[FeatureSummary.model_validate(f) for f in matrix.features],
        included=matrix.included,
    )


@router.get("/{code}", response_model=FeatureEntitlementResponse, summary="One entitlement")
async def get_feature(
    code: str,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    user: CurrentUser,
) -> FeatureEntitlementResponse:
    entitlement = await EntitlementService(db, settings).resolve(organization, code)
    return FeatureEntitlementResponse.model_validate(entitlement)


@router.get(
    "/{code}/access",
    response_model=FeatureEntitlementResponse,
    summary="Check access to a feature",
    description="403 `feature_disabled` unless the feature is on for the organization.",
)
async def check_feature_access(
    entitlement: Annotated[FeatureEntitlement, Depends(require_path_feature)],
) -> FeatureEntitlementResponse:
    return FeatureEntitlementResponse.model_validate(entitlement)
