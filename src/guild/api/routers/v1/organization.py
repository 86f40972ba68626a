"""Organization, subscription and add-on administration endpoints."""

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from guild.api.dependencies import AppSettings, CurrentOrganization, CurrentUser, DbSession
from guild.api.schemas.organization import (
    AddOnRequest,
    AddOnResponse,
    ChangePlanRequest,
    MaintenanceRequest,
    OrganizationResponse,
    SuspendRequest,
)
from guild.core.organization import OrganizationService
from guild.core.roles import VERIFICATION_BYPASS_ROLES, require_role
from guild.db.models.organization import Organization
from guild.db.models.subscription import OrganizationFeature
from guild.db.repositories.subscription import PlanRepository
from guild.entitlements.service import EntitlementService

router = APIRouter(prefix="/admin/organization", tags=["organization"])


async def organization_response(
    db: AsyncSession, organization: Organization
) -> OrganizationResponse:
    plan_code = None
    if organization.plan_id is not None:
        plan = await PlanRepository(db).get(organization.plan_id)
        plan_code = plan.code if plan else None
    response = OrganizationResponse.model_validate(organization)
    return response.model_copy(update={"plan_code": plan_code})


def addon_response(row: OrganizationFeature) -> AddOnResponse:
    return AddOnResponse(
        feature_code=row.feature.code,
        is_enabled=row.is_enabled,
        custom_limit=row.custom_limit,
        expires_at=row.expires_at,
    )


@router.get("", response_model=OrganizationResponse, summary="Current organization")
async def get_organization(
    db: DbSession,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    require_role(actor.role, VERIFICATION_BYPASS_ROLES, "organization view requires super admin")
    return await organization_response(db, organization)


@router.put("/subscription", response_model=OrganizationResponse, summary="Change plan")
async def change_plan(
    request: ChangePlanRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    await OrganizationService(db, settings).change_plan(actor, organization, request.plan_code)
    await db.commit()
    return await organization_response(db, organization)


@router.post(
    "/subscription/suspend", response_model=OrganizationResponse, summary="Suspend subscription"
)
async def suspend_subscription(
    request: SuspendRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    await OrganizationService(db, settings).suspend_subscription(
        actor, organization, request.reason
    )
    await db.commit()
    return await organization_response(db, organization)


@router.post(
    "/subscription/reactivate",
    response_model=OrganizationResponse,
    summary="Reactivate subscription",
)
async def reactivate_subscription(
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    await OrganizationService(db, settings).reactivate_subscription(actor, organization)
    await db.commit()
    return await organization_response(db, organization)


@router.post(
    "/subscription/expire", response_model=OrganizationResponse, summary="Expire subscription"
)
async def expire_subscription(
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    await OrganizationService(db, settings).expire_subscription(actor, organization)
    await db.commit()
    return await organization_response(db, organization)


@router.put(
    "/maintenance",
    response_model=OrganizationResponse,
    summary="Toggle maintenance mode",
    description="While on, only SUPER_ADMIN and DEVELOPER accounts can use the API.",
)
async def set_maintenance_mode(
    request: MaintenanceRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> OrganizationResponse:
    await OrganizationService(db, settings).set_maintenance_mode(
        actor, organization, request.enabled, request.message
    )
    await db.commit()
    return await organization_response(db, organization)


@router.post(
    "/features/{code}", response_model=AddOnResponse, summary="Enable a feature add-on"
)
async def enable_addon(
    code: str,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
    request: AddOnRequest | None = None,
) -> AddOnResponse:
    request = request or AddOnRequest()
    row = await EntitlementService(db, settings).enable_addon(
        actor, organization, code, request.custom_limit, request.expires_at
    )
    await db.commit()
    return addon_response(row)


@router.delete(
    "/features/{code}", response_model=AddOnResponse, summary="Disable a feature for the tenant"
)
async def disable_addon(
    code: str,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    actor: CurrentUser,
) -> AddOnResponse:
    row = await EntitlementService(db, settings).disable_addon(actor, organization, code)
    await db.commit()
    return addon_response(row)
