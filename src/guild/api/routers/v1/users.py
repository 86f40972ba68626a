"""Self-service endpoints for the authenticated user."""

from fastapi import APIRouter

from guild.accounts.service import AccountService
from guild.api.dependencies import AppSettings, CurrentOrganization, CurrentUser, DbSession
from guild.api.schemas.auth import ApproverResponse, UserResponse
from guild.api.schemas.users import ProfileUpdateRequest, ProfileUpdateResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse, summary="Current user")
async def get_me(user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put(
    "/profile",
    response_model=ProfileUpdateResponse,
    summary="Update own profile",
    description=(
        "Changing the batch year of a REJECTED account reopens verification "
        "under the new batch. Verified alumni cannot change their batch."
    ),
)
async def update_profile(
    request: ProfileUpdateRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
    user: CurrentUser,
) -> ProfileUpdateResponse:
    result = await AccountService(db, organization, settings).update_profile(
        user, full_name=request.full_name, batch_year=request.batch_year
    )
    await db.commit()
    return ProfileUpdateResponse(
        user=UserResponse.model_validate(result.user),
        resubmitted=result.resubmitted,
        approvers=[ApproverResponse.model_validate(a) for a in result.approvers],
    )
