"""Registration, login and token refresh endpoints.

These routes are public: they need the X-Tenant-Code header but no
bearer token.
"""

from fastapi import APIRouter, status

from guild.accounts.service import AccountService, AuthResult
from guild.api.dependencies import AppSettings, CurrentOrganization, DbSession
from guild.api.schemas.auth import (
    ApproverResponse,
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        tokens=TokenResponse(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
            token_type=result.tokens.token_type,
        ),
        approvers=[ApproverResponse.model_validate(a) for a in result.approvers],
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register as an alumnus",
    description=(
        "Create a PENDING account for a claimed batch year. Blacklisted emails "
        "are refused with 403 and `details.blacklisted = true`."
    ),
)
async def register(
    request: RegisterRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
) -> AuthResponse:
    service = AccountService(db, organization, settings)
    result = await service.register(
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        batch_year=request.batch_year,
    )
    await db.commit()
    return auth_response(result)


@router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
async def login(
    request: LoginRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
) -> AuthResponse:
    result = await AccountService(db, organization, settings).login(
        request.email, request.password
    )
    await db.commit()
    return auth_response(result)


@router.post("/refresh", response_model=AuthResponse, summary="Exchange a refresh token")
async def refresh(
    request: RefreshRequest,
    db: DbSession,
    settings: AppSettings,
    organization: CurrentOrganization,
) -> AuthResponse:
    result = await AccountService(db, organization, settings).refresh(request.refresh_token)
    return auth_response(result)
