"""API schemas for registration, login and the current user."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from guild.core.roles import UserRole
from guild.db.models.user import VerificationStatus

# =============================================================================
# Request Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for self-registration.

    Example:
        {
            "email": "asha@example.com",
            "password": "correct-horse",
            "full_name": "Asha Rao",
            "batch_year": 2022
        }
    """

    email: str = Field(..., description="Email address, unique within the organization")
    password: str = Field(..., description="At least 8 characters")
    full_name: str = Field(..., max_length=255, description="Display name")
    batch_year: int = Field(..., description="Claimed admission/passout year")


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


# =============================================================================
# Response Schemas
# =============================================================================


class UserResponse(BaseModel):
    """A user as seen by the user themself or an administrator."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    full_name: str
    role: UserRole
    batch_year: int
    verification_status: VerificationStatus
    is_alumni_verified: bool
    pending_verification: bool
    rejection_reason: str | None = None
    verified_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime


class ApproverResponse(BaseModel):
    """A batch admin responsible for reviewing a user."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    full_name: str
    email: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    """Tokens plus the authenticated user."""

    user: UserResponse
    tokens: TokenResponse
    approvers: list[ApproverResponse] = Field(
        default_factory=list, description="Batch admins who will review a new registration"
    )
