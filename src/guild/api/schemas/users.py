"""API schemas for self-service profile updates."""

from pydantic import BaseModel, Field

from guild.api.schemas.auth import ApproverResponse, UserResponse


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change about themself.

    Changing ``batch_year`` after a rejection reopens verification under
    the new batch's admins.
    """

    full_name: str | None = Field(default=None, max_length=255)
    batch_year: int | None = None


class ProfileUpdateResponse(BaseModel):
    user: UserResponse
    resubmitted: bool = Field(
        default=False, description="True if the change moved the account back to PENDING"
    )
    approvers: list[ApproverResponse] = Field(default_factory=list)
