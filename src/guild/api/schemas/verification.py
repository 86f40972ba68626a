"""API schemas for verification administration."""

from uuid import UUID

from pydantic import BaseModel, Field

from guild.api.schemas.auth import ApproverResponse, UserResponse


class ApproveRequest(BaseModel):
    notes: str | None = Field(default=None, description="Optional note, at most 500 characters")


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, description="Required, at most 1000 characters")


class BulkApproveRequest(BaseModel):
    user_ids: list[UUID] = Field(..., description="At most 100 user ids")
    notes: str | None = None


class BulkApproveResponse(BaseModel):
    verified: list[UUID]
    skipped: list[UUID] = Field(..., description="Users that were not PENDING")
    forbidden: list[UUID] = Field(..., description="Users outside the caller's batches")
    not_found: list[UUID]


class PendingListResponse(BaseModel):
    items: list[UserResponse]
    total: int
    page: int
    limit: int


class VerificationStatsResponse(BaseModel):
    pending: int
    verified: int
    rejected: int
    total: int


class VerificationDetailResponse(BaseModel):
    user: UserResponse
    approvers: list[ApproverResponse]
    verification_notes: str | None = None
    rejected_by: UUID | None = None
    verified_by: UUID | None = None
