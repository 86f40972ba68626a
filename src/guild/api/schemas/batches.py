"""API schemas for batches and batch admins."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from guild.api.schemas.auth import ApproverResponse, UserResponse


class BatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    batch_id: UUID
    year: int
    name: str
    total_members: int


class BatchDetailResponse(BatchResponse):
    admins: list[ApproverResponse]


class BatchListResponse(BaseModel):
    items: list[BatchResponse]


class BatchMembersResponse(BaseModel):
    year: int
    items: list[UserResponse]
    total: int
    page: int
    limit: int


class AssignAdminRequest(BaseModel):
    user_id: UUID


class BatchAdminAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: UUID
    user_id: UUID
    batch_year: int
    is_active: bool
    assigned_by: UUID | None = None
    assigned_at: datetime
    revoked_at: datetime | None = None
