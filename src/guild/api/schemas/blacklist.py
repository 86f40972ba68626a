"""API schemas for blacklist administration."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from guild.blacklist.service import EmailStatus


class BlacklistAddRequest(BaseModel):
    email: str
    reason: str = Field(..., description="At least 5 characters")


class BlacklistRemoveRequest(BaseModel):
    reason: str | None = Field(
        default=None, description='Defaults to "Removed by admin decision"'
    )


class BulkRemoveRequest(BaseModel):
    entry_ids: list[UUID] = Field(..., description="At most 100 entry ids")
    reason: str | None = None


class BlacklistEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    email: str
    reason: str
    is_active: bool
    blacklisted_by: UUID | None = None
    blacklisted_at: datetime
    removed_by: UUID | None = None
    removed_at: datetime | None = None
    removed_reason: str | None = None


class BlacklistListResponse(BaseModel):
    items: list[BlacklistEntryResponse]
    total: int
    page: int
    limit: int
    status: Literal["active", "removed", "all"]


class BulkRemoveResponse(BaseModel):
    removed: list[UUID]
    already_removed: list[UUID]
    not_found: list[UUID]


class BlacklistStatsResponse(BaseModel):
    active: int
    removed: int
    total: int
    blocked_attempts: int


class EmailStatusResponse(BaseModel):
    email: str
    status: EmailStatus


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: UUID
    event_type: str
    severity: str
    user_id: UUID | None = None
    event_data: dict[str, Any]
    created_at: datetime


class BlacklistHistoryResponse(BaseModel):
    email: str
    entries: list[BlacklistEntryResponse]
    events: list[AuditEventResponse]
