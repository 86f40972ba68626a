"""API schemas for organization and subscription administration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from guild.db.models.organization import SubscriptionStatus


class ChangePlanRequest(BaseModel):
    plan_code: str


class SuspendRequest(BaseModel):
    reason: str


class MaintenanceRequest(BaseModel):
    enabled: bool
    message: str | None = None


class AddOnRequest(BaseModel):
    custom_limit: int | None = Field(default=None, description="-1 means unlimited")
    expires_at: datetime | None = None


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_id: UUID
    name: str
    tenant_code: str
    is_active: bool
    is_maintenance_mode: bool
    maintenance_message: str | None = None
    subscription_status: SubscriptionStatus
    suspended_reason: str | None = None
    max_users: int
    storage_quota_mb: int
    plan_code: str | None = None


class AddOnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    feature_code: str
    is_enabled: bool
    custom_limit: int | None = None
    expires_at: datetime | None = None
