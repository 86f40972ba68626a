"""Organization (tenant) model for multi-tenancy support."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin


class SubscriptionStatus(str, Enum):
    """Lifecycle state of an organization's subscription."""

    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    GRACE_PERIOD = "GRACE_PERIOD"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"


class Organization(Base, TimestampMixin):
    """An alumni organization using the platform.

    Owns all users, batches and blacklist entries within its boundary.
    """

    __tablename__ = "organizations"

    organization_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    # Status
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_maintenance_mode: Mapped[bool] = mapped_column(default=False, nullable=False)
    maintenance_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Subscription
    plan_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("subscription_plans.plan_id"), nullable=True
    )
    subscription_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionStatus.TRIAL.value
    )
    subscription_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    suspended_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Quotas
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=500)
    storage_quota_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=5120)

    @property
    def status(self) -> SubscriptionStatus:
        return SubscriptionStatus(self.subscription_status)

    def __repr__(self) -> str:
        return f"<Organization(id={self.organization_id}, code={self.tenant_code})>"
