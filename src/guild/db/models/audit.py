"""Audit event models for accountability and forensics."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, utcnow


class AuditEventType(str, Enum):
    """Types of audit events tracked in the system."""

    # Registration and login
    REGISTRATION_ATTEMPT = "registration.attempt"
    REGISTRATION_BLACKLISTED = "registration.blacklisted"
    USER_REGISTERED = "user.registered"
    USER_LOGIN = "user.login"
    LOGIN_BLACKLISTED = "login.blacklisted"

    # Verification
    VERIFICATION_APPROVED = "verification.approved"
    VERIFICATION_REJECTED = "verification.rejected"
    VERIFICATION_RESUBMITTED = "verification.resubmitted"
    PROFILE_UPDATED = "user.profile_updated"

    # Blacklist
    BLACKLIST_ADDED = "blacklist.added"
    BLACKLIST_REMOVED = "blacklist.removed"

    # Batches
    BATCH_ADMIN_ASSIGNED = "batch.admin_assigned"
    BATCH_ADMIN_REVOKED = "batch.admin_revoked"

    # Organization and subscription
    ORGANIZATION_CREATED = "organization.created"
    MAINTENANCE_TOGGLED = "organization.maintenance_toggled"
    SUBSCRIPTION_CHANGED = "subscription.changed"
    SUBSCRIPTION_SUSPENDED = "subscription.suspended"
    SUBSCRIPTION_REACTIVATED = "subscription.reactivated"
    SUBSCRIPTION_EXPIRED = "subscription.expired"
    FEATURE_ADDON_ENABLED = "feature.addon_enabled"
    FEATURE_ADDON_DISABLED = "feature.addon_disabled"


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(Base):
    """Immutable audit log entry.

    Audit events are append-only. They are not tenant-scoped through a
    foreign key so that the trail survives organization deletion.
    """

    __tablename__ = "audit_events"

    # UUIDv7 is time-ordered, making audit events naturally sortable by ID
    audit_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")

    # Context
    tenant_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    user_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    correlation_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    # Subject
    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    event_data: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    # Metadata
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 support
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_tenant", "tenant_id"),
        Index("idx_audit_correlation", "correlation_id"),
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_created", "created_at"),
        Index("idx_audit_resource", "resource_type", "resource_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent(id={self.audit_id}, type={self.event_type}, "
            f"severity={self.severity})>"
        )
