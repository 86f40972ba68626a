"""Database models for Guild."""

from .audit import AuditEvent, AuditEventType, AuditSeverity
from .base import Base, TimestampMixin
from .batch import Batch, BatchAdminAssignment
from .blacklist import BlacklistEntry
from .organization import Organization, SubscriptionStatus
from .subscription import Feature, OrganizationFeature, PlanFeature, SubscriptionPlan
from .user import User, VerificationStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "Organization",
    "SubscriptionStatus",
    "User",
    "VerificationStatus",
    "Batch",
    "BatchAdminAssignment",
    "BlacklistEntry",
    "Feature",
    "SubscriptionPlan",
    "PlanFeature",
    "OrganizationFeature",
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
]
