"""Feature catalog, subscription plan and add-on models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TenantScopedMixin, TimestampMixin, utcnow


class Feature(Base, TimestampMixin):
    """A gated capability in the platform-wide feature catalog."""

    __tablename__ = "features"

    feature_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="GENERAL")
    is_core: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_premium: Mapped[bool] = mapped_column(default=False, nullable=False)
    default_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Feature(code={self.code}, core={self.is_core})>"


class SubscriptionPlan(Base, TimestampMixin):
    """A purchasable plan bundling a set of features."""

    __tablename__ = "subscription_plans"

    plan_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    code: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_monthly: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    price_yearly: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    max_storage_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=1024)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    plan_features: Mapped[list["PlanFeature"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<SubscriptionPlan(code={self.code})>"


class PlanFeature(Base):
    """Inclusion of a feature in a plan, with an optional limit override.

    A row means the feature is in the plan's included set. A non-null
    ``limit_override`` replaces the feature's default limit for this plan
    (-1 means unlimited).
    """

    __tablename__ = "plan_features"

    plan_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("subscription_plans.plan_id", ondelete="CASCADE"),
        primary_key=True,
    )
    feature_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("features.feature_id", ondelete="CASCADE"), primary_key=True
    )
    limit_override: Mapped[int | None] = mapped_column(Integer, nullable=True)

    plan: Mapped[SubscriptionPlan] = relationship(back_populates="plan_features")
    feature: Mapped[Feature] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<PlanFeature(plan={self.plan_id}, feature={self.feature_id})>"


class OrganizationFeature(Base, TenantScopedMixin):
    """Per-organization add-on or limit override for a single feature."""

    __tablename__ = "organization_features"

    organization_feature_id: Mapped[UUID] = mapped_column(
        PortableUUID(), primary_key=True, default=uuid7
    )
    feature_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("features.feature_id", ondelete="CASCADE"), nullable=False
    )
    is_enabled: Mapped[bool] = mapped_column(default=True, nullable=False)
    custom_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enabled_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    feature: Mapped[Feature] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("organization_id", "feature_id", name="uq_org_feature"),
    )
