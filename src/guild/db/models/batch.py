"""Batch (cohort year) and batch-admin assignment models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TenantScopedMixin, utcnow


class Batch(Base, TenantScopedMixin):
    """An admission/passout-year cohort.

    Created lazily the first time a user references the year and never
    deleted. ``total_members`` is a denormalized counter.
    """

    __tablename__ = "batches"

    batch_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    total_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (UniqueConstraint("organization_id", "year", name="uq_batches_org_year"),)

    def __repr__(self) -> str:
        return f"<Batch(year={self.year}, members={self.total_members})>"


class BatchAdminAssignment(Base, TenantScopedMixin):
    """Grants a user authority to verify alumni of one batch year.

    Revocation flips ``is_active`` and stamps ``revoked_at``; rows are
    never deleted.
    """

    __tablename__ = "batch_admin_assignments"

    assignment_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    user_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    batch_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    assigned_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    revoked_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_batch_admin_active",
            "organization_id",
            "user_id",
            "batch_year",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_batch_admin_year", "organization_id", "batch_year"),
    )

    def __repr__(self) -> str:
        return (
            f"<BatchAdminAssignment(user={self.user_id}, year={self.batch_year}, "
            f"active={self.is_active})>"
        )
