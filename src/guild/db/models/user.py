"""User model carrying alumni verification state."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from guild.core.roles import UserRole

from .base import Base, PortableUUID, TenantScopedMixin, TimestampMixin


class VerificationStatus(str, Enum):
    """Alumni verification state."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class User(Base, TenantScopedMixin, TimestampMixin):
    """A member of an organization.

    ``verification_status``, ``is_alumni_verified``, ``pending_verification``
    and ``rejection_reason`` are only ever written together by
    ``guild.verification.state_machine``.
    """

    __tablename__ = "users"

    user_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER.value)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Batch claim
    batch_year: Mapped[int] = mapped_column(Integer, nullable=False)
    batch_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("batches.batch_id"), nullable=True
    )

    # Verification
    verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VerificationStatus.PENDING.value
    )
    is_alumni_verified: Mapped[bool] = mapped_column(default=False, nullable=False)
    pending_verification: Mapped[bool] = mapped_column(default=True, nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "email", name="uq_users_org_email"),
        Index("idx_users_org_status", "organization_id", "verification_status"),
        Index("idx_users_org_batch", "organization_id", "batch_year"),
    )

    @property
    def status(self) -> VerificationStatus:
        return VerificationStatus(self.verification_status)

    def __repr__(self) -> str:
        return f"<User(id={self.user_id}, email={self.email}, status={self.verification_status})>"
