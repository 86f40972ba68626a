"""Email blacklist model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TenantScopedMixin, utcnow


class BlacklistEntry(Base, TenantScopedMixin):
    """A block on an email address.

    Entries are soft-removed: removal sets ``is_active`` to False and
    fills the ``removed_*`` columns. At most one active entry exists per
    email within an organization, enforced by a partial unique index.
    """

    __tablename__ = "blacklist_entries"

    entry_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    blacklisted_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    blacklisted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    removed_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    removed_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_blacklist_active_email",
            "organization_id",
            "email",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_blacklist_email", "organization_id", "email"),
    )

    def __repr__(self) -> str:
        return f"<BlacklistEntry(email={self.email}, active={self.is_active})>"
