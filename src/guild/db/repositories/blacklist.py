"""Repository for blacklist entries."""

from typing import Literal
from uuid import UUID

from sqlalchemy import Select, func, select

from guild.db.models.blacklist import BlacklistEntry

from .base import TenantRepository

EntryStatusFilter = Literal["active", "removed", "all"]


class BlacklistRepository(TenantRepository[BlacklistEntry, UUID]):
    """Blacklist entries of one organization."""

    resource_name = "blacklist_entry"

    async def get_active_by_email(self, email: str) -> BlacklistEntry | None:
        """The active entry for an email, if any."""
        stmt = self._select().where(
            BlacklistEntry.email == email,
            BlacklistEntry.is_active == True,  # noqa: E712
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def history_for(self, email: str) -> list[BlacklistEntry]:
        """Every entry ever recorded for an email, newest first."""
        stmt = (
            self._select()
            .where(BlacklistEntry.email == email)
            .order_by(BlacklistEntry.blacklisted_at.desc(), BlacklistEntry.entry_id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def _filtered(self, status: EntryStatusFilter, search: str | None) -> Select:
        stmt = self._select()
        if status == "active":
            stmt = stmt.where(BlacklistEntry.is_active == True)  # noqa: E712
        elif status == "removed":
            stmt = stmt.where(BlacklistEntry.is_active == False)  # noqa: E712
        if search:
            stmt = stmt.where(BlacklistEntry.email.like(f"%{search.lower()}%"))
        return stmt

    async def list_entries(
        self,
        *,
        status: EntryStatusFilter = "active",
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[BlacklistEntry], int]:
        """List entries newest first, with the total matching count."""
        stmt = self._filtered(status, search)
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        stmt = stmt.order_by(
            BlacklistEntry.blacklisted_at.desc(), BlacklistEntry.entry_id.desc()
        ).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total or 0

    async def count_by_state(self) -> dict[str, int]:
        """Counts of active and removed entries."""
        stmt = (
            select(BlacklistEntry.is_active, func.count())
            .where(BlacklistEntry.organization_id == self.organization_id)
            .group_by(BlacklistEntry.is_active)
        )
        counts = {"active": 0, "removed": 0}
        for is_active, count in (await self.db.execute(stmt)).all():
            counts["active" if is_active else "removed"] = count
        return counts
