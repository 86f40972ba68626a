"""Repository for tenant users."""

from collections.abc import Collection
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, or_, select, update

from guild.core.roles import UserRole
from guild.db.models.user import User, VerificationStatus

from .base import TenantRepository


class UserRepository(TenantRepository[User, UUID]):
    """Users of one organization."""

    resource_name = "user"

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email."""
        stmt = self._select().where(User.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def _filtered(
        self,
        *,
        status: VerificationStatus | None = None,
        batch_years: Collection[int] | None = None,
        search: str | None = None,
    ) -> Select:
        stmt = self._select()
        if status is not None:
            stmt = stmt.where(User.verification_status == status.value)
        if batch_years is not None:
            stmt = stmt.where(User.batch_year.in_(list(batch_years)))
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(func.lower(User.full_name).like(pattern), User.email.like(pattern))
            )
        return stmt

    async def list_users(
        self,
        *,
        status: VerificationStatus | None = None,
        batch_years: Collection[int] | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[User], int]:
        """List users matching the filters, oldest registration first.

        Args:
            status: Only users in this verification status
            batch_years: Only users claiming one of these years (None = any)
            search: Case-insensitive substring of name or email
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (page of users, total matching count)
        """
        stmt = self._filtered(status=status, batch_years=batch_years, search=search)
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        stmt = stmt.order_by(User.created_at.asc(), User.user_id.asc()).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total or 0

    async def count_by_status(
        self, batch_years: Collection[int] | None = None
    ) -> dict[VerificationStatus, int]:
        """Count users per verification status."""
        stmt = select(User.verification_status, func.count()).where(
            User.organization_id == self.organization_id
        )
        if batch_years is not None:
            stmt = stmt.where(User.batch_year.in_(list(batch_years)))
        stmt = stmt.group_by(User.verification_status)

        counts = {status: 0 for status in VerificationStatus}
        for status, count in (await self.db.execute(stmt)).all():
            counts[VerificationStatus(status)] = count
        return counts

    async def count_active(self) -> int:
        """Count active accounts, used for the organization's user quota."""
        stmt = select(func.count()).where(
            User.organization_id == self.organization_id, User.is_active == True  # noqa: E712
        )
        return await self.db.scalar(stmt) or 0

    async def list_active_with_role(self, user_ids: Collection[UUID], role: UserRole) -> list[User]:
        """Active users among ``user_ids`` holding ``role``, ordered by name."""
        if not user_ids:
            return []
        stmt = (
            self._select()
            .where(
                User.user_id.in_(list(user_ids)),
                User.role == role.value,
                User.is_active == True,  # noqa: E712
            )
            .order_by(User.full_name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def apply_transition(
        self, user: User, expected_status: VerificationStatus, values: dict[str, Any]
    ) -> bool:
        """Write a verification transition as one conditional UPDATE.

        The row is only updated if it is still in ``expected_status``, so a
        concurrent transition cannot be silently overwritten.

        Returns:
            True if the row was updated, False if its status had changed
        """
        stmt = (
            update(User)
            .where(
                User.user_id == user.user_id,
                User.organization_id == self.organization_id,
                User.verification_status == expected_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.refresh(user)
        return result.rowcount == 1
