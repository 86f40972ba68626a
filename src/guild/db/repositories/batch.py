"""Repositories for batches and batch-admin assignments."""

from uuid import UUID

from sqlalchemy import select, update

from guild.db.models.batch import Batch, BatchAdminAssignment

from .base import TenantRepository


class BatchRepository(TenantRepository[Batch, UUID]):
    """Batches of one organization."""

    resource_name = "batch"

    async def get_by_year(self, year: int) -> Batch | None:
        stmt = self._select().where(Batch.year == year).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def ensure_batch(self, year: int) -> Batch:
        """Return the batch for a year, creating it on first reference.

        Two concurrent first references to the same year both end up with
        the single row created by whichever insert won.
        """
        await self._insert_ignoring_conflicts(
            {
                "organization_id": self.organization_id,
                "year": year,
                "name": f"Batch of {year}",
                "total_members": 0,
            },
            index_elements=["organization_id", "year"],
        )
        batch = await self.get_by_year(year)
        if batch is None:
            raise RuntimeError(f"Batch {year} missing after upsert")
        return batch

    async def adjust_member_count(self, batch_id: UUID, delta: int) -> None:
        """Atomically add ``delta`` to a batch's member counter."""
        stmt = (
            update(Batch)
            .where(Batch.batch_id == batch_id, Batch.organization_id == self.organization_id)
            .values(total_members=Batch.total_members + delta)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)

    async def list_batches(self) -> list[Batch]:
        """All batches, newest year first."""
        stmt = self._select().order_by(Batch.year.desc()).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class BatchAdminRepository(TenantRepository[BatchAdminAssignment, UUID]):
    """Batch-admin assignments of one organization.

    Every lookup reads the current rows; nothing is cached between calls.
    """

    resource_name = "batch_admin_assignment"

    async def active_years_for(self, user_id: UUID) -> set[int]:
        """Batch years the user currently administers."""
        stmt = select(BatchAdminAssignment.batch_year).where(
            BatchAdminAssignment.organization_id == self.organization_id,
            BatchAdminAssignment.user_id == user_id,
            BatchAdminAssignment.is_active == True,  # noqa: E712
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def active_admin_ids_for(self, batch_year: int) -> list[UUID]:
        """Users currently assigned to a batch year."""
        stmt = select(BatchAdminAssignment.user_id).where(
            BatchAdminAssignment.organization_id == self.organization_id,
            BatchAdminAssignment.batch_year == batch_year,
            BatchAdminAssignment.is_active == True,  # noqa: E712
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_active(self, user_id: UUID, batch_year: int) -> BatchAdminAssignment | None:
        stmt = self._select().where(
            BatchAdminAssignment.user_id == user_id,
            BatchAdminAssignment.batch_year == batch_year,
            BatchAdminAssignment.is_active == True,  # noqa: E712
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
