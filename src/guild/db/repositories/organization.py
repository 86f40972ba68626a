"""Repository for organizations (tenants)."""

from uuid import UUID

from sqlalchemy import select

from guild.db.models.organization import Organization

from .base import BaseRepository


class OrganizationRepository(BaseRepository[Organization, UUID]):
    """Organizations are the tenant boundary, so this repository is not scoped."""

    resource_name = "organization"

    async def get_by_tenant_code(self, tenant_code: str) -> Organization | None:
        """Look up an organization by its tenant code (case-insensitive)."""
        stmt = select(Organization).where(Organization.tenant_code == tenant_code.upper())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
