"""Batch listing and batch-admin assignment."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import ConflictError, NotFoundError, ValidationError
from guild.core.roles import VERIFICATION_BYPASS_ROLES, UserRole, coerce_role, require_role
from guild.db.models.audit import AuditEventType
from guild.db.models.batch import Batch, BatchAdminAssignment
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.batch import BatchAdminRepository, BatchRepository
from guild.db.repositories.user import UserRepository
from guild.verification.authority import BatchAuthorityResolver
from guild.verification.validation import validate_batch_year

logger = structlog.get_logger()


@dataclass
class BatchDetails:
    batch: Batch
    admins: list[User] = field(default_factory=list)


class BatchService:
    """Batches and their administrators for one organization.

    Batches themselves are created lazily by registration and profile
    updates; this service only reads them and manages who may verify
    their members.
    """

    def __init__(
        self,
        db: AsyncSession,
        organization_id: UUID,
        settings: Settings | None = None,
    ):
        self.db = db
        self.organization_id = organization_id
        self.config = (settings or get_settings()).verification
        self.batches = BatchRepository(db, organization_id)
        self.assignments = BatchAdminRepository(db, organization_id)
        self.users = UserRepository(db, organization_id)
        self.authority = BatchAuthorityResolver(self.assignments, self.users)
        self.audit = AuditLogger(db)

    async def list_batches(self) -> list[Batch]:
        return await self.batches.list_batches()

    async def get_batch(self, year: int) -> BatchDetails:
        """A batch and its current approvers.

        Raises:
            NotFoundError: If no one has claimed the year yet
        """
        batch = await self.batches.get_by_year(year)
        if batch is None:
            raise NotFoundError("batch", year)
        return BatchDetails(batch, await self.authority.resolve_approvers(year))

    async def list_members(
        self, year: int, *, page: int = 1, limit: int = 20, search: str | None = None
    ) -> tuple[list[User], int]:
        """Verified members of a batch, oldest registration first."""
        if await self.batches.get_by_year(year) is None:
            raise NotFoundError("batch", year)
        return await self.users.list_users(
            status=VerificationStatus.VERIFIED,
            batch_years={year},
            search=search,
            limit=limit,
            offset=(page - 1) * limit,
        )

    async def assign_admin(self, actor: User, year: int, user_id: UUID) -> BatchAdminAssignment:
        """Make ``user_id`` an approver for ``year``.

        Ordinary users are promoted to BATCH_ADMIN. The batch is created if
        the year has never been referenced.

        Raises:
            AuthorizationError: Unless the actor is SUPER_ADMIN or DEVELOPER
            ValidationError: Out-of-range year or an inactive account
            NotFoundError: If the user is not in this organization
            ConflictError: If the user already administers the year
        """
        require_role(
            actor.role, VERIFICATION_BYPASS_ROLES, "batch admin assignment requires super admin"
        )
        validate_batch_year(year, self.config)
        user = await self.users.get_or_raise(user_id)
        if not user.is_active:
            raise ValidationError("Cannot assign an inactive account", field="user_id")
        if await self.assignments.get_active(user_id, year) is not None:
            raise ConflictError(f"User already administers batch {year}")

        await self.batches.ensure_batch(year)
        assignment = BatchAdminAssignment(
            user_id=user_id, batch_year=year, assigned_by=actor.user_id
        )
        try:
            await self.assignments.create(assignment)
        except IntegrityError as e:
            raise ConflictError(f"User already administers batch {year}") from e

        if coerce_role(user.role) is UserRole.USER:
            await self.users.update(user, {"role": UserRole.BATCH_ADMIN.value})

        await self.audit.log_event(
            event_type=AuditEventType.BATCH_ADMIN_ASSIGNED,
            event_data={"batch_year": year, "admin_id": str(user_id)},
            tenant_id=self.organization_id,
            user_id=actor.user_id,
            resource_type="batch_admin_assignment",
            resource_id=str(assignment.assignment_id),
        )
        logger.info("batch_admin_assigned", batch_year=year, admin_id=str(user_id))
        return assignment

    async def revoke_admin(self, actor: User, year: int, user_id: UUID) -> BatchAdminAssignment:
        """Deactivate an assignment. The user keeps their role.

        Raises:
            AuthorizationError: Unless the actor is SUPER_ADMIN or DEVELOPER
            NotFoundError: If there is no active assignment
        """
        require_role(
            actor.role, VERIFICATION_BYPASS_ROLES, "batch admin revocation requires super admin"
        )
        assignment = await self.assignments.get_active(user_id, year)
        if assignment is None:
            raise NotFoundError("batch_admin_assignment", f"{user_id}@{year}")

        await self.assignments.update(
            assignment,
            {"is_active": False, "revoked_by": actor.user_id, "revoked_at": datetime.now(UTC)},
        )
        await self.audit.log_event(
            event_type=AuditEventType.BATCH_ADMIN_REVOKED,
            event_data={"batch_year": year, "admin_id": str(user_id)},
            tenant_id=self.organization_id,
            user_id=actor.user_id,
            resource_type="batch_admin_assignment",
            resource_id=str(assignment.assignment_id),
        )
        logger.info("batch_admin_revoked", batch_year=year, admin_id=str(user_id))
        return assignment
