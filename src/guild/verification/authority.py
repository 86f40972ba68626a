"""Batch ownership: who may verify alumni of which batch."""

import structlog

from guild.core.exceptions import AuthorizationError
from guild.core.roles import VERIFICATION_BYPASS_ROLES, UserRole, coerce_role
from guild.db.models.user import User
from guild.db.repositories.batch import BatchAdminRepository
from guild.db.repositories.user import UserRepository

logger = structlog.get_logger()


class BatchAuthorityResolver:
    """Resolves batch approvers and checks transition authority.

    Assignments are read from the repository on every call. A user's batch
    may change between a review being opened and acted on, so no answer is
    reused across calls.
    """

    def __init__(self, batch_admins: BatchAdminRepository, users: UserRepository):
        self.batch_admins = batch_admins
        self.users = users

    async def resolve_approvers(self, batch_year: int) -> list[User]:
        """Active batch admins currently assigned to ``batch_year``."""
        admin_ids = await self.batch_admins.active_admin_ids_for(batch_year)
        if not admin_ids:
            return []
        return await self.users.list_active_with_role(admin_ids, UserRole.BATCH_ADMIN)

    async def managed_batches(self, admin: User) -> set[int] | None:
        """Batch years the admin may act on; None means every batch."""
        role = coerce_role(admin.role)
        if role in VERIFICATION_BYPASS_ROLES:
            return None
        if role is UserRole.BATCH_ADMIN:
            return await self.batch_admins.active_years_for(admin.user_id)
        return set()

    async def can_act_on(self, admin: User, target: User) -> bool:
        role = coerce_role(admin.role)
        if role in VERIFICATION_BYPASS_ROLES:
            return True
        if role is not UserRole.BATCH_ADMIN or not admin.is_active:
            return False
        return target.batch_year in await self.batch_admins.active_years_for(admin.user_id)

    async def assert_can_act_on(self, admin: User, target: User) -> None:
        """Raise unless ``admin`` may transition ``target``'s verification state.

        Raises:
            AuthorizationError: With a generic public message
        """
        if not await self.can_act_on(admin, target):
            logger.warning(
                "verification_authority_denied",
                admin_id=str(admin.user_id),
                admin_role=admin.role,
                target_id=str(target.user_id),
                target_batch=target.batch_year,
            )
            raise AuthorizationError(
                f"{admin.role} {admin.user_id} has no authority over batch {target.batch_year}"
            )
