"""Verification workflow: approve, reject and self-service batch changes."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import BatchLockedError, InvalidTransitionError
from guild.core.roles import ADMIN_ROLES, coerce_role
from guild.db.models.audit import AuditEventType
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.batch import BatchAdminRepository, BatchRepository
from guild.db.repositories.user import UserRepository
from guild.verification.authority import BatchAuthorityResolver
from guild.verification.state_machine import (
    Transition,
    VerificationAction,
    plan_approval,
    plan_batch_change,
    plan_rejection,
)
from guild.verification.validation import (
    validate_approval_notes,
    validate_batch_year,
    validate_bulk_ids,
    validate_rejection_reason,
)

logger = structlog.get_logger()


@dataclass
class BulkApprovalResult:
    """Per-user outcome of a bulk approval."""

    verified: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    forbidden: list[UUID] = field(default_factory=list)
    not_found: list[UUID] = field(default_factory=list)


@dataclass
class BatchChangeResult:
    user: User
    transition: Transition
    approvers: list[User] = field(default_factory=list)


class VerificationService:
    """Applies verification transitions for one organization.

    Every operation validates input, loads the target, re-checks the
    actor's authority and only then writes, so a failure leaves the
    user row untouched. Methods flush; the caller commits.
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
        self.users = UserRepository(db, organization_id)
        self.batches = BatchRepository(db, organization_id)
        self.authority = BatchAuthorityResolver(
            BatchAdminRepository(db, organization_id), self.users
        )
        self.audit = AuditLogger(db)

    async def approve(self, admin: User, user_id: UUID, notes: str | None = None) -> User:
        """Approve a PENDING user.

        Raises:
            ValidationError: If notes are too long
            NotFoundError: If the user is not in this organization
            AuthorizationError: If the admin has no authority over the user's batch
            InvalidTransitionError: If the user is REJECTED
        """
        notes = validate_approval_notes(notes, self.config)
        target = await self.users.get_or_raise(user_id)
        await self.authority.assert_can_act_on(admin, target)

        transition = plan_approval(target.status, admin.user_id, datetime.now(UTC), notes)
        if transition.is_noop:
            return target

        await self._write(target, transition, VerificationAction.APPROVE)
        await self.audit.log_event(
            event_type=AuditEventType.VERIFICATION_APPROVED,
            event_data={"batch_year": target.batch_year, "notes": notes},
            tenant_id=self.organization_id,
            user_id=admin.user_id,
            resource_type="user",
            resource_id=str(target.user_id),
        )
        logger.info("alumni_verified", user_id=str(target.user_id), admin_id=str(admin.user_id))
        return target

    async def reject(self, admin: User, user_id: UUID, reason: str | None) -> User:
        """Reject a PENDING user with a mandatory reason.

        Rejection does not blacklist the email; the user can reopen review
        by claiming a different batch.

        Raises:
            ValidationError: If the reason is blank or too long
            NotFoundError: If the user is not in this organization
            AuthorizationError: If the admin has no authority over the user's batch
            InvalidTransitionError: If the user is not PENDING
        """
        reason = validate_rejection_reason(reason, self.config)
        target = await self.users.get_or_raise(user_id)
        await self.authority.assert_can_act_on(admin, target)

        transition = plan_rejection(target.status, admin.user_id, datetime.now(UTC), reason)
        await self._write(target, transition, VerificationAction.REJECT)
        await self.audit.log_event(
            event_type=AuditEventType.VERIFICATION_REJECTED,
            event_data={"batch_year": target.batch_year, "reason": reason},
            tenant_id=self.organization_id,
            user_id=admin.user_id,
            resource_type="user",
            resource_id=str(target.user_id),
        )
        logger.info("alumni_rejected", user_id=str(target.user_id), admin_id=str(admin.user_id))
        return target

    async def bulk_approve(
        self, admin: User, user_ids: list[UUID], notes: str | None = None
    ) -> BulkApprovalResult:
        """Approve many users, checking authority for each one separately."""
        user_ids = validate_bulk_ids(user_ids, self.config, field="user_ids")
        notes = validate_approval_notes(notes, self.config)

        result = BulkApprovalResult()
        found = {user.user_id: user for user in await self.users.get_many(user_ids)}
        for user_id in user_ids:
            target = found.get(user_id)
            if target is None:
                result.not_found.append(user_id)
            elif not await self.authority.can_act_on(admin, target):
                result.forbidden.append(user_id)
            elif target.status != VerificationStatus.PENDING:
                result.skipped.append(user_id)
            else:
                await self.approve(admin, user_id, notes)
                result.verified.append(user_id)

        logger.info(
            "bulk_verification_completed",
            verified=len(result.verified),
            skipped=len(result.skipped),
            forbidden=len(result.forbidden),
        )
        return result

    async def change_batch(self, user: User, new_year: int) -> BatchChangeResult:
        """Self-service batch change by ``user``.

        Moves the user to the (lazily created) batch for ``new_year``. From
        REJECTED this reopens review; the same year changes nothing.

        Raises:
            ValidationError: If the year is out of range
            BatchLockedError: If a verified ordinary user tries to move
        """
        validate_batch_year(new_year, self.config)

        if (
            user.status == VerificationStatus.VERIFIED
            and coerce_role(user.role) not in ADMIN_ROLES
            and new_year != user.batch_year
        ):
            raise BatchLockedError()

        if new_year == user.batch_year:
            return BatchChangeResult(user, Transition(user.status, user.status))

        old_batch_id = user.batch_id
        old_year = user.batch_year
        batch = await self.batches.ensure_batch(new_year)
        transition = plan_batch_change(user.status, user.batch_year, new_year, batch.batch_id)

        await self._write(user, transition, VerificationAction.CHANGE_BATCH)
        if old_batch_id is not None:
            await self.batches.adjust_member_count(old_batch_id, -1)
        await self.batches.adjust_member_count(batch.batch_id, 1)

        approvers: list[User] = []
        if transition.changes_status:
            approvers = await self.authority.resolve_approvers(new_year)
            await self.audit.log_event(
                event_type=AuditEventType.VERIFICATION_RESUBMITTED,
                event_data={
                    "previous_batch_year": old_year,
                    "batch_year": new_year,
                    "approver_ids": [str(a.user_id) for a in approvers],
                },
                tenant_id=self.organization_id,
                user_id=user.user_id,
                resource_type="user",
                resource_id=str(user.user_id),
            )
            logger.info(
                "verification_resubmitted",
                user_id=str(user.user_id),
                batch_year=new_year,
                approvers=len(approvers),
            )
        return BatchChangeResult(user, transition, approvers)

    async def list_pending(
        self,
        admin: User,
        *,
        page: int = 1,
        limit: int = 20,
        batch_year: int | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        """PENDING users the admin may act on, oldest first."""
        scope = await self._scope(admin, batch_year)
        if scope is not None and not scope:
            return [], 0
        return await self.users.list_users(
            status=VerificationStatus.PENDING,
            batch_years=scope,
            search=search,
            limit=limit,
            offset=(page - 1) * limit,
        )

    async def stats(self, admin: User) -> dict[VerificationStatus, int]:
        """Counts per status within the admin's scope."""
        scope = await self._scope(admin, None)
        if scope is not None and not scope:
            return {status: 0 for status in VerificationStatus}
        return await self.users.count_by_status(scope)

    async def details(self, admin: User, user_id: UUID) -> tuple[User, list[User]]:
        """A user's verification record and the approvers of their batch.

        Raises:
            NotFoundError: If the user is not in this organization
            AuthorizationError: If the admin has no authority over the user's batch
        """
        target = await self.users.get_or_raise(user_id)
        await self.authority.assert_can_act_on(admin, target)
        return target, await self.authority.resolve_approvers(target.batch_year)

    async def _scope(self, admin: User, batch_year: int | None) -> set[int] | None:
        managed = await self.authority.managed_batches(admin)
        if batch_year is None:
            return managed
        if managed is None or batch_year in managed:
            return {batch_year}
        return set()

    async def _write(self, user: User, transition: Transition, action: VerificationAction) -> None:
        applied = await self.users.apply_transition(user, transition.from_status, transition.values)
        if applied:
            return
        # Another request changed the status between our read and write
        if action is VerificationAction.APPROVE and user.status == VerificationStatus.VERIFIED:
            return
        raise InvalidTransitionError(user.verification_status, action.value)
