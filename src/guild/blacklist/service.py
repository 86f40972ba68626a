"""Blacklist administration: add, remove, list and history."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

import structlog
from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guild.blacklist.gate import BlacklistCheck, BlacklistGate, normalize_email
from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import ConflictError, NotFoundError, ValidationError
from guild.core.roles import ADMIN_ROLES, VERIFICATION_BYPASS_ROLES, coerce_role, require_role
from guild.db.models.audit import AuditEvent, AuditEventType, AuditSeverity
from guild.db.models.blacklist import BlacklistEntry
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.blacklist import BlacklistRepository, EntryStatusFilter
from guild.db.repositories.user import UserRepository
from guild.verification.validation import validate_bulk_ids

logger = structlog.get_logger()

DEFAULT_REMOVAL_REASON = "Removed by admin decision"


class EmailStatus(str, Enum):
    ALLOWED = "ALLOWED"
    BLACKLISTED = "BLACKLISTED"
    PREVIOUSLY_BLACKLISTED = "PREVIOUSLY_BLACKLISTED"


@dataclass
class BulkRemovalResult:
    removed: list[UUID] = field(default_factory=list)
    already_removed: list[UUID] = field(default_factory=list)
    not_found: list[UUID] = field(default_factory=list)


@dataclass
class BlacklistHistory:
    """Every entry for an email plus the related audit trail."""

    email: str
    entries: list[BlacklistEntry]
    events: list[AuditEvent]


class BlacklistService:
    """Blacklist operations for one organization.

    Entries are never deleted. Removal flips ``is_active`` and records who
    removed the entry, when and why. Only SUPER_ADMIN and DEVELOPER may
    change the blacklist.
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
        self.entries = BlacklistRepository(db, organization_id)
        self.users = UserRepository(db, organization_id)
        self.gate = BlacklistGate(self.entries)
        self.audit = AuditLogger(db)

    def _authorize(self, actor: User) -> None:
        require_role(actor.role, VERIFICATION_BYPASS_ROLES, "blacklist changes require super admin")

    async def check(self, email: str) -> BlacklistCheck:
        return await self.gate.check(email)

    async def add(self, actor: User, email: str, reason: str) -> BlacklistEntry:
        """Block an email.

        Raises:
            AuthorizationError: Unless the actor is SUPER_ADMIN or DEVELOPER
            ValidationError: Bad email, short reason, or an admin/verified account
            ConflictError: If the email already has an active entry
        """
        self._authorize(actor)
        email = self._validate_email(email)
        reason = (reason or "").strip()
        if len(reason) < self.config.blacklist_reason_min_length:
            raise ValidationError(
                f"Reason must be at least {self.config.blacklist_reason_min_length} characters",
                field="reason",
            )

        existing_user = await self.users.get_by_email(email)
        if existing_user is not None and (
            coerce_role(existing_user.role) in ADMIN_ROLES
            or existing_user.status == VerificationStatus.VERIFIED
        ):
            raise ValidationError(
                "Admin accounts and verified alumni cannot be blacklisted", field="email"
            )

        if await self.entries.get_active_by_email(email) is not None:
            raise ConflictError(f"Email is already blacklisted: {email}")

        entry = BlacklistEntry(email=email, reason=reason, blacklisted_by=actor.user_id)
        try:
            await self.entries.create(entry)
        except IntegrityError as e:
            raise ConflictError(f"Email is already blacklisted: {email}") from e

        await self.audit.log_event(
            event_type=AuditEventType.BLACKLIST_ADDED,
            event_data={"email": email, "reason": reason},
            severity=AuditSeverity.WARNING,
            tenant_id=self.organization_id,
            user_id=actor.user_id,
            resource_type="blacklist_entry",
            resource_id=str(entry.entry_id),
        )
        logger.info("email_blacklisted", entry_id=str(entry.entry_id))
        return entry

    async def remove(
        self, actor: User, entry_id: UUID, reason: str | None = None
    ) -> BlacklistEntry:
        """Deactivate an entry, keeping it as history.

        Raises:
            AuthorizationError: Unless the actor is SUPER_ADMIN or DEVELOPER
            NotFoundError: If the entry does not exist
            ConflictError: If the entry was already removed
        """
        self._authorize(actor)
        entry = await self.entries.get_or_raise(entry_id)
        if not entry.is_active:
            raise ConflictError("Blacklist entry has already been removed")
        reason = (reason or "").strip() or DEFAULT_REMOVAL_REASON
        return await self._deactivate(actor, entry, reason)

    async def bulk_remove(
        self, actor: User, entry_ids: list[UUID], reason: str | None = None
    ) -> BulkRemovalResult:
        self._authorize(actor)
        entry_ids = validate_bulk_ids(entry_ids, self.config, field="entry_ids")
        reason = (reason or "").strip() or DEFAULT_REMOVAL_REASON

        result = BulkRemovalResult()
        found = {entry.entry_id: entry for entry in await self.entries.get_many(entry_ids)}
        for entry_id in entry_ids:
            entry = found.get(entry_id)
            if entry is None:
                result.not_found.append(entry_id)
            elif not entry.is_active:
                result.already_removed.append(entry_id)
            else:
                await self._deactivate(actor, entry, reason)
                result.removed.append(entry_id)
        return result

    async def _deactivate(self, actor: User, entry: BlacklistEntry, reason: str) -> BlacklistEntry:
        await self.entries.update(
            entry,
            {
                "is_active": False,
                "removed_at": datetime.now(UTC),
                "removed_by": actor.user_id,
                "removed_reason": reason,
            },
        )
        await self.audit.log_event(
            event_type=AuditEventType.BLACKLIST_REMOVED,
            event_data={"email": entry.email, "reason": reason},
            tenant_id=self.organization_id,
            user_id=actor.user_id,
            resource_type="blacklist_entry",
            resource_id=str(entry.entry_id),
        )
        logger.info("email_unblacklisted", entry_id=str(entry.entry_id))
        return entry

    async def list_entries(
        self,
        actor: User,
        *,
        status: EntryStatusFilter = "active",
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[BlacklistEntry], int]:
        self._authorize(actor)
        return await self.entries.list_entries(
            status=status, search=search, limit=limit, offset=(page - 1) * limit
        )

    async def stats(self, actor: User) -> dict[str, int]:
        self._authorize(actor)
        counts = await self.entries.count_by_state()
        blocked_attempts = await self.audit.count_events(
            tenant_id=self.organization_id,
            event_type=[AuditEventType.REGISTRATION_BLACKLISTED, AuditEventType.LOGIN_BLACKLISTED],
        )
        return {
            "active": counts["active"],
            "removed": counts["removed"],
            "total": counts["active"] + counts["removed"],
            "blocked_attempts": blocked_attempts,
        }

    async def email_status(self, actor: User, email: str) -> EmailStatus:
        self._authorize(actor)
        history = await self.entries.history_for(normalize_email(email))
        if any(entry.is_active for entry in history):
            return EmailStatus.BLACKLISTED
        if history:
            return EmailStatus.PREVIOUSLY_BLACKLISTED
        return EmailStatus.ALLOWED

    async def history(self, actor: User, email: str) -> BlacklistHistory:
        """Entries and audit events for an email, newest first."""
        self._authorize(actor)
        email = normalize_email(email)
        entries = await self.entries.history_for(email)
        events = await self.audit.query_events(
            tenant_id=self.organization_id,
            event_type=[
                AuditEventType.BLACKLIST_ADDED,
                AuditEventType.BLACKLIST_REMOVED,
                AuditEventType.REGISTRATION_BLACKLISTED,
                AuditEventType.LOGIN_BLACKLISTED,
            ],
            resource_type="blacklist_entry",
            limit=1000,
        )
        entry_ids = {str(entry.entry_id) for entry in entries}
        related = [
            event
            for event in events
            if event.resource_id in entry_ids or event.event_data.get("email") == email
        ]
        return BlacklistHistory(email=email, entries=entries, events=related)

    def _validate_email(self, email: str) -> str:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(str(e), field="email") from e
        return normalize_email(email)
