"""Account lifecycle: registration, login and self-service profile edits."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guild.blacklist.gate import BlacklistGate, normalize_email
from guild.config.settings import Settings, get_settings
from guild.core.audit import AuditLogger
from guild.core.exceptions import (
    AuthenticationError,
    BlacklistError,
    ConflictError,
    MaintenanceModeError,
    ValidationError,
)
from guild.core.roles import ADMIN_ROLES, UserRole, bypasses_maintenance, coerce_role
from guild.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from guild.db.models.audit import AuditEventType, AuditSeverity
from guild.db.models.organization import Organization
from guild.db.models.user import User, VerificationStatus
from guild.db.repositories.batch import BatchAdminRepository, BatchRepository
from guild.db.repositories.blacklist import BlacklistRepository
from guild.db.repositories.user import UserRepository
from guild.verification.authority import BatchAuthorityResolver
from guild.verification.service import VerificationService
from guild.verification.validation import validate_batch_year

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


@dataclass
class AuthResult:
    """An authenticated user with freshly issued tokens.

    ``approvers`` is only filled on registration: the batch admins who
    will review the new account.
    """

    user: User
    tokens: TokenPair
    approvers: list[User] = field(default_factory=list)


@dataclass
class ProfileUpdateResult:
    user: User
    resubmitted: bool = False
    approvers: list[User] = field(default_factory=list)


class AccountService:
    """Registration and authentication within one organization.

    Registration runs the blacklist gate before anything else and records
    every attempt in the audit trail, whatever the outcome.
    """

    def __init__(
        self,
        db: AsyncSession,
        organization: Organization,
        settings: Settings | None = None,
    ):
        self.db = db
        self.organization = organization
        self.organization_id = organization.organization_id
        self.settings = settings or get_settings()
        self.users = UserRepository(db, self.organization_id)
        self.batches = BatchRepository(db, self.organization_id)
        self.gate = BlacklistGate(BlacklistRepository(db, self.organization_id))
        self.authority = BatchAuthorityResolver(
            BatchAdminRepository(db, self.organization_id), self.users
        )
        self.audit = AuditLogger(db)

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        batch_year: int,
    ) -> AuthResult:
        """Create a PENDING account for a claimed batch year.

        Raises:
            ValidationError: Malformed input, out-of-range batch year or a
                duplicate email
            BlacklistError: If the email has an active blacklist entry
            ConflictError: If the organization's user quota is full
        """
        await self._record_attempt(email, batch_year)

        email = self._validate_email(email)
        full_name = (full_name or "").strip()
        if not full_name:
            raise ValidationError("Full name is required", field="full_name")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )
        validate_batch_year(batch_year, self.settings.verification)

        check = await self.gate.check(email)
        if check.blocked:
            await self.audit.log_event(
                event_type=AuditEventType.REGISTRATION_BLACKLISTED,
                event_data={"email": email, "batch_year": batch_year},
                severity=AuditSeverity.WARNING,
                tenant_id=self.organization_id,
                resource_type="blacklist_entry",
                resource_id=str(check.entry_id),
            )
            # The blocked attempt must stay on record although the request fails
            await self.db.commit()
            logger.warning("blacklisted_registration_attempt", entry_id=str(check.entry_id))
            raise BlacklistError(email, check.reason)

        if await self.users.get_by_email(email) is not None:
            raise ValidationError("Email is already registered", field="email")

        if await self.users.count_active() >= self.organization.max_users:
            raise ConflictError("Organization has reached its user limit")

        batch = await self.batches.ensure_batch(batch_year)
        user = User(
            email=email,
            password_hash=hash_password(password, self.settings),
            full_name=full_name,
            role=UserRole.USER.value,
            batch_year=batch_year,
            batch_id=batch.batch_id,
            verification_status=VerificationStatus.PENDING.value,
            is_alumni_verified=False,
            pending_verification=True,
        )
        try:
            await self.users.create(user)
        except IntegrityError as e:
            # A concurrent registration claimed the email after our lookup
            raise ValidationError("Email is already registered", field="email") from e
        await self.batches.adjust_member_count(batch.batch_id, 1)

        approvers = await self.authority.resolve_approvers(batch_year)
        await self.audit.log_event(
            event_type=AuditEventType.USER_REGISTERED,
            event_data={
                "email": email,
                "batch_year": batch_year,
                "approver_ids": [str(a.user_id) for a in approvers],
            },
            tenant_id=self.organization_id,
            user_id=user.user_id,
            resource_type="user",
            resource_id=str(user.user_id),
        )
        logger.info(
            "user_registered",
            user_id=str(user.user_id),
            batch_year=batch_year,
            approvers=len(approvers),
        )
        return AuthResult(user, self._issue_tokens(user), approvers)

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password.

        Blacklisted ordinary accounts are refused even with the right
        password; admin accounts cannot be blacklisted.

        Raises:
            AuthenticationError: Unknown email, wrong password or disabled account
            BlacklistError: If the email has an active blacklist entry
            MaintenanceModeError: If the organization is under maintenance and the
                account is not allowed through
        """
        email = normalize_email(email or "")
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("login_failed")
            raise AuthenticationError("Invalid email or password")

        if coerce_role(user.role) not in ADMIN_ROLES:
            check = await self.gate.check(email)
            if check.blocked:
                await self.audit.log_event(
                    event_type=AuditEventType.LOGIN_BLACKLISTED,
                    event_data={"email": email},
                    severity=AuditSeverity.WARNING,
                    tenant_id=self.organization_id,
                    user_id=user.user_id,
                    resource_type="blacklist_entry",
                    resource_id=str(check.entry_id),
                )
                await self.db.commit()
                logger.warning("blacklisted_login_attempt", user_id=str(user.user_id))
                raise BlacklistError(email, check.reason)

        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        if self.organization.is_maintenance_mode and not bypasses_maintenance(user.role):
            raise MaintenanceModeError(self.organization.tenant_code)

        user.last_login_at = datetime.now(UTC)
        await self.db.flush()
        await self.audit.log_event(
            event_type=AuditEventType.USER_LOGIN,
            event_data={},
            tenant_id=self.organization_id,
            user_id=user.user_id,
            resource_type="user",
            resource_id=str(user.user_id),
        )
        logger.info("user_logged_in", user_id=str(user.user_id))
        return AuthResult(user, self._issue_tokens(user))

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new token pair.

        Raises:
            AuthenticationError: Invalid token, another tenant's token, or an
                account that no longer exists or is disabled
        """
        claims = decode_token(refresh_token, self.settings, expected_type=REFRESH_TOKEN_TYPE)
        if claims["tenant"] != self.organization_id:
            raise AuthenticationError("Token was issued for another organization")
        user = await self.users.get(claims["sub"])
        if user is None or not user.is_active:
            raise AuthenticationError("Account is no longer active")
        return AuthResult(user, self._issue_tokens(user))

    async def update_profile(
        self,
        user: User,
        full_name: str | None = None,
        batch_year: int | None = None,
    ) -> ProfileUpdateResult:
        """Self-service profile edit.

        A batch year change goes through the verification workflow: from
        REJECTED it reopens review under the new batch's admins.
        """
        changes: dict[str, object] = {}
        if full_name is not None:
            full_name = full_name.strip()
            if not full_name:
                raise ValidationError("Full name cannot be blank", field="full_name")
            changes["full_name"] = full_name

        result = ProfileUpdateResult(user)
        if batch_year is not None:
            verification = VerificationService(self.db, self.organization_id, self.settings)
            change = await verification.change_batch(user, batch_year)
            result.resubmitted = change.transition.changes_status
            result.approvers = change.approvers
            if not change.transition.is_noop:
                changes["batch_year"] = batch_year

        if "full_name" in changes:
            await self.users.update(user, {"full_name": full_name})

        if changes:
            await self.audit.log_event(
                event_type=AuditEventType.PROFILE_UPDATED,
                event_data={"fields": sorted(changes)},
                tenant_id=self.organization_id,
                user_id=user.user_id,
                resource_type="user",
                resource_id=str(user.user_id),
            )
        return result

    def _issue_tokens(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=create_access_token(
                user.user_id, self.organization_id, user.role, self.settings
            ),
            refresh_token=create_refresh_token(
                user.user_id, self.organization_id, user.role, self.settings
            ),
        )

    def _validate_email(self, email: str) -> str:
        try:
            validate_email(email or "", check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(str(e), field="email") from e
        return normalize_email(email)

    async def _record_attempt(self, email: str | None, batch_year: int | None) -> None:
        """Commit the registration attempt before any check can fail.

        Committed on its own so that a refusal further on, and the rollback
        that follows it, cannot take the record with it.
        """
        await self.audit.log_event(
            event_type=AuditEventType.REGISTRATION_ATTEMPT,
            event_data={"email": normalize_email(email or ""), "batch_year": batch_year},
            tenant_id=self.organization_id,
            resource_type="registration",
        )
        await self.db.commit()
