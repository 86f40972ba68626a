"""Integration tests for registration, login and profile updates."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from guild.accounts.service import AccountService
from guild.blacklist.service import BlacklistService
from guild.core.audit import AuditLogger
from guild.core.exceptions import (
    AuthenticationError,
    BlacklistError,
    ConflictError,
    MaintenanceModeError,
    ValidationError,
)
from guild.core.roles import UserRole
from guild.core.security import decode_token
from guild.db.models.audit import AuditEventType
from guild.db.models.user import VerificationStatus
from guild.db.repositories.user import UserRepository
from guild.verification.service import VerificationService


@pytest.fixture
def service(db_session, organization, test_settings) -> AccountService:
    return AccountService(db_session, organization, test_settings)


@pytest_asyncio.fixture
async def root(organization, make_user):
    return await make_user(
        organization,
        "root@example.com",
        role=UserRole.SUPER_ADMIN,
        status=VerificationStatus.VERIFIED,
    )


@pytest.mark.asyncio
class TestRegister:
    async def test_creates_pending_account(self, service, organization, make_batch_admin,
                                           test_settings):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)

        result = await service.register("New.Grad@Example.com", "long-password", "New Grad", 2022)

        assert result.user.email == "new.grad@example.com"
        assert result.user.status == VerificationStatus.PENDING
        assert result.user.pending_verification
        assert result.user.role == UserRole.USER.value
        assert [a.user_id for a in result.approvers] == [admin.user_id]
        claims = decode_token(result.tokens.access_token, test_settings)
        assert claims["sub"] == result.user.user_id
        assert claims["tenant"] == organization.organization_id

    async def test_batch_without_admin_has_no_approvers(self, service):
        result = await service.register("grad@example.com", "long-password", "Grad", 1999)

        assert result.approvers == []

    async def test_blacklisted_email_is_refused(self, service, db_session, organization, root,
                                                test_settings):
        blacklist = BlacklistService(db_session, organization.organization_id, test_settings)
        await blacklist.add(root, "spammer@example.com", "Repeated fake claims")
        await db_session.commit()

        with pytest.raises(BlacklistError) as exc_info:
            await service.register("Spammer@example.com", "long-password", "Spam", 2022)

        assert exc_info.value.reason == "Repeated fake claims"
        users = UserRepository(db_session, organization.organization_id)
        assert await users.get_by_email("spammer@example.com") is None
        events = await AuditLogger(db_session).query_events(
            tenant_id=organization.organization_id,
            event_type=AuditEventType.REGISTRATION_BLACKLISTED,
        )
        assert len(events) == 1

    async def test_duplicate_email(self, service, organization, make_user):
        await make_user(organization, "taken@example.com")

        with pytest.raises(ValidationError) as exc_info:
            await service.register("TAKEN@example.com", "long-password", "Taken", 2022)

        assert exc_info.value.field == "email"

    async def test_email_claimed_after_lookup(self, service, organization, make_user):
        await make_user(organization, "racer@example.com")
        service.users.get_by_email = AsyncMock(return_value=None)

        with pytest.raises(ValidationError) as exc_info:
            await service.register("racer@example.com", "long-password", "Racer", 2022)

        assert exc_info.value.field == "email"

    async def test_refused_attempts_stay_on_record(self, service, db_session, organization,
                                                   make_user):
        await make_user(organization, "taken@example.com")

        with pytest.raises(ValidationError):
            await service.register("taken@example.com", "long-password", "Taken", 2022)
        with pytest.raises(ValidationError):
            await service.register("not-an-email", "long-password", "Name", 2022)
        await db_session.rollback()

        events = await AuditLogger(db_session).query_events(
            tenant_id=organization.organization_id,
            event_type=AuditEventType.REGISTRATION_ATTEMPT,
        )
        assert sorted(e.event_data["email"] for e in events) == [
            "not-an-email",
            "taken@example.com",
        ]

    @pytest.mark.parametrize(
        "email,password,full_name,batch_year,field",
        [
            ("not-an-email", "long-password", "Name", 2022, "email"),
            ("ok@example.com", "short", "Name", 2022, "password"),
            ("ok@example.com", "long-password", "  ", 2022, "full_name"),
            ("ok@example.com", "long-password", "Name", 1800, "batch_year"),
        ],
    )
    async def test_invalid_input(self, service, email, password, full_name, batch_year, field):
        with pytest.raises(ValidationError) as exc_info:
            await service.register(email, password, full_name, batch_year)

        assert exc_info.value.field == field

    async def test_user_quota(self, db_session, make_organization, make_user, test_settings):
        organization = await make_organization("TINY", max_users=1)
        await make_user(organization, "first@example.com")
        service = AccountService(db_session, organization, test_settings)

        with pytest.raises(ConflictError):
            await service.register("second@example.com", "long-password", "Second", 2022)


@pytest.mark.asyncio
class TestLogin:
    async def test_valid_credentials(self, service, organization, make_user, password):
        user = await make_user(organization, "alum@example.com")

        result = await service.login("ALUM@example.com", password)

        assert result.user.user_id == user.user_id
        assert result.user.last_login_at is not None

    async def test_wrong_password(self, service, organization, make_user):
        await make_user(organization, "alum@example.com")

        with pytest.raises(AuthenticationError):
            await service.login("alum@example.com", "wrong-password")

    async def test_unknown_email(self, service, password):
        with pytest.raises(AuthenticationError):
            await service.login("ghost@example.com", password)

    async def test_disabled_account(self, service, organization, make_user, password):
        await make_user(organization, "alum@example.com", is_active=False)

        with pytest.raises(AuthenticationError):
            await service.login("alum@example.com", password)

    async def test_blacklisted_account_is_refused(
        self, service, db_session, organization, make_user, root, test_settings, password
    ):
        await make_user(organization, "pending@example.com")
        blacklist = BlacklistService(db_session, organization.organization_id, test_settings)
        await blacklist.add(root, "pending@example.com", "Impersonating an alumnus")
        await db_session.commit()

        with pytest.raises(BlacklistError):
            await service.login("pending@example.com", password)

    async def test_maintenance_mode(
        self, db_session, make_organization, make_user, test_settings, password
    ):
        organization = await make_organization("QUIET")
        organization.is_maintenance_mode = True
        await db_session.commit()
        await make_user(organization, "alum@example.com")
        await make_user(organization, "root@example.com", role=UserRole.SUPER_ADMIN)
        service = AccountService(db_session, organization, test_settings)

        with pytest.raises(MaintenanceModeError):
            await service.login("alum@example.com", password)
        result = await service.login("root@example.com", password)
        assert result.user.role == UserRole.SUPER_ADMIN.value


@pytest.mark.asyncio
class TestRefresh:
    async def test_refresh_issues_new_pair(self, service, organization, make_user, password):
        await make_user(organization, "alum@example.com")
        login = await service.login("alum@example.com", password)

        result = await service.refresh(login.tokens.refresh_token)

        assert result.user.email == "alum@example.com"

    async def test_access_token_cannot_refresh(self, service, organization, make_user, password):
        await make_user(organization, "alum@example.com")
        login = await service.login("alum@example.com", password)

        with pytest.raises(AuthenticationError):
            await service.refresh(login.tokens.access_token)


@pytest.mark.asyncio
class TestUpdateProfile:
    async def test_name_change(self, service, organization, make_user):
        user = await make_user(organization, "alum@example.com")

        result = await service.update_profile(user, full_name="  New Name ")

        assert result.user.full_name == "New Name"
        assert not result.resubmitted

    async def test_rejected_user_resubmits_with_new_batch(
        self, service, db_session, organization, make_user, make_batch_admin, test_settings
    ):
        old_admin = await make_batch_admin(organization, "a1@example.com", 2022)
        new_admin = await make_batch_admin(organization, "a2@example.com", 2020)
        user = await make_user(organization, "alum@example.com")
        verification = VerificationService(db_session, organization.organization_id,
                                           test_settings)
        await verification.reject(old_admin, user.user_id, "Not in 2022 roll")

        result = await service.update_profile(user, batch_year=2020)

        assert result.resubmitted
        assert result.user.status == VerificationStatus.PENDING
        assert [a.user_id for a in result.approvers] == [new_admin.user_id]
