"""Integration tests for blacklist administration."""

import pytest
import pytest_asyncio
from uuid_utils.compat import uuid7

from guild.blacklist.service import DEFAULT_REMOVAL_REASON, BlacklistService, EmailStatus
from guild.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from guild.core.roles import UserRole
from guild.db.models.audit import AuditEventType
from guild.db.models.user import VerificationStatus


@pytest.fixture
def service(db_session, organization, test_settings) -> BlacklistService:
    return BlacklistService(db_session, organization.organization_id, test_settings)


@pytest_asyncio.fixture
async def root(organization, make_user):
    return await make_user(
        organization,
        "root@example.com",
        role=UserRole.SUPER_ADMIN,
        status=VerificationStatus.VERIFIED,
    )


@pytest.mark.asyncio
class TestAdd:
    async def test_add_normalizes_email(self, service, root):
        entry = await service.add(root, "  Spammer@Example.COM ", "Repeated fake claims")

        assert entry.email == "spammer@example.com"
        assert entry.is_active
        assert entry.blacklisted_by == root.user_id
        assert (await service.check("SPAMMER@example.com")).blocked

    async def test_duplicate_active_entry_conflicts(self, service, root):
        await service.add(root, "spammer@example.com", "Repeated fake claims")

        with pytest.raises(ConflictError):
            await service.add(root, "spammer@example.com", "Again")

    async def test_short_reason_is_refused(self, service, root):
        with pytest.raises(ValidationError) as exc_info:
            await service.add(root, "spammer@example.com", "bad")

        assert exc_info.value.field == "reason"

    async def test_invalid_email_is_refused(self, service, root):
        with pytest.raises(ValidationError):
            await service.add(root, "not-an-email", "Repeated fake claims")

    async def test_verified_alumni_cannot_be_blacklisted(self, service, root, organization,
                                                         make_user):
        await make_user(organization, "alum@example.com", status=VerificationStatus.VERIFIED)

        with pytest.raises(ValidationError):
            await service.add(root, "alum@example.com", "Repeated fake claims")

    async def test_admin_cannot_be_blacklisted(self, service, root, organization,
                                               make_batch_admin):
        await make_batch_admin(organization, "a1@example.com", 2022)

        with pytest.raises(ValidationError):
            await service.add(root, "a1@example.com", "Repeated fake claims")

    async def test_pending_user_can_be_blacklisted(self, service, root, organization, make_user):
        await make_user(organization, "pending@example.com")

        entry = await service.add(root, "pending@example.com", "Impersonating an alumnus")

        assert entry.is_active

    async def test_batch_admin_cannot_manage_blacklist(self, service, organization,
                                                       make_batch_admin):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)

        with pytest.raises(AuthorizationError):
            await service.add(admin, "spammer@example.com", "Repeated fake claims")


@pytest.mark.asyncio
class TestRemove:
    async def test_remove_keeps_history(self, service, root):
        entry = await service.add(root, "spammer@example.com", "Repeated fake claims")

        removed = await service.remove(root, entry.entry_id)

        assert not removed.is_active
        assert removed.removed_by == root.user_id
        assert removed.removed_reason == DEFAULT_REMOVAL_REASON
        assert removed.removed_at is not None
        assert not (await service.check("spammer@example.com")).blocked
        assert await service.email_status(root, "spammer@example.com") == (
            EmailStatus.PREVIOUSLY_BLACKLISTED
        )

    async def test_removing_twice_conflicts(self, service, root):
        entry = await service.add(root, "spammer@example.com", "Repeated fake claims")
        await service.remove(root, entry.entry_id, "Appeal accepted")

        with pytest.raises(ConflictError):
            await service.remove(root, entry.entry_id)

    async def test_unknown_entry(self, service, root):
        with pytest.raises(NotFoundError):
            await service.remove(root, uuid7())

    async def test_email_can_be_blacklisted_again_after_removal(self, service, root):
        first = await service.add(root, "spammer@example.com", "Repeated fake claims")
        await service.remove(root, first.entry_id, "Appeal accepted")

        second = await service.add(root, "spammer@example.com", "Relapsed")

        assert second.entry_id != first.entry_id
        history = await service.history(root, "spammer@example.com")
        assert {e.entry_id for e in history.entries} == {first.entry_id, second.entry_id}

    async def test_bulk_remove(self, service, root):
        one = await service.add(root, "one@example.com", "Repeated fake claims")
        two = await service.add(root, "two@example.com", "Repeated fake claims")
        await service.remove(root, two.entry_id)
        missing = uuid7()

        result = await service.bulk_remove(root, [one.entry_id, two.entry_id, missing])

        assert result.removed == [one.entry_id]
        assert result.already_removed == [two.entry_id]
        assert result.not_found == [missing]


@pytest.mark.asyncio
class TestQueries:
    async def test_list_by_state(self, service, root):
        kept = await service.add(root, "kept@example.com", "Repeated fake claims")
        gone = await service.add(root, "gone@example.com", "Repeated fake claims")
        await service.remove(root, gone.entry_id)

        active, active_total = await service.list_entries(root)
        removed, _ = await service.list_entries(root, status="removed")
        _, all_total = await service.list_entries(root, status="all")

        assert active_total == 1
        assert [e.entry_id for e in active] == [kept.entry_id]
        assert [e.entry_id for e in removed] == [gone.entry_id]
        assert all_total == 2

    async def test_search_matches_email_substring(self, service, root):
        await service.add(root, "alpha@example.com", "Repeated fake claims")
        await service.add(root, "beta@example.com", "Repeated fake claims")

        entries, total = await service.list_entries(root, search="ALPH")

        assert total == 1
        assert entries[0].email == "alpha@example.com"

    async def test_stats(self, service, root):
        entry = await service.add(root, "one@example.com", "Repeated fake claims")
        await service.add(root, "two@example.com", "Repeated fake claims")
        await service.remove(root, entry.entry_id)

        stats = await service.stats(root)

        assert stats == {"active": 1, "removed": 1, "total": 2, "blocked_attempts": 0}

    async def test_unknown_email_is_allowed(self, service, root):
        assert await service.email_status(root, "new@example.com") == EmailStatus.ALLOWED

    async def test_history_includes_audit_events(self, service, root):
        entry = await service.add(root, "spammer@example.com", "Repeated fake claims")
        await service.remove(root, entry.entry_id)

        history = await service.history(root, "Spammer@example.com")

        event_types = {e.event_type for e in history.events}
        assert event_types == {
            AuditEventType.BLACKLIST_ADDED.value,
            AuditEventType.BLACKLIST_REMOVED.value,
        }
