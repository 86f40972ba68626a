"""Integration tests for batches and batch-admin assignment."""

import pytest
import pytest_asyncio

from guild.batches.service import BatchService
from guild.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from guild.core.roles import UserRole
from guild.db.models.user import VerificationStatus
from guild.verification.service import VerificationService


@pytest.fixture
def service(db_session, organization, test_settings) -> BatchService:
    return BatchService(db_session, organization.organization_id, test_settings)


@pytest_asyncio.fixture
async def root(organization, make_user):
    return await make_user(
        organization,
        "root@example.com",
        role=UserRole.SUPER_ADMIN,
        status=VerificationStatus.VERIFIED,
        batch_year=1995,
    )


@pytest.mark.asyncio
class TestBatches:
    async def test_batches_are_created_lazily(self, service, organization, make_user, root):
        await make_user(organization, "a@example.com", batch_year=2010)
        await make_user(organization, "b@example.com", batch_year=2010)

        batch = (await service.get_batch(2010)).batch

        assert batch.year == 2010
        assert batch.total_members == 2
        assert sorted(b.year for b in await service.list_batches()) == [1995, 2010]

    async def test_unknown_batch(self, service):
        with pytest.raises(NotFoundError):
            await service.get_batch(1961)

    async def test_members_are_verified_only(self, service, organization, make_user):
        alum = await make_user(organization, "a@example.com", status=VerificationStatus.VERIFIED)
        await make_user(organization, "b@example.com")

        members, total = await service.list_members(2022)

        assert total == 1
        assert members[0].user_id == alum.user_id


@pytest.mark.asyncio
class TestAssignments:
    async def test_assign_promotes_user(self, service, db_session, organization, make_user,
                                        root, test_settings):
        user = await make_user(organization, "helper@example.com",
                               status=VerificationStatus.VERIFIED)
        pending = await make_user(organization, "new@example.com", batch_year=2018)

        assignment = await service.assign_admin(root, 2018, user.user_id)

        assert assignment.batch_year == 2018
        assert assignment.assigned_by == root.user_id
        assert user.role == UserRole.BATCH_ADMIN.value
        details = await service.get_batch(2018)
        assert [a.user_id for a in details.admins] == [user.user_id]

        verification = VerificationService(db_session, organization.organization_id,
                                           test_settings)
        approved = await verification.approve(user, pending.user_id)
        assert approved.status == VerificationStatus.VERIFIED

    async def test_duplicate_assignment_conflicts(self, service, organization, make_user, root):
        user = await make_user(organization, "helper@example.com")
        await service.assign_admin(root, 2018, user.user_id)

        with pytest.raises(ConflictError):
            await service.assign_admin(root, 2018, user.user_id)

    async def test_only_super_admin_assigns(self, service, organization, make_batch_admin,
                                            make_user):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        user = await make_user(organization, "helper@example.com")

        with pytest.raises(AuthorizationError):
            await service.assign_admin(admin, 2022, user.user_id)

    async def test_revoke_keeps_role_and_allows_reassignment(
        self, service, organization, make_batch_admin, root
    ):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)

        revoked = await service.revoke_admin(root, 2022, admin.user_id)

        assert not revoked.is_active
        assert revoked.revoked_by == root.user_id
        assert admin.role == UserRole.BATCH_ADMIN.value
        assert (await service.get_batch(2022)).admins == []
        again = await service.assign_admin(root, 2022, admin.user_id)
        assert again.is_active

    async def test_revoking_missing_assignment(self, service, organization, make_user, root):
        user = await make_user(organization, "helper@example.com")

        with pytest.raises(NotFoundError):
            await service.revoke_admin(root, 2022, user.user_id)
