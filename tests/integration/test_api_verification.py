"""Integration tests for verification administration endpoints."""

import pytest
from uuid_utils.compat import uuid7

from guild.core.roles import UserRole
from guild.db.models.user import VerificationStatus


@pytest.mark.asyncio
class TestApproveReject:
    async def test_batch_admin_scope(self, test_client, db_session, organization, make_user,
                                     make_batch_admin, auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        mine = await make_user(organization, "mine@example.com", batch_year=2022)
        theirs = await make_user(organization, "theirs@example.com", batch_year=2021)
        headers = auth_headers(admin, organization)

        approved = await test_client.post(
            f"/v1/admin/verification/{mine.user_id}/approve", headers=headers
        )
        refused = await test_client.post(
            f"/v1/admin/verification/{theirs.user_id}/approve", headers=headers
        )

        assert approved.status_code == 200
        assert approved.json()["verification_status"] == "VERIFIED"
        assert approved.json()["is_alumni_verified"] is True
        assert refused.status_code == 403
        assert refused.json()["error_code"] == "forbidden"
        assert refused.json()["message"] == "Insufficient permissions"
        await db_session.refresh(theirs)
        assert theirs.status == VerificationStatus.PENDING

    async def test_other_batch_admin_cannot_reject_after_approval(
        self, test_client, db_session, organization, make_user, make_batch_admin, auth_headers
    ):
        a1 = await make_batch_admin(organization, "a1@example.com", 2022)
        a2 = await make_batch_admin(organization, "a2@example.com", 2021)
        user = await make_user(organization, "u@example.com", batch_year=2022)

        approved = await test_client.post(
            f"/v1/admin/verification/{user.user_id}/approve",
            headers=auth_headers(a1, organization),
        )
        refused = await test_client.post(
            f"/v1/admin/verification/{user.user_id}/reject",
            json={"reason": "Not in our batch records"},
            headers=auth_headers(a2, organization),
        )

        assert approved.status_code == 200
        assert refused.status_code == 403
        assert refused.json()["error_code"] == "forbidden"
        await db_session.refresh(user)
        assert user.status == VerificationStatus.VERIFIED
        assert user.rejection_reason is None

    async def test_approve_with_notes(self, test_client, organization, make_user,
                                      make_batch_admin, auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        user = await make_user(organization, "u@example.com")
        headers = auth_headers(admin, organization)

        await test_client.post(
            f"/v1/admin/verification/{user.user_id}/approve",
            json={"notes": "Known from hostel"},
            headers=headers,
        )
        details = await test_client.get(f"/v1/admin/verification/{user.user_id}",
                                        headers=headers)

        assert details.status_code == 200
        assert details.json()["verification_notes"] == "Known from hostel"
        assert details.json()["verified_by"] == str(admin.user_id)

    async def test_reject_without_reason(self, test_client, organization, make_user,
                                         make_batch_admin, auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        user = await make_user(organization, "u@example.com")

        response = await test_client.post(
            f"/v1/admin/verification/{user.user_id}/reject",
            json={"reason": "  "},
            headers=auth_headers(admin, organization),
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "reason"}

    async def test_approve_rejected_user_conflicts(self, test_client, organization, make_user,
                                                   make_batch_admin, auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        user = await make_user(organization, "u@example.com", status=VerificationStatus.REJECTED)

        response = await test_client.post(
            f"/v1/admin/verification/{user.user_id}/approve",
            headers=auth_headers(admin, organization),
        )

        assert response.status_code == 409
        assert response.json()["details"] == {"current_status": "REJECTED", "action": "approve"}

    async def test_ordinary_user_is_refused(self, test_client, organization, make_user,
                                            auth_headers):
        user = await make_user(organization, "u@example.com", status=VerificationStatus.VERIFIED)
        other = await make_user(organization, "o@example.com")

        response = await test_client.post(
            f"/v1/admin/verification/{other.user_id}/approve",
            headers=auth_headers(user, organization),
        )

        assert response.status_code == 403

    async def test_unknown_user(self, test_client, organization, make_user, auth_headers):
        root = await make_user(organization, "root@example.com", role=UserRole.SUPER_ADMIN)

        response = await test_client.post(
            f"/v1/admin/verification/{uuid7()}/approve", headers=auth_headers(root, organization)
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestListingAndBulk:
    async def test_pending_list_and_stats(self, test_client, organization, make_user,
                                          make_batch_admin, auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        await make_user(organization, "p1@example.com", full_name="Priya Nair")
        await make_user(organization, "p2@example.com", full_name="Arun Menon")
        await make_user(organization, "other@example.com", batch_year=2010)
        headers = auth_headers(admin, organization)

        pending = await test_client.get("/v1/admin/verification/pending", headers=headers)
        searched = await test_client.get(
            "/v1/admin/verification/pending", params={"search": "priya"}, headers=headers
        )
        stats = await test_client.get("/v1/admin/verification/stats", headers=headers)

        assert pending.json()["total"] == 2
        assert [u["email"] for u in searched.json()["items"]] == ["p1@example.com"]
        # Admin's own VERIFIED row is in batch 2022 as well
        assert stats.json() == {"pending": 2, "verified": 1, "rejected": 0, "total": 3}

    async def test_page_limit_is_capped(self, test_client, organization, make_user,
                                        auth_headers):
        root = await make_user(organization, "root@example.com", role=UserRole.SUPER_ADMIN)

        response = await test_client.get(
            "/v1/admin/verification/pending", params={"limit": 500},
            headers=auth_headers(root, organization),
        )

        assert response.status_code == 400

    async def test_bulk_approve(self, test_client, organization, make_user, make_batch_admin,
                                auth_headers):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)
        mine = await make_user(organization, "mine@example.com")
        theirs = await make_user(organization, "theirs@example.com", batch_year=2021)

        response = await test_client.post(
            "/v1/admin/verification/bulk-approve",
            json={"user_ids": [str(mine.user_id), str(theirs.user_id)]},
            headers=auth_headers(admin, organization),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["verified"] == [str(mine.user_id)]
        assert data["forbidden"] == [str(theirs.user_id)]

    async def test_members_directory_needs_verification(
        self, test_client, organization, make_user, auth_headers
    ):
        alum = await make_user(organization, "alum@example.com",
                               status=VerificationStatus.VERIFIED)
        pending = await make_user(organization, "pending@example.com")

        allowed = await test_client.get(
            "/v1/batches/2022/members", headers=auth_headers(alum, organization)
        )
        refused = await test_client.get(
            "/v1/batches/2022/members", headers=auth_headers(pending, organization)
        )

        assert allowed.status_code == 200
        assert [m["email"] for m in allowed.json()["items"]] == ["alum@example.com"]
        assert refused.status_code == 403


@pytest.mark.asyncio
class TestBatchAdmins:
    async def test_assign_and_revoke(self, test_client, db_session, organization, make_user,
                                    auth_headers):
        root = await make_user(organization, "root@example.com", role=UserRole.SUPER_ADMIN)
        helper = await make_user(organization, "helper@example.com",
                                 status=VerificationStatus.VERIFIED, batch_year=2015)
        pending = await make_user(organization, "new@example.com", batch_year=2015)
        headers = auth_headers(root, organization)

        assigned = await test_client.post(
            "/v1/admin/batches/2015/admins", json={"user_id": str(helper.user_id)},
            headers=headers,
        )
        assert assigned.status_code == 201

        batch = await test_client.get("/v1/batches/2015", headers=headers)
        assert [a["user_id"] for a in batch.json()["admins"]] == [str(helper.user_id)]

        revoked = await test_client.delete(
            f"/v1/admin/batches/2015/admins/{helper.user_id}", headers=headers
        )
        assert revoked.status_code == 200
        assert revoked.json()["is_active"] is False

        # Revocation keeps the promoted role but removes authority over the batch
        await db_session.refresh(helper)
        assert helper.role == UserRole.BATCH_ADMIN.value
        refused = await test_client.post(
            f"/v1/admin/verification/{pending.user_id}/approve",
            headers=auth_headers(helper, organization),
        )
        assert refused.status_code == 403
