"""Integration tests for registration, login and profile endpoints."""

import pytest
from sqlalchemy import select

from guild.core.audit import AuditLogger
from guild.core.roles import UserRole
from guild.db.models.audit import AuditEventType
from guild.db.models.user import User, VerificationStatus

TENANT = {"X-Tenant-Code": "ALUMNI"}


def registration(**overrides) -> dict:
    body = {
        "email": "new.grad@example.com",
        "password": "long-password",
        "full_name": "New Grad",
        "batch_year": 2022,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
class TestRegister:
    async def test_register_returns_pending_user_and_approvers(
        self, test_client, organization, make_batch_admin
    ):
        admin = await make_batch_admin(organization, "a1@example.com", 2022)

        response = await test_client.post(
            "/v1/auth/register", json=registration(), headers=TENANT
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["verification_status"] == "PENDING"
        assert data["user"]["pending_verification"] is True
        assert data["tokens"]["token_type"] == "bearer"
        assert [a["user_id"] for a in data["approvers"]] == [str(admin.user_id)]

    async def test_tenant_code_is_case_insensitive(self, test_client, organization):
        response = await test_client.post(
            "/v1/auth/register", json=registration(), headers={"X-Tenant-Code": "alumni"}
        )

        assert response.status_code == 201

    async def test_missing_fields(self, test_client, organization):
        response = await test_client.post(
            "/v1/auth/register", json={"email": "x@example.com"}, headers=TENANT
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "validation_error"
        fields = {e["field"] for e in data["details"]["errors"]}
        assert {"password", "full_name", "batch_year"} <= fields

    async def test_batch_year_out_of_range(self, test_client, organization):
        response = await test_client.post(
            "/v1/auth/register", json=registration(batch_year=1850), headers=TENANT
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "batch_year"}

    async def test_blacklisted_email(self, test_client, db_session, organization, make_user,
                                     auth_headers):
        root = await make_user(
            organization, "root@example.com", role=UserRole.SUPER_ADMIN,
            status=VerificationStatus.VERIFIED,
        )
        added = await test_client.post(
            "/v1/admin/verification/blacklist",
            json={"email": "new.grad@example.com", "reason": "Fraudulent claims"},
            headers=auth_headers(root, organization),
        )
        assert added.status_code == 201

        response = await test_client.post(
            "/v1/auth/register", json=registration(email="New.Grad@example.com"), headers=TENANT
        )

        assert response.status_code == 403
        data = response.json()
        assert data["error_code"] == "blacklisted"
        assert data["details"] == {"blacklisted": True}
        assert "Fraudulent" not in response.text
        result = await db_session.execute(
            select(User).where(User.email == "new.grad@example.com")
        )
        assert result.scalar_one_or_none() is None

    async def test_duplicate_email_attempt_is_audited(self, test_client, db_session, organization,
                                                      make_user):
        await make_user(organization, "new.grad@example.com")

        response = await test_client.post(
            "/v1/auth/register", json=registration(), headers=TENANT
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "email"}
        events = await AuditLogger(db_session).query_events(
            tenant_id=organization.organization_id,
            event_type=AuditEventType.REGISTRATION_ATTEMPT,
        )
        assert len(events) == 1
        assert events[0].event_data["email"] == "new.grad@example.com"

    async def test_same_email_in_two_tenants(self, test_client, organization, make_organization):
        await make_organization("OTHER")

        first = await test_client.post("/v1/auth/register", json=registration(), headers=TENANT)
        second = await test_client.post(
            "/v1/auth/register", json=registration(), headers={"X-Tenant-Code": "OTHER"}
        )

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["user"]["user_id"] != second.json()["user"]["user_id"]


@pytest.mark.asyncio
class TestLoginAndRefresh:
    async def test_login_then_me(self, test_client, organization, make_user, password):
        await make_user(organization, "alum@example.com")

        login = await test_client.post(
            "/v1/auth/login",
            json={"email": "alum@example.com", "password": password},
            headers=TENANT,
        )
        assert login.status_code == 200
        token = login.json()["tokens"]["access_token"]

        me = await test_client.get(
            "/v1/users/me", headers={**TENANT, "Authorization": f"Bearer {token}"}
        )
        assert me.status_code == 200
        assert me.json()["email"] == "alum@example.com"

    async def test_bad_credentials(self, test_client, organization, make_user):
        await make_user(organization, "alum@example.com")

        response = await test_client.post(
            "/v1/auth/login",
            json={"email": "alum@example.com", "password": "nope-nope"},
            headers=TENANT,
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "unauthorized"

    async def test_refresh(self, test_client, organization, make_user, password):
        await make_user(organization, "alum@example.com")
        login = await test_client.post(
            "/v1/auth/login",
            json={"email": "alum@example.com", "password": password},
            headers=TENANT,
        )

        response = await test_client.post(
            "/v1/auth/refresh",
            json={"refresh_token": login.json()["tokens"]["refresh_token"]},
            headers=TENANT,
        )

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alum@example.com"


@pytest.mark.asyncio
class TestProfile:
    async def test_rejected_user_resubmits(self, test_client, db_session, organization,
                                           make_user, make_batch_admin, auth_headers):
        old_admin = await make_batch_admin(organization, "a1@example.com", 2022)
        new_admin = await make_batch_admin(organization, "a2@example.com", 2021)
        user = await make_user(organization, "alum@example.com")
        rejected = await test_client.post(
            f"/v1/admin/verification/{user.user_id}/reject",
            json={"reason": "Not in the 2022 roll"},
            headers=auth_headers(old_admin, organization),
        )
        assert rejected.status_code == 200

        same = await test_client.put(
            "/v1/users/profile", json={"batch_year": 2022},
            headers=auth_headers(user, organization),
        )
        assert same.json()["user"]["verification_status"] == "REJECTED"
        assert same.json()["resubmitted"] is False

        moved = await test_client.put(
            "/v1/users/profile", json={"batch_year": 2021},
            headers=auth_headers(user, organization),
        )

        assert moved.status_code == 200
        data = moved.json()
        assert data["resubmitted"] is True
        assert data["user"]["verification_status"] == "PENDING"
        assert data["user"]["rejection_reason"] is None
        assert [a["user_id"] for a in data["approvers"]] == [str(new_admin.user_id)]

    async def test_verified_user_cannot_change_batch(self, test_client, organization,
                                                     make_user, auth_headers):
        user = await make_user(organization, "alum@example.com",
                               status=VerificationStatus.VERIFIED)

        response = await test_client.put(
            "/v1/users/profile", json={"batch_year": 2019},
            headers=auth_headers(user, organization),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "batch_locked"
