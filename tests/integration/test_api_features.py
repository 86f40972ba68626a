"""Integration tests for entitlement and subscription endpoints."""

import pytest
import pytest_asyncio
from fastapi import Depends

from guild.api.dependencies import require_feature
from guild.core.roles import UserRole
from guild.db.models.user import VerificationStatus


@pytest_asyncio.fixture
async def root(organization, make_user):
    return await make_user(
        organization, "root@example.com", role=UserRole.SUPER_ADMIN,
        status=VerificationStatus.VERIFIED,
    )


@pytest_asyncio.fixture
async def developer(organization, make_user):
    return await make_user(
        organization, "dev@example.com", role=UserRole.DEVELOPER,
        status=VerificationStatus.VERIFIED,
    )


@pytest_asyncio.fixture
async def alum(organization, make_user):
    return await make_user(
        organization, "alum@example.com", status=VerificationStatus.VERIFIED
    )


@pytest.mark.asyncio
class TestFeatureEndpoints:
    async def test_list_features(self, test_client, organization, alum, auth_headers):
        response = await test_client.get("/v1/features", headers=auth_headers(alum, organization))

        assert response.status_code == 200
        data = response.json()
        assert data["plan_code"] == "FREE"
        assert data["subscription_status"] == "ACTIVE"
        features = {f["code"]: f for f in data["features"]}
        assert features["DASHBOARD"]["source"] == "core"
        assert features["POSTS"]["limit"] == 10
        assert features["TREASURY"]["enabled"] is False

    async def test_matrix(self, test_client, organization, alum, auth_headers):
        response = await test_client.get(
            "/v1/features/matrix", headers=auth_headers(alum, organization)
        )

        data = response.json()
        assert [p["code"] for p in data["plans"]][0] == "FREE"
        assert data["included"]["STARTER"]["TREASURY"] is True

    async def test_single_feature_lookup(self, test_client, organization, alum, auth_headers):
        response = await test_client.get(
            "/v1/features/posts", headers=auth_headers(alum, organization)
        )

        assert response.json()["code"] == "POSTS"
        assert response.json()["source"] == "plan"

    async def test_upgrade_unlocks_treasury(self, test_client, organization, root, alum,
                                            auth_headers):
        alum_headers = auth_headers(alum, organization)

        before = await test_client.get("/v1/features/TREASURY/access", headers=alum_headers)
        assert before.status_code == 403
        assert before.json()["error_code"] == "feature_disabled"
        assert before.json()["details"] == {"feature_code": "TREASURY"}

        upgraded = await test_client.put(
            "/v1/admin/organization/subscription",
            json={"plan_code": "STARTER"},
            headers=auth_headers(root, organization),
        )
        assert upgraded.status_code == 200
        assert upgraded.json()["plan_code"] == "STARTER"

        after = await test_client.get("/v1/features/TREASURY/access", headers=alum_headers)
        assert after.status_code == 200
        assert after.json()["enabled"] is True

    async def test_unknown_feature_access(self, test_client, organization, alum, auth_headers):
        response = await test_client.get(
            "/v1/features/TELEPORTATION/access", headers=auth_headers(alum, organization)
        )

        assert response.status_code == 403

    async def test_developer_bypasses_gate(self, test_client, organization, developer,
                                           auth_headers):
        response = await test_client.get(
            "/v1/features/TREASURY/access", headers=auth_headers(developer, organization)
        )

        assert response.status_code == 200
        assert response.json()["enabled"] is False


@pytest.mark.asyncio
class TestRequireFeatureDependency:
    @pytest.fixture
    def treasury_route(self, test_app):
        async def ledger() -> dict:
            return {"balance": 0}

        test_app.add_api_route(
            "/v1/treasury/ledger",
            ledger,
            dependencies=[Depends(require_feature("TREASURY"))],
        )
        return "/v1/treasury/ledger"

    async def test_gated_route_refused_on_free_plan(self, test_client, treasury_route,
                                                    organization, alum, auth_headers):
        response = await test_client.get(treasury_route, headers=auth_headers(alum, organization))

        assert response.status_code == 403
        assert response.json()["error_code"] == "feature_disabled"
        assert response.json()["details"] == {"feature_code": "TREASURY"}

    async def test_gated_route_open_on_starter_plan(self, test_client, treasury_route,
                                                    make_organization, make_user,
                                                    auth_headers):
        starter = await make_organization("STARTERS", plan_code="STARTER")
        member = await make_user(starter, "m@example.com", status=VerificationStatus.VERIFIED)

        response = await test_client.get(treasury_route, headers=auth_headers(member, starter))

        assert response.status_code == 200
        assert response.json() == {"balance": 0}


@pytest.mark.asyncio
class TestSubscriptionAdministration:
    async def test_user_cannot_change_plan(self, test_client, organization, alum, auth_headers):
        response = await test_client.put(
            "/v1/admin/organization/subscription",
            json={"plan_code": "ENTERPRISE"},
            headers=auth_headers(alum, organization),
        )

        assert response.status_code == 403

    async def test_suspension_turns_off_non_core(self, test_client, organization, developer,
                                                 alum, auth_headers):
        suspended = await test_client.post(
            "/v1/admin/organization/subscription/suspend",
            json={"reason": "Payment overdue"},
            headers=auth_headers(developer, organization),
        )
        assert suspended.status_code == 200
        assert suspended.json()["subscription_status"] == "SUSPENDED"

        alum_headers = auth_headers(alum, organization)
        posts = await test_client.get("/v1/features/POSTS/access", headers=alum_headers)
        directory = await test_client.get("/v1/features/DIRECTORY/access", headers=alum_headers)
        assert posts.status_code == 403
        assert directory.status_code == 200

        reactivated = await test_client.post(
            "/v1/admin/organization/subscription/reactivate",
            headers=auth_headers(developer, organization),
        )
        assert reactivated.json()["subscription_status"] == "ACTIVE"
        posts = await test_client.get("/v1/features/POSTS/access", headers=alum_headers)
        assert posts.status_code == 200

    async def test_addon_round_trip(self, test_client, organization, developer, alum,
                                    auth_headers):
        dev_headers = auth_headers(developer, organization)
        alum_headers = auth_headers(alum, organization)

        enabled = await test_client.post(
            "/v1/admin/organization/features/ANALYTICS", json={"custom_limit": 3},
            headers=dev_headers,
        )
        assert enabled.status_code == 200
        assert enabled.json() == {
            "feature_code": "ANALYTICS",
            "is_enabled": True,
            "custom_limit": 3,
            "expires_at": None,
        }
        access = await test_client.get("/v1/features/ANALYTICS/access", headers=alum_headers)
        assert access.json()["source"] == "addon"
        assert access.json()["limit"] == 3

        disabled = await test_client.delete(
            "/v1/admin/organization/features/POSTS", headers=dev_headers
        )
        assert disabled.json()["is_enabled"] is False
        posts = await test_client.get("/v1/features/POSTS/access", headers=alum_headers)
        assert posts.status_code == 403

    async def test_maintenance_toggle(self, test_client, organization, root, alum,
                                      auth_headers):
        on = await test_client.put(
            "/v1/admin/organization/maintenance",
            json={"enabled": True, "message": "Upgrading"},
            headers=auth_headers(root, organization),
        )
        assert on.json()["is_maintenance_mode"] is True

        blocked = await test_client.get("/v1/users/me", headers=auth_headers(alum, organization))
        assert blocked.status_code == 503

        off = await test_client.put(
            "/v1/admin/organization/maintenance",
            json={"enabled": False},
            headers=auth_headers(root, organization),
        )
        assert off.json()["is_maintenance_mode"] is False

    async def test_organization_view(self, test_client, organization, root, alum,
                                     auth_headers):
        viewed = await test_client.get(
            "/v1/admin/organization", headers=auth_headers(root, organization)
        )
        refused = await test_client.get(
            "/v1/admin/organization", headers=auth_headers(alum, organization)
        )

        assert viewed.json()["tenant_code"] == "ALUMNI"
        assert viewed.json()["plan_code"] == "FREE"
        assert refused.status_code == 403
