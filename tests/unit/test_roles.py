"""Unit tests for roles and bypass sets."""

import pytest

from guild.core.exceptions import AuthorizationError
from guild.core.roles import (
    ADMIN_ROLES,
    VERIFICATION_BYPASS_ROLES,
    UserRole,
    bypasses_feature_gate,
    bypasses_maintenance,
    bypasses_verification,
    coerce_role,
    require_role,
)


class TestCoerceRole:
    def test_string_values_convert(self):
        assert coerce_role("BATCH_ADMIN") is UserRole.BATCH_ADMIN

    @pytest.mark.parametrize("value", ["ROOT", "", None])
    def test_unknown_values_map_to_none(self, value):
        assert coerce_role(value) is None


class TestBypassSets:
    def test_verification_bypass(self):
        assert bypasses_verification("SUPER_ADMIN")
        assert bypasses_verification(UserRole.DEVELOPER)
        assert not bypasses_verification(UserRole.BATCH_ADMIN)
        assert not bypasses_verification("ROOT")

    def test_only_developers_skip_feature_gates(self):
        assert bypasses_feature_gate(UserRole.DEVELOPER)
        assert not bypasses_feature_gate(UserRole.SUPER_ADMIN)

    def test_maintenance_bypass(self):
        assert bypasses_maintenance(UserRole.SUPER_ADMIN)
        assert not bypasses_maintenance(UserRole.USER)

    def test_bypass_roles_are_admins(self):
        assert VERIFICATION_BYPASS_ROLES <= ADMIN_ROLES
        assert UserRole.USER not in ADMIN_ROLES


class TestRequireRole:
    def test_returns_coerced_role(self):
        assert require_role("DEVELOPER", ADMIN_ROLES, "admin only") is UserRole.DEVELOPER

    def test_refusal_keeps_rule_private(self):
        with pytest.raises(AuthorizationError) as exc_info:
            require_role(UserRole.USER, ADMIN_ROLES, "admin only")

        assert exc_info.value.rule == "admin only"
        assert "admin only" not in str(exc_info.value)
