"""User roles and the role sets that short-circuit authorization checks.

Every authorization function consults these sets first, so the accounts
that are always authorized can be audited here and nowhere else.
"""

from enum import Enum

from guild.core.exceptions import AuthorizationError


class UserRole(str, Enum):
    """Role of a user within an organization."""

    USER = "USER"
    BATCH_ADMIN = "BATCH_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    DEVELOPER = "DEVELOPER"


# Treated as VERIFIED and authorized for every batch, whatever their stored status.
VERIFICATION_BYPASS_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.SUPER_ADMIN, UserRole.DEVELOPER}
)

# Skip feature gating entirely (platform operators).
FEATURE_GATE_BYPASS_ROLES: frozenset[UserRole] = frozenset({UserRole.DEVELOPER})

# Allowed through while a tenant is in maintenance mode.
MAINTENANCE_BYPASS_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.SUPER_ADMIN, UserRole.DEVELOPER}
)

# Accounts that can never be blacklisted and may always change their own batch.
ADMIN_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.BATCH_ADMIN, UserRole.SUPER_ADMIN, UserRole.DEVELOPER}
)


def coerce_role(role: "UserRole | str | None") -> UserRole | None:
    """Convert a stored or token-carried role value to ``UserRole``.

    Unknown values map to None so they never match a bypass set.
    """
    if role is None or isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def bypasses_verification(role: "UserRole | str | None") -> bool:
    """Return True if the role is unconditionally treated as verified."""
    return coerce_role(role) in VERIFICATION_BYPASS_ROLES


def bypasses_feature_gate(role: "UserRole | str | None") -> bool:
    """Return True if the role skips feature entitlement checks."""
    return coerce_role(role) in FEATURE_GATE_BYPASS_ROLES


def bypasses_maintenance(role: "UserRole | str | None") -> bool:
    """Return True if the role may use a tenant in maintenance mode."""
    return coerce_role(role) in MAINTENANCE_BYPASS_ROLES


def require_role(
    role: "UserRole | str | None",
    allowed: frozenset[UserRole],
    rule: str,
) -> UserRole:
    """Raise AuthorizationError unless ``role`` is one of ``allowed``.

    Args:
        role: The actor's role
        allowed: Roles permitted for the operation
        rule: Internal description of the check, kept for logs only

    Returns:
        The coerced role
    """
    coerced = coerce_role(role)
    if coerced not in allowed:
        raise AuthorizationError(rule)
    return coerced
