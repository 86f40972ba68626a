"""Core services: request context, roles, exceptions, audit and tenancy."""

from guild.core.context import (
    ActorType,
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
)
from guild.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BatchLockedError,
    BlacklistError,
    ConflictError,
    ContextNotSetError,
    FeatureDisabledError,
    FeatureLimitExceededError,
    InvalidTransitionError,
    MaintenanceModeError,
    NotFoundError,
    SubscriptionInactiveError,
    TenantAccessDeniedError,
    TenantInactiveError,
    TenantNotFoundError,
    ValidationError,
)
from guild.core.roles import (
    ADMIN_ROLES,
    FEATURE_GATE_BYPASS_ROLES,
    VERIFICATION_BYPASS_ROLES,
    UserRole,
)

__all__ = [
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    # Roles
    "UserRole",
    "ADMIN_ROLES",
    "FEATURE_GATE_BYPASS_ROLES",
    "VERIFICATION_BYPASS_ROLES",
    # Exceptions
    "AuthenticationError",
    "AuthorizationError",
    "BatchLockedError",
    "BlacklistError",
    "ConflictError",
    "ContextNotSetError",
    "FeatureDisabledError",
    "FeatureLimitExceededError",
    "InvalidTransitionError",
    "MaintenanceModeError",
    "NotFoundError",
    "SubscriptionInactiveError",
    "TenantAccessDeniedError",
    "TenantInactiveError",
    "TenantNotFoundError",
    "ValidationError",
]
