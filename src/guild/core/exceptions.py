"""Core exceptions for the verification, blacklist and entitlement workflows."""

from uuid import UUID

from guild.utils.exceptions import GuildError


class ContextNotSetError(GuildError):
    """Raised when attempting to access request context that is not set.

    This error indicates a programming error - operations requiring context
    are being called outside of a request_context() context manager.
    """

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class ValidationError(GuildError):
    """Raised when input is malformed or out of range.

    Always recoverable by the caller fixing the request.

    Attributes:
        field: Name of the offending input field, if any
        message: Human-readable description of the problem
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"ValidationError({self.field}): {self.message}"
        return f"ValidationError: {self.message}"


class AuthorizationError(GuildError):
    """Raised when the actor lacks authority for an operation.

    The public message never says which rule failed; the rule is kept in
    ``rule`` for server-side logging only.

    Attributes:
        rule: Internal description of the failed check
    """

    public_message = "Insufficient permissions"

    def __init__(self, rule: str = "unspecified"):
        super().__init__(self.public_message)
        self.rule = rule

    def __str__(self) -> str:
        return f"AuthorizationError: {self.public_message}"


class BlacklistError(GuildError):
    """Raised when a blacklisted email tries to register or log in.

    Attributes:
        email: The normalized email that was blocked
        reason: The blacklist reason (server-side only, never returned)
    """

    public_message = "This email address is not eligible for registration"

    def __init__(self, email: str, reason: str | None = None):
        super().__init__(self.public_message)
        self.email = email
        self.reason = reason

    def __str__(self) -> str:
        return f"BlacklistError: {self.public_message}"


class NotFoundError(GuildError):
    """Raised when a tenant-scoped record does not exist.

    Attributes:
        resource: Kind of record (user, batch, blacklist_entry, ...)
        identifier: The identifier that was looked up
    """

    def __init__(self, resource: str, identifier: UUID | str | int):
        super().__init__(f"{resource.replace('_', ' ').capitalize()} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier

    def __str__(self) -> str:
        return f"NotFoundError: {self.args[0]}"


class ConflictError(GuildError):
    """Raised when a write conflicts with existing state.

    Attributes:
        message: Human-readable description of the conflict
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"ConflictError: {self.message}"


class InvalidTransitionError(ConflictError):
    """Raised when a verification transition is not allowed from the current state.

    Attributes:
        current_status: Status the user is in
        action: The attempted action (approve, reject)
    """

    def __init__(self, current_status: str, action: str):
        super().__init__(f"Cannot {action} a user whose verification status is {current_status}")
        self.current_status = current_status
        self.action = action


class BatchLockedError(GuildError):
    """Raised when a verified alumnus tries to change their batch year."""

    def __init__(self, message: str = "Batch cannot be changed after alumni verification"):
        super().__init__(message)
        self.message = message


class FeatureDisabledError(GuildError):
    """Raised when a gated feature is not enabled for the tenant.

    Attributes:
        feature_code: The feature that was requested
    """

    def __init__(self, feature_code: str):
        super().__init__(f"Feature '{feature_code}' is not available on the current plan")
        self.feature_code = feature_code

    def __str__(self) -> str:
        return f"FeatureDisabledError: {self.args[0]}"


class FeatureLimitExceededError(GuildError):
    """Raised when usage of a feature has reached its resolved limit.

    Attributes:
        feature_code: The feature being used
        limit: The resolved numeric limit
        current_usage: Usage at the time of the check
    """

    def __init__(self, feature_code: str, limit: int, current_usage: int):
        super().__init__(f"Limit reached for feature '{feature_code}' ({current_usage}/{limit})")
        self.feature_code = feature_code
        self.limit = limit
        self.current_usage = current_usage


class SubscriptionInactiveError(GuildError):
    """Raised when an operation requires an active subscription.

    Attributes:
        status: The organization's current subscription status
    """

    def __init__(self, status: str):
        super().__init__(f"Subscription is not active (status: {status})")
        self.status = status


class MaintenanceModeError(GuildError):
    """Raised when a tenant is in maintenance mode."""

    def __init__(self, tenant_code: str):
        super().__init__(f"Organization {tenant_code} is under maintenance")
        self.tenant_code = tenant_code


class TenantNotFoundError(GuildError):
    """Raised when a tenant does not exist.

    Attributes:
        tenant_id: The identifier (id or tenant code) that was not found
    """

    def __init__(self, tenant_id: UUID | str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"TenantNotFoundError: {self.args[0]}"


class TenantInactiveError(GuildError):
    """Raised when attempting to use a deactivated tenant.

    Attributes:
        tenant_id: The identifier of the inactive tenant
    """

    def __init__(self, tenant_id: UUID | str):
        super().__init__(f"Tenant is inactive: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"TenantInactiveError: {self.args[0]}"


class TenantAccessDeniedError(GuildError):
    """Raised when a token issued for one tenant is used against another.

    Attributes:
        tenant_id: The identifier of the tenant
        resource: The resource that access was denied to
    """

    def __init__(self, tenant_id: UUID | str, resource: str):
        super().__init__(f"Access denied to {resource} for tenant {tenant_id}")
        self.tenant_id = tenant_id
        self.resource = resource

    def __str__(self) -> str:
        return f"TenantAccessDeniedError: {self.args[0]}"


class AuthenticationError(GuildError):
    """Raised when authentication fails.

    Used for missing or malformed bearer tokens, expired tokens and
    invalid credentials.

    Attributes:
        reason: The specific reason authentication failed
    """

    def __init__(self, reason: str = "Authentication failed"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"AuthenticationError: {self.args[0]}"
