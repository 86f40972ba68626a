"""Request context for async-safe multi-tenant operations.

This module provides request context propagation using Python's contextvars
so services and log processors can see which tenant and actor an operation
runs for without threading the values through every call.

Usage:
    from guild.core.context import create_context, request_context, get_current_context

    ctx = create_context(tenant_id=org.organization_id, actor_id=user.user_id)

    with request_context(ctx):
        current = get_current_context()
        await service.approve(current.actor_id, user_id)
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from guild.core.exceptions import ContextNotSetError
from guild.core.roles import UserRole


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Authenticated user
    ANONYMOUS = "anonymous"  # Public routes (register, login)
    SYSTEM = "system"  # Seeding, maintenance scripts


class RequestContext(BaseModel):
    """Context for a single request/operation.

    Carries what is needed for tenant isolation, audit correlation and
    request logging.
    """

    # Identity
    request_id: UUID = Field(default_factory=uuid7)
    tenant_id: UUID | None = None
    actor_id: UUID | None = None
    actor_type: ActorType = ActorType.HUMAN
    actor_role: UserRole | None = None

    # Client
    ip_address: str | None = None
    user_agent: str | None = None

    # Audit
    correlation_id: UUID = Field(default_factory=uuid7)
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Context Variable Management
# =============================================================================

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Get the current request context.

    Raises:
        ContextNotSetError: If no context is set in the current execution context
    """
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No request context is set. Use request_context() context manager."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Get the current request context, or None if not set."""
    return _request_context.get()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set the request context and return a token for restoration.

    This is a low-level API. Prefer using the request_context() context manager.
    """
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Reset the context to its previous value using a token."""
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Context manager for setting request context.

    Works for both sync and async code because contextvars are
    automatically propagated to async tasks.

    Args:
        ctx: The context to set for the duration of the block

    Yields:
        The context that was set
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def current_correlation_id() -> UUID:
    """Correlation id of the active request, or a fresh one outside requests."""
    ctx = get_current_context_or_none()
    return ctx.correlation_id if ctx is not None else uuid7()


def create_context(
    *,
    tenant_id: UUID | None = None,
    actor_id: UUID | None = None,
    actor_type: ActorType = ActorType.HUMAN,
    actor_role: UserRole | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Factory function to create a RequestContext with defaults.

    Args:
        tenant_id: Organization the request is scoped to
        actor_id: Authenticated user, if any
        actor_type: Type of actor (default: HUMAN)
        actor_role: Role claimed by the actor's token
        ip_address: Client address, used by audit events
        user_agent: Client user agent string
        correlation_id: Optional correlation ID (auto-generated if not provided)

    Returns:
        A new RequestContext instance
    """
    return RequestContext(
        tenant_id=tenant_id,
        actor_id=actor_id,
        actor_type=actor_type,
        actor_role=actor_role,
        ip_address=ip_address,
        user_agent=user_agent,
        correlation_id=correlation_id or uuid7(),
    )
