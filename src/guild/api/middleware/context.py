"""Request context middleware for propagating context through the request lifecycle."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from guild.core.context import ActorType, create_context, request_context

# Paths that don't require request context
SKIP_CONTEXT_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def client_ip(request: Request) -> str | None:
    """Extract client IP from request, considering proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets up RequestContext for each request.

    Uses the ContextVar-based context management to propagate request
    context through async call chains, so audit events pick up the client
    address and correlation id without the services passing them along.

    Requires:
        request.state.organization_id: Set by TenantValidationMiddleware
        request.state.actor_id: Set by AuthenticationMiddleware
        request.state.actor_type: Set by AuthenticationMiddleware

    Sets:
        request.state.request_id: The generated request ID (UUIDv7)
        X-Request-ID response header: For client correlation
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request within a RequestContext."""
        ctx = create_context(
            tenant_id=getattr(request.state, "organization_id", None),
            actor_id=getattr(request.state, "actor_id", None),
            actor_type=getattr(request.state, "actor_type", ActorType.ANONYMOUS),
            actor_role=getattr(request.state, "actor_role", None),
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            correlation_id=self._parse_correlation_id(request),
        )
        request.state.request_id = ctx.request_id

        if self._should_skip_context(request.url.path):
            response = await call_next(request)
            response.headers["X-Request-ID"] = str(ctx.request_id)
            return response

        with request_context(ctx):
            response = await call_next(request)

        response.headers["X-Request-ID"] = str(ctx.request_id)
        response.headers["X-Correlation-ID"] = str(ctx.correlation_id)

        return response

    def _should_skip_context(self, path: str) -> bool:
        """Check if path should skip context setup."""
        return path in SKIP_CONTEXT_PATHS or path.startswith(("/docs", "/redoc"))

    def _parse_correlation_id(self, request: Request) -> UUID | None:
        value = request.headers.get("X-Correlation-ID")
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            return None
