"""Authentication middleware for JWT bearer tokens."""

import re
from typing import Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from guild.api.middleware.errors import build_error_response
from guild.api.schemas.errors import ErrorCode
from guild.core.context import ActorType
from guild.core.exceptions import AuthenticationError
from guild.core.roles import coerce_role
from guild.core.security import decode_token

logger = structlog.get_logger()

# Paths that don't require authentication
SKIP_AUTH_PATHS = {
    "/health",
    "/health/db",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/v1/auth/register",
    "/v1/auth/login",
    "/v1/auth/refresh",
}

# Paths that start with these prefixes don't require auth
SKIP_AUTH_PREFIXES = (
    "/docs",
    "/redoc",
)

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def should_skip_auth(path: str) -> bool:
    """Check if path is public."""
    return path in SKIP_AUTH_PATHS or path.startswith(SKIP_AUTH_PREFIXES)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that validates Bearer token authentication.

    Decodes the access token and records the claims on the request state
    for downstream middleware. The user row itself is loaded later by the
    ``get_current_user`` dependency, which re-checks that the account is
    still active.

    Sets:
        request.state.actor_id: UUID of the authenticated user
        request.state.actor_role: Role claimed by the token
        request.state.token_tenant_id: Organization the token was issued for
        request.state.actor_type: HUMAN, or ANONYMOUS on public paths
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and validate authentication."""
        if request.method == "OPTIONS" or should_skip_auth(request.url.path):
            request.state.actor_id = None
            request.state.actor_role = None
            request.state.token_tenant_id = None
            request.state.actor_type = ActorType.ANONYMOUS
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._unauthorized_response(request, "Missing Authorization header")

        match = _BEARER.match(auth_header)
        if not match:
            return self._unauthorized_response(request, "Invalid Authorization header format")

        try:
            claims = decode_token(match.group(1), request.app.state.settings)
        except AuthenticationError as e:
            logger.info("token_rejected", reason=e.reason, path=request.url.path)
            return self._unauthorized_response(request, e.reason)

        request.state.actor_id = claims["sub"]
        request.state.actor_role = coerce_role(claims.get("role"))
        request.state.token_tenant_id = claims["tenant"]
        request.state.actor_type = ActorType.HUMAN

        return await call_next(request)

    def _unauthorized_response(self, request: Request, message: str) -> JSONResponse:
        """Create a 401 unauthorized response."""
        return build_error_response(
            request,
            401,
            ErrorCode.UNAUTHORIZED.value,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )
