"""Error handling middleware for mapping exceptions to HTTP responses."""

from datetime import UTC, datetime
from typing import Any, Callable
from uuid import UUID

import structlog
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from guild.api.schemas.errors import APIError, ErrorCode
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

logger = structlog.get_logger()

# Exception to HTTP status/error code mapping
# Format: Exception -> (status_code, error_code)
# Subclasses are listed before their bases.
EXCEPTION_MAP: dict[type[Exception], tuple[int, str]] = {
    ValidationError: (400, ErrorCode.VALIDATION_ERROR.value),
    AuthenticationError: (401, ErrorCode.UNAUTHORIZED.value),
    SubscriptionInactiveError: (402, ErrorCode.SUBSCRIPTION_REQUIRED.value),
    AuthorizationError: (403, ErrorCode.FORBIDDEN.value),
    BlacklistError: (403, ErrorCode.BLACKLISTED.value),
    FeatureDisabledError: (403, ErrorCode.FEATURE_DISABLED.value),
    BatchLockedError: (403, ErrorCode.BATCH_LOCKED.value),
    TenantInactiveError: (403, ErrorCode.TENANT_INACTIVE.value),
    TenantAccessDeniedError: (403, ErrorCode.TENANT_ACCESS_DENIED.value),
    TenantNotFoundError: (404, ErrorCode.TENANT_NOT_FOUND.value),
    NotFoundError: (404, ErrorCode.NOT_FOUND.value),
    InvalidTransitionError: (409, ErrorCode.INVALID_TRANSITION.value),
    ConflictError: (409, ErrorCode.CONFLICT.value),
    FeatureLimitExceededError: (429, ErrorCode.FEATURE_LIMIT_EXCEEDED.value),
    MaintenanceModeError: (503, ErrorCode.MAINTENANCE_MODE.value),
    ContextNotSetError: (500, ErrorCode.INTERNAL_ERROR.value),
}


def map_exception(exc: Exception, debug: bool = False) -> tuple[int, str, str, dict | None]:
    """Map exception to (status_code, error_code, message, details).

    Messages for authorization and blacklist failures are fixed so the
    response never reveals which rule or entry caused the refusal.
    """
    for exc_type, (status_code, error_code) in EXCEPTION_MAP.items():
        if isinstance(exc, exc_type):
            return status_code, error_code, _public_message(exc), _details(exc)

    return (
        500,
        ErrorCode.INTERNAL_ERROR.value,
        "Internal server error",
        {"type": type(exc).__name__} if debug else None,
    )


def _public_message(exc: Exception) -> str:
    if isinstance(exc, AuthorizationError | BlacklistError):
        return exc.public_message
    if isinstance(exc, ContextNotSetError):
        return "Internal server error: context not initialized"
    return str(exc)


def _details(exc: Exception) -> dict[str, Any] | None:
    if isinstance(exc, ValidationError):
        return {"field": exc.field} if exc.field else None
    if isinstance(exc, BlacklistError):
        return {"blacklisted": True}
    if isinstance(exc, FeatureDisabledError):
        return {"feature_code": exc.feature_code}
    if isinstance(exc, FeatureLimitExceededError):
        return {
            "feature_code": exc.feature_code,
            "limit": exc.limit,
            "current_usage": exc.current_usage,
        }
    if isinstance(exc, SubscriptionInactiveError):
        return {"subscription_status": exc.status}
    if isinstance(exc, InvalidTransitionError):
        return {"current_status": exc.current_status, "action": exc.action}
    if isinstance(exc, TenantNotFoundError | TenantInactiveError):
        return {"tenant_id": str(exc.tenant_id)}
    if isinstance(exc, TenantAccessDeniedError):
        return {"tenant_id": str(exc.tenant_id), "resource": exc.resource}
    if isinstance(exc, NotFoundError):
        return {"resource": exc.resource}
    return None


def get_request_id(request: Request) -> str:
    """Extract request ID from state or return a placeholder."""
    rid = getattr(request.state, "request_id", None)
    if rid is None:
        return "unknown"
    return str(rid) if isinstance(rid, UUID) else rid


def _is_debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.DEBUG)


def build_error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = get_request_id(request)
    error = APIError(
        error_code=error_code,
        message=message,
        details=details,
        request_id=request_id,
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(mode="json"),
        headers={"X-Request-ID": request_id, **(headers or {})},
    )


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Convert an exception into the standard JSON error response."""
    status_code, error_code, message, details = map_exception(exc, _is_debug(request))
    if status_code >= 500:
        logger.error("unhandled_exception", error_type=type(exc).__name__, exc_info=exc)
    elif isinstance(exc, BlacklistError | AuthorizationError):
        # Full reason stays server-side
        internal = exc.rule if isinstance(exc, AuthorizationError) else exc.reason
        logger.info("request_refused", error_code=error_code, reason=internal)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return build_error_response(request, status_code, error_code, message, details, headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as 400 validation errors."""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return build_error_response(
        request,
        400,
        ErrorCode.VALIDATION_ERROR.value,
        "Request validation failed",
        {"errors": errors},
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc)
