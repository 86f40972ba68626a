"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    BLACKLISTED = "blacklisted"
    BATCH_LOCKED = "batch_locked"

    # Tenant errors
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_INACTIVE = "tenant_inactive"
    TENANT_ACCESS_DENIED = "tenant_access_denied"
    MAINTENANCE_MODE = "maintenance_mode"

    # Request errors
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    INVALID_TRANSITION = "invalid_transition"

    # Entitlement errors
    FEATURE_DISABLED = "feature_disabled"
    FEATURE_LIMIT_EXCEEDED = "feature_limit_exceeded"
    SUBSCRIPTION_REQUIRED = "subscription_required"

    # System errors
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """Standardized API error response format.

    All API errors return this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context"
    )
    request_id: str = Field(..., description="Request ID for tracing (UUIDv7)")
    timestamp: datetime = Field(..., description="When the error occurred")

    model_config = {"json_schema_extra": {"example": {
        "error_code": "blacklisted",
        "message": "This email address is not eligible for registration",
        "details": {"blacklisted": True},
        "request_id": "019478f2-1234-7000-8000-abcdef123456",
        "timestamp": "2026-01-30T12:00:00Z",
    }}}
