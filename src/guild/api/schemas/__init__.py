"""API request and response schemas."""

from .errors import APIError, ErrorCode
from .health import HealthStatus, LivenessResponse, ReadinessResponse

__all__ = [
    "APIError",
    "ErrorCode",
    "HealthStatus",
    "LivenessResponse",
    "ReadinessResponse",
]
