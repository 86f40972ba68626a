"""API middleware components."""

from .auth import AuthenticationMiddleware
from .context import RequestContextMiddleware
from .errors import ErrorHandlingMiddleware
from .logging import RequestLoggingMiddleware
from .tenant import TenantValidationMiddleware

__all__ = [
    "AuthenticationMiddleware",
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "RequestLoggingMiddleware",
    "TenantValidationMiddleware",
]
