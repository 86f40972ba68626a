"""Request logging middleware."""

import logging
import time
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from guild.api.middleware.context import client_ip

logger = structlog.get_logger("guild.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every HTTP request with its outcome.

    Only writes log lines; audit events that must be persisted are recorded
    by the services inside the request's own transaction.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log request/response."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        self._log_request(request, response, duration_ms)
        return response

    def _log_request(self, request: Request, response: Response, duration_ms: float) -> None:
        """Log the completed request."""
        status_code = response.status_code
        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        request_id = getattr(request.state, "request_id", None)
        organization_id = getattr(request.state, "organization_id", None)

        logger.log(
            log_level,
            "http_request",
            request_id=str(request_id) if request_id else None,
            tenant_id=str(organization_id) if organization_id else None,
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) or None,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
