"""
Request logging middleware.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with client, method, path, status, and latency."""

    async def dispatch(self, request: Request, call_next):
        t0 = time.time()
        response = await call_next(request)
        latency = (time.time() - t0) * 1000

        logger.info(
            "%s %s %s → %d (%.0fms)",
            request.client.host if request.client else "unknown",
            request.method,
            request.url.path,
            response.status_code,
            latency,
        )
        return response
