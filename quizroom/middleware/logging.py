"""
Request Logging Middleware

One line per request: client, method, path, status and elapsed time.
Installed only when DEBUG is on.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        addr = request.client.host if request.client else "-"
        logger.info(f'{addr} - "{request.method} {request.url.path}" {response.status_code} ({elapsed:.0f}ms)')
        return response
