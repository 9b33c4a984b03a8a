"""
Volunteer API — Access Log Middleware
======================================

What:  One log line per HTTP request: method, path, status, duration, client.
Why:   Rejections by the admission stages (403 origin, 413 body, 429 rate)
       must be visible in logs even though no handler ever ran.
How:   Sits outside the error normalizer, so the status it records is the
       final normalized status. Level follows the status class:
       5xx → ERROR, 4xx → WARNING, otherwise INFO.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, client address, request ID
    ❌ Don't log: request body, query values, Authorization or cookie headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from volunteer_api.middleware.client import client_address
from volunteer_api.middleware.request_id import request_id_var

logger = logging.getLogger("volunteer_api.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, trusted_hops: int = 0):
        super().__init__(app)
        self.trusted_hops = trusted_hops

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        client_ip = client_address(request, self.trusted_hops)
        rid = request_id_var.get("")
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
