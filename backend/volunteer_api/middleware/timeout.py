"""
Volunteer API — Request Timeout Middleware
===========================================

Bounds how long a handler may run before the client receives a response.
A handler that exceeds REQUEST_TIMEOUT is cancelled and the request ends
with RequestTimeoutError (504). A timeout of 0 disables the stage.
"""

import asyncio
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from volunteer_api.exceptions import RequestTimeoutError

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, timeout: float):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.timeout:
            return await call_next(request)
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "%s %s exceeded %.1fs and was cancelled",
                request.method,
                request.url.path,
                self.timeout,
            )
            raise RequestTimeoutError(self.timeout) from exc
