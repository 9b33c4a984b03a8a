"""
Volunteer API — Origin Policy (CORS gate)
==========================================

What:  Decides whether a request's declared Origin may proceed and grants
       allowed origins credentialed cross-origin access.
Why:   Starlette's CORSMiddleware silently omits headers for unknown origins
       and answers bad preflights with plain text. Here a denial is an error
       (OriginNotAllowedError) that the normalizer renders like any other,
       so a blocked origin never passes through and never sees a non-JSON body.
       CORSMiddleware is not reused for allowed origins either: it decorates
       only responses that travel back through it, while error responses
       rendered by the outer normalizer need the same headers from the same
       OriginPolicy.
How:   OriginPolicy holds the static allow-set and builds header sets;
       OriginPolicyMiddleware enforces it per request. The error normalizer
       reuses the same OriginPolicy so error bodies stay readable by the
       browser for allowed origins.

Decision table:
    Origin header   | Preflight              | Other requests
    ----------------+------------------------+------------------------------
    absent          | 204 + method/headers   | pass, credentials/expose set
    allow-listed    | 204 + method/headers   | pass, Allow-Origin echoed
    anything else   | OriginNotAllowedError  | OriginNotAllowedError
"""

import logging
from typing import Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from volunteer_api.exceptions import OriginNotAllowedError

logger = logging.getLogger(__name__)

DEFAULT_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
DEFAULT_ALLOWED_HEADERS = ("Content-Type", "Authorization")
DEFAULT_EXPOSED_HEADERS = ("Authorization",)
PREFLIGHT_MAX_AGE = 600


class OriginPolicy:
    """
    Static allow-set of origins plus the header sets granted to them.

    Read-only after construction; safe to share between the gate middleware
    and the error normalizer.
    """

    def __init__(
        self,
        allowed_origins: Iterable[str],
        allow_methods: Iterable[str] = DEFAULT_METHODS,
        allow_headers: Iterable[str] = DEFAULT_ALLOWED_HEADERS,
        expose_headers: Iterable[str] = DEFAULT_EXPOSED_HEADERS,
        allow_credentials: bool = True,
    ):
        self.allowed_origins = frozenset(allowed_origins)
        self.allow_methods = tuple(allow_methods)
        self.allow_headers = tuple(allow_headers)
        self.expose_headers = tuple(expose_headers)
        self.allow_credentials = allow_credentials

    def is_allowed(self, origin: Optional[str]) -> bool:
        # Same-origin and non-browser clients send no Origin at all
        return not origin or origin in self.allowed_origins

    def response_headers(self, origin: Optional[str]) -> Dict[str, str]:
        """Headers for an actual (non-preflight) response; empty when denied."""
        if not self.is_allowed(origin):
            return {}
        headers = {"Vary": "Origin"}
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if self.expose_headers:
            headers["Access-Control-Expose-Headers"] = ", ".join(self.expose_headers)
        return headers

    def preflight_headers(self, origin: Optional[str]) -> Dict[str, str]:
        headers = self.response_headers(origin)
        headers.pop("Access-Control-Expose-Headers", None)
        headers["Access-Control-Allow-Methods"] = ", ".join(self.allow_methods)
        headers["Access-Control-Allow-Headers"] = ", ".join(self.allow_headers)
        headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
        return headers


def is_preflight(request: Request) -> bool:
    return request.method == "OPTIONS" and "access-control-request-method" in request.headers


class OriginPolicyMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, policy: OriginPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = request.headers.get("origin")
        if not self.policy.is_allowed(origin):
            logger.warning("Blocked request from origin %s to %s", origin, request.url.path)
            raise OriginNotAllowedError(origin)

        if is_preflight(request):
            return Response(status_code=204, headers=self.policy.preflight_headers(origin))

        response = await call_next(request)
        for name, value in self.policy.response_headers(origin).items():
            response.headers[name] = value
        return response
