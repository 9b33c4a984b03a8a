"""
Volunteer API — Error Normalizer
=================================

What:  Turns every error that ends a request into exactly one JSON response
       {success: false, message, errors?}.
Why:   Errors surface at three places and each needs catching:
       - admission middleware (origin, rate, body, pollution, timeout) raise
         before routing, where FastAPI's exception handlers cannot see them;
       - routes and dependencies raise inside the router;
       - the framework itself answers unmatched paths with HTTPException(404)
         and bad payloads with RequestValidationError.
How:   One classifier (`classify`) maps any exception onto the ApiError
       variants; one builder (`error_response`) logs and renders it. The
       builder is installed twice: as FastAPI exception handlers for errors
       raised inside the router, and as ErrorNormalizerMiddleware wrapping
       every admission stage. The middleware never re-raises.

Classification:
    ApiError subclass                  → itself
    HTTPException 404 / 405            → NotFoundError for the path
    HTTPException 401 / 403            → AuthTokenError / PermissionDeniedError
    HTTPException 400                  → DataValidationError([detail])
    HTTPException any other status     → HttpStatusError(status, detail)
    RequestValidationError             → DataValidationError(field messages)
    IntegrityError                     → DuplicateError / DataValidationError
    jose JWTError                      → AuthTokenError
    anything else                      → UnexpectedError (500)

Security: responses carry only the variant's client-facing message. Stack
traces, SQL and driver details are logged, never returned.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from jose import JWTError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from volunteer_api.database import translate_integrity_error
from volunteer_api.exceptions import (
    ApiError,
    AuthTokenError,
    DataValidationError,
    HttpStatusError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    UnexpectedError,
)
from volunteer_api.middleware.client import client_address
from volunteer_api.middleware.origin_policy import OriginPolicy
from volunteer_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


def validation_messages(exc: RequestValidationError) -> List[str]:
    """Flattens pydantic error dicts into "field: message" strings."""
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        text = error.get("msg", "invalid value")
        messages.append(f"{field}: {text}" if field else text)
    return messages


def classify(exc: Exception, path: str) -> ApiError:
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, StarletteHTTPException):
        if exc.status_code in (404, 405):
            return NotFoundError.for_path(path)
        if exc.status_code == 401:
            return AuthTokenError()
        if exc.status_code == 403:
            return PermissionDeniedError()
        if exc.status_code == 400:
            return DataValidationError(errors=[str(exc.detail)])
        return HttpStatusError(exc.status_code, message=str(exc.detail), headers=exc.headers)
    if isinstance(exc, RequestValidationError):
        return DataValidationError(errors=validation_messages(exc))
    if isinstance(exc, IntegrityError):
        return translate_integrity_error(exc)
    if isinstance(exc, JWTError):
        return AuthTokenError(context={"detail": str(exc)})
    return UnexpectedError(context={"type": type(exc).__name__})


def error_response(
    request: Request,
    exc: Exception,
    policy: Optional[OriginPolicy] = None,
    trusted_hops: int = 0,
) -> JSONResponse:
    """
    Log `exc` with its request context and render the normalized envelope.

    Args:
        policy:       When given, CORS headers are added for allowed origins so
                      the browser can read the error body
        trusted_hops: Proxy hops trusted when resolving the client address
    """
    error = classify(exc, request.url.path)

    level = logging.ERROR if error.status_code >= 500 else logging.WARNING
    client_ip = client_address(request, trusted_hops)
    rid = request_id_var.get("")
    logger.log(
        level,
        "[%s] %s %s from %s failed with %d: %s",
        rid,
        request.method,
        request.url.path,
        client_ip,
        error.status_code,
        str(exc) or type(exc).__name__,
        exc_info=exc,
        extra={
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
            "status": error.status_code,
            "error_context": error.context,
        },
    )

    content = {"success": False, "message": error.message}
    if error.errors:
        content["errors"] = list(error.errors)

    headers = {}
    if isinstance(error, HttpStatusError):
        headers.update(error.headers)
    if isinstance(error, RateLimitExceededError):
        headers["Retry-After"] = str(error.retry_after)
    if policy is not None:
        headers.update(policy.response_headers(request.headers.get("origin")))

    return JSONResponse(status_code=error.status_code, content=content, headers=headers)


class ErrorNormalizerMiddleware(BaseHTTPMiddleware):
    """Catches whatever the admission stages and the router let through."""

    def __init__(self, app: ASGIApp, policy: Optional[OriginPolicy] = None, trusted_hops: int = 0):
        super().__init__(app)
        self.policy = policy
        self.trusted_hops = trusted_hops

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc, self.policy, self.trusted_hops)


def register_exception_handlers(app: FastAPI, trusted_hops: int = 0) -> None:
    """
    Route-level errors are rendered by the same builder.

    No handler is registered for bare Exception: Starlette would hand that one
    to ServerErrorMiddleware, which re-raises after responding. Unclassified
    errors instead propagate to ErrorNormalizerMiddleware.
    """

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return error_response(request, exc, trusted_hops=trusted_hops)

    app.add_exception_handler(ApiError, handle)
    app.add_exception_handler(StarletteHTTPException, handle)
    app.add_exception_handler(RequestValidationError, handle)
    app.add_exception_handler(IntegrityError, handle)
    app.add_exception_handler(JWTError, handle)
