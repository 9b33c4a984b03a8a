"""
Volunteer API — Body Limit Middleware
======================================

What:  Rejects oversized request bodies with PayloadTooLargeError (413)
       before any handler or body parser runs.
Why:   JSON and form-encoded payloads are parsed into memory in full; an
       unbounded body is a memory-exhaustion vector.
How:   Pure ASGI middleware (it must see the raw receive channel):
       - Content-Length present → compared against the limit immediately.
         The HTTP server enforces framing, so a client cannot send more
         bytes than it declared.
       - No Content-Length (chunked) → the body is buffered up to the limit
         and replayed to the application; one byte over raises.
       Multipart uploads get their own, larger cap (MAX_UPLOAD_SIZE); every
       other content type, JSON and form-encoded included, gets BODY_LIMIT.

Why raise during buffering instead of while the handler reads:
    FastAPI wraps body-parsing exceptions into a generic 400, which would
    hide the 413. Buffering here keeps the failure inside the pipeline.
"""

import logging
from typing import List, Optional

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from volunteer_api.exceptions import PayloadTooLargeError

logger = logging.getLogger(__name__)


class BodyLimitMiddleware:
    def __init__(self, app: ASGIApp, max_bytes: int, multipart_max_bytes: Optional[int] = None):
        self.app = app
        self.max_bytes = max_bytes
        self.multipart_max_bytes = multipart_max_bytes or max_bytes

    def limit_for(self, headers: Headers) -> int:
        content_type = headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            return self.multipart_max_bytes
        return self.max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        limit = self.limit_for(headers)

        declared = headers.get("content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > limit:
                logger.warning(
                    "Rejected %s %s: declared body %s bytes exceeds %d",
                    scope["method"], scope["path"], declared, limit,
                )
                raise PayloadTooLargeError(limit=limit, received=int(declared))
            await self.app(scope, receive, send)
            return

        if scope["method"] in ("GET", "HEAD", "OPTIONS", "DELETE"):
            await self.app(scope, receive, send)
            return

        body = await self._buffer(receive, limit)
        await self.app(scope, replay(body, receive), send)

    async def _buffer(self, receive: Receive, limit: int) -> bytes:
        chunks: List[bytes] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > limit:
                raise PayloadTooLargeError(limit=limit, received=received)
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks)


def replay(body: bytes, receive: Receive) -> Receive:
    """Receive channel that yields `body` once, then defers to the real channel."""
    delivered = False

    async def replay_receive() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay_receive
