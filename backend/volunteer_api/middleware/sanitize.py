"""
Volunteer API — Input Sanitizer
================================

What:  Two admission checks on user-controlled input:
       1. Parameter pollution: a query key repeated more than once is
          rejected with ParameterPollutionError (400) unless whitelisted.
       2. Markup neutralization: '<' and '>' in query values, JSON string
          values and form-encoded values are rewritten to '&lt;' / '&gt;'
          before the handler sees them.
Why:   Handlers read `?status=` as one value; a repeated key would make that
       ambiguous. Stored free text is later rendered by the frontend, so it
       must never carry live markup.
How:   Pure ASGI middleware so the rewritten query string and body can be
       handed on as if the client had sent them. Multipart bodies pass
       through untouched (file contents are stored, never rendered).
       Header values are not rewritten; credentials and content negotiation
       must reach the application verbatim.

Ordering: runs after the body limiter, so the body it buffers is bounded.
"""

import json
import logging
from typing import Any, Collection, Dict, List, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

from volunteer_api.exceptions import ParameterPollutionError
from volunteer_api.middleware.body_limit import replay

logger = logging.getLogger(__name__)

_MARKUP = str.maketrans({"<": "&lt;", ">": "&gt;"})


def escape_markup(value: str) -> str:
    return value.translate(_MARKUP)


def sanitize_value(value: Any) -> Any:
    """Recursively escapes every string inside a decoded JSON document."""
    if isinstance(value, str):
        return escape_markup(value)
    if isinstance(value, list):
        return [sanitize_value(item) for item in value]
    if isinstance(value, dict):
        return {escape_markup(key): sanitize_value(item) for key, item in value.items()}
    return value


def duplicate_keys(pairs: List[Tuple[str, str]], whitelist: Collection[str]) -> List[str]:
    seen: Dict[str, int] = {}
    for key, _ in pairs:
        seen[key] = seen.get(key, 0) + 1
    return sorted(key for key, count in seen.items() if count > 1 and key not in whitelist)


# Undecodable bytes survive as surrogates and are re-encoded unchanged
def _parse_pairs(raw: bytes) -> List[Tuple[str, str]]:
    text = raw.decode("utf-8", errors="surrogateescape")
    return parse_qsl(text, keep_blank_values=True, encoding="utf-8", errors="surrogateescape")


def _encode_pairs(pairs: List[Tuple[str, str]]) -> bytes:
    return urlencode(pairs, encoding="utf-8", errors="surrogateescape").encode("ascii")


def _sanitize_pairs(pairs: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    return [(escape_markup(key), escape_markup(value)) for key, value in pairs]


class InputSanitizerMiddleware:
    def __init__(self, app: ASGIApp, whitelist: Collection[str] = ()):
        self.app = app
        self.whitelist = frozenset(whitelist)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = self._sanitize_query(scope)

        content_type = Headers(scope=scope).get("content-type", "").split(";")[0].strip().lower()
        if content_type == "application/json" or content_type.endswith("+json"):
            scope, receive = await self._rewrite_body(scope, receive, self._sanitize_json)
        elif content_type == "application/x-www-form-urlencoded":
            scope, receive = await self._rewrite_body(scope, receive, self._sanitize_form)

        await self.app(scope, receive, send)

    def _sanitize_query(self, scope: Scope) -> Scope:
        raw = scope.get("query_string", b"")
        if not raw:
            return scope
        pairs = _parse_pairs(raw)

        duplicates = duplicate_keys(pairs, self.whitelist)
        if duplicates:
            logger.warning("Rejected %s: repeated query parameters %s", scope["path"], duplicates)
            raise ParameterPollutionError(duplicates)

        cleaned = _sanitize_pairs(pairs)
        if cleaned == pairs:
            return scope
        return {**scope, "query_string": _encode_pairs(cleaned)}

    async def _rewrite_body(self, scope: Scope, receive: Receive, transform) -> Tuple[Scope, Receive]:
        chunks = []
        while True:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        body = b"".join(chunks)

        cleaned = transform(body)
        if cleaned != body:
            scope = dict(scope)
            headers = MutableHeaders(scope=scope)
            headers["content-length"] = str(len(cleaned))
        return scope, replay(cleaned, receive)

    @staticmethod
    def _sanitize_json(body: bytes) -> bytes:
        if not body:
            return body
        try:
            document = json.loads(body)
        except ValueError:
            # Malformed JSON is left for the handler's validation to report
            return body
        cleaned = sanitize_value(document)
        if cleaned == document:
            return body
        return json.dumps(cleaned, ensure_ascii=False).encode("utf-8")

    @staticmethod
    def _sanitize_form(body: bytes) -> bytes:
        if not body:
            return body
        pairs = _parse_pairs(body)
        cleaned = _sanitize_pairs(pairs)
        if cleaned == pairs:
            return body
        return _encode_pairs(cleaned)
