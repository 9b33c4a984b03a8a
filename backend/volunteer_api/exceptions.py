"""
Volunteer API — Error Variants
===============================

What:  The closed set of errors a request can end with.
Why:   The error normalizer switches on these classes instead of matching
       error-name strings, so an unrecognised library error can never slip
       through as a misleading status: it becomes UnexpectedError (500).
How:   Each variant carries the HTTP status, the client-facing message and,
       for validation/uniqueness failures only, a list of field messages.
       The data layer, credential layer and pipeline middleware translate
       library exceptions into these variants at the point they occur.
Who:   Raised by middleware, services and routes; rendered by
       volunteer_api.middleware.error_handler.

Variant Hierarchy:
    ApiError (base)
    ├── DataValidationError      → 400 + errors[]
    ├── DuplicateError           → 400 + errors[]
    ├── AuthTokenError           → 401
    ├── PermissionDeniedError    → 403
    ├── NotFoundError            → 404
    ├── PolicyError              (request admission refused)
    │   ├── OriginNotAllowedError    → 403
    │   ├── ParameterPollutionError  → 400
    │   ├── PayloadTooLargeError     → 413
    │   └── RateLimitExceededError   → 429
    ├── RequestTimeoutError      → 504
    ├── FileStorageError         → 500
    ├── HttpStatusError          → status as raised
    └── UnexpectedError          → 500

    RouteConflictError is a startup error, not a request error.
"""

from typing import Any, Dict, List, Optional

GENERIC_SERVER_ERROR = "เกิดข้อผิดพลาดภายในเซิร์ฟเวอร์"


class ApiError(Exception):
    """
    Base class for every error that ends a request.

    Attributes:
        status_code: HTTP status for the response
        message:     Client-facing text (safe to return)
        errors:      Field-level messages; None unless the variant carries them
        context:     Debug details (logged, never returned)
    """

    status_code: int = 500
    default_message: str = GENERIC_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.context = context or {}
        super().__init__(self.message)


class DataValidationError(ApiError):
    """Client payload failed schema or constraint checks."""

    status_code = 400
    default_message = "ข้อมูลไม่ถูกต้อง"

    def __init__(
        self,
        errors: List[str],
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, errors=list(errors) or ["invalid value"], context=context)


class DuplicateError(ApiError):
    """
    Unique-constraint violation reported by the database.

    The errors list follows the "<column> must be unique" wording so clients
    get one message per offending field.
    """

    status_code = 400
    default_message = "ข้อมูลซ้ำในระบบ"

    def __init__(
        self,
        errors: List[str],
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, errors=list(errors) or ["value must be unique"], context=context)


class AuthTokenError(ApiError):
    """Missing, malformed, tampered or expired credential."""

    status_code = 401
    default_message = "Token ไม่ถูกต้อง"


class PermissionDeniedError(ApiError):
    status_code = 403
    default_message = "ไม่มีสิทธิ์เข้าถึงข้อมูลนี้"


class NotFoundError(ApiError):
    """No route, static file or record matched the request."""

    status_code = 404
    default_message = "ไม่พบข้อมูลที่ร้องขอ"

    @classmethod
    def for_path(cls, path: str) -> "NotFoundError":
        return cls(message=f"ไม่พบ API ที่ร้องขอ: {path}", context={"path": path})

    @classmethod
    def for_record(cls, resource: str, record_id: Any) -> "NotFoundError":
        return cls(
            message=f"ไม่พบ {resource} รหัส {record_id}",
            context={"resource": resource, "record_id": record_id},
        )


# ══════════════════════════════════════════════════════════════════════════
# Policy errors: raised by admission middleware before routing
# ══════════════════════════════════════════════════════════════════════════


class PolicyError(ApiError):
    """A pipeline stage refused to admit the request."""

    status_code = 400
    default_message = "คำขอถูกปฏิเสธโดยนโยบายของระบบ"


class OriginNotAllowedError(PolicyError):
    status_code = 403
    default_message = "CORS Policy Blocks This Request"

    def __init__(self, origin: str):
        super().__init__(context={"origin": origin})
        self.origin = origin


class ParameterPollutionError(PolicyError):
    status_code = 400
    default_message = "พารามิเตอร์ซ้ำกันในคำขอ"

    def __init__(self, keys: List[str]):
        super().__init__(
            message=f"{self.default_message}: {', '.join(keys)}",
            context={"duplicate_keys": keys},
        )
        self.keys = keys


class PayloadTooLargeError(PolicyError):
    status_code = 413
    default_message = "ขนาดข้อมูลที่ส่งมาเกินกำหนด"

    def __init__(self, limit: int, received: Optional[int] = None):
        super().__init__(context={"limit": limit, "received": received})
        self.limit = limit


class RateLimitExceededError(PolicyError):
    """
    Client key exceeded its request budget for the current window.

    Attributes:
        retry_after: Seconds until the window resets (sent as Retry-After)
    """

    status_code = 429

    def __init__(self, message: str, retry_after: int, limit: int):
        super().__init__(message=message, context={"retry_after": retry_after, "limit": limit})
        self.retry_after = retry_after
        self.limit = limit


class RequestTimeoutError(ApiError):
    status_code = 504
    default_message = "เซิร์ฟเวอร์ใช้เวลาประมวลผลนานเกินไป"

    def __init__(self, timeout: float):
        super().__init__(context={"timeout": timeout})
        self.timeout = timeout


class FileStorageError(ApiError):
    """File system operation failed; details are logged, not returned."""

    status_code = 500
    default_message = "ไม่สามารถบันทึกไฟล์ได้ กรุณาลองใหม่อีกครั้ง"


class HttpStatusError(ApiError):
    """
    An HTTPException raised with a status no other variant covers (409, 422,
    503...). The status and detail are kept as raised; no errors list.
    """

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message=message, context={"status": status_code})
        self.status_code = status_code
        self.headers = dict(headers or {})


class UnexpectedError(ApiError):
    """Anything the layers below did not classify."""

    status_code = 500


# ══════════════════════════════════════════════════════════════════════════
# Startup errors
# ══════════════════════════════════════════════════════════════════════════


class RouteConflictError(RuntimeError):
    """Two handler groups declare routes that can match the same request."""

    def __init__(self, conflicts: List[str]):
        self.conflicts = conflicts
        super().__init__("Conflicting handler group routes:\n" + "\n".join(f"  - {c}" for c in conflicts))


class StartupError(RuntimeError):
    """Database connectivity or schema synchronisation failed during startup."""
