"""
Response envelopes shared by every handler group.

Success: {"success": true, "message"?: str, "data": ...}
Error:   {"success": false, "message": str, "errors"?: [str]}
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: T


class ErrorResponse(BaseModel):
    """
    What the error normalizer emits. Declared for the OpenAPI document only;
    the normalizer builds the body directly.
    """

    success: bool = Field(default=False)
    message: str
    errors: Optional[List[str]] = Field(
        default=None,
        description="Field-level messages; present only for validation and uniqueness failures",
    )


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid or duplicate data"},
    401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"},
    403: {"model": ErrorResponse, "description": "Origin or role not allowed"},
    404: {"model": ErrorResponse, "description": "No such route or record"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
}
