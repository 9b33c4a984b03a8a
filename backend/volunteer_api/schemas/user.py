"""
Request/response schemas for the auth, user, profile and faculty groups.

Response models never carry password_hash: they are built from ORM rows with
from_attributes and list only public fields.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["student", "staff", "admin"]


class FacultyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)


class FacultyResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    faculty_id: Optional[int] = None


class UserCreate(RegisterRequest):
    """Admin-created account; the only way to assign a role other than student."""

    role: Role = "student"


class LoginRequest(BaseModel):
    # Email or username
    identifier: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    faculty_id: Optional[int] = None


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    first_name: str
    last_name: str
    role: str
    faculty_id: Optional[int] = None
    profile_image: Optional[str] = Field(
        default=None, description="Path relative to /uploads, when set"
    )
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
