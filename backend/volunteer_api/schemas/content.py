"""Request/response schemas for the file, notification and contact groups."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, computed_field


class StoredFileResponse(BaseModel):
    id: int
    original_name: str
    stored_path: str
    content_type: str
    size: int
    uploaded_by: int
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def url(self) -> str:
        return f"/uploadsfile/{self.stored_path}"


class NotificationCreate(BaseModel):
    user_id: int
    message: str = Field(min_length=1, max_length=2000)


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    message: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ContactCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    email: EmailStr
    subject: str = Field(default="", max_length=255)
    message: str = Field(min_length=1, max_length=5000)


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}
