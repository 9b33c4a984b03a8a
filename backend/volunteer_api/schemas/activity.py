"""Request/response schemas for the category, activity and plan-activity groups."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class CategoryResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ActivityCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10_000)
    location: str = Field(default="", max_length=255)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: int = Field(default=0, ge=0)
    category_ids: List[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> "ActivityCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ActivityResponse(BaseModel):
    id: int
    title: str
    description: str
    location: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: int
    status: str
    created_by: int
    created_at: datetime
    categories: List[CategoryResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PlanActivityCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10_000)
    planned_date: Optional[datetime] = None
    faculty_id: Optional[int] = None


class PlanActivityResponse(BaseModel):
    id: int
    title: str
    description: str
    planned_date: Optional[datetime] = None
    faculty_id: Optional[int] = None
    created_by: int
    created_at: datetime

    model_config = {"from_attributes": True}
