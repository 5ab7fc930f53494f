from pydantic import field_validator, PositiveInt
from typing import Optional, Literal
from datetime import datetime

from app.schemas.base import CamelModel, reject_null

Priority = Literal["low", "medium", "high"]


def _clean_title(v):
    if v is None or not v.strip():
        raise ValueError('Title cannot be empty')
    return v.strip()


def _clean_category(v):
    if v is None or not v.strip():
        raise ValueError('Category is required')
    return v.strip().lower()


def _clean_description(v):
    if v:
        return v.strip()
    return v


class TaskCreate(CamelModel):
    title: str
    description: Optional[str] = None
    category: str
    priority: Priority = "medium"
    due_date: Optional[datetime] = None
    estimated_duration: Optional[PositiveInt] = None

    @field_validator('title')
    def title_must_not_be_empty(cls, v):
        return _clean_title(v)

    @field_validator('category')
    def category_must_be_present(cls, v):
        return _clean_category(v)

    @field_validator('description')
    def sanitize_description(cls, v):
        return _clean_description(v)

class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    estimated_duration: Optional[PositiveInt] = None
    completed: Optional[bool] = None

    @field_validator('title')
    def title_must_not_be_empty(cls, v):
        return _clean_title(v)

    @field_validator('category')
    def category_must_be_present(cls, v):
        return _clean_category(v)

    @field_validator('priority', 'completed', mode='before')
    def not_null(cls, v):
        return reject_null(v)

    @field_validator('description')
    def sanitize_description(cls, v):
        return _clean_description(v)

class TaskResponse(CamelModel):
    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    due_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    completed: bool
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
