from pydantic import field_validator, model_validator
from typing import Optional, Literal
from datetime import datetime

from app.schemas.base import CamelModel, reject_null

Source = Literal["google", "outlook", "apple", "manual"]


class EventCreate(CamelModel):
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    source: Source = "manual"
    external_id: Optional[str] = None
    is_ai_generated: bool = False

    @model_validator(mode="after")
    def end_after_start(self):
        if not self.title or not self.title.strip():
            raise ValueError("Title cannot be empty")
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self

class EventUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    is_ai_generated: Optional[bool] = None

    @field_validator("title", "start_time", "end_time", "is_ai_generated", mode="before")
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("title")
    def title_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

class EventResponse(CamelModel):
    id: int
    user_id: str
    external_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    source: str
    is_ai_generated: bool
    created_at: datetime
    updated_at: datetime

class IntegrationUpdate(CamelModel):
    is_active: bool

class IntegrationResponse(CamelModel):
    # Tokens are deliberately absent
    id: int
    user_id: str
    provider: str
    token_expiry: Optional[datetime] = None
    is_active: bool
    last_sync: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class SyncResult(CamelModel):
    success: bool = True
    imported: int
    skipped: int

class AuthUrlResponse(CamelModel):
    auth_url: str
