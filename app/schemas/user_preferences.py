import re
import pytz
from pydantic import field_validator, model_validator
from typing import Optional, Dict
from datetime import datetime

from app.schemas.base import CamelModel, reject_null

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class WorkingHours(CamelModel):
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    def must_be_wall_clock(cls, v):
        if not _HHMM.match(v):
            raise ValueError("Expected HH:MM")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        # Zero-padded HH:MM compares correctly as text
        if self.end <= self.start:
            raise ValueError("Working hours must end after they start")
        return self

class UserPreferencesUpdate(CamelModel):
    working_hours: Optional[WorkingHours] = None
    time_zone: Optional[str] = None
    ai_enabled: Optional[bool] = None
    notifications: Optional[Dict[str, bool]] = None

    @field_validator("ai_enabled", mode="before")
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("time_zone")
    def must_be_known_zone(cls, v):
        if v is not None and v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown time zone '{v}'")
        return v

class UserPreferencesResponse(CamelModel):
    id: int
    user_id: str
    working_hours: Optional[WorkingHours] = None
    time_zone: Optional[str] = None
    ai_enabled: bool
    notifications: Optional[Dict[str, bool]] = None
    created_at: datetime
    updated_at: datetime
