from pydantic import field_validator
from typing import Optional
from datetime import datetime

from app.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator('email')
    def normalize_email(cls, v):
        v = v.lower().strip()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator('password')
    def password_length(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

class UserLogin(CamelModel):
    email: str
    password: str

class UserResponse(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
