import uuid
from sqlalchemy import Column, String
from app.core.database import Base, UTCDateTime
from app.utils.timezone import utc_now


def generate_user_id():
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_user_id)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String, nullable=True) # Local login only
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
