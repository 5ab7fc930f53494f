from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from app.core.database import Base, UTCDateTime
from app.models.ai_plan import JSONType
from app.utils.timezone import utc_now

DEFAULT_WORKING_HOURS = {"start": "09:00", "end": "17:00"}
DEFAULT_NOTIFICATIONS = {"email": True, "push": True}


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    working_hours = Column(JSONType, nullable=True) # {"start": "09:00", "end": "17:00"}
    time_zone = Column(String, nullable=True)
    ai_enabled = Column(Boolean, nullable=False, default=True)
    notifications = Column(JSONType, nullable=True) # {"email": true, "push": true}
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
