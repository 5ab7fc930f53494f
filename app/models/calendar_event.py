from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint
from app.core.database import Base, UTCDateTime
from app.utils.timezone import utc_now

EVENT_SOURCES = ("google", "outlook", "apple", "manual")


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    # Import de-duplication. NULL external ids never collide.
    __table_args__ = (
        UniqueConstraint("user_id", "source", "external_id", name="uq_calendar_events_user_source_external"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    external_id = Column(String, nullable=True) # ID in the source provider
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    location = Column(Text, nullable=True)
    source = Column(String, nullable=False) # google | outlook | apple | manual
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
