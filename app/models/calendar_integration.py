from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint
from app.core.database import Base, UTCDateTime
from app.utils.timezone import utc_now


class CalendarIntegration(Base):
    __tablename__ = "calendar_integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_calendar_integrations_user_provider"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String, nullable=False) # google | outlook | apple
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expiry = Column(UTCDateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
