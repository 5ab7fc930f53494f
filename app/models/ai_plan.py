from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from app.core.database import Base, UTCDateTime
from app.utils.timezone import utc_now

# Native JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AiPlan(Base):
    __tablename__ = "ai_plans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    plan_date = Column(UTCDateTime, nullable=False, index=True) # local midnight of the planned day
    suggestions = Column(JSONType, nullable=False)
    applied = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, default=utc_now)
