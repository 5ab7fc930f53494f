from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey
from app.core.database import Base, UTCDateTime
from app.utils.timezone import utc_now

TASK_CATEGORIES = ("work", "personal", "finance", "health", "learning")
TASK_PRIORITIES = ("low", "medium", "high")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False) # Not enum-enforced, see TASK_CATEGORIES
    priority = Column(String, nullable=False, default="medium")
    due_date = Column(UTCDateTime, nullable=True, index=True)
    estimated_duration = Column(Integer, nullable=True) # minutes
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(UTCDateTime, nullable=True) # set iff completed
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
