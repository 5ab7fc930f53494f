"""
Storage capability interface.

Every per-user entity is reached through one `Storage` object chosen at
process start (see app.storage.factory). Operations take explicit ids and
never read request state. Lookups by id do not check ownership: callers
scope by user before mutating.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.models.ai_plan import AiPlan
from app.models.calendar_event import CalendarEvent
from app.models.calendar_integration import CalendarIntegration
from app.models.task import Task
from app.models.user import User
from app.models.user_preferences import UserPreferences, DEFAULT_WORKING_HOURS, DEFAULT_NOTIFICATIONS

Fields = Dict[str, Any]

# Columns callers may never write directly
TASK_PROTECTED = {"id", "user_id", "completed_at", "created_at", "updated_at"}
EVENT_PROTECTED = {"id", "user_id", "created_at", "updated_at"}
PREFERENCE_FIELDS = ("working_hours", "time_zone", "ai_enabled", "notifications")
# Columns a partial update may omit but never clear
TASK_REQUIRED = ("title", "category", "priority", "completed")
EVENT_REQUIRED = ("title", "start_time", "end_time", "source", "is_ai_generated")
PREFERENCE_REQUIRED = ("ai_enabled",)


def check_event_window(start_time: datetime, end_time: datetime):
    if start_time is None or end_time is None:
        raise ValidationError("Start and end time are required")
    if end_time <= start_time:
        raise ValidationError("End time must be after start time")


def preference_defaults(default_time_zone: str) -> Fields:
    return {
        "working_hours": dict(DEFAULT_WORKING_HOURS),
        "time_zone": default_time_zone,
        "ai_enabled": True,
        "notifications": dict(DEFAULT_NOTIFICATIONS),
    }


def strip_protected(fields: Fields, protected) -> Fields:
    return {k: v for k, v in fields.items() if k not in protected}


def reject_nulls(fields: Fields, required) -> Fields:
    for key in required:
        if key in fields and fields[key] is None:
            raise ValidationError(f"{key} cannot be null")
    return fields


class Storage(ABC):

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create_user(self, fields: Fields) -> User:
        """Insert a user. Raises DuplicateError if the email is taken."""

    @abstractmethod
    async def update_user(self, user_id: str, fields: Fields) -> User:
        ...

    # Tasks

    @abstractmethod
    async def list_tasks(self, user_id: str) -> List[Task]:
        """All tasks of the user, newest created first."""

    @abstractmethod
    async def list_tasks_due_between(self, user_id: str, start: datetime, end: datetime) -> List[Task]:
        """Tasks with start <= due_date <= end. Tasks without a due date never match."""

    @abstractmethod
    async def get_task(self, task_id: int) -> Optional[Task]:
        ...

    @abstractmethod
    async def create_task(self, user_id: str, fields: Fields) -> Task:
        """Insert a task. `completed` starts False and `completed_at` None whatever is passed."""

    @abstractmethod
    async def update_task(self, task_id: int, fields: Fields) -> Task:
        """
        Merge `fields` onto the task and bump `updated_at`.

        Writing `completed` moves `completed_at` the same way a toggle would,
        and leaves it untouched when the flag does not change.
        Raises NotFoundError.
        """

    @abstractmethod
    async def delete_task(self, task_id: int) -> None:
        """Hard delete. Raises NotFoundError."""

    @abstractmethod
    async def toggle_task_completion(self, task_id: int) -> Task:
        """Flip `completed`, stamping or clearing `completed_at`. Raises NotFoundError."""

    # Calendar events

    @abstractmethod
    async def list_events_in_range(self, user_id: str, start: datetime, end: datetime) -> List[CalendarEvent]:
        """
        Events fully inside the range: start_time >= start and end_time <= end,
        ordered by start_time. Partially overlapping events are excluded.
        """

    @abstractmethod
    async def get_event(self, event_id: int) -> Optional[CalendarEvent]:
        ...

    @abstractmethod
    async def create_event(self, user_id: str, fields: Fields) -> CalendarEvent:
        """
        Insert an event. Raises ValidationError unless end_time > start_time,
        DuplicateError if (user_id, source, external_id) already exists.
        """

    @abstractmethod
    async def update_event(self, event_id: int, fields: Fields) -> CalendarEvent:
        """Merge and re-check the time window. Raises NotFoundError, ValidationError."""

    @abstractmethod
    async def delete_event(self, event_id: int) -> None:
        """Hard delete. Raises NotFoundError."""

    @abstractmethod
    async def delete_events_by_source(self, user_id: str, source: str) -> int:
        """Remove every event the user imported from `source`. Returns the count."""

    # AI plans

    @abstractmethod
    async def create_plan(self, user_id: str, plan_date: datetime, suggestions: dict) -> AiPlan:
        """Append a plan. Earlier plans for the same day are kept."""

    @abstractmethod
    async def get_latest_plan(self, user_id: str, start: datetime, end: datetime) -> Optional[AiPlan]:
        """Most recently created plan with start <= plan_date <= end."""

    @abstractmethod
    async def get_plan(self, plan_id: int) -> Optional[AiPlan]:
        ...

    @abstractmethod
    async def mark_plan_applied(self, plan_id: int) -> AiPlan:
        """The only mutation a plan accepts. Raises NotFoundError."""

    # Preferences

    @abstractmethod
    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        """None when the user never saved preferences; that is a normal state."""

    @abstractmethod
    async def upsert_preferences(self, user_id: str, fields: Fields) -> UserPreferences:
        """
        Insert with defaults for omitted fields, or overwrite only the given
        fields of the existing row.
        """

    # Calendar integrations

    @abstractmethod
    async def list_integrations(self, user_id: str) -> List[CalendarIntegration]:
        ...

    @abstractmethod
    async def get_integration(self, integration_id: int) -> Optional[CalendarIntegration]:
        ...

    @abstractmethod
    async def save_integration(self, user_id: str, provider: str, fields: Fields) -> CalendarIntegration:
        """Upsert keyed on (user_id, provider); used when an OAuth handshake completes."""

    @abstractmethod
    async def set_integration_active(self, integration_id: int, is_active: bool) -> CalendarIntegration:
        ...

    @abstractmethod
    async def record_sync(self, integration_id: int, synced_at: datetime) -> CalendarIntegration:
        ...

    @abstractmethod
    async def delete_integration(self, integration_id: int) -> None:
        ...
