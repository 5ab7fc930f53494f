import itertools
import logging
from datetime import datetime

from app.core.config import settings
from app.core.exceptions import NotFoundError, DuplicateError
from app.models.ai_plan import AiPlan
from app.models.calendar_event import CalendarEvent
from app.models.calendar_integration import CalendarIntegration
from app.models.task import Task
from app.models.user import User, generate_user_id
from app.models.user_preferences import UserPreferences
from app.storage.base import (
    Storage, check_event_window, preference_defaults, reject_nulls, strip_protected,
    TASK_PROTECTED, EVENT_PROTECTED, PREFERENCE_FIELDS,
    TASK_REQUIRED, EVENT_REQUIRED, PREFERENCE_REQUIRED,
)
from app.utils.timezone import utc_now, ensure_utc

logger = logging.getLogger(__name__)


class MemoryStorage(Storage):
    """
    Process-local storage used by the test suite and demo mode.

    Rows are transient instances of the ORM classes so both backends hand
    out the same types. No method awaits, so each one runs to completion
    on the event loop without interleaving.
    """

    def __init__(self, default_time_zone: str | None = None):
        self.default_time_zone = default_time_zone or settings.DEFAULT_TIMEZONE
        self._users = {}
        self._tasks = {}
        self._events = {}
        self._plans = {}
        self._preferences = {}  # keyed by user_id
        self._integrations = {}
        self._task_ids = itertools.count(1)
        self._event_ids = itertools.count(1)
        self._plan_ids = itertools.count(1)
        self._preference_ids = itertools.count(1)
        self._integration_ids = itertools.count(1)

    # Users

    async def get_user(self, user_id):
        return self._users.get(user_id)

    async def get_user_by_email(self, email):
        email = email.lower().strip()
        return next((u for u in self._users.values() if u.email == email), None)

    async def create_user(self, fields):
        if fields.get("email") and await self.get_user_by_email(fields["email"]):
            raise DuplicateError("A user with this email already exists.")
        now = utc_now()
        user = User(
            id=fields.get("id") or generate_user_id(),
            email=fields.get("email"),
            hashed_password=fields.get("hashed_password"),
            first_name=fields.get("first_name"),
            last_name=fields.get("last_name"),
            profile_image_url=fields.get("profile_image_url"),
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        return user

    async def update_user(self, user_id, fields):
        user = self._require(self._users, user_id, "User")
        for key, value in strip_protected(fields, {"id", "created_at", "updated_at"}).items():
            setattr(user, key, value)
        user.updated_at = utc_now()
        return user

    # Tasks

    async def list_tasks(self, user_id):
        tasks = [t for t in self._tasks.values() if t.user_id == user_id]
        return sorted(tasks, key=lambda t: (t.created_at, t.id), reverse=True)

    async def list_tasks_due_between(self, user_id, start, end):
        return [
            t for t in self._tasks.values()
            if t.user_id == user_id and t.due_date is not None and start <= t.due_date <= end
        ]

    async def get_task(self, task_id):
        return self._tasks.get(task_id)

    async def create_task(self, user_id, fields):
        fields = strip_protected(fields, TASK_PROTECTED)
        now = utc_now()
        task = Task(
            id=next(self._task_ids),
            user_id=user_id,
            title=fields["title"],
            description=fields.get("description"),
            category=fields["category"],
            priority=fields.get("priority") or "medium",
            due_date=ensure_utc(fields.get("due_date")),
            estimated_duration=fields.get("estimated_duration"),
            completed=False,
            completed_at=None,
            created_at=now,
            updated_at=now,
        )
        self._tasks[task.id] = task
        return task

    async def update_task(self, task_id, fields):
        task = self._require(self._tasks, task_id, "Task")
        now = utc_now()
        fields = reject_nulls(strip_protected(fields, TASK_PROTECTED), TASK_REQUIRED)
        if "completed" in fields:
            completed = bool(fields.pop("completed"))
            if completed != task.completed:
                task.completed = completed
                task.completed_at = now if completed else None
        if "due_date" in fields:
            fields["due_date"] = ensure_utc(fields["due_date"])
        for key, value in fields.items():
            setattr(task, key, value)
        task.updated_at = now
        return task

    async def delete_task(self, task_id):
        self._require(self._tasks, task_id, "Task")
        del self._tasks[task_id]

    async def toggle_task_completion(self, task_id):
        task = self._require(self._tasks, task_id, "Task")
        now = utc_now()
        task.completed = not task.completed
        task.completed_at = now if task.completed else None
        task.updated_at = now
        return task

    # Calendar events

    async def list_events_in_range(self, user_id, start, end):
        events = [
            e for e in self._events.values()
            if e.user_id == user_id and e.start_time >= start and e.end_time <= end
        ]
        return sorted(events, key=lambda e: (e.start_time, e.id))

    async def get_event(self, event_id):
        return self._events.get(event_id)

    async def create_event(self, user_id, fields):
        fields = strip_protected(fields, EVENT_PROTECTED)
        start_time = ensure_utc(fields.get("start_time"))
        end_time = ensure_utc(fields.get("end_time"))
        check_event_window(start_time, end_time)

        external_id = fields.get("external_id")
        source = fields["source"]
        if external_id is not None and any(
            e.user_id == user_id and e.source == source and e.external_id == external_id
            for e in self._events.values()
        ):
            raise DuplicateError(f"Event {external_id} from {source} already imported")

        now = utc_now()
        event = CalendarEvent(
            id=next(self._event_ids),
            user_id=user_id,
            external_id=external_id,
            title=fields["title"],
            description=fields.get("description"),
            start_time=start_time,
            end_time=end_time,
            location=fields.get("location"),
            source=source,
            is_ai_generated=bool(fields.get("is_ai_generated", False)),
            created_at=now,
            updated_at=now,
        )
        self._events[event.id] = event
        return event

    async def update_event(self, event_id, fields):
        event = self._require(self._events, event_id, "Event")
        fields = reject_nulls(strip_protected(fields, EVENT_PROTECTED), EVENT_REQUIRED)
        for key in ("start_time", "end_time"):
            if key in fields:
                fields[key] = ensure_utc(fields[key])
        check_event_window(fields.get("start_time", event.start_time), fields.get("end_time", event.end_time))
        for key, value in fields.items():
            setattr(event, key, value)
        event.updated_at = utc_now()
        return event

    async def delete_event(self, event_id):
        self._require(self._events, event_id, "Event")
        del self._events[event_id]

    async def delete_events_by_source(self, user_id, source):
        doomed = [e.id for e in self._events.values() if e.user_id == user_id and e.source == source]
        for event_id in doomed:
            del self._events[event_id]
        return len(doomed)

    # AI plans

    async def create_plan(self, user_id, plan_date, suggestions):
        plan = AiPlan(
            id=next(self._plan_ids),
            user_id=user_id,
            plan_date=ensure_utc(plan_date),
            suggestions=suggestions,
            applied=False,
            created_at=utc_now(),
        )
        self._plans[plan.id] = plan
        return plan

    async def get_latest_plan(self, user_id, start, end):
        plans = [
            p for p in self._plans.values()
            if p.user_id == user_id and start <= p.plan_date <= end
        ]
        if not plans:
            return None
        return max(plans, key=lambda p: (p.created_at, p.id))

    async def get_plan(self, plan_id):
        return self._plans.get(plan_id)

    async def mark_plan_applied(self, plan_id):
        plan = self._require(self._plans, plan_id, "Plan")
        plan.applied = True
        return plan

    # Preferences

    async def get_preferences(self, user_id):
        return self._preferences.get(user_id)

    async def upsert_preferences(self, user_id, fields):
        fields = reject_nulls({k: v for k, v in fields.items() if k in PREFERENCE_FIELDS}, PREFERENCE_REQUIRED)
        now = utc_now()
        prefs = self._preferences.get(user_id)
        if prefs is None:
            values = {**preference_defaults(self.default_time_zone), **fields}
            prefs = UserPreferences(
                id=next(self._preference_ids),
                user_id=user_id,
                created_at=now,
                updated_at=now,
                **values,
            )
            self._preferences[user_id] = prefs
            return prefs

        for key, value in fields.items():
            setattr(prefs, key, value)
        prefs.updated_at = now
        return prefs

    # Calendar integrations

    async def list_integrations(self, user_id):
        return sorted(
            (i for i in self._integrations.values() if i.user_id == user_id),
            key=lambda i: i.id,
        )

    async def get_integration(self, integration_id):
        return self._integrations.get(integration_id)

    async def save_integration(self, user_id, provider, fields):
        now = utc_now()
        integration = next(
            (i for i in self._integrations.values() if i.user_id == user_id and i.provider == provider),
            None,
        )
        if integration is None:
            integration = CalendarIntegration(
                id=next(self._integration_ids),
                user_id=user_id,
                provider=provider,
                access_token=None,
                refresh_token=None,
                token_expiry=None,
                is_active=True,
                last_sync=None,
                created_at=now,
            )
            self._integrations[integration.id] = integration

        if "access_token" in fields:
            integration.access_token = fields["access_token"]
        if "token_expiry" in fields:
            integration.token_expiry = ensure_utc(fields["token_expiry"])
        # Providers only return a refresh token on first consent
        if fields.get("refresh_token"):
            integration.refresh_token = fields["refresh_token"]
        integration.is_active = fields.get("is_active", True)
        integration.updated_at = now
        return integration

    async def set_integration_active(self, integration_id, is_active):
        integration = self._require(self._integrations, integration_id, "Integration")
        integration.is_active = is_active
        integration.updated_at = utc_now()
        return integration

    async def record_sync(self, integration_id, synced_at: datetime):
        integration = self._require(self._integrations, integration_id, "Integration")
        integration.last_sync = ensure_utc(synced_at)
        integration.updated_at = utc_now()
        return integration

    async def delete_integration(self, integration_id):
        self._require(self._integrations, integration_id, "Integration")
        del self._integrations[integration_id]

    @staticmethod
    def _require(table, key, label):
        row = table.get(key)
        if row is None:
            raise NotFoundError(f"{label} not found")
        return row
