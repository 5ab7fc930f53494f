import logging
from sqlalchemy import select, update, delete, case, literal, null, true, not_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from app.core.config import settings
from app.core.database import AsyncSessionLocal, UTCDateTime
from app.core.exceptions import NotFoundError, DuplicateError
from app.models.ai_plan import AiPlan
from app.models.calendar_event import CalendarEvent
from app.models.calendar_integration import CalendarIntegration
from app.models.task import Task
from app.models.user import User
from app.models.user_preferences import UserPreferences
from app.storage.base import (
    Storage, check_event_window, preference_defaults, reject_nulls, strip_protected,
    TASK_PROTECTED, EVENT_PROTECTED, PREFERENCE_FIELDS,
    TASK_REQUIRED, EVENT_REQUIRED, PREFERENCE_REQUIRED,
)
from app.utils.timezone import utc_now, ensure_utc

logger = logging.getLogger(__name__)


class DatabaseStorage(Storage):
    """
    SQLAlchemy-backed storage (PostgreSQL in production, SQLite in tests).

    Every operation opens its own short-lived session. Toggle and the
    upserts are single statements, so concurrent requests cannot interleave
    between a read and the following write.
    """

    def __init__(self, session_factory=None, default_time_zone: str | None = None):
        self._session_factory = session_factory or AsyncSessionLocal
        self.default_time_zone = default_time_zone or settings.DEFAULT_TIMEZONE

    # Users

    async def get_user(self, user_id):
        async with self._session_factory() as db:
            return await db.get(User, user_id)

    async def get_user_by_email(self, email):
        async with self._session_factory() as db:
            result = await db.execute(select(User).filter(User.email == email.lower().strip()))
            return result.scalars().first()

    async def create_user(self, fields):
        async with self._session_factory() as db:
            user = User(**fields)
            if user.email:
                user.email = user.email.lower().strip()
            db.add(user)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateError("A user with this email already exists.", detail=str(e)) from e
            await db.refresh(user)
            return user

    async def update_user(self, user_id, fields):
        fields = strip_protected(fields, {"id", "created_at", "updated_at"})
        return await self._merge(User, user_id, fields, "User")

    # Tasks

    async def list_tasks(self, user_id):
        async with self._session_factory() as db:
            result = await db.execute(
                select(Task)
                .filter(Task.user_id == user_id)
                .order_by(Task.created_at.desc(), Task.id.desc())
            )
            return list(result.scalars().all())

    async def list_tasks_due_between(self, user_id, start, end):
        async with self._session_factory() as db:
            result = await db.execute(
                select(Task).filter(
                    Task.user_id == user_id,
                    Task.due_date >= start,
                    Task.due_date <= end,
                ).order_by(Task.due_date)
            )
            return list(result.scalars().all())

    async def get_task(self, task_id):
        async with self._session_factory() as db:
            return await db.get(Task, task_id)

    async def create_task(self, user_id, fields):
        fields = strip_protected(fields, TASK_PROTECTED)
        async with self._session_factory() as db:
            db_task = Task(
                user_id=user_id,
                title=fields["title"],
                description=fields.get("description"),
                category=fields["category"],
                priority=fields.get("priority") or "medium",
                due_date=ensure_utc(fields.get("due_date")),
                estimated_duration=fields.get("estimated_duration"),
                completed=False,  # Force default status
                completed_at=None,
            )
            db.add(db_task)
            await db.commit()
            await db.refresh(db_task)
            return db_task

    async def update_task(self, task_id, fields):
        now = utc_now()
        values = reject_nulls(strip_protected(fields, TASK_PROTECTED), TASK_REQUIRED)
        if "completed" in values:
            completed = bool(values["completed"])
            values["completed"] = completed
            # Keep completed_at when the flag does not change
            values["completed_at"] = case(
                (Task.completed == completed, Task.completed_at),
                else_=literal(now, UTCDateTime()) if completed else null(),
            )
        values["updated_at"] = now
        return await self._update_returning(Task, task_id, values, "Task")

    async def delete_task(self, task_id):
        await self._delete(Task, task_id, "Task")

    async def toggle_task_completion(self, task_id):
        now = utc_now()
        # SET expressions see the pre-update row
        values = {
            "completed": not_(Task.completed),
            "completed_at": case(
                (Task.completed == true(), null()),
                else_=literal(now, UTCDateTime()),
            ),
            "updated_at": now,
        }
        return await self._update_returning(Task, task_id, values, "Task")

    # Calendar events

    async def list_events_in_range(self, user_id, start, end):
        async with self._session_factory() as db:
            result = await db.execute(
                select(CalendarEvent).filter(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.start_time >= start,
                    CalendarEvent.end_time <= end,
                ).order_by(CalendarEvent.start_time, CalendarEvent.id)
            )
            return list(result.scalars().all())

    async def get_event(self, event_id):
        async with self._session_factory() as db:
            return await db.get(CalendarEvent, event_id)

    async def create_event(self, user_id, fields):
        fields = strip_protected(fields, EVENT_PROTECTED)
        start_time = ensure_utc(fields.get("start_time"))
        end_time = ensure_utc(fields.get("end_time"))
        check_event_window(start_time, end_time)

        async with self._session_factory() as db:
            db_event = CalendarEvent(
                user_id=user_id,
                external_id=fields.get("external_id"),
                title=fields["title"],
                description=fields.get("description"),
                start_time=start_time,
                end_time=end_time,
                location=fields.get("location"),
                source=fields["source"],
                is_ai_generated=bool(fields.get("is_ai_generated", False)),
            )
            db.add(db_event)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateError(
                    f"Event {fields.get('external_id')} from {fields['source']} already imported",
                    detail=str(e),
                ) from e
            await db.refresh(db_event)
            return db_event

    async def update_event(self, event_id, fields):
        fields = reject_nulls(strip_protected(fields, EVENT_PROTECTED), EVENT_REQUIRED)
        for key in ("start_time", "end_time"):
            if key in fields:
                fields[key] = ensure_utc(fields[key])

        def check(row):
            check_event_window(row.start_time, row.end_time)

        return await self._merge(CalendarEvent, event_id, fields, "Event", before_commit=check)

    async def delete_event(self, event_id):
        await self._delete(CalendarEvent, event_id, "Event")

    async def delete_events_by_source(self, user_id, source):
        async with self._session_factory() as db:
            result = await db.execute(
                delete(CalendarEvent).where(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source == source,
                )
            )
            await db.commit()
            return result.rowcount

    # AI plans

    async def create_plan(self, user_id, plan_date, suggestions):
        async with self._session_factory() as db:
            plan = AiPlan(user_id=user_id, plan_date=ensure_utc(plan_date), suggestions=suggestions, applied=False)
            db.add(plan)
            await db.commit()
            await db.refresh(plan)
            return plan

    async def get_latest_plan(self, user_id, start, end):
        async with self._session_factory() as db:
            result = await db.execute(
                select(AiPlan).filter(
                    AiPlan.user_id == user_id,
                    AiPlan.plan_date >= start,
                    AiPlan.plan_date <= end,
                ).order_by(AiPlan.created_at.desc(), AiPlan.id.desc()).limit(1)
            )
            return result.scalars().first()

    async def get_plan(self, plan_id):
        async with self._session_factory() as db:
            return await db.get(AiPlan, plan_id)

    async def mark_plan_applied(self, plan_id):
        return await self._update_returning(AiPlan, plan_id, {"applied": True}, "Plan")

    # Preferences

    async def get_preferences(self, user_id):
        async with self._session_factory() as db:
            result = await db.execute(select(UserPreferences).filter(UserPreferences.user_id == user_id))
            return result.scalars().first()

    async def upsert_preferences(self, user_id, fields):
        fields = reject_nulls({k: v for k, v in fields.items() if k in PREFERENCE_FIELDS}, PREFERENCE_REQUIRED)
        now = utc_now()
        insert_values = {
            **preference_defaults(self.default_time_zone),
            **fields,
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        }
        async with self._session_factory() as db:
            await self._upsert(db, UserPreferences, ["user_id"], insert_values, {**fields, "updated_at": now})
            await db.commit()
            result = await db.execute(select(UserPreferences).filter(UserPreferences.user_id == user_id))
            return result.scalars().one()

    # Calendar integrations

    async def list_integrations(self, user_id):
        async with self._session_factory() as db:
            result = await db.execute(
                select(CalendarIntegration)
                .filter(CalendarIntegration.user_id == user_id)
                .order_by(CalendarIntegration.id)
            )
            return list(result.scalars().all())

    async def get_integration(self, integration_id):
        async with self._session_factory() as db:
            return await db.get(CalendarIntegration, integration_id)

    async def save_integration(self, user_id, provider, fields):
        now = utc_now()
        token_values = {"is_active": fields.get("is_active", True), "updated_at": now}
        if "access_token" in fields:
            token_values["access_token"] = fields["access_token"]
        if "token_expiry" in fields:
            token_values["token_expiry"] = ensure_utc(fields["token_expiry"])
        # Providers only return a refresh token on first consent
        if fields.get("refresh_token"):
            token_values["refresh_token"] = fields["refresh_token"]

        insert_values = {**token_values, "user_id": user_id, "provider": provider, "created_at": now}
        async with self._session_factory() as db:
            await self._upsert(db, CalendarIntegration, ["user_id", "provider"], insert_values, token_values)
            await db.commit()
            result = await db.execute(
                select(CalendarIntegration).filter(
                    CalendarIntegration.user_id == user_id,
                    CalendarIntegration.provider == provider,
                )
            )
            return result.scalars().one()

    async def set_integration_active(self, integration_id, is_active):
        return await self._merge(
            CalendarIntegration, integration_id, {"is_active": is_active}, "Integration"
        )

    async def record_sync(self, integration_id, synced_at):
        return await self._merge(
            CalendarIntegration, integration_id, {"last_sync": ensure_utc(synced_at)}, "Integration"
        )

    async def delete_integration(self, integration_id):
        await self._delete(CalendarIntegration, integration_id, "Integration")

    # Helpers

    async def _merge(self, model, pk, fields, label, before_commit=None):
        async with self._session_factory() as db:
            row = await db.get(model, pk)
            if row is None:
                raise NotFoundError(f"{label} not found")
            for key, value in fields.items():
                setattr(row, key, value)
            if hasattr(row, "updated_at"):
                row.updated_at = utc_now()
            if before_commit:
                before_commit(row)
            await db.commit()
            await db.refresh(row)
            return row

    async def _update_returning(self, model, pk, values, label):
        async with self._session_factory() as db:
            result = await db.execute(
                update(model)
                .where(model.id == pk)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                raise NotFoundError(f"{label} not found")
            await db.commit()
            return await db.get(model, pk, populate_existing=True)

    async def _delete(self, model, pk, label):
        async with self._session_factory() as db:
            result = await db.execute(delete(model).where(model.id == pk))
            if result.rowcount == 0:
                await db.rollback()
                raise NotFoundError(f"{label} not found")
            await db.commit()

    @staticmethod
    async def _upsert(db, model, index_elements, insert_values, update_values):
        dialect = db.get_bind().dialect.name
        insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert_fn(model).values(**insert_values)
        stmt = stmt.on_conflict_do_update(index_elements=index_elements, set_=update_values)
        await db.execute(stmt)
