import logging
from datetime import date, datetime

from dateutil import parser

from app.core.exceptions import NotFoundError, ValidationError
from app.services import ai_service, preference_service
from app.storage.base import Storage
from app.utils.timezone import day_window, local_date, utc_now

logger = logging.getLogger(__name__)


def parse_plan_day(value, tz_name: str = None) -> date:
    """
    Calendar day addressed by a request: an ISO date ("2026-10-18"), a
    datetime (read in the user's zone), or None for today.
    """
    if value is None or value == "":
        return local_date(utc_now(), tz_name)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    else:
        try:
            parsed = parser.isoparse(str(value))
        except (ValueError, OverflowError) as e:
            raise ValidationError(f"Invalid date '{value}'") from e
    if parsed.tzinfo is None:
        # Wall-clock value without offset already names the local day
        return parsed.date()
    return local_date(parsed, tz_name)


async def generate_plan_for_day(storage: Storage, user_id: str, day: date):
    """
    Gather the day's tasks and events, ask the AI provider for a plan and
    append it to the plan log. A provider failure still stores the
    fallback payload.
    """
    prefs = await preference_service.get_preferences(storage, user_id)
    tz_name = prefs.time_zone if prefs is not None and prefs.time_zone else None
    start, end = day_window(day, tz_name)

    tasks = await storage.list_tasks_due_between(user_id, start, end)
    events = await storage.list_events_in_range(user_id, start, end)
    logger.info(f"🧠 Generating plan for {user_id} on {day}: {len(tasks)} tasks, {len(events)} events")

    suggestions = await ai_service.generate_plan(tasks, events, prefs)
    return await storage.create_plan(user_id, start, suggestions)


async def get_latest_plan(storage: Storage, user_id: str, day: date):
    """
    Newest plan whose plan date falls on `day`, or None.

    `day` is read in the user's current zone. A plan is stored at local
    midnight of the zone in effect when it was generated, so after a zone
    change an older plan is reported under whichever local day that
    instant falls on in the new zone.
    """
    tz_name = await preference_service.get_user_time_zone(storage, user_id)
    start, end = day_window(day, tz_name)
    return await storage.get_latest_plan(user_id, start, end)


async def mark_plan_applied(storage: Storage, plan_id: int, user_id: str):
    plan = await storage.get_plan(plan_id)
    if plan is None or plan.user_id != user_id:
        raise NotFoundError("Plan not found")
    return await storage.mark_plan_applied(plan_id)
