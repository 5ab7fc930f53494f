import logging
from datetime import datetime, timedelta

from app.core.exceptions import NotFoundError
from app.schemas.base import parse_input
from app.schemas.calendar import EventCreate, EventUpdate
from app.storage.base import Storage
from app.utils.timezone import utc_now, ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_RANGE = timedelta(days=7)


async def list_events_in_range(storage: Storage, user_id: str, start: datetime = None, end: datetime = None):
    """
    Events with start_time >= start and end_time <= end, earliest first.

    Without bounds the range is now .. now + 7 days. An event that only
    partially overlaps the range is not returned.
    """
    start = ensure_utc(start) or utc_now()
    end = ensure_utc(end) or start + DEFAULT_RANGE
    return await storage.list_events_in_range(user_id, start, end)


async def get_owned_event(storage: Storage, event_id: int, user_id: str):
    event = await storage.get_event(event_id)
    if event is None or event.user_id != user_id:
        raise NotFoundError("Event not found")
    return event


async def create_event(storage: Storage, user_id: str, event_in):
    event = parse_input(EventCreate, event_in)
    db_event = await storage.create_event(user_id, event.model_dump())
    logger.info(f"📅 Event {db_event.id} '{db_event.title}' created (source={db_event.source})")
    return db_event


async def update_event(storage: Storage, event_id: int, event_in, user_id: str = None):
    event_update = parse_input(EventUpdate, event_in)
    if user_id is not None:
        await get_owned_event(storage, event_id, user_id)
    return await storage.update_event(event_id, event_update.model_dump(exclude_unset=True))


async def delete_event(storage: Storage, event_id: int, user_id: str = None):
    if user_id is not None:
        await get_owned_event(storage, event_id, user_id)
    await storage.delete_event(event_id)
