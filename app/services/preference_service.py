import logging

from app.core.config import settings
from app.schemas.base import parse_input
from app.schemas.user_preferences import UserPreferencesUpdate
from app.storage.base import Storage, preference_defaults

logger = logging.getLogger(__name__)


async def get_preferences(storage: Storage, user_id: str):
    """The stored row, or None for users who never saved preferences."""
    return await storage.get_preferences(user_id)


async def get_effective_preferences(storage: Storage, user_id: str) -> dict:
    """Stored values with the defaults filled in for anything missing."""
    values = preference_defaults(settings.DEFAULT_TIMEZONE)
    prefs = await storage.get_preferences(user_id)
    if prefs is not None:
        for key in values:
            stored = getattr(prefs, key)
            if stored is not None:
                values[key] = stored
    return values


async def get_user_time_zone(storage: Storage, user_id: str) -> str:
    prefs = await storage.get_preferences(user_id)
    if prefs is not None and prefs.time_zone:
        return prefs.time_zone
    return settings.DEFAULT_TIMEZONE


async def upsert_preferences(storage: Storage, user_id: str, prefs_in):
    prefs_update = parse_input(UserPreferencesUpdate, prefs_in)
    update_data = prefs_update.model_dump(exclude_unset=True)
    logger.info(f"⚙️ Saving preferences for user {user_id}: {sorted(update_data)}")
    return await storage.upsert_preferences(user_id, update_data)
