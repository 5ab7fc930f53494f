"""Preference upsert and defaults."""

import pytest

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.services import preference_service


async def test_no_row_until_first_save(storage, user):
    assert await preference_service.get_preferences(storage, user.id) is None
    assert await preference_service.get_user_time_zone(storage, user.id) == settings.DEFAULT_TIMEZONE


async def test_effective_preferences_fill_defaults(storage, user):
    values = await preference_service.get_effective_preferences(storage, user.id)

    assert values == {
        "working_hours": {"start": "09:00", "end": "17:00"},
        "time_zone": settings.DEFAULT_TIMEZONE,
        "ai_enabled": True,
        "notifications": {"email": True, "push": True},
    }


async def test_first_upsert_uses_defaults_for_omitted_fields(storage, user):
    prefs = await preference_service.upsert_preferences(storage, user.id, {"time_zone": "Europe/London"})

    assert prefs.time_zone == "Europe/London"
    assert prefs.working_hours == {"start": "09:00", "end": "17:00"}
    assert prefs.ai_enabled is True
    assert prefs.notifications == {"email": True, "push": True}


async def test_second_upsert_keeps_stored_values(storage, user):
    first = await preference_service.upsert_preferences(
        storage, user.id, {"time_zone": "Europe/London", "working_hours": {"start": "08:00", "end": "16:30"}}
    )
    second = await preference_service.upsert_preferences(storage, user.id, {"ai_enabled": False})

    assert second.id == first.id
    assert second.ai_enabled is False
    assert second.time_zone == "Europe/London"
    assert second.working_hours == {"start": "08:00", "end": "16:30"}


async def test_camel_case_input_accepted(storage, user):
    prefs = await preference_service.upsert_preferences(
        storage, user.id, {"timeZone": "Asia/Tokyo", "aiEnabled": False}
    )

    assert prefs.time_zone == "Asia/Tokyo"
    assert prefs.ai_enabled is False


@pytest.mark.parametrize("payload", [
    {"working_hours": {"start": "9am", "end": "17:00"}},
    {"working_hours": {"start": "17:00", "end": "09:00"}},
    {"working_hours": {"start": "24:00", "end": "25:00"}},
    {"time_zone": "Mars/Olympus_Mons"},
])
async def test_invalid_preferences_rejected(storage, user, payload):
    with pytest.raises(ValidationError):
        await preference_service.upsert_preferences(storage, user.id, payload)
    assert await preference_service.get_preferences(storage, user.id) is None


async def test_null_ai_enabled_rejected_and_stored_value_kept(storage, user):
    await preference_service.upsert_preferences(storage, user.id, {"ai_enabled": False})

    with pytest.raises(ValidationError):
        await preference_service.upsert_preferences(storage, user.id, {"aiEnabled": None})

    prefs = await preference_service.get_preferences(storage, user.id)
    assert prefs.ai_enabled is False


async def test_null_ai_enabled_rejected_on_first_save(storage, user):
    with pytest.raises(ValidationError):
        await preference_service.upsert_preferences(storage, user.id, {"aiEnabled": None})
    assert await preference_service.get_preferences(storage, user.id) is None
