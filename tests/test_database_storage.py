"""DatabaseStorage against SQLite: atomic toggle, upserts, ranges, uniqueness."""

import pytest
from datetime import datetime, timedelta, timezone

from app.core.exceptions import DuplicateError, NotFoundError, ValidationError


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
async def db_user(db_storage):
    return await db_storage.create_user({"email": "Ada@Example.com", "first_name": "Ada"})


async def test_user_roundtrip_and_unique_email(db_storage, db_user):
    assert db_user.email == "ada@example.com"
    assert (await db_storage.get_user_by_email("ADA@example.com ")).id == db_user.id
    assert db_user.created_at.tzinfo is not None

    with pytest.raises(DuplicateError):
        await db_storage.create_user({"email": "ada@example.com"})


async def test_toggle_is_a_single_update(db_storage, db_user):
    task = await db_storage.create_task(db_user.id, {"title": "Ship", "category": "work"})
    assert task.completed is False and task.completed_at is None

    done = await db_storage.toggle_task_completion(task.id)
    assert done.completed is True
    assert done.completed_at is not None
    assert done.completed_at.tzinfo is not None

    undone = await db_storage.toggle_task_completion(task.id)
    assert undone.completed is False
    assert undone.completed_at is None

    with pytest.raises(NotFoundError):
        await db_storage.toggle_task_completion(12345)


async def test_update_completed_sets_and_keeps_timestamp(db_storage, db_user):
    task = await db_storage.create_task(db_user.id, {"title": "Ship", "category": "work"})

    done = await db_storage.update_task(task.id, {"completed": True})
    assert done.completed_at is not None

    again = await db_storage.update_task(task.id, {"completed": True, "priority": "high"})
    assert again.completed_at == done.completed_at
    assert again.priority == "high"

    undone = await db_storage.update_task(task.id, {"completed": False})
    assert undone.completed_at is None


async def test_protected_task_fields_ignored(db_storage, db_user):
    task = await db_storage.create_task(db_user.id, {"title": "Ship", "category": "work"})

    updated = await db_storage.update_task(task.id, {"user_id": "intruder", "completed_at": utc(2020, 1, 1)})

    assert updated.user_id == db_user.id
    assert updated.completed_at is None


async def test_tasks_newest_first_and_due_window(db_storage, db_user):
    early = await db_storage.create_task(db_user.id, {"title": "Early", "category": "work",
                                                      "due_date": utc(2026, 1, 15, 5)})
    late = await db_storage.create_task(db_user.id, {"title": "Late", "category": "work",
                                                     "due_date": utc(2026, 1, 16, 5)})
    await db_storage.create_task(db_user.id, {"title": "Undated", "category": "work"})

    assert [t.title for t in await db_storage.list_tasks(db_user.id)] == ["Undated", "Late", "Early"]

    due = await db_storage.list_tasks_due_between(db_user.id, utc(2026, 1, 15, 5), utc(2026, 1, 16, 4, 59, 59))
    assert [t.id for t in due] == [early.id]
    assert late.id not in [t.id for t in due]


async def test_delete_task(db_storage, db_user):
    task = await db_storage.create_task(db_user.id, {"title": "Ship", "category": "work"})
    await db_storage.delete_task(task.id)

    assert await db_storage.get_task(task.id) is None
    with pytest.raises(NotFoundError):
        await db_storage.delete_task(task.id)


async def test_event_range_and_duplicates(db_storage, db_user):
    base = {"source": "google", "start_time": utc(2026, 10, 18, 9), "end_time": utc(2026, 10, 18, 10)}
    await db_storage.create_event(db_user.id, {**base, "title": "Imported", "external_id": "g-1"})

    with pytest.raises(DuplicateError):
        await db_storage.create_event(db_user.id, {**base, "title": "Imported again", "external_id": "g-1"})

    await db_storage.create_event(db_user.id, {**base, "title": "Manual A", "source": "manual"})
    await db_storage.create_event(db_user.id, {**base, "title": "Manual B", "source": "manual"})
    await db_storage.create_event(db_user.id, {"title": "Straddles", "source": "manual",
                                               "start_time": utc(2026, 10, 18, 23),
                                               "end_time": utc(2026, 10, 19, 1)})

    events = await db_storage.list_events_in_range(db_user.id, utc(2026, 10, 18), utc(2026, 10, 18, 23, 59))
    assert [e.title for e in events] == ["Imported", "Manual A", "Manual B"]
    assert events[0].start_time == utc(2026, 10, 18, 9)


async def test_event_window_enforced(db_storage, db_user):
    with pytest.raises(ValidationError):
        await db_storage.create_event(db_user.id, {"title": "Backwards", "source": "manual",
                                                   "start_time": utc(2026, 10, 18, 10),
                                                   "end_time": utc(2026, 10, 18, 9)})

    event = await db_storage.create_event(db_user.id, {"title": "Fine", "source": "manual",
                                                       "start_time": utc(2026, 10, 18, 9),
                                                       "end_time": utc(2026, 10, 18, 10)})
    with pytest.raises(ValidationError):
        await db_storage.update_event(event.id, {"end_time": utc(2026, 10, 18, 8)})

    unchanged = await db_storage.get_event(event.id)
    assert unchanged.end_time == utc(2026, 10, 18, 10)


async def test_delete_events_by_source(db_storage, db_user):
    window = {"start_time": utc(2026, 10, 18, 9), "end_time": utc(2026, 10, 18, 10)}
    await db_storage.create_event(db_user.id, {**window, "title": "A", "source": "outlook", "external_id": "o-1"})
    await db_storage.create_event(db_user.id, {**window, "title": "B", "source": "outlook", "external_id": "o-2"})
    await db_storage.create_event(db_user.id, {**window, "title": "C", "source": "manual"})

    assert await db_storage.delete_events_by_source(db_user.id, "outlook") == 2
    remaining = await db_storage.list_events_in_range(db_user.id, utc(2026, 10, 18), utc(2026, 10, 19))
    assert [e.title for e in remaining] == ["C"]


async def test_preferences_upsert_merges(db_storage, db_user):
    assert await db_storage.get_preferences(db_user.id) is None

    first = await db_storage.upsert_preferences(db_user.id, {"time_zone": "Europe/London"})
    assert first.working_hours == {"start": "09:00", "end": "17:00"}
    assert first.notifications == {"email": True, "push": True}
    assert first.ai_enabled is True

    second = await db_storage.upsert_preferences(
        db_user.id, {"ai_enabled": False, "working_hours": {"start": "07:00", "end": "15:00"}}
    )
    assert second.id == first.id
    assert second.time_zone == "Europe/London"
    assert second.ai_enabled is False
    assert second.working_hours == {"start": "07:00", "end": "15:00"}


async def test_plans_latest_and_applied(db_storage, db_user):
    day_start, day_end = utc(2026, 10, 18, 4), utc(2026, 10, 19, 3, 59, 59)
    await db_storage.create_plan(db_user.id, day_start, {"suggestions": ["old"]})
    newest = await db_storage.create_plan(db_user.id, day_start, {"suggestions": ["new"]})

    latest = await db_storage.get_latest_plan(db_user.id, day_start, day_end)
    assert latest.id == newest.id
    assert latest.suggestions == {"suggestions": ["new"]}
    assert await db_storage.get_latest_plan(db_user.id, utc(2026, 10, 20), utc(2026, 10, 21)) is None

    applied = await db_storage.mark_plan_applied(newest.id)
    assert applied.applied is True
    with pytest.raises(NotFoundError):
        await db_storage.mark_plan_applied(999)


async def test_integration_upsert_and_sync(db_storage, db_user):
    expiry = utc(2026, 10, 18, 12)
    first = await db_storage.save_integration(db_user.id, "google", {
        "access_token": "a1", "refresh_token": "r1", "token_expiry": expiry,
    })
    await db_storage.set_integration_active(first.id, False)

    second = await db_storage.save_integration(db_user.id, "google", {"access_token": "a2", "token_expiry": expiry})
    assert second.id == first.id
    assert second.access_token == "a2"
    assert second.refresh_token == "r1"
    assert second.is_active is True
    assert second.token_expiry == expiry

    synced = await db_storage.record_sync(first.id, utc(2026, 10, 18, 8))
    assert synced.last_sync == utc(2026, 10, 18, 8)

    assert [i.provider for i in await db_storage.list_integrations(db_user.id)] == ["google"]
    await db_storage.delete_integration(first.id)
    assert await db_storage.list_integrations(db_user.id) == []
    with pytest.raises(NotFoundError):
        await db_storage.delete_integration(first.id)


@pytest.mark.parametrize("fields", [{"priority": None}, {"completed": None}, {"title": None}])
async def test_task_update_rejects_null_for_required_columns(db_storage, db_user, fields):
    task = await db_storage.create_task(db_user.id, {"title": "Ship", "category": "work", "priority": "high"})
    await db_storage.toggle_task_completion(task.id)

    with pytest.raises(ValidationError):
        await db_storage.update_task(task.id, fields)

    stored = await db_storage.get_task(task.id)
    assert stored.priority == "high"
    assert stored.completed is True
    assert stored.completed_at is not None


@pytest.mark.parametrize("fields", [{"title": None}, {"is_ai_generated": None}, {"end_time": None}])
async def test_event_update_rejects_null_for_required_columns(db_storage, db_user, fields):
    event = await db_storage.create_event(db_user.id, {
        "title": "Review", "start_time": utc(2026, 10, 18, 9), "end_time": utc(2026, 10, 18, 10), "source": "manual",
    })

    with pytest.raises(ValidationError):
        await db_storage.update_event(event.id, fields)

    stored = await db_storage.get_event(event.id)
    assert stored.title == "Review"
    assert stored.end_time == utc(2026, 10, 18, 10)


async def test_preferences_upsert_rejects_null_ai_enabled(db_storage, db_user):
    with pytest.raises(ValidationError):
        await db_storage.upsert_preferences(db_user.id, {"ai_enabled": None})
    assert await db_storage.get_preferences(db_user.id) is None

    await db_storage.upsert_preferences(db_user.id, {"ai_enabled": False})
    with pytest.raises(ValidationError):
        await db_storage.upsert_preferences(db_user.id, {"ai_enabled": None, "time_zone": "Asia/Tokyo"})

    prefs = await db_storage.get_preferences(db_user.id)
    assert prefs.ai_enabled is False
    assert prefs.time_zone == db_storage.default_time_zone
