"""Backend selection and demo data."""

import pytest
from datetime import timedelta

from app.storage import factory
from app.storage.demo import DEMO_USER_ID, seed_demo_data
from app.storage.memory import MemoryStorage
from app.utils.timezone import utc_now


def test_build_storage_by_name():
    assert isinstance(factory.build_storage("memory"), MemoryStorage)
    assert isinstance(factory.build_storage("MEMORY"), MemoryStorage)


def test_build_storage_rejects_unknown_backend():
    with pytest.raises(ValueError):
        factory.build_storage("redis")


def test_get_storage_returns_installed_backend():
    storage = MemoryStorage()
    factory.set_storage(storage)
    try:
        assert factory.get_storage() is storage
    finally:
        factory.set_storage(None)


async def test_seed_demo_data_is_idempotent(storage):
    await seed_demo_data(storage)
    await seed_demo_data(storage)

    tasks = await storage.list_tasks(DEMO_USER_ID)
    assert len(tasks) == 5
    assert {t.category for t in tasks} == {"work", "personal", "finance", "health", "learning"}

    prefs = await storage.get_preferences(DEMO_USER_ID)
    assert prefs is not None
    assert prefs.ai_enabled is True

    events = await storage.list_events_in_range(
        DEMO_USER_ID, utc_now() - timedelta(days=1), utc_now() + timedelta(days=2)
    )
    assert len(events) == 3
