"""Integration connect / sync / disconnect with provider adapters mocked."""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from app.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.services import calendar_sync_service
from app.utils.timezone import utc_now


def _provider_event(external_id, start, minutes=60, source="google"):
    return {
        "external_id": external_id,
        "title": f"Imported {external_id}",
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "source": source,
        "is_ai_generated": False,
    }


def _fake_adapter(events=None):
    adapter = SimpleNamespace(
        get_auth_url=MagicMock(return_value="https://accounts.example.com/auth"),
        exchange_code=AsyncMock(return_value={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "token_expiry": utc_now() + timedelta(hours=1),
        }),
        refresh_tokens=AsyncMock(return_value={
            "access_token": "access-2",
            "token_expiry": utc_now() + timedelta(hours=1),
        }),
        fetch_events=AsyncMock(return_value=events or []),
    )
    return adapter


@pytest.fixture
def google():
    soon = utc_now() + timedelta(days=1)
    adapter = _fake_adapter([_provider_event("g-1", soon), _provider_event("g-2", soon + timedelta(hours=2))])
    with patch.dict(calendar_sync_service.PROVIDERS, {"google": adapter}):
        yield adapter


async def test_auth_url_for_known_provider(google):
    assert calendar_sync_service.get_auth_url("google") == "https://accounts.example.com/auth"


def test_unknown_provider_rejected():
    with pytest.raises(ValidationError):
        calendar_sync_service.get_auth_url("myspace")


async def test_connect_stores_tokens(storage, user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "auth-code")

    google.exchange_code.assert_awaited_once_with("auth-code")
    assert integration.provider == "google"
    assert integration.access_token == "access-1"
    assert integration.refresh_token == "refresh-1"
    assert integration.is_active is True
    assert [i.id for i in await calendar_sync_service.list_integrations(storage, user.id)] == [integration.id]


async def test_connect_requires_code(storage, user, google):
    with pytest.raises(ValidationError):
        await calendar_sync_service.connect(storage, user.id, "google", None)


async def test_reconnect_updates_same_row_and_keeps_refresh_token(storage, user, google):
    first = await calendar_sync_service.connect(storage, user.id, "google", "code-1")
    await calendar_sync_service.set_active(storage, first.id, False, user.id)
    google.exchange_code.return_value = {"access_token": "access-3", "refresh_token": None, "token_expiry": None}

    second = await calendar_sync_service.connect(storage, user.id, "google", "code-2")

    assert second.id == first.id
    assert second.access_token == "access-3"
    assert second.refresh_token == "refresh-1"
    assert second.is_active is True


async def test_sync_imports_then_skips_duplicates(storage, user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    result = await calendar_sync_service.sync_integration(storage, integration.id, user.id)
    assert result == {"success": True, "imported": 2, "skipped": 0}

    again = await calendar_sync_service.sync_integration(storage, integration.id, user.id)
    assert again == {"success": True, "imported": 0, "skipped": 2}

    events = await storage.list_events_in_range(user.id, utc_now(), utc_now() + timedelta(days=30))
    assert sorted(e.external_id for e in events) == ["g-1", "g-2"]
    assert {e.source for e in events} == {"google"}
    assert (await storage.get_integration(integration.id)).last_sync is not None


async def test_sync_window_is_next_thirty_days(storage, user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    await calendar_sync_service.sync_integration(storage, integration.id, user.id)

    _, start, end = google.fetch_events.call_args.args
    assert end - start == timedelta(days=30)


async def test_sync_skips_malformed_events(storage, user, google):
    soon = utc_now() + timedelta(days=1)
    google.fetch_events.return_value = [_provider_event("bad", soon, minutes=-10), _provider_event("ok", soon)]
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    result = await calendar_sync_service.sync_integration(storage, integration.id, user.id)

    assert result == {"success": True, "imported": 1, "skipped": 1}


async def test_sync_refreshes_expired_token(storage, user, google):
    google.exchange_code.return_value = {
        "access_token": "stale",
        "refresh_token": "refresh-1",
        "token_expiry": utc_now() - timedelta(minutes=5),
    }
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    await calendar_sync_service.sync_integration(storage, integration.id, user.id)

    google.refresh_tokens.assert_awaited_once()
    used = google.fetch_events.call_args.args[0]
    assert used.access_token == "access-2"
    assert used.refresh_token == "refresh-1"


async def test_inactive_integration_cannot_sync(storage, user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")
    await calendar_sync_service.set_active(storage, integration.id, False, user.id)

    with pytest.raises(ValidationError):
        await calendar_sync_service.sync_integration(storage, integration.id, user.id)
    google.fetch_events.assert_not_awaited()


async def test_provider_failure_propagates(storage, user, google):
    google.fetch_events.side_effect = ExternalServiceError("Failed to fetch Google Calendar events")
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    with pytest.raises(ExternalServiceError):
        await calendar_sync_service.sync_integration(storage, integration.id, user.id)
    assert (await storage.get_integration(integration.id)).last_sync is None


async def test_other_users_integration_is_not_found(storage, user, other_user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")

    with pytest.raises(NotFoundError):
        await calendar_sync_service.sync_integration(storage, integration.id, other_user.id)
    with pytest.raises(NotFoundError):
        await calendar_sync_service.set_active(storage, integration.id, False, other_user.id)
    with pytest.raises(NotFoundError):
        await calendar_sync_service.disconnect(storage, integration.id, other_user.id)


async def test_disconnect_removes_imported_events_only(storage, user, google):
    integration = await calendar_sync_service.connect(storage, user.id, "google", "code")
    await calendar_sync_service.sync_integration(storage, integration.id, user.id)
    soon = utc_now() + timedelta(days=2)
    await storage.create_event(user.id, {"title": "Dentist", "start_time": soon,
                                         "end_time": soon + timedelta(hours=1), "source": "manual"})

    await calendar_sync_service.disconnect(storage, integration.id, user.id)

    events = await storage.list_events_in_range(user.id, utc_now(), utc_now() + timedelta(days=30))
    assert [e.title for e in events] == ["Dentist"]
    assert await calendar_sync_service.list_integrations(storage, user.id) == []
