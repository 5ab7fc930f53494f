"""
Calendar integrations: OAuth connect, sync and disconnect.

Provider adapters expose the same module-level functions
(get_auth_url, exchange_code, refresh_tokens, fetch_events) and are looked
up by provider name.
"""

import logging
from datetime import timedelta

from app.core.config import settings
from app.core.exceptions import DuplicateError, NotFoundError, ValidationError
from app.services import google_calendar_service, outlook_calendar_service
from app.storage.base import Storage
from app.utils.timezone import utc_now

logger = logging.getLogger(__name__)

PROVIDERS = {
    google_calendar_service.PROVIDER: google_calendar_service,
    outlook_calendar_service.PROVIDER: outlook_calendar_service,
}


def get_provider(name: str):
    adapter = PROVIDERS.get(name)
    if adapter is None:
        raise ValidationError(f"Unsupported calendar provider '{name}'")
    return adapter


def get_auth_url(provider: str) -> str:
    return get_provider(provider).get_auth_url()


async def list_integrations(storage: Storage, user_id: str):
    return await storage.list_integrations(user_id)


async def get_owned_integration(storage: Storage, integration_id: int, user_id: str):
    integration = await storage.get_integration(integration_id)
    if integration is None or integration.user_id != user_id:
        raise NotFoundError("Integration not found")
    return integration


async def connect(storage: Storage, user_id: str, provider: str, code: str):
    """Finish the OAuth handshake and persist the tokens for (user, provider)."""
    if not code:
        raise ValidationError("Authorization code not provided")
    tokens = await get_provider(provider).exchange_code(code)
    integration = await storage.save_integration(user_id, provider, tokens)
    logger.info(f"🔗 {provider} calendar connected for user {user_id} (integration {integration.id})")
    return integration


async def set_active(storage: Storage, integration_id: int, is_active: bool, user_id: str):
    await get_owned_integration(storage, integration_id, user_id)
    return await storage.set_integration_active(integration_id, is_active)


async def _fresh_integration(storage: Storage, integration, adapter):
    """Refresh the access token first when it has expired and we can."""
    expiry = integration.token_expiry
    if expiry is None or expiry > utc_now() or not integration.refresh_token:
        return integration
    logger.info(f"🔄 Refreshing {integration.provider} token for integration {integration.id}")
    tokens = await adapter.refresh_tokens(integration)
    return await storage.save_integration(integration.user_id, integration.provider, tokens)


async def sync_integration(storage: Storage, integration_id: int, user_id: str) -> dict:
    """
    Import the provider's events for the next CALENDAR_SYNC_DAYS days.

    Events already imported (same source and external id) are skipped.
    Provider failures propagate as ExternalServiceError.
    """
    integration = await get_owned_integration(storage, integration_id, user_id)
    if not integration.is_active:
        raise ValidationError("Integration is not active")

    adapter = get_provider(integration.provider)
    integration = await _fresh_integration(storage, integration, adapter)

    start = utc_now()
    end = start + timedelta(days=settings.CALENDAR_SYNC_DAYS)
    events = await adapter.fetch_events(integration, start, end)

    imported = skipped = 0
    for fields in events:
        try:
            await storage.create_event(user_id, fields)
            imported += 1
        except DuplicateError:
            skipped += 1
            logger.warning(f"⚠️ Event {fields.get('external_id')} already imported, skipping")
        except ValidationError as e:
            skipped += 1
            logger.warning(f"⚠️ Skipping malformed {integration.provider} event {fields.get('external_id')}: {e.message}")

    await storage.record_sync(integration.id, utc_now())
    logger.info(f"✅ Synced {integration.provider} for user {user_id}: {imported} imported, {skipped} skipped")
    return {"success": True, "imported": imported, "skipped": skipped}


async def disconnect(storage: Storage, integration_id: int, user_id: str):
    """Remove the integration together with every event imported through it."""
    integration = await get_owned_integration(storage, integration_id, user_id)
    removed = await storage.delete_events_by_source(user_id, integration.provider)
    await storage.delete_integration(integration_id)
    logger.info(f"🔌 {integration.provider} disconnected for user {user_id}, {removed} events removed")
