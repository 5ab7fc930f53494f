from fastapi import APIRouter, Depends, status
from typing import List, Optional
from datetime import datetime
from app.api.deps import get_current_user
from app.models.user import User
from app.schemas.calendar import (
    EventCreate, EventUpdate, EventResponse,
    IntegrationUpdate, IntegrationResponse, SyncResult, AuthUrlResponse,
)
from app.services import calendar_service, calendar_sync_service
from app.storage.base import Storage
from app.storage.factory import get_storage

router = APIRouter()


@router.get("/events", response_model=List[EventResponse])
async def read_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """
    Events fully inside [start, end]. Defaults to the next 7 days.
    """
    return await calendar_service.list_events_in_range(storage, current_user.id, start, end)


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await calendar_service.create_event(storage, current_user.id, event)


@router.patch("/events/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    event_in: EventUpdate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await calendar_service.update_event(storage, event_id, event_in, current_user.id)


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    await calendar_service.delete_event(storage, event_id, current_user.id)
    return {"success": True}


@router.get("/integrations", response_model=List[IntegrationResponse])
async def read_integrations(
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await calendar_sync_service.list_integrations(storage, current_user.id)


@router.patch("/integrations/{integration_id}", response_model=IntegrationResponse)
async def update_integration(
    integration_id: int,
    update: IntegrationUpdate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await calendar_sync_service.set_active(storage, integration_id, update.is_active, current_user.id)


@router.post("/integrations/{integration_id}/sync", response_model=SyncResult)
async def sync_integration(
    integration_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """
    Import the provider's upcoming events. Already imported events are skipped.
    """
    return await calendar_sync_service.sync_integration(storage, integration_id, current_user.id)


@router.delete("/integrations/{integration_id}")
async def delete_integration(
    integration_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    await calendar_sync_service.disconnect(storage, integration_id, current_user.id)
    return {"success": True}


@router.get("/{provider}/auth-url", response_model=AuthUrlResponse)
async def get_auth_url(
    provider: str,
    current_user: User = Depends(get_current_user)
):
    return {"auth_url": calendar_sync_service.get_auth_url(provider)}


@router.get("/{provider}/callback", response_model=IntegrationResponse)
async def oauth_callback(
    provider: str,
    code: Optional[str] = None,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """
    Receives the authorization code from the provider consent screen and
    stores the resulting tokens.
    """
    return await calendar_sync_service.connect(storage, current_user.id, provider, code)
