from fastapi import APIRouter, Depends
from typing import Optional
from app.api.deps import get_current_user
from app.models.user import User
from app.schemas.user_preferences import UserPreferencesUpdate, UserPreferencesResponse
from app.services import preference_service
from app.storage.base import Storage
from app.storage.factory import get_storage

router = APIRouter()


@router.get("", response_model=Optional[UserPreferencesResponse])
async def read_preferences(
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    # null until the user saves preferences once
    return await preference_service.get_preferences(storage, current_user.id)


@router.post("", response_model=UserPreferencesResponse)
async def save_preferences(
    prefs_in: UserPreferencesUpdate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await preference_service.upsert_preferences(storage, current_user.id, prefs_in)
