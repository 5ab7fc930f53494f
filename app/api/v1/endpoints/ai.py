from fastapi import APIRouter, Depends
from typing import Optional
from app.api.deps import get_current_user
from app.models.user import User
from app.schemas.ai_plan import GeneratePlanRequest, AiPlanResponse
from app.services import plan_service, preference_service
from app.storage.base import Storage
from app.storage.factory import get_storage

router = APIRouter()


@router.post("/generate-plan", response_model=AiPlanResponse)
async def generate_plan(
    request: Optional[GeneratePlanRequest] = None,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """
    Generate and store a plan for the requested day (today by default).
    Falls back to a static plan when the AI provider is unavailable.
    """
    tz_name = await preference_service.get_user_time_zone(storage, current_user.id)
    day = plan_service.parse_plan_day(request.date if request else None, tz_name)
    return await plan_service.generate_plan_for_day(storage, current_user.id, day)


@router.get("/plan/{date}", response_model=Optional[AiPlanResponse])
async def read_plan(
    date: str,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    tz_name = await preference_service.get_user_time_zone(storage, current_user.id)
    day = plan_service.parse_plan_day(date, tz_name)
    return await plan_service.get_latest_plan(storage, current_user.id, day)


@router.post("/plans/{plan_id}/apply", response_model=AiPlanResponse)
async def apply_plan(
    plan_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await plan_service.mark_plan_applied(storage, plan_id, current_user.id)
