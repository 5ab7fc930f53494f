from fastapi import APIRouter, Depends, status
from typing import List, Optional
from app.schemas.task import TaskCreate, TaskUpdate, TaskResponse
from app.services import task_service, plan_service, preference_service
from app.api.deps import get_current_user
from app.models.user import User
from app.storage.base import Storage
from app.storage.factory import get_storage

router = APIRouter()


@router.get("", response_model=List[TaskResponse])
async def read_tasks(
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await task_service.list_tasks(storage, current_user.id)


@router.get("/today", response_model=List[TaskResponse])
async def read_tasks_for_day(
    date: Optional[str] = None,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """
    Tasks due on `date` (YYYY-MM-DD) in the user's time zone, today by default.
    """
    tz_name = await preference_service.get_user_time_zone(storage, current_user.id)
    day = plan_service.parse_plan_day(date, tz_name)
    return await task_service.list_tasks_due_on(storage, current_user.id, day, tz_name)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await task_service.create_task(storage, current_user.id, task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await task_service.update_task(storage, task_id, task_in, current_user.id)


@router.post("/{task_id}/toggle", response_model=TaskResponse)
async def toggle_task(
    task_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    return await task_service.toggle_completion(storage, task_id, current_user.id)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    await task_service.delete_task(storage, task_id, current_user.id)
    return {"success": True}
