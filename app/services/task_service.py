import logging
from datetime import date

from app.core.exceptions import NotFoundError
from app.schemas.base import parse_input
from app.schemas.task import TaskCreate, TaskUpdate
from app.services import preference_service
from app.storage.base import Storage
from app.utils.timezone import day_window

logger = logging.getLogger(__name__)


async def list_tasks(storage: Storage, user_id: str):
    return await storage.list_tasks(user_id)


async def list_tasks_due_on(storage: Storage, user_id: str, day: date, tz_name: str = None):
    """
    Tasks due within the calendar day, 00:00:00.000 to 23:59:59.999 local time.

    The zone is the user's preference unless `tz_name` is given. Tasks
    without a due date are never included.
    """
    if tz_name is None:
        tz_name = await preference_service.get_user_time_zone(storage, user_id)
    start, end = day_window(day, tz_name)
    logger.info(f"🔍 [list_tasks_due_on] {day} ({tz_name}) -> UTC window {start} to {end}")
    return await storage.list_tasks_due_between(user_id, start, end)


async def get_owned_task(storage: Storage, task_id: int, user_id: str):
    """Tasks of other users are reported as missing."""
    task = await storage.get_task(task_id)
    if task is None or task.user_id != user_id:
        raise NotFoundError("Task not found")
    return task


async def create_task(storage: Storage, user_id: str, task_in):
    task = parse_input(TaskCreate, task_in)
    logger.info(f"📝 Creating task for user {user_id}")
    logger.info(f"   Title: {task.title}")
    logger.info(f"   Due Date: {task.due_date}")

    db_task = await storage.create_task(user_id, task.model_dump())
    logger.info(f"✅ Task created successfully! ID: {db_task.id}")
    return db_task


async def update_task(storage: Storage, task_id: int, task_in, user_id: str = None):
    """Merge the provided fields. Ownership is checked only when `user_id` is given."""
    task_update = parse_input(TaskUpdate, task_in)
    if user_id is not None:
        await get_owned_task(storage, task_id, user_id)

    update_data = task_update.model_dump(exclude_unset=True)
    return await storage.update_task(task_id, update_data)


async def delete_task(storage: Storage, task_id: int, user_id: str = None):
    if user_id is not None:
        await get_owned_task(storage, task_id, user_id)
    await storage.delete_task(task_id)
    logger.info(f"🗑️ Task {task_id} deleted")


async def toggle_completion(storage: Storage, task_id: int, user_id: str = None):
    if user_id is not None:
        await get_owned_task(storage, task_id, user_id)
    task = await storage.toggle_task_completion(task_id)
    logger.info(f"🔁 Task {task_id} completed={task.completed}")
    return task
