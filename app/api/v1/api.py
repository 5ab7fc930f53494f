from fastapi import APIRouter
from app.api.v1.endpoints import auth, tasks, calendar, ai, preferences

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])
