import logging
from datetime import datetime, time, timedelta

from app.core.exceptions import DuplicateError
from app.storage.base import Storage
from app.utils.timezone import utc_now, resolve_timezone

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user"
DEMO_EMAIL = "demo@tasksync.ai"


async def seed_demo_data(storage: Storage):
    """Populate a fresh store with a demo user, a handful of tasks and today's events."""
    try:
        user = await storage.create_user({
            "id": DEMO_USER_ID,
            "email": DEMO_EMAIL,
            "first_name": "Demo",
            "last_name": "User",
        })
    except DuplicateError:
        logger.info("Demo data already present, skipping seed")
        return await storage.get_user(DEMO_USER_ID)

    now = utc_now()
    tz = resolve_timezone(None)
    today = now.astimezone(tz).date()

    def at(hour, minute=0):
        return tz.localize(datetime.combine(today, time(hour, minute)))

    tasks = [
        {"title": "Complete quarterly report", "description": "Analyze Q4 performance metrics and prepare presentation",
         "category": "work", "priority": "high", "due_date": now + timedelta(days=1), "estimated_duration": 180},
        {"title": "Schedule dentist appointment", "description": "Call the office for a routine checkup",
         "category": "health", "priority": "medium", "due_date": now + timedelta(days=3), "estimated_duration": 15},
        {"title": "Review investment portfolio", "description": "Check performance and rebalance if needed",
         "category": "finance", "priority": "medium", "due_date": now + timedelta(days=7), "estimated_duration": 60},
        {"title": "Grocery shopping", "description": "Weekly grocery run",
         "category": "personal", "priority": "low", "due_date": at(18), "estimated_duration": 45},
        {"title": "Learn React hooks", "description": "Complete online course on advanced React patterns",
         "category": "learning", "priority": "medium", "due_date": at(20), "estimated_duration": 120},
    ]
    for fields in tasks:
        await storage.create_task(user.id, fields)

    events = [
        {"title": "Team Standup", "description": "Daily team sync meeting", "start_time": at(9),
         "end_time": at(9, 30), "location": "Conference Room A", "source": "google", "external_id": "google-123"},
        {"title": "Focus Time: Quarterly Report", "description": "AI-suggested dedicated time for deep work",
         "start_time": at(10), "end_time": at(13), "source": "manual", "is_ai_generated": True},
        {"title": "Client Meeting", "description": "Project review", "start_time": at(14),
         "end_time": at(15, 30), "location": "Video Call", "source": "outlook", "external_id": "outlook-456"},
    ]
    for fields in events:
        await storage.create_event(user.id, fields)

    await storage.upsert_preferences(user.id, {})
    logger.info(f"🌱 Seeded demo data for {DEMO_EMAIL}")
    return user
