import copy
import json
import logging
import re

from app.core.config import settings
from app.core.groq_client import get_groq_client
from app.core.exceptions import ExternalServiceError
from app.models.user_preferences import DEFAULT_WORKING_HOURS
from app.schemas.ai_plan import PlanSuggestions

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5

# Returned whenever the provider is unavailable or its answer is unusable.
# Callers read insights.productivityScore etc. without checking for None.
FALLBACK_PLAN = {
    "suggestions": [
        {
            "type": "optimization",
            "title": "AI Analysis Unavailable",
            "description": "Unable to generate AI suggestions at this time. Please try again later.",
            "icon": "fas fa-exclamation-triangle",
            "color": "yellow",
        }
    ],
    "scheduleOptimization": [],
    "insights": {
        "totalFocusTime": 0,
        "taskCompletionEstimate": 0,
        "productivityScore": 0,
        "recommendations": ["AI analysis temporarily unavailable"],
    },
}

SYSTEM_PROMPT = """You are an AI productivity assistant that helps optimize daily schedules. \
Analyze the user's tasks and calendar events to provide intelligent scheduling suggestions.

Consider:
- Task priorities (high, medium, low)
- Estimated durations
- Due dates and deadlines
- Existing calendar events
- Working hours and preferences
- Energy levels throughout the day
- Context switching between different types of work

Respond with a single JSON object only."""


def fallback_plan() -> dict:
    return copy.deepcopy(FALLBACK_PLAN)


def _pref(preferences, key, default=None):
    if preferences is None:
        return default
    if isinstance(preferences, dict):
        value = preferences.get(key)
    else:
        value = getattr(preferences, key, None)
    return default if value is None else value


def build_plan_prompt(tasks, events, preferences=None) -> str:
    task_lines = "".join(
        f"\n- {t.title} (Priority: {t.priority}, Due: {t.due_date.isoformat() if t.due_date else 'No due date'}, "
        f"Estimated: {t.estimated_duration or 'Not specified'} minutes, Category: {t.category}"
        f"{', already completed' if t.completed else ''})"
        for t in tasks
    ) or "\n- (none)"
    event_lines = "".join(
        f"\n- {e.title} ({e.start_time.isoformat()} - {e.end_time.isoformat()}) at {e.location or 'No location'}"
        for e in events
    ) or "\n- (none)"

    working_hours = _pref(preferences, "working_hours", DEFAULT_WORKING_HOURS)
    time_zone = _pref(preferences, "time_zone", settings.DEFAULT_TIMEZONE)
    ai_enabled = _pref(preferences, "ai_enabled", True)

    return f"""Please analyze my schedule and provide optimization suggestions:

TASKS:{task_lines}

CALENDAR EVENTS:{event_lines}

USER PREFERENCES:
- Working Hours: {working_hours.get('start', '09:00')} - {working_hours.get('end', '17:00')}
- Time Zone: {time_zone}
- AI Enabled: {ai_enabled}

Return a JSON object with exactly these keys:
1. "suggestions": 3-5 items, each {{"type": "optimization" | "suggestion" | "time_analysis", "title", "description", "icon" (FontAwesome class), "color" (Tailwind color name)}}
2. "scheduleOptimization": time blocks for the day around the existing events, each {{"taskId" (optional), "title", "startTime" ("HH:MM"), "endTime" ("HH:MM"), "type": "task" | "meeting" | "break" | "focus", "description", "estimatedDuration" (minutes)}}
3. "insights": {{"totalFocusTime" (hours), "taskCompletionEstimate" (percent), "productivityScore" (1-100), "recommendations" (list of strings)}}

Focus on practical, actionable advice that helps maximize productivity while maintaining work-life balance."""


def _extract_json(text: str) -> dict:
    """Parse the model output, tolerating code fences and chatter around the object."""
    text = (text or "").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
        if fenced:
            text = fenced.group(1)
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("No JSON object found in AI response")
        data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_plan_response(content: str) -> dict:
    """
    Validate provider output into the stored payload shape.

    Missing sections get defaults; a structurally wrong answer raises.
    """
    plan = PlanSuggestions.model_validate(_extract_json(content))
    plan.suggestions = plan.suggestions[:MAX_SUGGESTIONS]
    return plan.model_dump(by_alias=True)


async def _ask_provider(prompt: str) -> str:
    client = get_groq_client()
    if client is None:
        raise ExternalServiceError("AI provider is not configured", detail="GROQ_API_KEY is not set")

    response = await client.chat.completions.create(
        model=settings.GROQ_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        response_format={"type": "json_object"},
        temperature=0.7,
        max_tokens=2000,
    )
    content = response.choices[0].message.content
    if not content or not content.strip():
        raise ExternalServiceError("AI provider returned an empty response")
    return content


async def generate_plan(tasks, events, preferences=None) -> dict:
    """
    Suggestions payload for one day: `suggestions`, `scheduleOptimization`
    and `insights`.

    Never raises. A missing API key, a transport error or an unusable
    answer all produce FALLBACK_PLAN.
    """
    try:
        prompt = build_plan_prompt(tasks, events, preferences)
        content = await _ask_provider(prompt)
        plan = parse_plan_response(content)
        logger.info(
            f"🤖 AI plan generated: {len(plan['suggestions'])} suggestions, "
            f"{len(plan['scheduleOptimization'])} blocks"
        )
        return plan
    except Exception as e:
        logger.error(f"❌ AI plan generation failed, using fallback: {e}")
        return fallback_plan()
