from pydantic import ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime

from app.schemas.base import CamelModel

SUGGESTION_TYPES = ("optimization", "suggestion", "time_analysis")
BLOCK_TYPES = ("task", "meeting", "break", "focus")


class PlanModel(CamelModel):
    # Provider output is a loosely typed contract, unknown keys are kept
    model_config = ConfigDict(extra="allow")

class Suggestion(PlanModel):
    type: str = "suggestion"
    title: str
    description: str = ""
    icon: str = "fas fa-lightbulb"
    color: str = "blue"

    @field_validator("type", mode="before")
    def normalize_type(cls, v):
        v = str(v or "").strip().lower().replace("-", "_")
        return v if v in SUGGESTION_TYPES else "suggestion"

class ScheduleBlock(PlanModel):
    task_id: Optional[int] = None
    title: str
    start_time: str
    end_time: str
    type: str = "task"
    description: str = ""
    estimated_duration: int = 0

    @field_validator("type", mode="before")
    def normalize_type(cls, v):
        v = str(v or "").strip().lower()
        return v if v in BLOCK_TYPES else "task"

    @field_validator("estimated_duration", mode="before")
    def whole_minutes(cls, v):
        return int(round(float(v or 0)))

class Insights(PlanModel):
    total_focus_time: float = 0
    task_completion_estimate: float = 0
    productivity_score: float = 75
    recommendations: List[str] = Field(default_factory=lambda: ["Consider time blocking for focused work periods"])

    @field_validator("productivity_score", "task_completion_estimate")
    def clamp_percentage(cls, v):
        return max(0, min(100, v))

class PlanSuggestions(PlanModel):
    suggestions: List[Suggestion] = Field(default_factory=lambda: [Suggestion(
        type="optimization",
        title="Schedule Analysis Complete",
        description="I've analyzed your tasks and calendar to provide optimization suggestions.",
    )])
    schedule_optimization: List[ScheduleBlock] = Field(default_factory=list)
    insights: Insights = Field(default_factory=Insights)

class GeneratePlanRequest(CamelModel):
    date: Optional[str] = None # ISO date or datetime; defaults to today

class AiPlanResponse(CamelModel):
    id: int
    user_id: str
    plan_date: datetime
    suggestions: dict
    applied: bool
    created_at: datetime
