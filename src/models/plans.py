"""
Structured plan models.

A plan turns one recommendation into a week-by-week schedule of focus
areas, activities and goals. Plans belong to the user who requested them.
"""

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from src.models.insights import coerce_str_list


DEFAULT_PLAN_TITLE = "Structured Plan"


class PlanWeek(BaseModel):
    """One week of a structured plan."""

    week: int = Field(..., ge=1)
    focus: str = ""
    activities: list[str] = Field(default_factory=list)
    goals: str = ""

    @field_validator("activities", mode="before")
    @classmethod
    def _activities_as_list(cls, value):
        return coerce_str_list(value)

    @field_validator("goals", mode="before")
    @classmethod
    def _goals_as_text(cls, value):
        # Some completions list the goals instead of describing them
        if isinstance(value, (list, tuple)):
            return "; ".join(coerce_str_list(value))
        return value if value is not None else ""


class StructuredPlan(BaseModel):
    """A week-by-week implementation plan for a recommendation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    title: str = DEFAULT_PLAN_TITLE
    recommendation_title: str
    weeks: list[PlanWeek] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
