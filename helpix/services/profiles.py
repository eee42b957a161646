"""
Helpix Profile Builders
Default construction of optional profile blocks and task projections

Defaults are applied once, when a profile or settings row is loaded, so the
scoring code never has to deal with missing blocks.
"""
from typing import Optional, Union

from helpix.core.config import settings
from helpix.schemas.matching import (
    MatchingSettings, TaskMatchingProfile, TaskRecord, UserAvailability,
    UserPreferences, UserStats,
)
from helpix.services.skills import requirements_from_names

URGENCY_BY_PRIORITY = {
    "urgent": 9,
    "high": 7,
    "medium": 5,
    "low": 3,
}

MATCHABLE_STATUSES = ("open", "in_progress")


def default_preferences(**overrides) -> UserPreferences:
    data = {"max_distance_km": settings.DEFAULT_MAX_DISTANCE_KM}
    data.update(overrides)
    return UserPreferences(**data)


def default_availability(**overrides) -> UserAvailability:
    return UserAvailability(**overrides)


def default_stats(**overrides) -> UserStats:
    return UserStats(**overrides)


def default_matching_settings(user_id: str) -> MatchingSettings:
    """Settings used until the user saves their own."""
    return MatchingSettings(
        user_id=user_id,
        auto_matching_enabled=True,
        max_daily_recommendations=settings.DEFAULT_MAX_DAILY_RECOMMENDATIONS,
        min_compatibility_score=settings.DEFAULT_MIN_COMPATIBILITY,
        max_distance_km=settings.DEFAULT_MAX_DISTANCE_KM,
    )


def merge_preferences(raw: Optional[dict]) -> UserPreferences:
    """Stored preference JSON over the defaults; unknown keys are ignored."""
    base = default_preferences().model_dump()
    base.update({k: v for k, v in (raw or {}).items() if k in base and v is not None})
    return UserPreferences(**base)


def merge_availability(raw: Optional[dict]) -> UserAvailability:
    base = default_availability().model_dump()
    base.update({k: v for k, v in (raw or {}).items() if k in base and v is not None})
    return UserAvailability(**base)


def urgency_from_priority(priority: Optional[str]) -> int:
    return URGENCY_BY_PRIORITY.get(priority or "medium", 5)


def to_matching_profile(task: Union[TaskRecord, TaskMatchingProfile]) -> TaskMatchingProfile:
    """Project a stored task onto the matching profile the scorer reads."""
    if isinstance(task, TaskMatchingProfile):
        return task

    return TaskMatchingProfile(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        category=task.category or "other",
        status=task.status,
        priority=task.priority or "medium",
        required_skills=list(task.required_skills or []),
        skill_requirements=requirements_from_names(task.required_skills or []),
        budget_credits=task.budget_credits or 0,
        estimated_duration=task.estimated_duration or 60,
        deadline=task.deadline,
        location=task.location,
        latitude=task.latitude,
        longitude=task.longitude,
        created_at=task.created_at,
        complexity=task.complexity or "moderate",
        urgency_level=urgency_from_priority(task.priority),
    )
