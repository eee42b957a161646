"""
Helpix Compatibility Scorer
Multi-factor scoring of a helper (UserProfile) against a task (TaskMatchingProfile)
"""
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional

from helpix.core.clock import to_naive_utc, utcnow
from helpix.schemas.matching import (
    MatchBreakdown, MatchResult, TaskMatchingProfile, UserProfile,
)
from helpix.services.geo import distance_km
from helpix.services.skills import compare_skills, requirements_from_names


@dataclass(frozen=True)
class MatchWeights:
    """
    Configurable weights for compatibility scoring.
    Total should equal 1.0. Skill match dominates; proximity and budget
    come next.
    """
    skill_match: float = 0.35
    proximity: float = 0.20
    budget: float = 0.10
    availability: float = 0.10
    urgency: float = 0.05
    reputation: float = 0.10
    response_time: float = 0.05
    history: float = 0.05

    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))


DEFAULT_WEIGHTS = MatchWeights()

TRUST_BONUS = {"expert": 0.2, "trusted": 0.1, "verified": 0.05}

# (factor, breakdown field) pairs, in weight order
_FACTORS = [
    ("skill_match", "skill_match_score"),
    ("proximity", "proximity_score"),
    ("budget", "budget_score"),
    ("availability", "availability_score"),
    ("urgency", "urgency_score"),
    ("reputation", "reputation_score"),
    ("response_time", "response_time_score"),
    ("history", "history_score"),
]


def score_compatibility(
    user: UserProfile,
    task: TaskMatchingProfile,
    weights: Optional[MatchWeights] = None,
    now: Optional[datetime] = None,
) -> MatchResult:
    """
    Compute the compatibility of a user with a task.

    The scorer never excludes a pair. Missing coordinates zero the proximity
    factor and an empty skill list zeroes the skill factor; the caller's
    threshold decides whether the remaining factors are enough.

    Args:
        user: Helper profile snapshot
        task: Task profile snapshot
        weights: Factor weights (defaults to DEFAULT_WEIGHTS)
        now: Evaluation time for availability and deadlines

    Returns:
        MatchResult with compatibility_score in [0, 1] and factor breakdown
    """
    weights = weights or DEFAULT_WEIGHTS
    now = to_naive_utc(now) or utcnow()

    requirements = task.skill_requirements or requirements_from_names(task.required_skills)
    skills = compare_skills(user.skills, requirements)

    distance = None
    if user.has_coordinates and task.has_coordinates:
        distance = distance_km(user.latitude, user.longitude, task.latitude, task.longitude)

    breakdown = MatchBreakdown(
        skill_match_score=skills.match_ratio,
        proximity_score=proximity_score(distance, user.preferences.max_distance_km),
        budget_score=budget_score(
            task.budget_credits,
            user.preferences.min_task_budget,
            user.preferences.max_task_budget,
        ),
        availability_score=availability_score(user, task, now),
        urgency_score=urgency_score(user, task),
        reputation_score=reputation_score(user, task),
        response_time_score=response_time_score(user.stats.response_time_minutes),
        history_score=history_score(
            user.stats.completion_rate, user.stats.total_tasks_completed
        ),
    )

    contributions = {
        factor: getattr(breakdown, field_name) * getattr(weights, factor)
        for factor, field_name in _FACTORS
    }
    total = max(0.0, min(1.0, sum(contributions.values())))

    return MatchResult(
        user_id=user.id,
        task_id=task.id,
        compatibility_score=round(total, 4),
        breakdown=breakdown,
        contributions={k: round(v, 4) for k, v in contributions.items()},
        distance_km=round(distance, 3) if distance is not None else None,
        missing_skills=skills.missing,
        reasons=match_reasons(breakdown),
        suggestions=improvement_suggestions(breakdown, skills.missing),
        created_at=now,
    )


def proximity_score(distance: Optional[float], max_distance_km: float) -> float:
    """Linear falloff to zero at the user's max distance; zero when unknown."""
    if distance is None or max_distance_km <= 0:
        return 0.0
    if distance > max_distance_km:
        return 0.0
    return 1.0 - distance / max_distance_km


def budget_score(task_budget: float, user_min: float, user_max: Optional[float]) -> float:
    """Score the task budget against the user's acceptable range."""
    user_min = user_min or 0

    if task_budget < user_min:
        return 0.2  # Too low

    if user_max is not None and task_budget > user_max:
        return 0.3  # Above the range the user asked for

    if user_max is not None:
        span = user_max - user_min
        if span <= 0:
            return 1.0
        # Peaks in the middle of the range
        ratio = (task_budget - user_min) / span
        return 0.5 + 0.5 * (1 - abs(ratio - 0.5) * 2)

    return 0.8


def _day_of_week(now: datetime) -> int:
    # Sunday = 0, like TimeSlot.day_of_week
    return (now.weekday() + 1) % 7


def availability_score(user: UserProfile, task: TaskMatchingProfile, now: datetime) -> float:
    """Availability of the user for this task at time `now` (UTC)."""
    if not user.availability.is_available:
        return 0.1

    if task.deadline is not None and task.deadline < now:
        return 0.0  # Task expired

    score = 0.5
    if user.availability.current_status == "available":
        score += 0.3

    current_day = _day_of_week(now)
    current_time = now.strftime("%H:%M")
    in_slot = any(
        slot.is_available
        and slot.day_of_week == current_day
        and slot.start_time <= current_time <= slot.end_time
        for slot in user.preferences.preferred_time_slots
    )
    if in_slot:
        score += 0.2

    return min(1.0, score)


def urgency_score(user: UserProfile, task: TaskMatchingProfile) -> float:
    """Urgent tasks favour helpers who are available right now."""
    urgency = task.urgency_level / 10
    available_now = (
        user.availability.is_available
        and user.availability.current_status == "available"
    )
    if available_now:
        return 0.4 + 0.6 * urgency
    return max(0.0, 0.7 - 0.5 * urgency)


def reputation_score(user: UserProfile, task: Optional[TaskMatchingProfile] = None) -> float:
    """Reputation normalised to [0, 1] plus a trust-level bonus."""
    score = min(1.0, user.reputation_score / 100 + TRUST_BONUS.get(user.trust_level, 0.0))

    preferred = task.preferred_helper_profile if task else None
    if preferred and user.reputation_score < preferred.min_reputation_score:
        score /= 2

    return score


def response_time_score(response_time_minutes: float) -> float:
    if response_time_minutes <= 30:
        return 1.0
    elif response_time_minutes <= 60:
        return 0.8
    elif response_time_minutes <= 120:
        return 0.6
    elif response_time_minutes <= 240:
        return 0.4
    return 0.2


def history_score(completion_rate: float, total_completed: int) -> float:
    """Completion rate (0-100) with a bonus for experienced helpers."""
    score = completion_rate / 100

    if total_completed >= 50:
        score += 0.1
    elif total_completed >= 20:
        score += 0.05
    elif total_completed >= 5:
        score += 0.02

    return max(0.0, min(1.0, score))


def match_reasons(breakdown: MatchBreakdown) -> list[str]:
    """Human-readable reasons why the pair matches."""
    reasons = []

    if breakdown.proximity_score >= 0.8:
        reasons.append("Very close to your location")
    elif breakdown.proximity_score >= 0.6:
        reasons.append("Near your area")

    if breakdown.skill_match_score >= 0.8:
        reasons.append("Your skills are a perfect fit")
    elif breakdown.skill_match_score >= 0.6:
        reasons.append("Matching skills")

    if breakdown.availability_score >= 0.8:
        reasons.append("Available right away")
    elif breakdown.availability_score >= 0.6:
        reasons.append("Available in your time slots")

    if breakdown.reputation_score >= 0.9:
        reasons.append("Excellent reputation")
    elif breakdown.reputation_score >= 0.7:
        reasons.append("Good reputation")

    if breakdown.response_time_score >= 0.8:
        reasons.append("Quick to respond")

    return reasons


def improvement_suggestions(breakdown: MatchBreakdown, missing_skills: list[str]) -> list[str]:
    """Hints telling the user how to match this kind of task better."""
    suggestions = []

    if breakdown.skill_match_score < 0.5 and missing_skills:
        suggestions.append(f"Develop your skills in: {', '.join(missing_skills)}")

    if breakdown.reputation_score < 0.6:
        suggestions.append("Complete more tasks to improve your reputation")

    if breakdown.response_time_score < 0.6:
        suggestions.append("Reply to help requests faster")

    if breakdown.availability_score < 0.5:
        suggestions.append("Update your availability")

    return suggestions
