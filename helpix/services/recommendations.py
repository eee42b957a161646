"""
Helpix Recommendation Generator
Turns the best task matches for a helper into expiring recommendations
"""
from datetime import datetime, timedelta
from typing import Iterable, Optional

from helpix.core.clock import to_naive_utc, utcnow
from helpix.core.config import settings as app_settings
from helpix.schemas.matching import (
    MatchingSettings, MatchResult, Recommendation, UserProfile,
)
from helpix.services.compatibility import MatchWeights
from helpix.services.matcher import find_best_matches
from helpix.services.profiles import (
    MATCHABLE_STATUSES, default_matching_settings, to_matching_profile,
)


def recommendation_id(user_id: str, task_id: int) -> str:
    """Stable id so re-running the generator upserts instead of duplicating."""
    return f"rec_{user_id}_{task_id}"


def generate_recommendations(
    user: UserProfile,
    task_pool: Iterable,
    max_count: Optional[int] = None,
    settings: Optional[MatchingSettings] = None,
    weights: Optional[MatchWeights] = None,
    now: Optional[datetime] = None,
    ttl: Optional[timedelta] = None,
) -> list[Recommendation]:
    """
    Build recommendations for a helper from a pool of tasks.

    Only open or in-progress tasks that the helper does not own and whose
    category is not blacklisted are scored. Matches below the helper's
    minimum compatibility are dropped and the rest are capped at
    min(max_count, settings.max_daily_recommendations).

    Args:
        user: Helper profile snapshot
        task_pool: TaskRecords or TaskMatchingProfiles
        max_count: Caller cap on the number of recommendations
        settings: Helper's matching settings (defaults when None)
        weights: Optional scoring weights
        now: Generation time; also stamped on every record
        ttl: Freshness window (RECOMMENDATION_TTL_HOURS by default)

    Returns:
        Recommendations sorted by score descending
    """
    settings = settings or default_matching_settings(user.id)
    now = to_naive_utc(now) or utcnow()
    ttl = ttl if ttl is not None else timedelta(hours=app_settings.RECOMMENDATION_TTL_HOURS)

    cap = settings.max_daily_recommendations
    if max_count is not None:
        cap = min(cap, max_count)
    if cap <= 0:
        return []

    blacklist = {c.lower() for c in settings.blacklisted_categories}
    candidates = [
        task for task in (to_matching_profile(t) for t in task_pool)
        if task.status in MATCHABLE_STATUSES
        and task.user_id != user.id
        and task.category.lower() not in blacklist
    ]
    if not candidates:
        return []

    matches = find_best_matches(user, candidates, len(candidates), weights, now)
    eligible = [m for m in matches if m.compatibility_score >= settings.min_compatibility_score]

    expires_at = now + ttl
    return [
        Recommendation(
            id=recommendation_id(user.id, match.task_id),
            user_id=user.id,
            task_id=match.task_id,
            type=recommendation_type(match),
            score=match.compatibility_score,
            breakdown=match.breakdown,
            reason=recommendation_reason(match),
            priority=recommendation_priority(match),
            created_at=now,
            expires_at=expires_at,
        )
        for match in eligible[:cap]
    ]


def recommendation_type(match: MatchResult) -> str:
    breakdown = match.breakdown
    if breakdown.proximity_score >= 0.8:
        return "proximity"
    if breakdown.skill_match_score >= 0.8:
        return "skill_match"
    if breakdown.urgency_score >= 0.8:
        return "urgency"
    if breakdown.history_score >= 0.7 or breakdown.reputation_score >= 0.9:
        return "history"
    return "budget"


def recommendation_reason(match: MatchResult) -> str:
    breakdown = match.breakdown
    if breakdown.proximity_score >= 0.8:
        return "A great task right around the corner!"
    if breakdown.skill_match_score >= 0.8:
        return "Your skills are a perfect fit for this task"
    if breakdown.urgency_score >= 0.8:
        return "Someone nearby needs help urgently"
    if breakdown.history_score >= 0.7:
        return "Based on your successful help history"
    if breakdown.budget_score >= 0.8:
        return "An interesting opportunity within your budget"
    return "Personalised recommendation for you"


def recommendation_priority(match: MatchResult) -> str:
    if match.compatibility_score >= 0.8:
        return "high"
    if match.compatibility_score >= 0.6:
        return "medium"
    return "low"
