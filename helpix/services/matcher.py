"""
Helpix Match Finder
Ranks candidates for a subject, in both directions:
a helper against tasks, or a task against helpers
"""
from datetime import datetime
from typing import Iterable, Optional, Sequence, Union

from helpix.core.clock import to_naive_utc, utcnow
from helpix.schemas.matching import MatchResult, TaskMatchingProfile, TaskRecord, UserProfile
from helpix.services.compatibility import MatchWeights, score_compatibility
from helpix.services.profiles import to_matching_profile

# Minimum scores used by the "best for" helpers
MIN_SCORE_FOR_USER = 0.4
MIN_SCORE_FOR_TASK = 0.3

Subject = Union[UserProfile, TaskMatchingProfile, TaskRecord]


def _rank(results: list[tuple[MatchResult, object]], limit: int) -> list[MatchResult]:
    # Highest score first, then candidate id ascending
    results.sort(key=lambda pair: (-pair[0].compatibility_score, pair[1]))
    return [match for match, _ in results[:max(0, limit)]]


def find_best_matches(
    subject: Subject,
    candidates: Sequence,
    limit: int = 10,
    weights: Optional[MatchWeights] = None,
    now: Optional[datetime] = None,
) -> list[MatchResult]:
    """
    Score every candidate against the subject and return the top `limit`.

    A UserProfile subject is matched against tasks; a task subject against
    UserProfiles. No candidate is filtered out, so the result always holds
    min(limit, len(candidates)) entries.

    Args:
        subject: The helper or task to find matches for
        candidates: Profiles of the opposite type
        limit: Maximum number of results
        weights: Optional scoring weights
        now: Evaluation time shared by every score in the run

    Returns:
        MatchResults sorted by compatibility_score descending
    """
    now = to_naive_utc(now) or utcnow()

    if isinstance(subject, UserProfile):
        scored = []
        for task in candidates:
            profile = to_matching_profile(task)
            scored.append((score_compatibility(subject, profile, weights, now), profile.id))
    else:
        task = to_matching_profile(subject)
        scored = [
            (score_compatibility(user, task, weights, now), user.id)
            for user in candidates
        ]

    return _rank(scored, limit)


def best_tasks_for_user(
    user: UserProfile,
    tasks: Iterable,
    limit: int = 20,
    min_score: float = MIN_SCORE_FOR_USER,
    weights: Optional[MatchWeights] = None,
    now: Optional[datetime] = None,
) -> list[MatchResult]:
    """Best tasks for a helper, excluding the helper's own tasks."""
    pool = [to_matching_profile(t) for t in tasks]
    pool = [t for t in pool if t.user_id != user.id]
    matches = find_best_matches(user, pool, len(pool), weights, now)
    return [m for m in matches if m.compatibility_score >= min_score][:max(0, limit)]


def best_users_for_task(
    task: Union[TaskMatchingProfile, TaskRecord],
    users: Iterable[UserProfile],
    limit: int = 10,
    min_score: float = MIN_SCORE_FOR_TASK,
    weights: Optional[MatchWeights] = None,
    now: Optional[datetime] = None,
) -> list[MatchResult]:
    """Best helpers for a task, excluding the task owner."""
    task = to_matching_profile(task)
    pool = [u for u in users if u.id != task.user_id]
    matches = find_best_matches(task, pool, len(pool), weights, now)
    return [m for m in matches if m.compatibility_score >= min_score][:max(0, limit)]
