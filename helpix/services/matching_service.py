"""
Helpix Matching Service
Orchestrates loading, scoring, persisting and notifying for one user or task
"""
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from helpix.core.clock import to_naive_utc, utcnow
from helpix.core.config import settings as app_settings
from helpix.schemas.matching import (
    MatchingDashboard, MatchingHistoryEntry, MatchingSettings, MatchingStats,
    MatchResult, ProximityAlert, Recommendation, SkillGap, UserProfile, UserSkill,
)
from helpix.services.compatibility import score_compatibility
from helpix.services.matcher import best_tasks_for_user, best_users_for_task
from helpix.services.notifications import NotificationDispatcher
from helpix.services.profiles import to_matching_profile
from helpix.services.proximity import generate_proximity_alerts
from helpix.services.recommendations import generate_recommendations
from helpix.services.repository import MatchingRepository
from helpix.services.skill_gaps import analyze_skill_gaps

logger = structlog.get_logger("helpix.matching")

SUCCESSFUL_ACTIONS = ("accepted", "completed")
RESPONSE_ACTIONS = ("applied", "accepted", "rejected", "completed")


class MatchingService:
    """
    Matching operations for the API and the scheduler.

    One instance per database session. Reads are snapshots; every write is
    an upsert keyed on deterministic ids, so running a refresh twice for the
    same user is harmless.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = MatchingRepository(db)
        self.notifications = NotificationDispatcher(self.repository)

    # ------------------------------------------------------------------
    # Profile and settings
    # ------------------------------------------------------------------

    async def load_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.repository.load_user_profile(user_id)

    async def update_user_profile(
        self,
        user_id: str,
        fields: dict,
        skills: Optional[list[UserSkill]] = None,
    ) -> Optional[UserProfile]:
        """Update profile fields (and optionally replace skills); None if unknown."""
        if not await self.repository.update_user(user_id, fields, skills):
            return None
        logger.info("profile_updated", user_id=user_id, fields=sorted(fields), skills_replaced=skills is not None)
        return await self.repository.load_user_profile(user_id)

    async def get_settings(self, user_id: str) -> MatchingSettings:
        return await self.repository.load_matching_settings(user_id)

    async def update_settings(self, user_id: str, changes: dict) -> MatchingSettings:
        """
        Merge a partial update over the current settings and save it.

        A new max distance is copied into the profile preferences, which is
        the radius scoring and proximity alerts read.
        """
        current = await self.repository.load_matching_settings(user_id)
        merged = MatchingSettings(**{**current.model_dump(), **changes, "user_id": user_id})
        await self.repository.save_matching_settings(merged)

        if "max_distance_km" in changes:
            user = await self.repository.load_user_profile(user_id)
            if user is not None:
                preferences = user.preferences.model_copy(update={"max_distance_km": merged.max_distance_km})
                await self.repository.update_user(user_id, {"preferences": preferences.model_dump(mode="json")})

        logger.info("settings_updated", user_id=user_id, fields=sorted(changes))
        return merged

    async def toggle_auto_matching(self, user_id: str, enabled: bool, scheduler=None) -> MatchingSettings:
        """
        Switch background matching on or off for a user.
        With a running scheduler, enabling also queues an immediate refresh.
        """
        updated = await self.update_settings(user_id, {"auto_matching_enabled": enabled})
        if enabled and scheduler is not None:
            await scheduler.enqueue_user(user_id)
        logger.info("auto_matching_toggled", user_id=user_id, enabled=enabled)
        return updated

    # ------------------------------------------------------------------
    # Recomputation
    # ------------------------------------------------------------------

    async def refresh_recommendations(self, user_id: str, now: Optional[datetime] = None) -> list[Recommendation]:
        """
        Regenerate and persist a user's recommendations.

        New high-priority recommendations trigger a notification.

        Returns:
            The generated recommendations, best first (empty for unknown users)
        """
        log = logger.bind(user_id=user_id)
        now = to_naive_utc(now) or utcnow()

        user = await self.repository.load_user_profile(user_id)
        if user is None:
            log.warning("refresh_unknown_user", kind="recommendations")
            return []

        user_settings = await self.repository.load_matching_settings(user_id)
        tasks = await self.repository.load_available_tasks(app_settings.TASK_POOL_LIMIT)

        recommendations = generate_recommendations(user, tasks, settings=user_settings, now=now)
        created = set(await self.repository.upsert_recommendations(recommendations))
        await self.notifications.notify_recommendations(
            user, [r for r in recommendations if r.id in created], now=now
        )

        log.info(
            "recommendations_refreshed",
            pool=len(tasks),
            generated=len(recommendations),
            new=len(created),
        )
        return recommendations

    async def refresh_proximity_alerts(self, user_id: str, now: Optional[datetime] = None) -> list[ProximityAlert]:
        """Regenerate and persist alerts for tasks within the user's radius."""
        log = logger.bind(user_id=user_id)
        now = to_naive_utc(now) or utcnow()

        user = await self.repository.load_user_profile(user_id)
        if user is None:
            log.warning("refresh_unknown_user", kind="proximity")
            return []
        if not user.has_coordinates:
            log.info("proximity_skipped", reason="no_coordinates")
            return []

        tasks = await self.repository.load_available_tasks(app_settings.TASK_POOL_LIMIT)
        alerts = generate_proximity_alerts(user, tasks, now=now)
        created = set(await self.repository.upsert_proximity_alerts(alerts))
        await self.notifications.notify_proximity_alerts(
            user, [a for a in alerts if a.id in created], now=now
        )

        log.info("proximity_alerts_refreshed", pool=len(tasks), generated=len(alerts), new=len(created))
        return alerts

    # ------------------------------------------------------------------
    # Matching queries
    # ------------------------------------------------------------------

    async def find_best_tasks_for_user(self, user_id: str, limit: int = 20) -> Optional[list[MatchResult]]:
        user = await self.repository.load_user_profile(user_id)
        if user is None:
            return None
        tasks = await self.repository.load_available_tasks(app_settings.TASK_POOL_LIMIT)
        return best_tasks_for_user(user, tasks, limit=limit)

    async def find_best_matches_for_task(self, task_id: int, limit: int = 10) -> Optional[list[MatchResult]]:
        task = await self.repository.load_task(task_id)
        if task is None:
            return None
        users = await self.repository.load_available_users()
        return best_users_for_task(task, users, limit=limit)

    async def calculate_compatibility(self, user_id: str, task_id: int) -> Optional[MatchResult]:
        """Score one pair and record that the user looked at the task."""
        user = await self.repository.load_user_profile(user_id)
        task = await self.repository.load_task(task_id)
        if user is None or task is None:
            return None

        result = score_compatibility(user, to_matching_profile(task))
        await self.repository.add_history(user_id, task_id, "viewed", result.compatibility_score)
        return result

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    async def accept_recommendation(self, user_id: str, recommendation_id: str) -> Optional[Recommendation]:
        rec = await self.repository.update_recommendation(
            recommendation_id, user_id, is_accepted=True, is_dismissed=False
        )
        if rec is not None:
            await self.repository.add_history(user_id, rec.task_id, "accepted", rec.score)
            logger.info("recommendation_accepted", user_id=user_id, recommendation_id=recommendation_id)
        return rec

    async def dismiss_recommendation(self, user_id: str, recommendation_id: str) -> Optional[Recommendation]:
        rec = await self.repository.update_recommendation(
            recommendation_id, user_id, is_dismissed=True, is_accepted=False
        )
        if rec is not None:
            await self.repository.add_history(user_id, rec.task_id, "rejected", rec.score)
            logger.info("recommendation_dismissed", user_id=user_id, recommendation_id=recommendation_id)
        return rec

    async def mark_recommendation_viewed(self, user_id: str, recommendation_id: str) -> Optional[Recommendation]:
        return await self.repository.update_recommendation(recommendation_id, user_id, is_viewed=True)

    async def mark_alert_viewed(self, user_id: str, alert_id: str) -> Optional[ProximityAlert]:
        return await self.repository.update_proximity_alert(alert_id, user_id, is_viewed=True)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_recommendations(self, user_id: str, now: Optional[datetime] = None) -> list[Recommendation]:
        return await self.repository.list_recommendations(user_id, now=now, limit=20)

    async def list_proximity_alerts(self, user_id: str) -> list[ProximityAlert]:
        return await self.repository.list_proximity_alerts(user_id, limit=10)

    async def recent_matches(self, user_id: str) -> list[MatchingHistoryEntry]:
        return await self.repository.recent_history(user_id, limit=10)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def initialize(self, user_id: str, now: Optional[datetime] = None) -> Optional[MatchingDashboard]:
        """
        Load everything the matching dashboard shows for a user.

        Args:
            user_id: The helper
            now: Reference time for recommendation expiry

        Returns:
            MatchingDashboard, or None for an unknown user
        """
        user = await self.repository.load_user_profile(user_id)
        if user is None:
            return None

        user_settings = await self.repository.load_matching_settings(user_id)
        recommendations = await self.list_recommendations(user_id, now=now)
        alerts = await self.list_proximity_alerts(user_id)
        recent = await self.recent_matches(user_id)
        history = await self.repository.history_counts(user_id)
        tasks = await self.repository.load_available_tasks(app_settings.TASK_POOL_LIMIT)
        gaps = analyze_skill_gaps(user, tasks)

        return MatchingDashboard(
            user_profile=user,
            recent_matches=recent,
            pending_recommendations=recommendations,
            proximity_alerts=alerts,
            matching_stats=matching_stats(user, user_settings, history, alerts),
            skill_gaps=gaps,
            improvement_suggestions=dashboard_suggestions(user, gaps),
        )


def matching_stats(
    user: UserProfile,
    user_settings: MatchingSettings,
    history: dict,
    alerts: list[ProximityAlert],
) -> MatchingStats:
    """Aggregate per-action history counts into dashboard statistics."""
    total = sum(entry["count"] for entry in history.values())
    successful = sum(history.get(a, {}).get("count", 0) for a in SUCCESSFUL_ACTIONS)
    responded = sum(history.get(a, {}).get("count", 0) for a in RESPONSE_ACTIONS)

    average = 0.0
    if total:
        average = sum(e["count"] * e["avg_score"] for e in history.values()) / total

    top_skills = []
    for skill in user.skills:
        if skill.skill_name not in top_skills:
            top_skills.append(skill.skill_name)

    return MatchingStats(
        total_matches=total,
        successful_matches=successful,
        average_compatibility=round(average * 100, 1),
        response_rate=round(responded / total * 100, 1) if total else 0,
        completion_rate=user.stats.completion_rate,
        top_skills=top_skills[:5],
        preferred_categories=user_settings.preferred_categories or user.preferences.preferred_categories,
        average_distance=round(sum(a.distance_km for a in alerts) / len(alerts), 2) if alerts else 0,
    )


def dashboard_suggestions(user: UserProfile, gaps: list[SkillGap]) -> list[str]:
    suggestions = []
    if not user.has_coordinates:
        suggestions.append("Add your location to get alerts for nearby tasks")
    if not user.skills:
        suggestions.append("Add your skills to receive better recommendations")
    for gap in gaps:
        if gap.demand_level == "high":
            suggestions.append(f"Learn {gap.skill_name}: {gap.tasks_requiring} open tasks need it")
    return suggestions
