"""
Helpix Matching Repository
Data store and persistence sink for the matching engine

Reads users and tasks as immutable snapshots and upserts the engine's
outputs. Database failures surface as DataStoreUnavailable so callers can
retry.
"""
import functools
from datetime import datetime
from typing import Iterable, Optional

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpix.core.clock import to_naive_utc, utcnow
from helpix.models.matching import (
    MatchingHistory, Notification, StoredProximityAlert, StoredRecommendation,
    UserMatchingSettings,
)
from helpix.models.task import Task
from helpix.models.user import Badge, Certification, Skill, User, UserStatistics
from helpix.schemas.matching import (
    MatchingHistoryEntry, MatchingSettings, ProximityAlert, Recommendation,
    SmartNotification, TaskRecord, UserBadge, UserCertification, UserProfile,
    UserSkill, UserStats,
)
from helpix.services.profiles import (
    MATCHABLE_STATUSES, default_matching_settings, default_stats,
    merge_availability, merge_preferences,
)

logger = structlog.get_logger("helpix.repository")


class DataStoreUnavailable(Exception):
    """The data store could not be reached or rejected the query; retryable."""


def _translate_errors(method):
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("datastore_error", operation=method.__name__, error=str(e))
            raise DataStoreUnavailable(f"{method.__name__} failed: {e}") from e
    return wrapper


def _task_record(task: Task) -> TaskRecord:
    return TaskRecord(
        id=task.id,
        user_id=task.user_id,
        title=task.title or "",
        description=task.description or "",
        category=task.category or "other",
        status=task.status or "open",
        priority=task.priority or "medium",
        required_skills=list(task.required_skills or []),
        budget_credits=task.budget_credits or 0,
        estimated_duration=task.estimated_duration or 60,
        deadline=task.deadline,
        location=task.location,
        latitude=task.latitude,
        longitude=task.longitude,
        complexity=task.complexity,
        created_at=task.created_at,
    )


class MatchingRepository:
    """
    Async data access for the matching service, one instance per session.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @_translate_errors
    async def load_user_profile(self, user_id: str) -> Optional[UserProfile]:
        """Full profile snapshot, or None for an unknown user."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            return None
        profiles = await self._build_profiles([user])
        return profiles[0]

    @_translate_errors
    async def load_available_users(self, limit: int = 100) -> list[UserProfile]:
        """Active users whose availability says they can help."""
        result = await self.db.execute(
            select(User)
            .where(User.is_active.is_(True))
            .order_by(User.created_at.desc())
            .limit(limit * 2)
        )
        profiles = await self._build_profiles(result.scalars().all())
        return [p for p in profiles if p.availability.is_available][:limit]

    @_translate_errors
    async def update_user(self, user_id: str, fields: dict, skills: Optional[list[UserSkill]] = None) -> bool:
        """Apply profile field updates; replaces the skill list when given."""
        user = await self.db.get(User, user_id)
        if user is None:
            return False

        for field, value in fields.items():
            setattr(user, field, value)
        self.db.add(user)

        if skills is not None:
            existing = await self.db.execute(select(Skill).where(Skill.user_id == user_id))
            for row in existing.scalars().all():
                await self.db.delete(row)
            for skill in skills:
                self.db.add(Skill(user_id=user_id, **skill.model_dump()))

        await self.db.flush()
        return True

    async def _build_profiles(self, users: Iterable[User]) -> list[UserProfile]:
        users = list(users)
        if not users:
            return []
        ids = [u.id for u in users]

        skills = await self._group_by_user(Skill, ids)
        certifications = await self._group_by_user(Certification, ids)
        badges = await self._group_by_user(Badge, ids)
        stats_rows = await self.db.execute(
            select(UserStatistics).where(UserStatistics.user_id.in_(ids))
        )
        stats = {row.user_id: row for row in stats_rows.scalars().all()}

        profiles = []
        for user in users:
            stats_row = stats.get(user.id)
            profiles.append(UserProfile(
                id=user.id,
                display_name=user.display_name or user.email,
                email=user.email,
                avatar_url=user.avatar_url,
                location=user.location,
                latitude=user.latitude,
                longitude=user.longitude,
                bio=user.bio,
                created_at=user.created_at,
                skills=[UserSkill.model_validate(s) for s in skills.get(user.id, [])],
                certifications=[UserCertification.model_validate(c) for c in certifications.get(user.id, [])],
                badges=[UserBadge.model_validate(b) for b in badges.get(user.id, [])],
                preferences=merge_preferences(user.preferences),
                availability=merge_availability(user.availability),
                stats=UserStats.model_validate(stats_row) if stats_row else default_stats(),
                reputation_score=user.reputation_score if user.reputation_score is not None else 50,
                trust_level=user.trust_level or "new",
            ))
        return profiles

    async def _group_by_user(self, model, user_ids: list[str]) -> dict[str, list]:
        result = await self.db.execute(select(model).where(model.user_id.in_(user_ids)))
        grouped: dict[str, list] = {}
        for row in result.scalars().all():
            grouped.setdefault(row.user_id, []).append(row)
        return grouped

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @_translate_errors
    async def load_task(self, task_id: int) -> Optional[TaskRecord]:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        return _task_record(task) if task else None

    @_translate_errors
    async def load_available_tasks(self, limit: int = 100) -> list[TaskRecord]:
        """Open and in-progress tasks, newest first."""
        result = await self.db.execute(
            select(Task)
            .where(Task.status.in_(MATCHABLE_STATUSES))
            .order_by(Task.created_at.desc(), Task.id.desc())
            .limit(limit)
        )
        return [_task_record(t) for t in result.scalars().all()]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @_translate_errors
    async def load_matching_settings(self, user_id: str) -> MatchingSettings:
        """Stored settings, creating the row with defaults on first access."""
        row = await self.db.get(UserMatchingSettings, user_id)
        if row is None:
            defaults = default_matching_settings(user_id)
            self.db.add(UserMatchingSettings(**defaults.model_dump()))
            await self.db.flush()
            return defaults
        return MatchingSettings.model_validate(row)

    @_translate_errors
    async def save_matching_settings(self, settings: MatchingSettings) -> MatchingSettings:
        row = await self.db.get(UserMatchingSettings, settings.user_id)
        if row is None:
            row = UserMatchingSettings(user_id=settings.user_id)
        for field, value in settings.model_dump(exclude={"user_id"}).items():
            setattr(row, field, value)
        self.db.add(row)
        await self.db.flush()
        return settings

    @_translate_errors
    async def list_auto_matching_user_ids(self, limit: int = 1000) -> list[str]:
        """Active users with auto-matching on (no settings row counts as on)."""
        result = await self.db.execute(
            select(User.id)
            .outerjoin(UserMatchingSettings, UserMatchingSettings.user_id == User.id)
            .where(
                User.is_active.is_(True),
                or_(
                    UserMatchingSettings.user_id.is_(None),
                    UserMatchingSettings.auto_matching_enabled.is_(True),
                ),
            )
            .order_by(User.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    @_translate_errors
    async def upsert_recommendations(self, recommendations: list[Recommendation]) -> list[str]:
        """
        Insert or refresh recommendations.
        Interaction flags of existing rows are kept, so a dismissed
        recommendation stays dismissed. Returns the ids that were new.
        """
        created = []
        for rec in recommendations:
            row = await self.db.get(StoredRecommendation, rec.id)
            if row is None:
                row = StoredRecommendation(
                    id=rec.id,
                    user_id=rec.user_id,
                    task_id=rec.task_id,
                    is_viewed=rec.is_viewed,
                    is_accepted=rec.is_accepted,
                    is_dismissed=rec.is_dismissed,
                )
                created.append(rec.id)

            row.type = rec.type
            row.score = rec.score
            row.breakdown = rec.breakdown.model_dump()
            row.reason = rec.reason
            row.priority = rec.priority
            row.created_at = rec.created_at
            row.expires_at = rec.expires_at
            self.db.add(row)

        await self.db.flush()
        return created

    @_translate_errors
    async def list_recommendations(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: int = 20,
    ) -> list[Recommendation]:
        """Live recommendations: not dismissed and not expired, best first."""
        result = await self.db.execute(
            select(StoredRecommendation)
            .where(
                StoredRecommendation.user_id == user_id,
                StoredRecommendation.is_dismissed.is_(False),
                StoredRecommendation.expires_at > (now or utcnow()),
            )
            .order_by(StoredRecommendation.score.desc(), StoredRecommendation.id)
            .limit(limit)
        )
        return [Recommendation.model_validate(r) for r in result.scalars().all()]

    @_translate_errors
    async def update_recommendation(self, recommendation_id: str, user_id: str, **flags) -> Optional[Recommendation]:
        row = await self.db.get(StoredRecommendation, recommendation_id)
        if row is None or row.user_id != user_id:
            return None
        for flag, value in flags.items():
            setattr(row, flag, value)
        self.db.add(row)
        await self.db.flush()
        return Recommendation.model_validate(row)

    # ------------------------------------------------------------------
    # Proximity alerts
    # ------------------------------------------------------------------

    @_translate_errors
    async def upsert_proximity_alerts(self, alerts: list[ProximityAlert]) -> list[str]:
        """Insert or refresh alerts; returns the ids that were new."""
        created = []
        for alert in alerts:
            row = await self.db.get(StoredProximityAlert, alert.id)
            if row is None:
                row = StoredProximityAlert(
                    id=alert.id,
                    user_id=alert.user_id,
                    task_id=alert.task_id,
                    is_sent=alert.is_sent,
                    is_viewed=alert.is_viewed,
                    created_at=alert.created_at,
                )
                created.append(alert.id)
            row.distance_km = alert.distance_km
            self.db.add(row)

        await self.db.flush()
        return created

    @_translate_errors
    async def list_proximity_alerts(self, user_id: str, limit: int = 10) -> list[ProximityAlert]:
        """Unviewed alerts, newest first."""
        result = await self.db.execute(
            select(StoredProximityAlert)
            .where(
                StoredProximityAlert.user_id == user_id,
                StoredProximityAlert.is_viewed.is_(False),
            )
            .order_by(StoredProximityAlert.created_at.desc(), StoredProximityAlert.distance_km)
            .limit(limit)
        )
        return [ProximityAlert.model_validate(a) for a in result.scalars().all()]

    @_translate_errors
    async def update_proximity_alert(self, alert_id: str, user_id: str, **flags) -> Optional[ProximityAlert]:
        row = await self.db.get(StoredProximityAlert, alert_id)
        if row is None or row.user_id != user_id:
            return None
        for flag, value in flags.items():
            setattr(row, flag, value)
        self.db.add(row)
        await self.db.flush()
        return ProximityAlert.model_validate(row)

    # ------------------------------------------------------------------
    # Matching history
    # ------------------------------------------------------------------

    @_translate_errors
    async def add_history(
        self,
        user_id: str,
        task_id: int,
        action: str,
        compatibility_score: float,
        notes: Optional[str] = None,
    ) -> MatchingHistoryEntry:
        row = MatchingHistory(
            user_id=user_id,
            task_id=task_id,
            action=action,
            compatibility_score=compatibility_score,
            notes=notes,
            timestamp=utcnow(),
        )
        self.db.add(row)
        await self.db.flush()
        return MatchingHistoryEntry.model_validate(row)

    @_translate_errors
    async def recent_history(self, user_id: str, limit: int = 10) -> list[MatchingHistoryEntry]:
        result = await self.db.execute(
            select(MatchingHistory)
            .where(MatchingHistory.user_id == user_id)
            .order_by(MatchingHistory.timestamp.desc())
            .limit(limit)
        )
        return [MatchingHistoryEntry.model_validate(h) for h in result.scalars().all()]

    @_translate_errors
    async def history_counts(self, user_id: str) -> dict:
        """Totals used for the dashboard statistics."""
        result = await self.db.execute(
            select(
                MatchingHistory.action,
                func.count(MatchingHistory.id),
                func.avg(MatchingHistory.compatibility_score),
            )
            .where(MatchingHistory.user_id == user_id)
            .group_by(MatchingHistory.action)
        )
        counts = {}
        for action, count, avg_score in result.all():
            counts[action] = {"count": count, "avg_score": float(avg_score or 0)}
        return counts

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @_translate_errors
    async def add_notification(self, notification: SmartNotification) -> SmartNotification:
        self.db.add(Notification(**notification.model_dump()))
        await self.db.flush()
        return notification

    @_translate_errors
    async def list_unread_notifications(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: int = 20,
    ) -> list[SmartNotification]:
        now = to_naive_utc(now) or utcnow()
        result = await self.db.execute(
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
                or_(Notification.expires_at.is_(None), Notification.expires_at > now),
            )
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return [SmartNotification.model_validate(n) for n in result.scalars().all()]

    @_translate_errors
    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        row = await self.db.get(Notification, notification_id)
        if row is None or row.user_id != user_id:
            return False
        row.is_read = True
        self.db.add(row)
        await self.db.flush()
        return True

    @_translate_errors
    async def mark_all_notifications_read(self, user_id: str) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await self.db.flush()
        return result.rowcount or 0
