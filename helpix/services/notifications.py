"""
Helpix Smart Notifications
Creates notifications for new matches and nearby tasks
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog

from helpix.core.clock import to_naive_utc, utcnow
from helpix.schemas.matching import (
    ProximityAlert, Recommendation, SmartNotification, UserProfile,
)
from helpix.services.repository import MatchingRepository

logger = structlog.get_logger("helpix.notifications")

NOTIFICATION_TTL = timedelta(days=7)


class NotificationDispatcher:
    """
    Sends smart notifications through the repository.
    Only high-priority recommendations and new proximity alerts notify.
    """

    def __init__(self, repository: MatchingRepository):
        self.repository = repository

    async def send(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
        priority: str = "medium",
        action_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SmartNotification:
        now = to_naive_utc(now) or utcnow()
        notification = SmartNotification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            priority=priority,
            action_url=action_url,
            created_at=now,
            expires_at=now + NOTIFICATION_TTL,
        )
        await self.repository.add_notification(notification)
        logger.info("notification_sent", user_id=user_id, type=type, priority=priority)
        return notification

    async def notify_recommendations(
        self,
        user: UserProfile,
        recommendations: list[Recommendation],
        now: Optional[datetime] = None,
    ) -> list[SmartNotification]:
        """One notification per high-priority recommendation."""
        if not user.preferences.notification_settings.skill_matches:
            return []

        sent = []
        for rec in recommendations:
            if rec.priority != "high":
                continue
            sent.append(await self.send(
                user.id,
                "task_match",
                "New task that fits you",
                rec.reason,
                data={"task_id": rec.task_id, "recommendation_id": rec.id, "score": rec.score},
                priority="high",
                action_url=f"/tasks/{rec.task_id}",
                now=now,
            ))
        return sent

    async def notify_proximity_alerts(
        self,
        user: UserProfile,
        alerts: list[ProximityAlert],
        now: Optional[datetime] = None,
    ) -> list[SmartNotification]:
        if not user.preferences.notification_settings.proximity_alerts:
            return []

        sent = []
        for alert in alerts:
            sent.append(await self.send(
                user.id,
                "proximity_alert",
                "Task near you",
                f"A task is waiting {alert.distance_km:.1f} km from you",
                data={"task_id": alert.task_id, "alert_id": alert.id, "distance_km": alert.distance_km},
                action_url=f"/tasks/{alert.task_id}",
                now=now,
            ))
        return sent

    async def list_unread(self, user_id: str, now: Optional[datetime] = None) -> list[SmartNotification]:
        return await self.repository.list_unread_notifications(user_id, now)

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        return await self.repository.mark_notification_read(notification_id, user_id)

    async def clear_all(self, user_id: str) -> int:
        """Mark every notification of the user as read."""
        cleared = await self.repository.mark_all_notifications_read(user_id)
        logger.info("notifications_cleared", user_id=user_id, count=cleared)
        return cleared
