"""
Helpix Matching Models
Persisted matching outputs: settings, recommendations, alerts, history, notifications
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Text, Float
from sqlalchemy.sql import func
import uuid

from helpix.core.database import Base


class UserMatchingSettings(Base):
    """Per-user matching configuration, created lazily with defaults"""
    __tablename__ = "matching_settings"

    user_id = Column(String(36), primary_key=True)
    auto_matching_enabled = Column(Boolean, default=True, index=True)
    max_daily_recommendations = Column(Integer, default=10)
    min_compatibility_score = Column(Float, default=0.4)
    max_distance_km = Column(Float, default=10)
    preferred_categories = Column(JSON, default=list)
    blacklisted_categories = Column(JSON, default=list)
    notification_frequency = Column(String(20), default="hourly")  # immediate, hourly, daily, weekly
    learning_mode = Column(Boolean, default=True)
    privacy_level = Column(String(20), default="public")  # public, friends, private

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class StoredRecommendation(Base):
    """
    Recommendation shown to a helper.
    Score and breakdown are the values computed at generation time.
    """
    __tablename__ = "recommendations"

    id = Column(String(100), primary_key=True)  # rec_<user>_<task>
    user_id = Column(String(36), index=True, nullable=False)
    task_id = Column(Integer, index=True, nullable=False)

    type = Column(String(20))  # proximity, skill_match, urgency, history, budget
    score = Column(Float, nullable=False)
    breakdown = Column(JSON, default=dict)
    reason = Column(Text)
    priority = Column(String(20))  # low, medium, high

    # User interaction
    is_viewed = Column(Boolean, default=False)
    is_accepted = Column(Boolean, default=False)
    is_dismissed = Column(Boolean, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, index=True, nullable=False)


class StoredProximityAlert(Base):
    """Task within a helper's radius"""
    __tablename__ = "proximity_alerts"

    id = Column(String(100), primary_key=True)  # alert_<user>_<task>
    user_id = Column(String(36), index=True, nullable=False)
    task_id = Column(Integer, index=True, nullable=False)
    distance_km = Column(Float, nullable=False)
    is_sent = Column(Boolean, default=False)
    is_viewed = Column(Boolean, default=False)
    created_at = Column(DateTime, nullable=False)


class MatchingHistory(Base):
    """Helper actions on matched tasks, with the score at that time"""
    __tablename__ = "matching_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True, nullable=False)
    task_id = Column(Integer, index=True, nullable=False)
    action = Column(String(20), nullable=False)  # viewed, applied, accepted, rejected, completed
    compatibility_score = Column(Float, default=0)
    notes = Column(Text)
    timestamp = Column(DateTime, server_default=func.now(), index=True)


class Notification(Base):
    """Smart notification surfaced to the user-facing layer"""
    __tablename__ = "smart_notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True, nullable=False)
    type = Column(String(30), nullable=False)  # task_match, proximity_alert, skill_opportunity, deadline_reminder
    title = Column(String(255), nullable=False)
    message = Column(Text, default="")
    data = Column(JSON, default=dict)
    priority = Column(String(20), default="medium")
    action_url = Column(String(1000))
    is_read = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime)
