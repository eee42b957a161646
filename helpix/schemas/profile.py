"""
Helpix Profile & Settings Schemas
Partial-update request bodies for the profile and matching settings
"""
from typing import Optional

from pydantic import BaseModel, Field

from helpix.schemas.matching import (
    NotificationFrequency, PrivacyLevel, UserAvailability, UserPreferences, UserSkill,
)


class ProfileUpdate(BaseModel):
    """Update the helper profile; omitted fields are left unchanged"""
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    preferences: Optional[UserPreferences] = None
    availability: Optional[UserAvailability] = None
    skills: Optional[list[UserSkill]] = None


class SettingsUpdate(BaseModel):
    """Partial matching settings update; max_distance_km also updates the profile radius"""
    auto_matching_enabled: Optional[bool] = None
    max_daily_recommendations: Optional[int] = Field(None, ge=0)
    min_compatibility_score: Optional[float] = Field(None, ge=0, le=1)
    max_distance_km: Optional[float] = Field(None, gt=0)
    preferred_categories: Optional[list[str]] = None
    blacklisted_categories: Optional[list[str]] = None
    notification_frequency: Optional[NotificationFrequency] = None
    learning_mode: Optional[bool] = None
    privacy_level: Optional[PrivacyLevel] = None


class AutoMatchingToggle(BaseModel):
    enabled: bool
