"""
Helpix Matching Schemas
Immutable value types passed between the persistence layer and the scoring core

Profiles and settings are snapshots: the scoring functions only read them
and always return new values.
"""
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from helpix.core.clock import to_naive_utc, utcnow

SkillCategory = Literal[
    "home_improvement", "technology", "gardening", "cooking", "transportation",
    "education", "healthcare", "business", "art", "sports", "language",
    "maintenance", "cleaning", "organization", "communication", "other",
]
ProficiencyLevel = Literal["beginner", "intermediate", "advanced", "expert"]
TrustLevel = Literal["new", "verified", "trusted", "expert"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskStatus = Literal["open", "in_progress", "completed", "cancelled"]
Complexity = Literal["simple", "moderate", "complex"]
RecommendationType = Literal["proximity", "skill_match", "urgency", "history", "budget"]
RecommendationPriority = Literal["low", "medium", "high"]
HistoryAction = Literal["viewed", "applied", "accepted", "rejected", "completed"]
NotificationType = Literal["task_match", "proximity_alert", "skill_opportunity", "deadline_reminder"]
NotificationPriority = Literal["low", "medium", "high", "urgent"]
NotificationFrequency = Literal["immediate", "hourly", "daily", "weekly"]
PrivacyLevel = Literal["public", "friends", "private"]


# Stored and compared as naive UTC
UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


class ValueModel(BaseModel):
    """Frozen base for all matching value types."""
    model_config = ConfigDict(frozen=True, from_attributes=True)


# ---------------------------------------------------------------------------
# User profile
# ---------------------------------------------------------------------------

class UserSkill(ValueModel):
    """A skill declared by a user."""
    skill_name: str = Field(..., examples=["Jardinage"])
    category: SkillCategory = "other"
    proficiency_level: ProficiencyLevel = "intermediate"
    verified: bool = False
    experience_years: Optional[float] = None


class UserCertification(ValueModel):
    name: str
    issuer: str = ""
    issue_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    verification_status: Literal["pending", "verified", "rejected"] = "pending"


class UserBadge(ValueModel):
    name: str
    description: str = ""
    icon: str = ""
    category: Literal["achievement", "skill", "community", "special"] = "achievement"
    rarity: Literal["common", "rare", "epic", "legendary"] = "common"
    earned_at: Optional[datetime] = None


class TimeSlot(ValueModel):
    """Weekly availability slot; day_of_week 0 is Sunday."""
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["09:00"])
    end_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["18:00"])
    is_available: bool = True


class NotificationSettings(ValueModel):
    proximity_alerts: bool = True
    skill_matches: bool = True
    urgent_tasks: bool = True
    new_messages: bool = True
    task_updates: bool = True
    email_notifications: bool = True
    push_notifications: bool = True


class UserPreferences(ValueModel):
    max_distance_km: float = Field(10.0, gt=0)
    preferred_categories: list[str] = Field(default_factory=list)
    preferred_time_slots: list[TimeSlot] = Field(default_factory=list)
    min_task_budget: float = Field(0, ge=0)
    max_task_budget: Optional[float] = None
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    language_preference: str = "fr"
    communication_style: Literal["formal", "casual", "friendly"] = "friendly"


class UserAvailability(ValueModel):
    is_available: bool = True
    current_status: Literal["available", "busy", "away", "offline"] = "available"
    next_available: Optional[datetime] = None
    auto_accept_radius: float = 5.0
    auto_accept_categories: list[str] = Field(default_factory=list)


class UserStats(ValueModel):
    total_tasks_completed: int = 0
    total_tasks_created: int = 0
    total_hours_volunteered: float = 0
    average_rating: float = 0
    response_time_minutes: float = 60
    completion_rate: float = Field(0, ge=0, le=100)
    reliability_score: float = 0
    last_active: Optional[datetime] = None
    streak_days: int = 0


class UserProfile(ValueModel):
    """
    Snapshot of a helper's profile used for matching.

    Hydrated once per run from the data store; optional blocks are filled
    with their documented defaults at load time.
    """
    id: str
    display_name: str = ""
    email: str = ""
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

    skills: list[UserSkill] = Field(default_factory=list)
    certifications: list[UserCertification] = Field(default_factory=list)
    badges: list[UserBadge] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    availability: UserAvailability = Field(default_factory=UserAvailability)
    stats: UserStats = Field(default_factory=UserStats)

    reputation_score: float = Field(50, ge=0, le=100)
    trust_level: TrustLevel = "new"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TaskRecord(ValueModel):
    """A task row as read from the data store."""
    id: int
    user_id: str
    title: str = ""
    description: str = ""
    category: str = "other"
    status: TaskStatus = "open"
    priority: TaskPriority = "medium"
    required_skills: list[str] = Field(default_factory=list)
    budget_credits: float = 0
    estimated_duration: int = 60  # minutes
    deadline: Optional[UtcDatetime] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    complexity: Optional[Complexity] = None
    created_at: Optional[UtcDatetime] = None


class SkillRequirement(ValueModel):
    skill_name: str
    category: str = "other"
    required_level: ProficiencyLevel = "intermediate"
    is_mandatory: bool = True
    weight: float = Field(1.0, ge=0, le=1)


class PreferredHelperProfile(ValueModel):
    min_reputation_score: float = 0
    min_completion_rate: float = 0
    max_response_time_minutes: Optional[float] = None
    preferred_certifications: list[str] = Field(default_factory=list)
    preferred_badges: list[str] = Field(default_factory=list)
    max_distance_km: Optional[float] = None


class TaskMatchingProfile(ValueModel):
    """Read-only projection of a task, rebuilt every time matching runs."""
    id: int
    user_id: str
    title: str = ""
    description: str = ""
    category: str = "other"
    status: TaskStatus = "open"
    priority: TaskPriority = "medium"
    required_skills: list[str] = Field(default_factory=list)
    skill_requirements: list[SkillRequirement] = Field(default_factory=list)
    budget_credits: float = 0
    estimated_duration: int = 60
    deadline: Optional[UtcDatetime] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[UtcDatetime] = None
    complexity: Complexity = "moderate"
    urgency_level: int = Field(5, ge=1, le=10)
    preferred_helper_profile: Optional[PreferredHelperProfile] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# ---------------------------------------------------------------------------
# Matching outputs
# ---------------------------------------------------------------------------

class MatchBreakdown(ValueModel):
    """Per-factor sub-scores, each in [0, 1]."""
    skill_match_score: float = 0
    proximity_score: float = 0
    budget_score: float = 0
    availability_score: float = 0
    urgency_score: float = 0
    reputation_score: float = 0
    response_time_score: float = 0
    history_score: float = 0


class MatchResult(ValueModel):
    """Score of one (user, task) pair with its explanation."""
    user_id: str
    task_id: int
    compatibility_score: float = Field(..., ge=0, le=1)
    breakdown: MatchBreakdown
    contributions: dict[str, float] = Field(default_factory=dict)
    distance_km: Optional[float] = None
    missing_skills: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    created_at: UtcDatetime = Field(default_factory=utcnow)


class Recommendation(ValueModel):
    """A match promoted to a persisted, expiring suggestion."""
    id: str
    user_id: str
    task_id: int
    type: RecommendationType
    score: float = Field(..., ge=0, le=1)
    breakdown: MatchBreakdown
    reason: str
    priority: RecommendationPriority
    created_at: UtcDatetime
    expires_at: UtcDatetime
    is_viewed: bool = False
    is_accepted: bool = False
    is_dismissed: bool = False

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (to_naive_utc(now) or utcnow())


class ProximityAlert(ValueModel):
    id: str
    user_id: str
    task_id: int
    distance_km: float
    created_at: UtcDatetime
    is_sent: bool = False
    is_viewed: bool = False


class MatchingSettings(ValueModel):
    user_id: str
    auto_matching_enabled: bool = True
    max_daily_recommendations: int = Field(10, ge=0)
    min_compatibility_score: float = Field(0.4, ge=0, le=1)
    max_distance_km: float = Field(10.0, gt=0)
    preferred_categories: list[str] = Field(default_factory=list)
    blacklisted_categories: list[str] = Field(default_factory=list)
    notification_frequency: NotificationFrequency = "hourly"
    learning_mode: bool = True
    privacy_level: PrivacyLevel = "public"


class MatchingHistoryEntry(ValueModel):
    id: str
    user_id: str
    task_id: int
    action: HistoryAction
    compatibility_score: float
    timestamp: UtcDatetime
    notes: Optional[str] = None


class SmartNotification(ValueModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict = Field(default_factory=dict)
    priority: NotificationPriority = "medium"
    created_at: UtcDatetime
    expires_at: Optional[UtcDatetime] = None
    is_read: bool = False
    action_url: Optional[str] = None


class SkillGap(ValueModel):
    skill_name: str
    category: str = "other"
    demand_level: Literal["low", "medium", "high"]
    tasks_requiring: int
    potential_earnings: float = 0


class MatchingStats(ValueModel):
    total_matches: int = 0
    successful_matches: int = 0
    average_compatibility: float = 0
    response_rate: float = 0
    completion_rate: float = 0
    top_skills: list[str] = Field(default_factory=list)
    preferred_categories: list[str] = Field(default_factory=list)
    average_distance: float = 0


class MatchingDashboard(ValueModel):
    user_profile: UserProfile
    recent_matches: list[MatchingHistoryEntry] = Field(default_factory=list)
    pending_recommendations: list[Recommendation] = Field(default_factory=list)
    proximity_alerts: list[ProximityAlert] = Field(default_factory=list)
    matching_stats: MatchingStats = Field(default_factory=MatchingStats)
    skill_gaps: list[SkillGap] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)
