"""
Helpix User Models
User accounts and the profile data read by the matching engine
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Text, Float
from sqlalchemy.sql import func
import uuid

from helpix.core.database import Base


class User(Base):
    """User account and public profile"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    display_name = Column(String(255))
    avatar_url = Column(String(1000))
    bio = Column(Text)

    # Location
    location = Column(String(500))
    latitude = Column(Float)
    longitude = Column(Float)

    # JSON blocks; NULL means "use defaults"
    preferences = Column(JSON)
    availability = Column(JSON)

    # Reputation
    reputation_score = Column(Float, default=50)
    trust_level = Column(String(20), default="new")  # new, verified, trusted, expert

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())


class Skill(Base):
    """Skill declared by a user"""
    __tablename__ = "user_skills"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True, nullable=False)
    skill_name = Column(String(255), nullable=False)
    category = Column(String(50), default="other")
    proficiency_level = Column(String(20), default="intermediate")
    verified = Column(Boolean, default=False)
    experience_years = Column(Float)
    created_at = Column(DateTime, server_default=func.now())


class Certification(Base):
    __tablename__ = "user_certifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    issuer = Column(String(255), default="")
    issue_date = Column(DateTime)
    expiry_date = Column(DateTime)
    verification_status = Column(String(20), default="pending")  # pending, verified, rejected
    document_url = Column(String(1000))


class Badge(Base):
    __tablename__ = "user_badges"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    icon = Column(String(255), default="")
    category = Column(String(20), default="achievement")  # achievement, skill, community, special
    rarity = Column(String(20), default="common")  # common, rare, epic, legendary
    earned_at = Column(DateTime, server_default=func.now())


class UserStatistics(Base):
    """Computed helper statistics, one row per user"""
    __tablename__ = "user_stats"

    user_id = Column(String(36), primary_key=True)
    total_tasks_completed = Column(Integer, default=0)
    total_tasks_created = Column(Integer, default=0)
    total_hours_volunteered = Column(Float, default=0)
    average_rating = Column(Float, default=0)
    response_time_minutes = Column(Float, default=60)
    completion_rate = Column(Float, default=0)  # 0-100
    reliability_score = Column(Float, default=0)
    last_active = Column(DateTime)
    streak_days = Column(Integer, default=0)
