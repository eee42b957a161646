"""
Helpix Task Model
Tasks posted by users; read-only for the matching engine
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, Text, Float
from sqlalchemy.sql import func

from helpix.core.database import Base


class Task(Base):
    """Help request posted by a user"""
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), index=True, nullable=False)  # Owner

    # Details
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    category = Column(String(50), default="other")
    status = Column(String(20), index=True, default="open")  # open, in_progress, completed, cancelled
    priority = Column(String(20), default="medium")  # low, medium, high, urgent
    complexity = Column(String(20))  # simple, moderate, complex

    # Requirements
    required_skills = Column(JSON, default=list)
    budget_credits = Column(Float, default=0)
    estimated_duration = Column(Integer, default=60)  # minutes
    deadline = Column(DateTime)

    # Location
    location = Column(String(500))
    latitude = Column(Float)
    longitude = Column(Float)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, onupdate=func.now())
