"""
Pytest configuration and fixtures for Helpix tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from helpix.core.database import get_db, init_db
from helpix.core.security import create_access_token
from helpix.main import app
from helpix.models.task import Task
from helpix.models.user import Skill, User, UserStatistics
from helpix.schemas.matching import TaskRecord, UserPreferences, UserProfile, UserSkill

PARIS = (48.8566, 2.3522)
PARIS_NEARBY = (48.8570, 2.3530)
LYON = (45.7640, 4.8357)


@pytest.fixture
def now():
    """A fixed Wednesday noon, UTC."""
    return datetime(2025, 6, 4, 12, 0, 0)


@pytest.fixture
def make_user():
    """Factory for helper profiles located in central Paris."""
    def _make(user_id="helper-1", skills=("Jardinage",), **fields):
        data = {
            "id": user_id,
            "display_name": "Camille",
            "latitude": PARIS[0],
            "longitude": PARIS[1],
            "skills": [UserSkill(skill_name=s, category="gardening") for s in skills],
            "preferences": UserPreferences(max_distance_km=10),
        }
        data.update(fields)
        return UserProfile(**data)
    return _make


@pytest.fixture
def make_task():
    """Factory for open tasks posted by someone else."""
    def _make(task_id=1, coords=PARIS_NEARBY, skills=("Jardinage",), **fields):
        data = {
            "id": task_id,
            "user_id": "owner-1",
            "title": "Tailler la haie",
            "category": "gardening",
            "status": "open",
            "priority": "medium",
            "required_skills": list(skills),
            "budget_credits": 45,
            "latitude": coords[0] if coords else None,
            "longitude": coords[1] if coords else None,
        }
        data.update(fields)
        return TaskRecord(**data)
    return _make


@pytest.fixture
def paris_user(make_user):
    return make_user()


@pytest.fixture
def paris_task(make_task):
    return make_task(1)


@pytest.fixture
def lyon_task(make_task):
    return make_task(2, coords=LYON, title="Arroser le jardin")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_user():
    """Insert a user row (with skills and optional stats) into a session."""
    async def _add(session, user_id, email=None, skills=("Jardinage",), stats=None, **fields):
        data = {
            "id": user_id,
            "email": email or f"{user_id}@helpix.fr",
            "hashed_password": "not-a-real-hash",
            "display_name": user_id,
            "latitude": PARIS[0],
            "longitude": PARIS[1],
        }
        data.update(fields)
        session.add(User(**data))
        for name in skills:
            session.add(Skill(user_id=user_id, skill_name=name, category="gardening"))
        if stats:
            session.add(UserStatistics(user_id=user_id, **stats))
        await session.flush()
    return _add


@pytest.fixture
def add_task():
    """Insert a task row into a session and return its id."""
    async def _add(session, owner="owner-1", coords=PARIS_NEARBY, skills=("Jardinage",), **fields):
        data = {
            "user_id": owner,
            "title": "Tailler la haie",
            "category": "gardening",
            "status": "open",
            "priority": "medium",
            "required_skills": list(skills),
            "budget_credits": 45,
            "latitude": coords[0] if coords else None,
            "longitude": coords[1] if coords else None,
        }
        data.update(fields)
        task = Task(**data)
        session.add(task)
        await session.flush()
        return task.id
    return _add


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    """HTTP client against the app, backed by the in-memory database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(subject=user_id)}"}
    return _headers
