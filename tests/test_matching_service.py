"""
Integration tests for the matching service against an in-memory database.
"""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from helpix.core.clock import utcnow
from helpix.models.matching import Notification, StoredRecommendation
from helpix.schemas.matching import UserSkill
from helpix.services.matching_service import MatchingService
from helpix.services.repository import DataStoreUnavailable, MatchingRepository

LYON = (45.7640, 4.8357)


@pytest.fixture
async def seeded(db_session, add_user, add_task):
    """Helper in Paris, a nearby task and a task in Lyon."""
    await add_user(db_session, "helper-1")
    paris_id = await add_task(db_session)
    lyon_id = await add_task(db_session, coords=LYON, title="Arroser le jardin")
    await db_session.commit()
    return {"paris": paris_id, "lyon": lyon_id}


class TestProfilesAndSettings:
    """Test profile loading and lazy settings."""

    async def test_profile_defaults_filled(self, db_session, seeded):
        profile = await MatchingService(db_session).load_user_profile("helper-1")

        assert profile.skills[0].skill_name == "Jardinage"
        assert profile.preferences.max_distance_km == 10
        assert profile.availability.is_available
        assert profile.stats.response_time_minutes == 60

    async def test_unknown_user(self, db_session):
        assert await MatchingService(db_session).load_user_profile("nobody") is None

    async def test_settings_created_with_defaults(self, db_session, seeded):
        settings = await MatchingService(db_session).get_settings("helper-1")

        assert settings.auto_matching_enabled
        assert settings.max_distance_km == 10
        assert settings.min_compatibility_score == 0.4
        assert settings.max_daily_recommendations == 10

    async def test_partial_settings_update_merges(self, db_session, seeded):
        service = MatchingService(db_session)
        await service.update_settings("helper-1", {"min_compatibility_score": 0.7})
        updated = await service.update_settings("helper-1", {"learning_mode": False})

        assert updated.min_compatibility_score == 0.7
        assert updated.learning_mode is False
        assert (await service.get_settings("helper-1")).min_compatibility_score == 0.7

    async def test_max_distance_setting_widens_alert_radius(self, db_session, seeded):
        service = MatchingService(db_session)
        await service.update_settings("helper-1", {"max_distance_km": 500})

        profile = await service.load_user_profile("helper-1")
        alerts = await service.refresh_proximity_alerts("helper-1")

        assert profile.preferences.max_distance_km == 500
        assert [a.task_id for a in alerts] == [seeded["paris"], seeded["lyon"]]

    async def test_toggle_auto_matching_queues_refresh(self, db_session, seeded):
        scheduler = AsyncMock()
        updated = await MatchingService(db_session).toggle_auto_matching("helper-1", True, scheduler)

        assert updated.auto_matching_enabled
        scheduler.enqueue_user.assert_awaited_once_with("helper-1")

    async def test_update_profile_replaces_skills(self, db_session, seeded):
        service = MatchingService(db_session)
        profile = await service.update_user_profile(
            "helper-1",
            {"bio": "Jardinier amateur"},
            [UserSkill(skill_name="Cuisine", category="cooking")],
        )

        assert profile.bio == "Jardinier amateur"
        assert [s.skill_name for s in profile.skills] == ["Cuisine"]


class TestRefresh:
    """Test recomputation and persistence."""

    async def test_recommendations_persisted(self, db_session, seeded):
        recs = await MatchingService(db_session).refresh_recommendations("helper-1")

        assert [r.task_id for r in recs] == [seeded["paris"], seeded["lyon"]]
        rows = (await db_session.execute(select(StoredRecommendation))).scalars().all()
        assert {row.id for row in rows} == {r.id for r in recs}

    async def test_refresh_is_idempotent(self, db_session, seeded):
        service = MatchingService(db_session)
        await service.refresh_recommendations("helper-1")
        await service.refresh_recommendations("helper-1")

        rows = (await db_session.execute(select(StoredRecommendation))).scalars().all()
        assert len(rows) == 2

    async def test_high_priority_recommendation_notifies_once(self, db_session, seeded):
        service = MatchingService(db_session)
        await service.refresh_recommendations("helper-1")
        await service.refresh_recommendations("helper-1")

        notifications = (await db_session.execute(
            select(Notification).where(Notification.type == "task_match")
        )).scalars().all()
        assert len(notifications) == 1
        assert notifications[0].data["task_id"] == seeded["paris"]

    async def test_dismissed_recommendation_stays_dismissed(self, db_session, seeded):
        service = MatchingService(db_session)
        recs = await service.refresh_recommendations("helper-1")
        await service.dismiss_recommendation("helper-1", recs[0].id)
        await service.refresh_recommendations("helper-1")

        live = await service.list_recommendations("helper-1")
        assert recs[0].id not in {r.id for r in live}

    async def test_expired_recommendations_not_listed(self, db_session, seeded):
        service = MatchingService(db_session)
        await service.refresh_recommendations("helper-1", now=utcnow() - timedelta(days=2))
        assert await service.list_recommendations("helper-1") == []

    async def test_proximity_alerts_persisted(self, db_session, seeded):
        service = MatchingService(db_session)
        alerts = await service.refresh_proximity_alerts("helper-1")

        assert [a.task_id for a in alerts] == [seeded["paris"]]
        listed = await service.list_proximity_alerts("helper-1")
        assert [a.id for a in listed] == [alerts[0].id]

        await service.mark_alert_viewed("helper-1", alerts[0].id)
        assert await service.list_proximity_alerts("helper-1") == []

    async def test_unknown_user_refresh_is_empty(self, db_session):
        service = MatchingService(db_session)
        assert await service.refresh_recommendations("nobody") == []
        assert await service.refresh_proximity_alerts("nobody") == []


class TestInteractions:
    """Test accept/dismiss/view and history."""

    async def test_accept_then_dismiss_flags(self, db_session, seeded):
        service = MatchingService(db_session)
        rec_id = (await service.refresh_recommendations("helper-1"))[0].id

        accepted = await service.accept_recommendation("helper-1", rec_id)
        assert accepted.is_accepted and not accepted.is_dismissed

        dismissed = await service.dismiss_recommendation("helper-1", rec_id)
        assert dismissed.is_dismissed and not dismissed.is_accepted

    async def test_other_users_cannot_touch_recommendation(self, db_session, seeded):
        service = MatchingService(db_session)
        rec_id = (await service.refresh_recommendations("helper-1"))[0].id
        assert await service.accept_recommendation("someone-else", rec_id) is None

    async def test_calculate_compatibility_records_view(self, db_session, seeded):
        service = MatchingService(db_session)
        result = await service.calculate_compatibility("helper-1", seeded["paris"])

        assert result.compatibility_score == pytest.approx(0.8335, abs=0.001)
        history = await service.recent_matches("helper-1")
        assert [(h.action, h.task_id) for h in history] == [("viewed", seeded["paris"])]

    async def test_calculate_compatibility_unknown_task(self, db_session, seeded):
        assert await MatchingService(db_session).calculate_compatibility("helper-1", 999) is None

    async def test_best_helpers_for_task(self, db_session, add_user, seeded):
        await add_user(db_session, "helper-2", skills=())
        await add_user(db_session, "owner-1")

        results = await MatchingService(db_session).find_best_matches_for_task(seeded["paris"])

        assert [r.user_id for r in results] == ["helper-1", "helper-2"]


class TestDashboard:

    async def test_dashboard_contents(self, db_session, add_task, seeded):
        await add_task(db_session, skills=("Bricolage",), budget_credits=30)
        await add_task(db_session, skills=("Bricolage", "Cuisine"), budget_credits=20)
        service = MatchingService(db_session)
        await service.refresh_recommendations("helper-1")
        await service.refresh_proximity_alerts("helper-1")
        await service.calculate_compatibility("helper-1", seeded["paris"])

        dashboard = await service.initialize("helper-1")

        assert dashboard.user_profile.id == "helper-1"
        assert dashboard.pending_recommendations
        assert dashboard.proximity_alerts
        assert dashboard.matching_stats.total_matches == 1
        assert dashboard.matching_stats.top_skills == ["Jardinage"]
        gaps = {g.skill_name: g for g in dashboard.skill_gaps}
        assert gaps["Bricolage"].tasks_requiring == 2
        assert gaps["Bricolage"].potential_earnings == 50
        assert "Jardinage" not in gaps

    async def test_dashboard_unknown_user(self, db_session):
        assert await MatchingService(db_session).initialize("nobody") is None


class TestDataStoreErrors:

    async def test_sqlalchemy_errors_are_wrapped(self):
        session = AsyncMock()
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        session.get.side_effect = error
        session.execute.side_effect = error

        with pytest.raises(DataStoreUnavailable):
            await MatchingRepository(session).load_task(1)
