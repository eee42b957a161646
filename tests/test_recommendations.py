"""
Unit tests for recommendation generation.
"""
from datetime import timedelta, timezone

import pytest

from helpix.schemas.matching import MatchingSettings
from helpix.services.recommendations import generate_recommendations, recommendation_id

LYON = (45.7640, 4.8357)


class TestGenerateRecommendations:
    """Test filtering, thresholds and metadata."""

    def test_paris_task_recommended_with_high_priority(self, paris_user, paris_task, now):
        recs = generate_recommendations(paris_user, [paris_task], now=now)

        assert len(recs) == 1
        rec = recs[0]
        assert rec.id == recommendation_id(paris_user.id, paris_task.id) == "rec_helper-1_1"
        assert rec.priority == "high"
        assert rec.type == "proximity"
        assert rec.expires_at - rec.created_at == timedelta(hours=24)
        assert not rec.is_expired(now)

    def test_threshold_invariant(self, paris_user, paris_task, lyon_task, now):
        settings = MatchingSettings(user_id=paris_user.id, min_compatibility_score=0.7)
        recs = generate_recommendations(paris_user, [paris_task, lyon_task], settings=settings, now=now)

        assert [r.task_id for r in recs] == [paris_task.id]
        assert all(r.score >= 0.7 for r in recs)

    def test_sorted_best_first(self, paris_user, paris_task, lyon_task, now):
        recs = generate_recommendations(paris_user, [lyon_task, paris_task], now=now)
        assert [r.task_id for r in recs] == [paris_task.id, lyon_task.id]

    def test_cap_uses_smaller_of_count_and_daily_limit(self, paris_user, make_task, now):
        pool = [make_task(i) for i in range(1, 8)]
        settings = MatchingSettings(user_id=paris_user.id, max_daily_recommendations=5)

        assert len(generate_recommendations(paris_user, pool, max_count=3, settings=settings, now=now)) == 3
        assert len(generate_recommendations(paris_user, pool, max_count=10, settings=settings, now=now)) == 5

    @pytest.mark.parametrize("status", ["completed", "cancelled"])
    def test_closed_tasks_skipped(self, paris_user, make_task, now, status):
        assert generate_recommendations(paris_user, [make_task(status=status)], now=now) == []

    def test_own_and_blacklisted_tasks_skipped(self, paris_user, make_task, now):
        pool = [
            make_task(1, user_id=paris_user.id),
            make_task(2, category="cleaning"),
            make_task(3),
        ]
        settings = MatchingSettings(user_id=paris_user.id, blacklisted_categories=["Cleaning"])

        recs = generate_recommendations(paris_user, pool, settings=settings, now=now)

        assert [r.task_id for r in recs] == [3]

    def test_empty_pool(self, paris_user, now):
        assert generate_recommendations(paris_user, [], now=now) == []

    def test_custom_ttl(self, paris_user, paris_task, now):
        rec = generate_recommendations(paris_user, [paris_task], now=now, ttl=timedelta(hours=2))[0]
        assert rec.is_expired(now + timedelta(hours=2))

    def test_aware_now_stamped_as_naive_utc(self, paris_user, paris_task, now):
        aware = now.replace(tzinfo=timezone.utc)

        rec = generate_recommendations(paris_user, [paris_task], now=aware)[0]

        assert rec.created_at == now
        assert rec.created_at.tzinfo is None
        assert not rec.is_expired(aware)
        assert rec.is_expired(aware + timedelta(hours=24))
