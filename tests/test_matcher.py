"""
Unit tests for ranking in both directions.
"""
import pytest

from helpix.schemas.matching import UserStats
from helpix.services.matcher import best_tasks_for_user, best_users_for_task, find_best_matches

LYON = (45.7640, 4.8357)


@pytest.fixture
def task_pool(make_task):
    return [
        make_task(1),
        make_task(2, coords=LYON),
        make_task(3, skills=("Cuisine",)),
        make_task(4, coords=None, skills=()),
        make_task(5, skills=("Jardinage", "Bricolage")),
    ]


class TestFindBestMatches:
    """Test ranking properties."""

    def test_sorted_by_score_descending(self, paris_user, task_pool, now):
        results = find_best_matches(paris_user, task_pool, limit=10, now=now)
        scores = [r.compatibility_score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_size_is_min_of_limit_and_candidates(self, paris_user, task_pool, now):
        assert len(find_best_matches(paris_user, task_pool, limit=3, now=now)) == 3
        assert len(find_best_matches(paris_user, task_pool, limit=50, now=now)) == len(task_pool)

    def test_results_come_from_candidates(self, paris_user, task_pool, now):
        ids = {t.id for t in task_pool}
        assert {r.task_id for r in find_best_matches(paris_user, task_pool, now=now)} <= ids

    def test_best_task_is_the_nearby_exact_match(self, paris_user, task_pool, now):
        assert find_best_matches(paris_user, task_pool, now=now)[0].task_id == 1

    def test_ties_broken_by_id(self, paris_user, make_task, now):
        pool = [make_task(9), make_task(7), make_task(8)]
        results = find_best_matches(paris_user, pool, now=now)
        assert [r.task_id for r in results] == [7, 8, 9]

    def test_empty_inputs(self, paris_user, paris_task, now):
        assert find_best_matches(paris_user, [], now=now) == []
        assert find_best_matches(paris_user, [paris_task], limit=0, now=now) == []

    def test_task_subject_ranks_users(self, make_user, paris_task, now):
        experienced = make_user("helper-b", stats=UserStats(completion_rate=95, total_tasks_completed=30))
        novice = make_user("helper-a", skills=())

        results = find_best_matches(paris_task, [novice, experienced], now=now)

        assert [r.user_id for r in results] == ["helper-b", "helper-a"]
        assert all(r.task_id == paris_task.id for r in results)


class TestBestForHelpers:
    """Test the thresholded helpers."""

    def test_own_tasks_excluded(self, paris_user, make_task, now):
        own = make_task(10, user_id=paris_user.id)
        results = best_tasks_for_user(paris_user, [own, make_task(11)], now=now)
        assert [r.task_id for r in results] == [11]

    def test_threshold_applied(self, paris_user, task_pool, now):
        results = best_tasks_for_user(paris_user, task_pool, min_score=0.7, now=now)
        assert results
        assert all(r.compatibility_score >= 0.7 for r in results)

    def test_task_owner_excluded_from_helpers(self, make_user, paris_task, now):
        owner = make_user("owner-1")
        helper = make_user("helper-1")
        results = best_users_for_task(paris_task, [owner, helper], now=now)
        assert [r.user_id for r in results] == ["helper-1"]
