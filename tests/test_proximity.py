"""
Unit tests for proximity alerts.
"""
import pytest

from helpix.services.geo import distance_km
from helpix.services.proximity import generate_proximity_alerts

PARIS = (48.8566, 2.3522)
LYON = (45.7640, 4.8357)


class TestProximityAlerts:
    """Test radius filtering and ordering."""

    def test_paris_task_alerted_lyon_task_not(self, paris_user, paris_task, lyon_task, now):
        alerts = generate_proximity_alerts(paris_user, [paris_task, lyon_task], now=now)

        assert [a.task_id for a in alerts] == [paris_task.id]
        assert alerts[0].id == "alert_helper-1_1"
        assert alerts[0].distance_km < 0.1
        assert alerts[0].created_at == now

    def test_every_alert_within_radius(self, paris_user, make_task, now):
        pool = [
            make_task(1, coords=(48.86, 2.35)),
            make_task(2, coords=(48.90, 2.40)),
            make_task(3, coords=(48.95, 2.50)),
            make_task(4, coords=(49.20, 2.60)),
        ]

        alerts = generate_proximity_alerts(paris_user, pool, radius_km=10, now=now)

        expected = {
            t.id for t in pool
            if distance_km(*PARIS, t.latitude, t.longitude) <= 10
        }
        assert {a.task_id for a in alerts} == expected
        assert all(a.distance_km <= 10 for a in alerts)

    def test_sorted_by_distance(self, paris_user, make_task, now):
        pool = [make_task(1, coords=(48.90, 2.40)), make_task(2, coords=(48.86, 2.35))]
        alerts = generate_proximity_alerts(paris_user, pool, now=now)
        assert [a.task_id for a in alerts] == [2, 1]

    def test_independent_of_skills(self, paris_user, make_task, now):
        alerts = generate_proximity_alerts(paris_user, [make_task(skills=("Cuisine",))], now=now)
        assert len(alerts) == 1

    def test_user_without_coordinates(self, make_user, paris_task, now):
        user = make_user(latitude=None, longitude=None)
        assert generate_proximity_alerts(user, [paris_task], now=now) == []

    def test_tasks_without_coordinates_and_own_tasks_skipped(self, paris_user, make_task, now):
        pool = [make_task(1, coords=None), make_task(2, user_id=paris_user.id)]
        assert generate_proximity_alerts(paris_user, pool, now=now) == []

    def test_radius_override(self, paris_user, lyon_task, now):
        alerts = generate_proximity_alerts(paris_user, [lyon_task], radius_km=500, now=now)
        assert alerts[0].distance_km == pytest.approx(392, abs=2)

    def test_task_exactly_on_radius_included(self, paris_user, make_task, now):
        pool = [make_task(1, coords=(48.95, 2.50)), make_task(2, coords=(48.96, 2.51))]
        radius = distance_km(*PARIS, 48.95, 2.50)

        alerts = generate_proximity_alerts(paris_user, pool, radius_km=radius, now=now)

        assert [a.task_id for a in alerts] == [1]
        assert alerts[0].distance_km == radius
