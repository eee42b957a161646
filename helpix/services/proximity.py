"""
Helpix Proximity Alerts
Distance-only alerts for tasks near a helper, independent of skill scoring
"""
from datetime import datetime
from typing import Iterable, Optional

from helpix.core.clock import to_naive_utc, utcnow
from helpix.schemas.matching import ProximityAlert, UserProfile
from helpix.services.geo import distance_km, distances_km
from helpix.services.profiles import to_matching_profile

BOUNDARY_SLACK_KM = 1e-6


def alert_id(user_id: str, task_id: int) -> str:
    return f"alert_{user_id}_{task_id}"


def generate_proximity_alerts(
    user: UserProfile,
    task_pool: Iterable,
    radius_km: Optional[float] = None,
    now: Optional[datetime] = None,
) -> list[ProximityAlert]:
    """
    Alerts for every task within `radius_km` of the helper.

    Tasks without coordinates and the helper's own tasks are skipped. A
    helper without coordinates gets no alerts.

    Args:
        user: Helper profile snapshot
        task_pool: TaskRecords or TaskMatchingProfiles
        radius_km: Cutoff distance (defaults to the helper's max distance)
        now: Creation time stamped on the alerts

    Returns:
        ProximityAlerts sorted by distance ascending
    """
    if not user.has_coordinates:
        return []

    radius_km = user.preferences.max_distance_km if radius_km is None else radius_km
    now = to_naive_utc(now) or utcnow()

    tasks = [
        task for task in (to_matching_profile(t) for t in task_pool)
        if task.has_coordinates and task.user_id != user.id
    ]
    if not tasks:
        return []

    distances = distances_km(
        user.latitude,
        user.longitude,
        [t.latitude for t in tasks],
        [t.longitude for t in tasks],
    )

    # The vectorised pass only preselects; the kept distance is the scalar one
    nearby = []
    for task, d in zip(tasks, distances):
        if d > radius_km + BOUNDARY_SLACK_KM:
            continue
        distance = distance_km(user.latitude, user.longitude, task.latitude, task.longitude)
        if distance <= radius_km:
            nearby.append((task, distance))
    nearby.sort(key=lambda pair: (pair[1], pair[0].id))

    return [
        ProximityAlert(
            id=alert_id(user.id, task.id),
            user_id=user.id,
            task_id=task.id,
            distance_km=distance,
            created_at=now,
        )
        for task, distance in nearby
    ]
