"""
Helpix Matching API
Recommendations, proximity alerts, task matching, settings and notifications

This module provides endpoints for:
- The matching dashboard of the current user
- Generating and acting on recommendations and proximity alerts
- Ranking tasks for a helper and helpers for a task
- Matching settings and smart notifications
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpix.core.database import get_db
from helpix.core.security import get_current_user_id
from helpix.schemas.matching import (
    MatchingDashboard, MatchingSettings, MatchResult, ProximityAlert,
    Recommendation, SmartNotification,
)
from helpix.schemas.profile import AutoMatchingToggle, SettingsUpdate
from helpix.services.matching_service import MatchingService

router = APIRouter(
    prefix="/matching",
    tags=["Matching"],
    responses={
        401: {"description": "Not authenticated"},
        503: {"description": "Data store unavailable, retry later"},
    }
)


def get_matching_service(db: AsyncSession = Depends(get_db)) -> MatchingService:
    return MatchingService(db)


def _found(value, detail: str):
    if value is None:
        raise HTTPException(status_code=404, detail=detail)
    return value


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@router.get("/dashboard", response_model=MatchingDashboard)
async def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Profile, live recommendations, alerts, stats and skill gaps."""
    return _found(await service.initialize(user_id), "User not found")


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

@router.get("/recommendations", response_model=list[Recommendation])
async def list_recommendations(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Live recommendations: not dismissed, not expired, best first."""
    return await service.list_recommendations(user_id)


@router.post("/recommendations/generate", response_model=list[Recommendation])
async def generate_recommendations(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Recompute recommendations for the current user now."""
    _found(await service.load_user_profile(user_id), "User not found")
    return await service.refresh_recommendations(user_id)


@router.post("/recommendations/{recommendation_id}/accept", response_model=Recommendation)
async def accept_recommendation(
    recommendation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return _found(
        await service.accept_recommendation(user_id, recommendation_id),
        "Recommendation not found",
    )


@router.post("/recommendations/{recommendation_id}/dismiss", response_model=Recommendation)
async def dismiss_recommendation(
    recommendation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return _found(
        await service.dismiss_recommendation(user_id, recommendation_id),
        "Recommendation not found",
    )


@router.post("/recommendations/{recommendation_id}/view", response_model=Recommendation)
async def view_recommendation(
    recommendation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return _found(
        await service.mark_recommendation_viewed(user_id, recommendation_id),
        "Recommendation not found",
    )


# ---------------------------------------------------------------------------
# Proximity alerts
# ---------------------------------------------------------------------------

@router.get("/alerts", response_model=list[ProximityAlert])
async def list_alerts(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Unviewed proximity alerts, newest first."""
    return await service.list_proximity_alerts(user_id)


@router.post("/alerts/generate", response_model=list[ProximityAlert])
async def generate_alerts(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    _found(await service.load_user_profile(user_id), "User not found")
    return await service.refresh_proximity_alerts(user_id)


@router.post("/alerts/{alert_id}/view", response_model=ProximityAlert)
async def view_alert(
    alert_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return _found(await service.mark_alert_viewed(user_id, alert_id), "Alert not found")


# ---------------------------------------------------------------------------
# Task matching
# ---------------------------------------------------------------------------

@router.get("/tasks", response_model=list[MatchResult])
async def best_tasks(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Best open tasks for the current user."""
    return _found(await service.find_best_tasks_for_user(user_id, limit), "User not found")


@router.get("/tasks/{task_id}/helpers", response_model=list[MatchResult])
async def best_helpers(
    task_id: int,
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Best available helpers for a task."""
    return _found(await service.find_best_matches_for_task(task_id, limit), "Task not found")


@router.get("/tasks/{task_id}/compatibility", response_model=MatchResult)
async def task_compatibility(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Score the current user against one task, with the factor breakdown."""
    return _found(await service.calculate_compatibility(user_id, task_id), "User or task not found")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@router.get("/settings", response_model=MatchingSettings)
async def get_settings(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return await service.get_settings(user_id)


@router.put("/settings", response_model=MatchingSettings)
async def update_settings(
    changes: SettingsUpdate,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Merge the given fields over the current settings."""
    return await service.update_settings(user_id, changes.model_dump(exclude_unset=True, exclude_none=True))


@router.post("/settings/auto-matching", response_model=MatchingSettings)
async def toggle_auto_matching(
    toggle: AutoMatchingToggle,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Turn background matching on or off for the current user."""
    scheduler = getattr(request.app.state, "scheduler", None)
    return await service.toggle_auto_matching(user_id, toggle.enabled, scheduler)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@router.get("/notifications", response_model=list[SmartNotification])
async def list_notifications(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    return await service.notifications.list_unread(user_id)


@router.post("/notifications/{notification_id}/read")
async def read_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    if not await service.notifications.mark_read(user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "read", "notification_id": notification_id}


@router.delete("/notifications")
async def clear_notifications(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Mark every notification as read."""
    cleared = await service.notifications.clear_all(user_id)
    return {"status": "cleared", "count": cleared}
