"""
Helpix Profile API
Read and update the helper profile used for matching
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from helpix.core.database import get_db
from helpix.core.security import get_current_user_id
from helpix.schemas.matching import UserProfile
from helpix.schemas.profile import ProfileUpdate
from helpix.services.matching_service import MatchingService

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=UserProfile)
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Get the matching profile of the current user."""
    profile = await MatchingService(db).load_user_profile(user_id)

    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    return profile


@router.put("", response_model=UserProfile)
async def update_profile(
    profile_data: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Update profile fields; a skills list replaces the current skills."""
    fields = profile_data.model_dump(exclude_unset=True, exclude={"skills"}, mode="json")
    skills = profile_data.skills if "skills" in profile_data.model_fields_set else None

    profile = await MatchingService(db).update_user_profile(user_id, fields, skills)

    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    return profile
