# fridge/api/routes_profile.py
# 사용자 프로필 (알레르기 / 식단 선호): 레시피 생성 제약으로 쓰인다

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from fridge.core.deps import get_profiles, require_user
from fridge.db.models.profile import ProfileValueIn, UserProfile
from fridge.services.profile_store import ProfileStore, ProfileValueError

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserProfile)
async def get_profile(user_id: str = Depends(require_user), profiles: ProfileStore = Depends(get_profiles)):
    return await profiles.ensure_profile(user_id)


@router.post("/allergies", response_model=UserProfile)
async def add_allergy(
    payload: ProfileValueIn,
    user_id: str = Depends(require_user),
    profiles: ProfileStore = Depends(get_profiles),
):
    try:
        return await profiles.add_allergy(user_id, payload.name)
    except ProfileValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/allergies", response_model=UserProfile)
async def remove_allergy(
    name: str,
    user_id: str = Depends(require_user),
    profiles: ProfileStore = Depends(get_profiles),
):
    return await profiles.remove_allergy(user_id, name)


@router.post("/dietary-preferences", response_model=UserProfile)
async def add_dietary_preference(
    payload: ProfileValueIn,
    user_id: str = Depends(require_user),
    profiles: ProfileStore = Depends(get_profiles),
):
    try:
        return await profiles.add_dietary_preference(user_id, payload.name)
    except ProfileValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/dietary-preferences", response_model=UserProfile)
async def remove_dietary_preference(
    name: str,
    user_id: str = Depends(require_user),
    profiles: ProfileStore = Depends(get_profiles),
):
    return await profiles.remove_dietary_preference(user_id, name)
