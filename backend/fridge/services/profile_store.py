# fridge/services/profile_store.py
# 프로필(알레르기/식단 선호) 저장소
# - 생성 파이프라인은 get_constraints()만 사용

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fridge.db.models.profile import UserProfile

log = logging.getLogger(__name__)

PROFILES = "profiles"

ALLERGIES = "allergies"
DIETARY = "dietary_preferences"


class ProfileValueError(ValueError):
    # 빈 값/중복 등록 (API에서 422)
    pass


class ProfileStore:
    def __init__(self, db):
        self.col = db[PROFILES]

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        doc = await self.col.find_one({"id": user_id}, {"_id": 0})
        return UserProfile(**doc) if doc else None

    async def ensure_profile(self, user_id: str, email: Optional[str] = None) -> UserProfile:
        prof = await self.get_profile(user_id)
        if prof:
            return prof
        prof = UserProfile(id=user_id, email=email)
        await self.col.update_one(
            {"id": user_id}, {"$setOnInsert": prof.model_dump()}, upsert=True
        )
        return prof

    async def get_constraints(self, user_id: Optional[str]) -> Tuple[List[str], List[str]]:
        # (allergies, dietary_preferences). 비로그인/프로필 없음 → 빈 값
        if not user_id:
            return [], []
        prof = await self.get_profile(user_id)
        if not prof:
            return [], []
        return list(prof.allergies), list(prof.dietary_preferences)

    async def _add(self, user_id: str, field: str, value: str, label: str) -> UserProfile:
        v = (value or "").strip()
        if not v:
            raise ProfileValueError(f"{label} 이름을 입력해주세요.")
        prof = await self.ensure_profile(user_id)
        if v in getattr(prof, field):
            raise ProfileValueError(f"이미 등록된 {label}입니다.")
        await self.col.update_one(
            {"id": user_id},
            {"$push": {field: v}, "$set": {"updated_at": datetime.now(timezone.utc)}},
        )
        log.info("profile %s: +%s=%s", user_id, field, v)
        return await self.get_profile(user_id)

    async def _remove(self, user_id: str, field: str, value: str) -> UserProfile:
        prof = await self.ensure_profile(user_id)
        v = (value or "").strip()
        if v in getattr(prof, field):
            await self.col.update_one(
                {"id": user_id},
                {"$pull": {field: v}, "$set": {"updated_at": datetime.now(timezone.utc)}},
            )
        return await self.get_profile(user_id)

    async def add_allergy(self, user_id: str, name: str) -> UserProfile:
        return await self._add(user_id, ALLERGIES, name, "알레르기")

    async def remove_allergy(self, user_id: str, name: str) -> UserProfile:
        return await self._remove(user_id, ALLERGIES, name)

    async def add_dietary_preference(self, user_id: str, name: str) -> UserProfile:
        return await self._add(user_id, DIETARY, name, "식단 선호")

    async def remove_dietary_preference(self, user_id: str, name: str) -> UserProfile:
        return await self._remove(user_id, DIETARY, name)
