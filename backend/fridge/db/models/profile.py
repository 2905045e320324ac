# fridge/db/models/profile.py
from typing import List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field

# 입력 바디 (프론트에서 보내는 값)
class ProfileValueIn(BaseModel):
    name: str  # 예: "땅콩", "오이"

# DB 저장 문서
class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    allergies: List[str] = []              # 예: ["우유","땅콩"] → 생성 시 필수 제외
    dietary_preferences: List[str] = []    # 예: ["오이","가지"] → 가능하면 피함
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
