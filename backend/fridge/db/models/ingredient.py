# fridge/db/models/ingredient.py
# 냉장고 재료 문서 + 분류 카테고리(닫힌 집합)
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

IngredientCategory = Literal[
    "meat", "vegetable", "seafood", "grain", "dairy", "seasoning", "fruit", "other"
]
CATEGORIES = ("meat", "vegetable", "seafood", "grain", "dairy", "seasoning", "fruit", "other")
DEFAULT_CATEGORY = "other"


class FridgeIngredient(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    name: str
    quantity: str = ""
    category: IngredientCategory = DEFAULT_CATEGORY
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FridgeIngredientIn(BaseModel):
    name: str = Field(min_length=1)
    quantity: str = ""


class FridgeIngredientPatch(BaseModel):
    name: Optional[str] = None
    quantity: Optional[str] = None
    category: Optional[IngredientCategory] = None
