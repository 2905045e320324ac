# fridge/db/models/schemas.py
# API 입출력 스키마
# GenerateRecipesIn: 냉장고 재료 → 레시피 생성 요청
# RecipeOut: 프론트 상세/카드 공용 (재료는 주재료/부재료/미분류로 나눠서 내려줌)
from __future__ import annotations
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from fridge.db.models.recipe import (
    DeepInfo, FaqItem, IngredientDetail, Nutrition, Recipe, RecipeMeta, StorageInfo,
)
from fridge.services.images import recipe_image_url

# # 레시피 생성 입력
class GenerateRecipesIn(BaseModel):
    ingredients: List[str] = Field(default_factory=list)
    servings: int = Field(2, ge=1, le=20)
    theme: str = ""

# # 재료 그룹 (주재료 / 양념·부재료 / 미분류)
class IngredientGroups(BaseModel):
    main: List[IngredientDetail] = Field(default_factory=list)
    sub: List[IngredientDetail] = Field(default_factory=list)
    uncategorized: List[IngredientDetail] = Field(default_factory=list)

class RecipeOut(BaseModel):
    id: str
    title: str
    description: str = ""
    imageUrl: str
    mainIngredients: List[str] = Field(default_factory=list)
    themeTags: List[str] = Field(default_factory=list)
    ingredients: IngredientGroups
    instructions: List[str] = Field(default_factory=list)
    meta: RecipeMeta
    nutrition: Nutrition
    deepInfo: DeepInfo
    cookingTimeMinutes: int
    servings: int
    chefTips: List[str] = Field(default_factory=list)
    faq: List[FaqItem] = Field(default_factory=list)
    storageInfo: Optional[StorageInfo] = None
    pairingSuggestions: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_recipe(cls, r: Recipe) -> "RecipeOut":
        groups = r.grouped_ingredients()
        return cls(
            id=r.id,
            title=r.title,
            description=r.description,
            imageUrl=recipe_image_url(r),
            mainIngredients=r.main_ingredients,
            themeTags=r.theme_tags,
            ingredients=IngredientGroups(**groups),
            instructions=r.instructions,
            meta=r.meta,
            nutrition=r.nutrition,
            deepInfo=r.deep_info,
            cookingTimeMinutes=r.cooking_time_min,
            servings=r.servings,
            chefTips=r.chef_tips,
            faq=r.faq,
            storageInfo=r.storage_info,
            pairingSuggestions=r.pairing_suggestions,
            createdAt=r.created_at,
        )

# # 생성 결과
class GenerateRecipesOut(BaseModel):
    recipes: List[RecipeOut]

# # 개인 저장본 수정 (수정 후 안전 검사 재실행)
class UserRecipeEditIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[List[str]] = None
    ingredients_detail: Optional[List[IngredientDetail]] = None
    theme_tags: Optional[List[str]] = None
    tips: Optional[List[str]] = None
