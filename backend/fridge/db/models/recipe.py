# 레시피 표준 스키마: 생성 파이프라인/카탈로그/개인 저장 공용
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# main_or_sub 라벨 → 표시 그룹
MAIN_LABELS = {"주재료", "main"}
SUB_LABELS = {"부재료", "sub", "양념", "소스", "seasoning"}

DEFAULT_DIFFICULTY = "중급"
DEFAULT_CALORIE_SIGNAL = "🟢"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_recipe_id() -> str:
    return uuid.uuid4().hex


class IngredientDetail(BaseModel):
    name: str
    amount: str = ""
    category: Optional[str] = None
    main_or_sub: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _v_amount(cls, v):
        # 모델이 숫자로 주는 경우가 있어 문자열로 통일
        return "" if v is None else str(v)

    @property
    def group(self) -> str:
        label = (self.main_or_sub or "").strip().lower()
        if label in MAIN_LABELS or label.startswith("주재료"):
            return "main"
        if label in SUB_LABELS or label.startswith("부재료"):
            return "sub"
        return "uncategorized"


class Nutrition(BaseModel):
    # 1인분 기준
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)
    carbohydrates: float = Field(0, ge=0)


class DeepInfo(BaseModel):
    substitutions: Optional[str] = None
    tips: Optional[List[str]] = None
    difficulty: Optional[str] = None
    chef_kick: Optional[str] = None
    storage: Optional[str] = None


class RecipeMeta(BaseModel):
    difficulty: Optional[str] = None
    calorie_signal: Optional[str] = None


class FaqItem(BaseModel):
    question: str
    answer: str


class StorageInfo(BaseModel):
    refrigerator_days: Optional[int] = None
    freezer_days: Optional[int] = None
    reheating_tip: Optional[str] = None


class Recipe(BaseModel):
    id: str = Field(default_factory=new_recipe_id)
    title: str = Field(min_length=1)
    description: str = ""
    main_ingredients: List[str] = Field(default_factory=list)
    theme_tags: List[str] = Field(default_factory=list)
    ingredients_detail: List[IngredientDetail] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    meta: RecipeMeta = Field(default_factory=RecipeMeta)
    nutrition: Nutrition = Field(default_factory=Nutrition)
    deep_info: DeepInfo = Field(default_factory=DeepInfo)
    cooking_time_min: int = Field(30, gt=0)
    servings: int = Field(2, gt=0)

    # 블로그형 부가 필드
    chef_tips: List[str] = Field(default_factory=list)
    faq: List[FaqItem] = Field(default_factory=list)
    storage_info: Optional[StorageInfo] = None
    pairing_suggestions: Optional[str] = None

    image_url: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("main_ingredients", mode="after")
    @classmethod
    def _v_sorted(cls, v: List[str]) -> List[str]:
        # 캐시 키와 같은 기준: 순서 무관하게 정렬 저장
        return sorted(v)

    def grouped_ingredients(self) -> Dict[str, List[IngredientDetail]]:
        groups: Dict[str, List[IngredientDetail]] = {"main": [], "sub": [], "uncategorized": []}
        for d in self.ingredients_detail:
            groups[d.group].append(d)
        return groups

    def safety_text(self) -> str:
        # 안전 검사 입력: 제목 + 조리 단계 + 팁
        tips = " ".join(self.deep_info.tips or [])
        return (
            f"Title: {self.title}\n"
            f"Instructions: {' '.join(self.instructions)}\n"
            f"Tips: {tips}"
        )

    # --- 저장소 문서 변환 ---------------------------------------------------
    def to_document(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        owner = user_id if user_id is not None else self.user_id
        return {
            "id": self.id,
            "user_id": owner,
            "title": self.title,
            "content": {
                "description": self.description,
                "ingredients_detail": [d.model_dump() for d in self.ingredients_detail],
                "instructions": list(self.instructions),
                "nutrition": self.nutrition.model_dump(),
                "deep_info": self.deep_info.model_dump(exclude_none=True),
                "servings": self.servings,
                "chef_tips": list(self.chef_tips),
                "faq": [f.model_dump() for f in self.faq],
                "storage_info": self.storage_info.model_dump() if self.storage_info else None,
                "pairing_suggestions": self.pairing_suggestions,
            },
            "difficulty": self.meta.difficulty or self.deep_info.difficulty or DEFAULT_DIFFICULTY,
            "cooking_time_min": self.cooking_time_min,
            "cooking_time": f"{self.cooking_time_min}분",
            "calories_per_serving": self.nutrition.calories,
            "calorie_signal": self.meta.calorie_signal or DEFAULT_CALORIE_SIGNAL,
            "theme_tags": list(self.theme_tags),
            "main_ingredients": list(self.main_ingredients),
            "image_url": self.image_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Recipe":
        content = doc.get("content") or {}
        nutrition = content.get("nutrition") or {"calories": doc.get("calories_per_serving") or 0}
        created = doc.get("created_at") or utcnow()
        return cls.model_validate({
            "id": doc.get("id") or new_recipe_id(),
            "title": doc.get("title") or "",
            "description": content.get("description") or "",
            "main_ingredients": doc.get("main_ingredients") or [],
            "theme_tags": doc.get("theme_tags") or [],
            "ingredients_detail": content.get("ingredients_detail") or [],
            "instructions": content.get("instructions") or [],
            "meta": {"difficulty": doc.get("difficulty"), "calorie_signal": doc.get("calorie_signal")},
            "nutrition": nutrition,
            "deep_info": content.get("deep_info") or {},
            "cooking_time_min": doc.get("cooking_time_min") or 30,
            "servings": content.get("servings") or 2,
            "chef_tips": content.get("chef_tips") or [],
            "faq": content.get("faq") or [],
            "storage_info": content.get("storage_info"),
            "pairing_suggestions": content.get("pairing_suggestions"),
            "image_url": doc.get("image_url"),
            "user_id": doc.get("user_id"),
            "created_at": created,
            "updated_at": doc.get("updated_at") or created,
        })


class UserRecipe(Recipe):
    # 개인 저장본 (원본 역참조 + 안전 검사 플래그)
    original_recipe_id: Optional[str] = None
    safety_consent: bool = False
    safety_check_passed: bool = False

    @classmethod
    def copy_of(cls, recipe: Recipe, user_id: str) -> "UserRecipe":
        now = utcnow()
        data = recipe.model_dump(exclude={"id", "user_id", "created_at", "updated_at"})
        return cls(
            **data,
            user_id=user_id,
            original_recipe_id=recipe.id,
            created_at=now,
            updated_at=now,
        )

    def to_user_document(self) -> Dict[str, Any]:
        # user_recipes 는 content 래핑 없이 평평하게 저장
        doc = self.model_dump(mode="python")
        doc["calories_per_serving"] = self.nutrition.calories
        return doc

    @classmethod
    def from_user_document(cls, doc: Dict[str, Any]) -> "UserRecipe":
        data = {k: v for k, v in doc.items() if k != "_id"}
        if not data.get("nutrition"):
            data["nutrition"] = {"calories": doc.get("calories_per_serving") or 0}
        data.pop("calories_per_serving", None)
        return cls.model_validate(data)
