# fridge/services/recipe_service.py
# 레시피 카탈로그/개인 저장 서비스
# - 저장/수정 전 안전 검사 (Gemini SAFE/UNSAFE)
# - 관련 레시피: 주재료 겹침 ×3 + 테마 태그 겹침 ×2

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Protocol

from fridge.db.models.recipe import Recipe, UserRecipe, utcnow
from fridge.services.gemini import GeminiNotReady
from fridge.services.recipe_store import RecipeStore

log = logging.getLogger(__name__)

INGREDIENT_WEIGHT = 3
TAG_WEIGHT = 2


class AuthRequired(Exception):
    pass


class NotFoundError(Exception):
    pass


class AlreadySavedError(Exception):
    pass


class SafetyCheckFailed(Exception):
    pass


class SafetyChecker(Protocol):
    async def check_content_safety(self, text: str) -> bool: ...


class RecipeService:
    def __init__(self, store: RecipeStore, safety: Optional[SafetyChecker] = None):
        self.store = store
        self.safety = safety

    async def _ensure_safe(self, recipe: Recipe) -> None:
        if self.safety is None:
            # 안전 검사기를 못 쓰면 저장도 막는다
            raise GeminiNotReady("GEMINI_API_KEY not set")
        if not await self.safety.check_content_safety(recipe.safety_text()):
            raise SafetyCheckFailed(
                "레시피 내용이 안전 기준을 통과하지 못했습니다. 부적절한 내용이 포함되어 있을 수 있습니다."
            )

    # ------------------------------
    # 개인 저장본
    # ------------------------------

    async def save_user_recipe(self, user_id: Optional[str], recipe_id: str) -> UserRecipe:
        if not user_id:
            raise AuthRequired("로그인이 필요합니다.")
        recipe = await self.get_recipe_by_id(recipe_id)
        if recipe is None:
            raise NotFoundError("레시피를 찾을 수 없습니다.")
        if await self.store.find_user_recipe(user_id, recipe.id):
            raise AlreadySavedError("이미 저장된 레시피입니다.")

        await self._ensure_safe(recipe)

        copy = UserRecipe.copy_of(recipe, user_id)
        copy.safety_consent = True
        copy.safety_check_passed = True
        await self.store.insert_user_recipe(copy)
        log.info("user %s saved recipe %s as %s", user_id, recipe.id, copy.id)
        return copy

    async def update_user_recipe(self, user_id: Optional[str], copy_id: str, edits: Dict[str, Any]) -> UserRecipe:
        """개인 저장본 수정. 수정된 내용으로 안전 검사를 다시 돌린다."""
        if not user_id:
            raise AuthRequired("로그인이 필요합니다.")
        current = await self.store.get_user_recipe(copy_id, user_id=user_id)
        if current is None:
            raise NotFoundError("저장된 레시피를 찾을 수 없습니다.")

        data = current.model_dump()
        tips = edits.pop("tips", None)
        data.update({k: v for k, v in edits.items() if v is not None})
        if tips is not None:
            data["deep_info"] = {**(data.get("deep_info") or {}), "tips": tips}
        updated = UserRecipe.model_validate(data)

        await self._ensure_safe(updated)

        updated.safety_check_passed = True
        updated.updated_at = utcnow()
        await self.store.update_user_recipe(updated)
        return updated

    async def unsave_user_recipe(self, user_id: Optional[str], recipe_id: str) -> int:
        # 저장본 id / 원본 id 모두 허용, 없으면 0 (에러 아님)
        if not user_id:
            raise AuthRequired("로그인이 필요합니다.")
        n = await self.store.delete_user_recipe(user_id, recipe_id)
        if n == 0:
            log.warning("unsave: nothing to delete (user=%s id=%s)", user_id, recipe_id)
        return n

    async def list_saved(self, user_id: Optional[str], query: str = "") -> List[UserRecipe]:
        if not user_id:
            raise AuthRequired("로그인이 필요합니다.")
        if query.strip():
            return await self.store.search_user_recipes(user_id, query)
        return await self.store.list_user_recipes(user_id)

    # ------------------------------
    # 공용 카탈로그
    # ------------------------------

    async def search_public_recipes(self, query: str = "", page: int = 0, page_size: int = 20) -> List[Recipe]:
        # 빈 검색어 → 최신순
        return await self.store.search(query, page=page, page_size=page_size)

    async def get_recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        # 공용 카탈로그 먼저, 없으면 개인 저장본
        r = await self.store.get_recipe(recipe_id)
        if r is not None:
            return r
        return await self.store.get_user_recipe(recipe_id)

    async def related_recipes(self, recipe: Recipe, limit: int = 6) -> List[Recipe]:
        mains = list(recipe.main_ingredients)
        tags = list(recipe.theme_tags)

        if not mains and not tags:
            return await self.store.related_candidates(recipe.id, [], [], limit)

        candidates = await self.store.related_candidates(recipe.id, mains, tags, limit * 2)
        if not candidates:
            return await self.store.related_candidates(recipe.id, [], [], limit)

        main_set, tag_set = set(mains), set(tags)

        def score(r: Recipe) -> int:
            shared_main = len(main_set.intersection(r.main_ingredients))
            shared_tags = len(tag_set.intersection(r.theme_tags))
            return shared_main * INGREDIENT_WEIGHT + shared_tags * TAG_WEIGHT

        # sorted는 안정 정렬: 동점이면 최신순 유지
        return sorted(candidates, key=score, reverse=True)[:limit]

    async def delete_recipe(self, recipe_id: str) -> None:
        if not await self.store.delete_recipe(recipe_id):
            raise NotFoundError("레시피를 찾을 수 없습니다.")
