# fridge/services/generation.py
# 냉장고 재료 → 레시피 생성 파이프라인
#   캐시 조회 → (부족하면) 프롬프트 → Gemini → 정규화 → 일괄 저장 → 캐시 + 신규 병합
# 모든 I/O는 순차 await. 저장 실패 시 생성 결과는 반환하지 않는다.

from __future__ import annotations
import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from fridge.db.models.recipe import Recipe
from fridge.services.cache import cache_key, lookup_cached_recipes
from fridge.services.normalizer import NoValidRecipesError, normalize_response
from fridge.services.prompts import build_recipe_prompt, build_single_recipe_prompt

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 3


class TextModel(Protocol):
    async def generate(self, prompt: str) -> str: ...


class RecipeGenerator:
    def __init__(
        self,
        store,
        profiles,
        model: TextModel,
        batch_size: int = DEFAULT_BATCH_SIZE,
        candidate_limit: int = 200,
    ):
        self.store = store
        self.profiles = profiles
        self.model = model
        self.batch_size = batch_size
        self.candidate_limit = candidate_limit

    async def _constraints(self, user_id: Optional[str]) -> Tuple[List[str], List[str]]:
        # 프로필 조회 실패는 무시하고 제약 없이 진행
        if not user_id or self.profiles is None:
            return [], []
        try:
            return await self.profiles.get_constraints(user_id)
        except Exception as e:
            log.warning("profile fetch failed (continuing without preferences): %s", e)
            return [], []

    async def generate_batch(
        self,
        ingredients: Sequence[str],
        servings: int = 2,
        theme: str = "",
        user_id: Optional[str] = None,
    ) -> List[Recipe]:
        key = cache_key(ingredients)
        cached = await lookup_cached_recipes(
            self.store, key, user_id, self.batch_size, self.candidate_limit
        )
        if len(cached) >= self.batch_size:
            log.info("cache short-circuit: %d cached recipes", len(cached))
            return cached[: self.batch_size]

        allergies, dietary = await self._constraints(user_id)
        to_generate = self.batch_size - len(cached)
        prompt = build_recipe_prompt(
            key,
            servings,
            theme_preference=theme,
            allergies=allergies,
            dietary_preferences=dietary,
            recipes_to_generate=to_generate,
        )
        log.debug("prompt head: %s...", prompt[:200])

        text = await self.model.generate(prompt)
        log.info("model response length=%d", len(text or ""))

        batch = normalize_response(text, servings, key)
        if not batch.recipes:
            raise NoValidRecipesError(
                f"no valid recipes in model response (skipped={batch.skipped})"
            )

        # 요청 수보다 많이 오면 앞에서부터만 저장 (응답 = 저장된 것)
        fresh = batch.recipes[:to_generate]

        # 전부 아니면 전무: 실패하면 PersistenceError 그대로 올라간다
        await self.store.insert_recipes(fresh, user_id=user_id)
        for r in fresh:
            r.user_id = user_id

        return list(cached) + fresh

    async def generate_single(
        self,
        ingredients: Sequence[str],
        servings: int = 2,
        theme: str = "",
        user_id: Optional[str] = None,
    ) -> Recipe:
        """레시피 1건 생성 (저장하지 않음). 캐시에 있으면 그걸 돌려준다."""
        key = cache_key(ingredients)
        cached = await lookup_cached_recipes(self.store, key, user_id, 1, self.candidate_limit)
        if cached:
            return cached[0]

        allergies, dietary = await self._constraints(user_id)
        prompt = build_single_recipe_prompt(
            key, servings, theme_preference=theme,
            allergies=allergies, dietary_preferences=dietary,
        )
        text = await self.model.generate(prompt)
        batch = normalize_response(text, servings, key)
        if not batch.recipes:
            raise NoValidRecipesError("no valid recipe in model response")
        return batch.recipes[0]
