# fridge/services/recipe_store.py
# 레시피 저장소 (motor)
# - generated_recipes: 공용 카탈로그 (생성 결과, content 래핑 문서)
# - user_recipes: 개인 저장본 (평평한 문서 + original_recipe_id)
# - generation_logs: 배치 생성 감사 로그
# 매칭/점수 계산은 서비스 계층에서 한다. 여기는 조회/쓰기만.

from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pymongo.errors import BulkWriteError, PyMongoError

from fridge.db.models.recipe import Recipe, UserRecipe

log = logging.getLogger(__name__)

GENERATED = "generated_recipes"
USER_RECIPES = "user_recipes"
GENERATION_LOGS = "generation_logs"

_NEWEST = [("created_at", -1)]


class PersistenceError(Exception):
    # 저장 실패 (API에서 500)
    pass


def _search_filter(query: str) -> Dict[str, Any]:
    # 제목 부분일치(대소문자 무시) 또는 재료/테마 태그 정확 일치
    q = (query or "").strip().lower()
    if not q:
        return {}
    return {"$or": [
        {"title": {"$regex": re.escape(q), "$options": "i"}},
        {"main_ingredients": q},
        {"theme_tags": q},
    ]}


class RecipeStore:
    def __init__(self, db):
        self.db = db
        self.recipes = db[GENERATED]
        self.user_recipes = db[USER_RECIPES]
        self.logs = db[GENERATION_LOGS]

    # ------------------------------
    # 공용 카탈로그
    # ------------------------------

    async def candidates_by_owner(self, user_id: str, limit: int) -> List[Recipe]:
        # 캐시 후보: 소유자 기준 최신순 (포함 판정은 cache.py)
        cur = self.recipes.find({"user_id": user_id}).sort(_NEWEST).limit(limit)
        return [Recipe.from_document(d) async for d in cur]

    async def insert_recipes(self, recipes: Sequence[Recipe], user_id: Optional[str] = None) -> List[str]:
        """
        일괄 저장 (전부 아니면 전무).
        일부만 들어간 경우 들어간 것을 지우고 PersistenceError.
        """
        if not recipes:
            return []
        docs = [r.to_document(user_id=user_id) for r in recipes]
        ids = [d["id"] for d in docs]
        try:
            await self.recipes.insert_many(docs, ordered=True)
        except PyMongoError as e:
            log.error("bulk insert failed (n=%d): %s", len(docs), e)
            # ordered 삽입: 앞에서부터 nInserted 건만 들어갔다. 모르면 전부 정리
            landed = ids
            if isinstance(e, BulkWriteError):
                landed = ids[: (e.details or {}).get("nInserted", len(ids))]
            try:
                if landed:
                    await self.recipes.delete_many({"id": {"$in": landed}})
            except PyMongoError as cleanup_err:
                log.error("bulk insert cleanup failed: %s", cleanup_err)
            raise PersistenceError(f"레시피 저장 실패: {e}") from e
        log.info("saved %d recipes (user=%s)", len(ids), user_id)
        return ids

    async def insert_recipe(self, recipe: Recipe, user_id: Optional[str] = None) -> str:
        # 배치 스크립트용 단건 저장 (실패는 호출자가 건별 처리)
        doc = recipe.to_document(user_id=user_id)
        try:
            await self.recipes.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(str(e)) from e
        return doc["id"]

    async def find_by_title(self, title: str) -> Optional[Recipe]:
        doc = await self.recipes.find_one({"title": title})
        return Recipe.from_document(doc) if doc else None

    async def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        doc = await self.recipes.find_one({"id": recipe_id})
        return Recipe.from_document(doc) if doc else None

    async def delete_recipe(self, recipe_id: str) -> bool:
        res = await self.recipes.delete_one({"id": recipe_id})
        return res.deleted_count > 0

    async def recent_main_ingredients(self, limit: int = 30) -> List[str]:
        # 최근 N개 레시피에서 쓰인 주재료 (중복 제거, 등장 순서 유지)
        cur = self.recipes.find({}, {"main_ingredients": 1}).sort(_NEWEST).limit(limit)
        seen: Dict[str, None] = {}
        async for d in cur:
            for name in d.get("main_ingredients") or []:
                seen.setdefault(name, None)
        return list(seen)

    async def search(self, query: str, page: int = 0, page_size: int = 20) -> List[Recipe]:
        page = max(page, 0)
        cur = (
            self.recipes.find(_search_filter(query))
            .sort(_NEWEST)
            .skip(page * page_size)
            .limit(page_size)
        )
        return [Recipe.from_document(d) async for d in cur]

    async def related_candidates(
        self,
        exclude_id: str,
        main_ingredients: Sequence[str],
        theme_tags: Sequence[str],
        limit: int,
    ) -> List[Recipe]:
        # 재료 또는 태그가 하나라도 겹치는 레시피 (둘 다 비었으면 최신순)
        ors: List[Dict[str, Any]] = []
        if main_ingredients:
            ors.append({"main_ingredients": {"$in": list(main_ingredients)}})
        if theme_tags:
            ors.append({"theme_tags": {"$in": list(theme_tags)}})
        q: Dict[str, Any] = {"id": {"$ne": exclude_id}}
        if ors:
            q["$or"] = ors
        cur = self.recipes.find(q).sort(_NEWEST).limit(limit)
        return [Recipe.from_document(d) async for d in cur]

    async def log_generation(
        self,
        ingredient: str,
        status: str,
        dish_name: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        doc: Dict[str, Any] = {
            "ingredient": ingredient,
            "status": status,
            "created_at": datetime.now(timezone.utc),
        }
        if dish_name is not None:
            doc["dish_name"] = dish_name
        if error_message is not None:
            doc["error_message"] = error_message
        await self.logs.insert_one(doc)

    # ------------------------------
    # 개인 저장본
    # ------------------------------

    async def find_user_recipe(self, user_id: str, original_recipe_id: str) -> Optional[UserRecipe]:
        doc = await self.user_recipes.find_one({"user_id": user_id, "original_recipe_id": original_recipe_id})
        return UserRecipe.from_user_document(doc) if doc else None

    async def get_user_recipe(self, recipe_id: str, user_id: Optional[str] = None) -> Optional[UserRecipe]:
        q: Dict[str, Any] = {"id": recipe_id}
        if user_id is not None:
            q["user_id"] = user_id
        doc = await self.user_recipes.find_one(q)
        return UserRecipe.from_user_document(doc) if doc else None

    async def insert_user_recipe(self, recipe: UserRecipe) -> str:
        try:
            await self.user_recipes.insert_one(recipe.to_user_document())
        except PyMongoError as e:
            raise PersistenceError(f"레시피 저장 실패: {e}") from e
        return recipe.id

    async def update_user_recipe(self, recipe: UserRecipe) -> bool:
        doc = recipe.to_user_document()
        doc.pop("id", None)
        doc.pop("created_at", None)
        try:
            res = await self.user_recipes.update_one(
                {"id": recipe.id, "user_id": recipe.user_id}, {"$set": doc}
            )
        except PyMongoError as e:
            raise PersistenceError(f"레시피 수정 실패: {e}") from e
        return res.matched_count > 0

    async def delete_user_recipe(self, user_id: str, recipe_id: str) -> int:
        # 저장본 id 또는 원본 id 어느 쪽이든 삭제
        res = await self.user_recipes.delete_many({
            "user_id": user_id,
            "$or": [{"id": recipe_id}, {"original_recipe_id": recipe_id}],
        })
        return res.deleted_count

    async def list_user_recipes(self, user_id: str) -> List[UserRecipe]:
        cur = self.user_recipes.find({"user_id": user_id}).sort(_NEWEST)
        return [UserRecipe.from_user_document(d) async for d in cur]

    async def search_user_recipes(self, user_id: str, query: str) -> List[UserRecipe]:
        q = {"user_id": user_id, **_search_filter(query)}
        cur = self.user_recipes.find(q).sort(_NEWEST)
        return [UserRecipe.from_user_document(d) async for d in cur]
