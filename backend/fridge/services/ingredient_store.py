# fridge/services/ingredient_store.py
# 냉장고 재료 CRUD (익명 쿠키 또는 로그인 사용자 id 기준)
# - 추가 시 Gemini로 카테고리 분류, 실패/미설정이면 "other"

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Protocol

from fridge.db.models.ingredient import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    FridgeIngredient,
    FridgeIngredientPatch,
)

log = logging.getLogger(__name__)

FRIDGE = "fridge_ingredients"


class Classifier(Protocol):
    async def classify_ingredient(self, name: str) -> str: ...


class IngredientStore:
    def __init__(self, db, classifier: Optional[Classifier] = None):
        self.col = db[FRIDGE]
        self.classifier = classifier

    async def _classify(self, name: str) -> str:
        if self.classifier is None:
            return DEFAULT_CATEGORY
        try:
            cat = await self.classifier.classify_ingredient(name)
        except Exception as e:
            log.warning("classify failed for %r: %s", name, e)
            return DEFAULT_CATEGORY
        return cat if cat in CATEGORIES else DEFAULT_CATEGORY

    async def list_items(self, user_id: str) -> List[FridgeIngredient]:
        cur = self.col.find({"user_id": user_id}, {"_id": 0}).sort([("created_at", -1)])
        return [FridgeIngredient(**d) async for d in cur]

    async def add(self, user_id: str, name: str, quantity: str = "") -> FridgeIngredient:
        name = name.strip()
        item = FridgeIngredient(
            user_id=user_id,
            name=name,
            quantity=quantity,
            category=await self._classify(name),
        )
        await self.col.insert_one(item.model_dump())
        return item

    async def add_many(self, user_id: str, names: Iterable[str]) -> List[FridgeIngredient]:
        # 사진 추출 결과 일괄 추가 (빈 값/이미 있는 이름 제외)
        existing = {i.name for i in await self.list_items(user_id)}
        out: List[FridgeIngredient] = []
        for n in names:
            n = (n or "").strip()
            if not n or n in existing:
                continue
            existing.add(n)
            out.append(await self.add(user_id, n))
        return out

    async def update(self, user_id: str, item_id: str, patch: FridgeIngredientPatch) -> Optional[FridgeIngredient]:
        changes = patch.model_dump(exclude_none=True)
        if not changes:
            doc = await self.col.find_one({"id": item_id, "user_id": user_id}, {"_id": 0})
            return FridgeIngredient(**doc) if doc else None
        changes["updated_at"] = datetime.now(timezone.utc)
        res = await self.col.update_one({"id": item_id, "user_id": user_id}, {"$set": changes})
        if res.matched_count == 0:
            return None
        doc = await self.col.find_one({"id": item_id, "user_id": user_id}, {"_id": 0})
        return FridgeIngredient(**doc)

    async def delete(self, user_id: str, item_id: str) -> bool:
        res = await self.col.delete_one({"id": item_id, "user_id": user_id})
        return res.deleted_count > 0

    async def clear(self, user_id: str) -> int:
        res = await self.col.delete_many({"user_id": user_id})
        return res.deleted_count
