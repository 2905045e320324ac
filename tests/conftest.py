import json
from typing import Any, Dict, List, Optional

import pytest
from mongomock_motor import AsyncMongoMockClient

from fridge.db.models.recipe import Recipe
from fridge.services.recipe_store import PersistenceError


def recipe_json(title: str, main: Optional[List[str]] = None, **extra) -> Dict[str, Any]:
    # 모델이 돌려주는 모양 그대로 (meta 안에 영양 정보)
    d: Dict[str, Any] = {
        "title": title,
        "description": f"{title} 설명",
        "meta": {
            "difficulty": "초급",
            "cooking_time_min": 20,
            "calories_per_serving": 410,
            "protein": 12,
            "fat": 9,
            "carbohydrates": 60,
            "calorie_signal": "🟢",
        },
        "ingredients": [
            {"name": "감자", "amount": "2개", "category": "채소", "main_or_sub": "주재료"},
            {"name": "소금", "amount": "약간", "category": "양념", "main_or_sub": "부재료"},
        ],
        "steps": [
            {"step_no": 1, "action": "감자를 깍둑썰기 한다", "tip": "물에 담가 전분을 뺀다"},
            {"step_no": 2, "action": "볶는다"},
        ],
        "deep_info": {"chef_kick": "버터 한 조각", "storage": "냉장 2일", "substitutions": ""},
        "theme_tags": ["한식", "간편식", "반찬"],
        "main_ingredients": main if main is not None else ["감자"],
    }
    d.update(extra)
    return d


def model_text(items: Any, prose: str = "") -> str:
    return f"{prose}{json.dumps(items, ensure_ascii=False)}{prose}"


class FakeModel:
    """generate() 호출 횟수와 프롬프트를 기록하는 가짜 모델."""

    def __init__(self, responses: Optional[List[str]] = None, safe: bool = True, category: str = "vegetable"):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.calls = 0
        self.safe = safe
        self.category = category
        self.safety_texts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        return self.responses.pop(0) if self.responses else "[]"

    async def check_content_safety(self, text: str) -> bool:
        self.safety_texts.append(text)
        return self.safe

    async def classify_ingredient(self, name: str) -> str:
        return self.category

    async def extract_ingredients_from_images(self, images: List[bytes]) -> List[str]:
        return ["양파", "감자"] if images else []


class MemoryStore:
    """RecipeStore 의 생성 파이프라인용 부분만 흉내낸 인메모리 저장소."""

    def __init__(self, fail_insert: bool = False, fail_titles: Optional[List[str]] = None):
        self.rows: List[Recipe] = []
        self.logs: List[Dict[str, Any]] = []
        self.insert_calls = 0
        self.candidate_calls = 0
        self.fail_insert = fail_insert
        self.fail_titles = set(fail_titles or [])

    async def candidates_by_owner(self, user_id: str, limit: int) -> List[Recipe]:
        self.candidate_calls += 1
        mine = [r for r in self.rows if r.user_id == user_id]
        mine.sort(key=lambda r: r.created_at, reverse=True)
        return mine[:limit]

    async def insert_recipes(self, recipes, user_id=None):
        self.insert_calls += 1
        if self.fail_insert:
            raise PersistenceError("boom")
        for r in recipes:
            self.rows.append(r.model_copy(update={"user_id": user_id}))
        return [r.id for r in recipes]

    async def insert_recipe(self, recipe, user_id=None):
        self.insert_calls += 1
        if recipe.title in self.fail_titles:
            raise PersistenceError("insert failed")
        self.rows.append(recipe.model_copy(update={"user_id": user_id}))
        return recipe.id

    async def find_by_title(self, title: str):
        return next((r for r in self.rows if r.title == title), None)

    async def recent_main_ingredients(self, limit: int = 30) -> List[str]:
        out: List[str] = []
        for r in self.rows[-limit:]:
            out.extend(m for m in r.main_ingredients if m not in out)
        return out

    async def log_generation(self, ingredient, status, dish_name=None, error_message=None):
        row = {"ingredient": ingredient, "status": status}
        if dish_name is not None:
            row["dish_name"] = dish_name
        if error_message is not None:
            row["error_message"] = error_message
        self.logs.append(row)


class FakeProfiles:
    def __init__(self, allergies=None, dietary=None, fail: bool = False):
        self.allergies = list(allergies or [])
        self.dietary = list(dietary or [])
        self.fail = fail

    async def get_constraints(self, user_id):
        if self.fail:
            raise RuntimeError("profiles down")
        return list(self.allergies), list(self.dietary)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["fridge_test"]


@pytest.fixture
def memory_store():
    return MemoryStore()
