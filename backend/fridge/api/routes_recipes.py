# fridge/api/routes_recipes.py
# 레시피 생성/검색/상세/관련/개인 저장

from __future__ import annotations
import asyncio
import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from fridge.core.config import settings
from fridge.core.deps import get_generator, get_recipe_service, get_user_id, require_user
from fridge.db.models.schemas import (
    GenerateRecipesIn,
    GenerateRecipesOut,
    RecipeOut,
    UserRecipeEditIn,
)
from fridge.services.gemini import GeminiNotReady
from fridge.services.generation import RecipeGenerator
from fridge.services.normalizer import GenerationError
from fridge.services.recipe_service import (
    AlreadySavedError,
    AuthRequired,
    NotFoundError,
    RecipeService,
    SafetyCheckFailed,
)
from fridge.services.recipe_store import PersistenceError

log = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


async def _min_duration(started: float) -> None:
    # 체감 대기시간 하한 (UX 용)
    remain = settings.GENERATION_MIN_SECONDS - (time.monotonic() - started)
    if remain > 0:
        await asyncio.sleep(remain)


@router.post("/generate", response_model=GenerateRecipesOut)
async def generate_recipes(
    payload: GenerateRecipesIn,
    user_id: Optional[str] = Depends(get_user_id),
    generator: RecipeGenerator = Depends(get_generator),
):
    names = [n for n in (s.strip() for s in payload.ingredients) if n]
    if not names:
        raise HTTPException(status_code=422, detail="재료를 1개 이상 입력해주세요.")

    started = time.monotonic()
    try:
        recipes = await generator.generate_batch(
            names, servings=payload.servings, theme=payload.theme, user_id=user_id
        )
    except GenerationError as e:
        log.warning("generation failed: %s", e)
        raise HTTPException(status_code=502, detail=f"레시피 생성 실패: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail="레시피 생성 시간이 초과되었습니다.")
    finally:
        await _min_duration(started)

    return GenerateRecipesOut(recipes=[RecipeOut.from_recipe(r) for r in recipes])


@router.get("/search", response_model=List[RecipeOut])
async def search_recipes(
    q: str = "",
    page: int = Query(0, ge=0),
    page_size: int = Query(20, ge=1, le=100),
    svc: RecipeService = Depends(get_recipe_service),
):
    recipes = await svc.search_public_recipes(q, page=page, page_size=page_size)
    return [RecipeOut.from_recipe(r) for r in recipes]


@router.get("/saved", response_model=List[RecipeOut])
async def list_saved_recipes(
    q: str = "",
    user_id: str = Depends(require_user),
    svc: RecipeService = Depends(get_recipe_service),
):
    return [RecipeOut.from_recipe(r) for r in await svc.list_saved(user_id, q)]


@router.put("/saved/{copy_id}", response_model=RecipeOut)
async def edit_saved_recipe(
    copy_id: str,
    payload: UserRecipeEditIn,
    user_id: str = Depends(require_user),
    svc: RecipeService = Depends(get_recipe_service),
):
    try:
        updated = await svc.update_user_recipe(user_id, copy_id, payload.model_dump(exclude_none=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SafetyCheckFailed as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GeminiNotReady as e:
        raise HTTPException(status_code=503, detail=f"Gemini 준비 안 됨: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return RecipeOut.from_recipe(updated)


@router.get("/{recipe_id}", response_model=RecipeOut)
async def get_recipe(recipe_id: str, svc: RecipeService = Depends(get_recipe_service)):
    r = await svc.get_recipe_by_id(recipe_id)
    if r is None:
        raise HTTPException(status_code=404, detail="레시피를 찾을 수 없습니다.")
    return RecipeOut.from_recipe(r)


@router.get("/{recipe_id}/related", response_model=List[RecipeOut])
async def related_recipes(
    recipe_id: str,
    limit: int = Query(6, ge=1, le=30),
    svc: RecipeService = Depends(get_recipe_service),
):
    r = await svc.get_recipe_by_id(recipe_id)
    if r is None:
        raise HTTPException(status_code=404, detail="레시피를 찾을 수 없습니다.")
    return [RecipeOut.from_recipe(x) for x in await svc.related_recipes(r, limit=limit)]


@router.delete("/{recipe_id}")
async def delete_recipe(recipe_id: str, svc: RecipeService = Depends(get_recipe_service)):
    try:
        await svc.delete_recipe(recipe_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.post("/{recipe_id}/save", response_model=RecipeOut)
async def save_recipe(
    recipe_id: str,
    user_id: Optional[str] = Depends(get_user_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    try:
        copy = await svc.save_user_recipe(user_id, recipe_id)
    except AuthRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadySavedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SafetyCheckFailed as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GeminiNotReady as e:
        raise HTTPException(status_code=503, detail=f"Gemini 준비 안 됨: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return RecipeOut.from_recipe(copy)


@router.delete("/{recipe_id}/save")
async def unsave_recipe(
    recipe_id: str,
    user_id: str = Depends(require_user),
    svc: RecipeService = Depends(get_recipe_service),
):
    n = await svc.unsave_user_recipe(user_id, recipe_id)
    return {"ok": True, "deleted": n}
