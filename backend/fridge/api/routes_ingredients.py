# fridge/api/routes_ingredients.py
# 냉장고 재료 CRUD + 사진에서 재료 추출
# 소유자: 로그인 사용자 id, 없으면 익명 쿠키

from __future__ import annotations
import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from fridge.core.deps import get_gemini, get_ingredients, get_owner_id
from fridge.db.models.ingredient import FridgeIngredient, FridgeIngredientIn, FridgeIngredientPatch
from fridge.services.ingredient_store import IngredientStore

log = logging.getLogger(__name__)

router = APIRouter(prefix="/ingredients", tags=["ingredients"])

IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


async def _collect_uploads(request: Request) -> List[bytes]:
    """
    multipart 폼의 이미지 필드 전부 수집 (필드명 무관).
    이미지 MIME만 통과.
    """
    imgs: List[bytes] = []
    form = await request.form()
    for _, v in form.multi_items():
        ct = (getattr(v, "content_type", None) or "").lower()
        if ct not in IMAGE_TYPES:
            continue
        data = await v.read()
        if len(data) > MAX_FILE_SIZE:
            raise HTTPException(status_code=400, detail="파일 크기는 10MB 이하여야 합니다")
        if data:
            imgs.append(data)
    return imgs


@router.get("", response_model=List[FridgeIngredient])
async def list_ingredients(owner: str = Depends(get_owner_id), store: IngredientStore = Depends(get_ingredients)):
    return await store.list_items(owner)


@router.post("", response_model=FridgeIngredient)
async def add_ingredient(
    payload: FridgeIngredientIn,
    owner: str = Depends(get_owner_id),
    store: IngredientStore = Depends(get_ingredients),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="재료 이름을 입력해주세요.")
    return await store.add(owner, name, payload.quantity)


@router.post("/bulk", response_model=List[FridgeIngredient])
async def add_ingredients_bulk(
    names: List[str],
    owner: str = Depends(get_owner_id),
    store: IngredientStore = Depends(get_ingredients),
):
    return await store.add_many(owner, names)


@router.patch("/{item_id}", response_model=FridgeIngredient)
async def update_ingredient(
    item_id: str,
    patch: FridgeIngredientPatch,
    owner: str = Depends(get_owner_id),
    store: IngredientStore = Depends(get_ingredients),
):
    item = await store.update(owner, item_id, patch)
    if item is None:
        raise HTTPException(status_code=404, detail="재료를 찾을 수 없습니다.")
    return item


@router.delete("/{item_id}")
async def delete_ingredient(
    item_id: str,
    owner: str = Depends(get_owner_id),
    store: IngredientStore = Depends(get_ingredients),
):
    if not await store.delete(owner, item_id):
        raise HTTPException(status_code=404, detail="재료를 찾을 수 없습니다.")
    return {"ok": True}


@router.delete("")
async def clear_ingredients(owner: str = Depends(get_owner_id), store: IngredientStore = Depends(get_ingredients)):
    return {"ok": True, "deleted": await store.clear(owner)}


@router.post("/photo")
async def extract_from_photo(
    request: Request,
    owner: str = Depends(get_owner_id),
    store: IngredientStore = Depends(get_ingredients),
    gemini=Depends(get_gemini),
):
    # 사진 → Gemini Vision → 재료명 → 냉장고에 추가 (중복 이름 제외)
    imgs = await _collect_uploads(request)
    if not imgs:
        raise HTTPException(status_code=400, detail="이미지 파일이 없습니다.")
    try:
        names = await gemini.extract_ingredients_from_images(imgs)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail="이미지 분석 시간이 초과되었습니다.")
    log.info("photo extract n_images=%d -> %s", len(imgs), names)
    if not names:
        raise HTTPException(status_code=422, detail="이미지에서 재료를 찾지 못했습니다.")
    added = await store.add_many(owner, names)
    return {"detected": names, "added": [a.model_dump() for a in added]}
