# fridge/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리

from __future__ import annotations

import logging
from asyncio import sleep
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fridge.api.routes_ingredients import router as ingredients_router   # 냉장고 재료/사진
from fridge.api.routes_profile import router as profile_router           # 알레르기/식단 선호
from fridge.api.routes_recipes import router as recipes_router           # 생성/검색/저장
from fridge.core.config import init_logging, settings
from fridge.db.indexes import ensure_indexes
from fridge.db.init import close_db, get_db, init_db
from fridge.services.gemini import build_gemini_client
from fridge.services.generation import RecipeGenerator
from fridge.services.ingredient_store import IngredientStore
from fridge.services.profile_store import ProfileStore
from fridge.services.recipe_service import RecipeService
from fridge.services.recipe_store import RecipeStore

log = logging.getLogger(__name__)


def wire_services(app: FastAPI, db, gemini) -> None:
    # db 핸들 + Gemini 클라이언트(없으면 None) → app.state 에 서비스 구성
    store = RecipeStore(db)
    profiles = ProfileStore(db)
    app.state.recipe_store = store
    app.state.profile_store = profiles
    app.state.ingredient_store = IngredientStore(db, classifier=gemini)
    app.state.recipe_service = RecipeService(store, safety=gemini)
    app.state.gemini = gemini
    app.state.generator = (
        RecipeGenerator(
            store,
            profiles,
            gemini,
            batch_size=settings.RECIPE_BATCH_SIZE,
            candidate_limit=settings.CACHE_CANDIDATE_LIMIT,
        )
        if gemini is not None
        else None
    )


def create_app() -> FastAPI:
    app = FastAPI(title="오늘의냉장고 - API", version="0.1.0")

    # CORS: 프론트 허용 + 쿠키 전달
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        init_logging()

        # 1) DB 먼저 붙는다 (최대 20회, 1초 간격)
        db = None
        for i in range(20):
            try:
                db = await init_db()
                log.info("[startup] db ready")
                break
            except Exception as e:
                log.warning("[startup] db init retry %d: %s", i + 1, e)
                await sleep(1.0)
        if db is None:
            raise RuntimeError("MongoDB init failed after retries")

        # 2) 인덱스 보장
        try:
            await ensure_indexes()
            log.info("[startup] indexes ensured")
        except Exception as e:
            log.error("[startup] ensure_indexes failed: %s", e)

        # 3) Gemini (키 없으면 생성/사진/안전검사만 503, 나머지는 동작)
        wire_services(app, db, build_gemini_client(settings.gemini_config()))

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await close_db()

    @app.get("/health")
    async def health():
        ok = {"status": "ok", "db": "skip", "gemini": "ok" if getattr(app.state, "gemini", None) else "disabled"}
        try:
            await get_db().command("ping")
            ok["db"] = "ok"
        except Exception as e:
            ok["db"] = f"error: {e}"
        return ok

    # 라우터 prefix는 각 파일 내에서 정의함, 중복 prefix 금지
    app.include_router(recipes_router)
    app.include_router(profile_router)
    app.include_router(ingredients_router)
    return app


app = create_app()
