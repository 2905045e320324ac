# scripts/auto_recipe_generator.py
# 주재료 1개로 테마별 레시피를 미리 생성해 카탈로그를 채운다.
#   python -m fridge.scripts.auto_recipe_generator --ingredient 감자
# - 대화형 경로와 달리 건별 처리: 중복 제목은 skipped, 저장 실패는 failed 로 남기고 계속
# - 결과는 generation_logs 에 건별로 기록

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from fridge.core.config import init_logging, settings
from fridge.db.init import close_db, init_db
from fridge.services.gemini import GeminiClient, GeminiNotReady
from fridge.services.images import UnsplashClient
from fridge.services.normalizer import Ok, parse_recipe_array, normalize_recipe
from fridge.services.prompts import build_recipe_prompt
from fridge.services.recipe_store import PersistenceError, RecipeStore

log = logging.getLogger(__name__)

POPULAR_THEMES = ["간편식", "다이어트", "10분 요리", "채식", "캠핑", "술안주"]
DEFAULT_BASIC_COUNT = 4
DUPLICATE_TITLE = "Duplicate recipe title"


@dataclass
class GenerationStats:
    success: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0

    def __add__(self, other: "GenerationStats") -> "GenerationStats":
        return GenerationStats(
            self.success + other.success,
            self.skipped + other.skipped,
            self.failed + other.failed,
            self.total + other.total,
        )


async def generate_for_theme(
    store: RecipeStore,
    model,
    ingredient: str,
    theme: str,
    count: int,
    servings: int = 2,
    images: Optional[UnsplashClient] = None,
) -> GenerationStats:
    # 알레르기/식단 제약 없음 (공용 카탈로그)
    prompt = build_recipe_prompt(
        [ingredient], servings, theme_preference=theme, recipes_to_generate=count
    )
    print(f"\n🎯 테마: \"{theme or '(테마 없음)'}\" - {count}개 생성 시작")
    text = await model.generate(prompt)
    print(f"📥 응답 받음 (길이: {len(text or '')})")

    # 형식 오류(ParseError/EmptyResultError)는 테마 전체 실패로 올린다
    items = parse_recipe_array(text)
    stats = GenerationStats(total=len(items))

    for i, raw in enumerate(items, start=1):
        res = normalize_recipe(raw, servings, [ingredient])
        if not isinstance(res, Ok):
            print(f"⚠️  [{i}/{len(items)}] 필수 필드 누락, 건너뛰기 ({res.reason})")
            stats.failed += 1
            continue
        recipe = res.recipe

        if await store.find_by_title(recipe.title):
            print(f"⏭️  [{i}/{len(items)}] 중복된 제목, 건너뜀: {recipe.title}")
            stats.skipped += 1
            await store.log_generation(ingredient, "skipped", dish_name=recipe.title, error_message=DUPLICATE_TITLE)
            continue

        if images is not None and not recipe.image_url:
            img = await images.search_recipe_image(recipe.title, recipe.main_ingredients)
            if img:
                recipe.image_url = img.url

        try:
            await store.insert_recipe(recipe)
        except PersistenceError as e:
            print(f"❌ [{i}/{len(items)}] DB 저장 실패: {e}")
            stats.failed += 1
            await store.log_generation(ingredient, "failed", dish_name=recipe.title, error_message=str(e))
            continue

        print(f"✅ [{i}/{len(items)}] 저장 완료: {recipe.title}")
        stats.success += 1
        await store.log_generation(ingredient, "success", dish_name=recipe.title)

    return stats


async def run(
    store: RecipeStore,
    model,
    ingredient: str,
    themes: Sequence[str] = POPULAR_THEMES,
    basic_count: int = DEFAULT_BASIC_COUNT,
    servings: int = 2,
    images: Optional[UnsplashClient] = None,
) -> Tuple[GenerationStats, List[Tuple[str, GenerationStats]]]:
    """테마별 1개씩 + 테마 없이 basic_count개. (전체 통계, 테마별 통계) 반환."""
    recent = await store.recent_main_ingredients(30)
    if ingredient in recent:
        log.warning("'%s' was used in the last 30 recipes", ingredient)

    per_theme: List[Tuple[str, GenerationStats]] = []
    for theme in themes:
        per_theme.append((theme, await generate_for_theme(store, model, ingredient, theme, 1, servings, images)))
    if basic_count > 0:
        per_theme.append(("기본", await generate_for_theme(store, model, ingredient, "", basic_count, servings, images)))

    total = GenerationStats()
    for _, s in per_theme:
        total = total + s
    return total, per_theme


def print_summary(ingredient: str, total: GenerationStats, per_theme: List[Tuple[str, GenerationStats]]) -> None:
    print("\n━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━")
    print("🎉 레시피 자동 생성 완료!")
    print(f"📌 메인 재료: {ingredient}")
    print(f"   총 생성: {total.total}개")
    print(f"   ✅ 성공: {total.success}개")
    print(f"   ⏭️  중복: {total.skipped}개")
    print(f"   ❌ 실패: {total.failed}개")
    print("\n📋 테마별 상세:")
    for idx, (theme, s) in enumerate(per_theme, start=1):
        print(f"   {idx}. {theme}: 성공 {s.success}/{s.total}")
    print("━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="테마별 레시피 자동 생성")
    p.add_argument("--ingredient", required=True, help="메인 재료 (예: 감자)")
    p.add_argument("--themes", default=",".join(POPULAR_THEMES), help="쉼표로 구분한 테마 목록")
    p.add_argument("--basic-count", type=int, default=DEFAULT_BASIC_COUNT, help="테마 없이 생성할 개수")
    p.add_argument("--servings", type=int, default=2)
    return p.parse_args(argv)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    init_logging()

    try:
        model = GeminiClient(settings.gemini_config())
    except GeminiNotReady:
        print("❌ 필수 환경 변수가 설정되지 않았습니다:")
        print("  - GEMINI_API_KEY")
        return 1

    db = await init_db()
    store = RecipeStore(db)
    images = UnsplashClient(settings.UNSPLASH_ACCESS_KEY) if settings.UNSPLASH_ACCESS_KEY else None
    themes = [t.strip() for t in args.themes.split(",") if t.strip()]

    try:
        total, per_theme = await run(
            store, model, args.ingredient.strip(), themes, args.basic_count, args.servings, images
        )
    except Exception as e:
        print(f"❌ 레시피 생성 실패: {e}")
        try:
            await store.log_generation("unknown", "failed", error_message=str(e))
        except Exception as log_err:
            print(f"로그 저장 실패: {log_err}")
        return 1
    finally:
        await close_db()

    print_summary(args.ingredient, total, per_theme)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
