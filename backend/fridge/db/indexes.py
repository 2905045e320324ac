# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from fridge.db.init import get_db

# 공용 레시피 카탈로그
async def ensure_recipe_indexes(db):
    col = db["generated_recipes"]
    await col.create_index("id", unique=True)
    await col.create_index([("user_id", 1), ("created_at", -1)])
    await col.create_index([("created_at", -1)])
    await col.create_index("title")
    await col.create_index("main_ingredients")
    await col.create_index("theme_tags")

# 개인 저장 레시피
async def ensure_user_recipe_indexes(db):
    col = db["user_recipes"]
    await col.create_index("id", unique=True)
    await col.create_index([("user_id", 1), ("original_recipe_id", 1)], unique=True, sparse=True)
    await col.create_index([("user_id", 1), ("created_at", -1)])

async def ensure_indexes():
    db = get_db()

    await ensure_recipe_indexes(db)
    await ensure_user_recipe_indexes(db)

    # 프로필(알레르기/편식)
    await db["profiles"].create_index("id", unique=True)

    # 냉장고 재료 (익명 쿠키 또는 로그인 사용자 기준)
    await db["fridge_ingredients"].create_index([("user_id", 1), ("created_at", -1)])

    # 배치 생성 감사 로그
    await db["generation_logs"].create_index([("created_at", -1)])
    await db["generation_logs"].create_index([("status", 1), ("created_at", -1)])
