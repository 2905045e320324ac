# 공용 의존성/헬퍼 (익명 쿠키, 사용자 식별, 서비스 주입)
import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request, Response

from fridge.services.generation import RecipeGenerator

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2년


def get_or_set_anon_id(request: Request, response: Response) -> str:
    # 쿠키 없으면 발급, 있으면 그대로 사용
    v = request.cookies.get(COOKIE)
    if not v:
        v = uuid.uuid4().hex
        response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
    return v


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    # 인증은 앞단(게이트웨이)에서 끝내고 X-User-Id 로 넘겨준다. 없으면 비로그인
    v = (x_user_id or "").strip()
    return v or None


def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    uid = get_user_id(x_user_id)
    if not uid:
        raise HTTPException(status_code=401, detail="로그인이 필요합니다.")
    return uid


def get_owner_id(request: Request, response: Response,
                 x_user_id: Optional[str] = Header(default=None)) -> str:
    # 냉장고 재료: 로그인 사용자면 user id, 아니면 익명 쿠키
    return get_user_id(x_user_id) or get_or_set_anon_id(request, response)


# 앱 스타트업에서 app.state 에 올려둔 객체들
def get_profiles(request: Request):
    return request.app.state.profile_store


def get_ingredients(request: Request):
    return request.app.state.ingredient_store


def get_recipe_service(request: Request):
    return request.app.state.recipe_service


def get_gemini(request: Request):
    gemini = getattr(request.app.state, "gemini", None)
    if gemini is None:
        raise HTTPException(status_code=503, detail="Gemini API 키가 설정되지 않았습니다.")
    return gemini


def get_generator(request: Request) -> RecipeGenerator:
    gen = getattr(request.app.state, "generator", None)
    if gen is None:
        raise HTTPException(status_code=503, detail="Gemini API 키가 설정되지 않았습니다.")
    return gen
