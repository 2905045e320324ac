# fridge/services/images.py
# 레시피 대표 이미지
# - DB의 image_url이 신뢰 도메인이면 그대로, 아니면 제목 키워드 기반 폴백
# - Unsplash 검색(httpx): 음식명 매핑 → 주재료 영어명 → 일반 검색어 순서로 시도

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import httpx

log = logging.getLogger(__name__)

# (키워드들, 이미지 URL): 앞에 있는 카테고리가 우선
FALLBACK_IMAGES: List[Tuple[Tuple[str, ...], str]] = [
    (("찌개", "김치찌개", "된장찌개", "순두부", "부대찌개", "청국장"),
     "https://images.unsplash.com/photo-1583032015627-fa5ab8e8ad94?w=800&q=80"),
    (("불고기", "제육", "볶음", "구이", "삼겹살", "닭갈비", "오징어볶음"),
     "https://images.unsplash.com/photo-1590301157890-4810ed352733?w=800&q=80"),
    (("비빔밥", "볶음밥", "덮밥", "김밥", "주먹밥", "쌈밥"),
     "https://images.unsplash.com/photo-1553163147-622ab57be1c7?w=800&q=80"),
    (("국", "탕", "미역국", "육개장", "갈비탕", "삼계탕", "곰탕"),
     "https://images.unsplash.com/photo-1586190848861-99aa4a171e90?w=800&q=80"),
    (("라면", "국수", "냉면", "잡채", "칼국수", "비빔국수"),
     "https://images.unsplash.com/photo-1569718212165-3a8278d5f624?w=800&q=80"),
    (("전", "파전", "김치전", "튀김", "부침개", "도토리묵"),
     "https://images.unsplash.com/photo-1534422298391-e4f8c172dddb?w=800&q=80"),
    (("찜", "조림", "갈비찜", "계란찜", "생선조림", "두부조림"),
     "https://images.unsplash.com/photo-1580554530778-ca36943938b2?w=800&q=80"),
    (("떡", "떡볶이", "떡국", "떡찜"),
     "https://images.unsplash.com/photo-1590528072213-1e85465e9acc?w=800&q=80"),
    (("치킨", "닭", "양념치킨", "후라이드", "닭강정"),
     "https://images.unsplash.com/photo-1562967914-608f82629710?w=800&q=80"),
    (("파스타", "스파게티", "크림", "까르보나라", "토마토"),
     "https://images.unsplash.com/photo-1621996346565-e3dbc646d9a9?w=800&q=80"),
    (("샐러드", "채소", "야채", "과일"),
     "https://images.unsplash.com/photo-1512621776951-a57141f2eefd?w=800&q=80"),
    (("스테이크", "소고기", "등심", "안심"),
     "https://images.unsplash.com/photo-1600891964092-4316c288032e?w=800&q=80"),
    (("연어", "새우", "생선", "해산물", "조개", "오징어"),
     "https://images.unsplash.com/photo-1519708227418-c8fd9a32b7a2?w=800&q=80"),
]

DEFAULT_FALLBACK = "https://images.unsplash.com/photo-1504674900247-0877df9cc836?w=800&q=80"

TRUSTED_DOMAINS = ("images.unsplash.com", "unsplash.com", "supabase.co", "cloudinary.com")


def fallback_image_for(title: str) -> str:
    lower = (title or "").lower()
    for keywords, url in FALLBACK_IMAGES:
        if any(k in lower for k in keywords):
            return url
    return DEFAULT_FALLBACK


def is_valid_image_url(url: Optional[str]) -> bool:
    if not url or not url.strip():
        return False
    try:
        host = urlparse(url.strip()).hostname or ""
    except ValueError:
        return False
    host = host.lower().rstrip(".")
    # 정확히 같은 호스트 또는 하위 도메인만
    return any(host == d or host.endswith("." + d) for d in TRUSTED_DOMAINS)


def recipe_image_url(recipe) -> str:
    # recipe: image_url / title 속성을 가진 객체
    url = getattr(recipe, "image_url", None)
    if is_valid_image_url(url):
        return url.strip()
    return fallback_image_for(getattr(recipe, "title", ""))


# ---------------------------------------------------------------------
# Unsplash 검색
# ---------------------------------------------------------------------
UNSPLASH_API_BASE = "https://api.unsplash.com"

FOOD_NAME_MAP: Dict[str, str] = {
    "김치찌개": "kimchi jjigae korean stew",
    "된장찌개": "doenjang jjigae korean stew",
    "불고기": "bulgogi korean bbq",
    "비빔밥": "bibimbap korean rice bowl",
    "떡볶이": "tteokbokki korean rice cake",
    "삼겹살": "samgyeopsal korean pork belly",
    "김밥": "kimbap korean roll",
    "잡채": "japchae korean noodles",
    "닭갈비": "dakgalbi korean chicken",
    "순두부찌개": "sundubu jjigae korean tofu stew",
    "갈비찜": "galbijjim korean braised ribs",
    "제육볶음": "jeyuk bokkeum korean pork",
    "파전": "pajeon korean pancake",
    "김치볶음밥": "kimchi fried rice",
    "계란찜": "korean steamed egg",
    "미역국": "miyeok guk seaweed soup",
    "육개장": "yukgaejang korean soup",
}

INGREDIENT_EN_MAP: Dict[str, str] = {
    "김치": "kimchi", "돼지고기": "pork", "소고기": "beef", "닭고기": "chicken",
    "두부": "tofu", "계란": "egg", "감자": "potato", "양파": "onion",
    "당근": "carrot", "버섯": "mushroom", "고추": "chili pepper", "마늘": "garlic",
    "파": "green onion", "쌀": "rice", "국수": "noodles", "떡": "rice cake",
    "어묵": "fish cake", "새우": "shrimp", "오징어": "squid", "미역": "seaweed",
}

_TITLE_NOISE_RE = re.compile(r"\s*(레시피|만들기|요리)\s*")


def search_queries(title: str, main_ingredients: Sequence[str] = ()) -> List[str]:
    clean = _TITLE_NOISE_RE.sub("", title or "").strip()
    queries = [FOOD_NAME_MAP.get(clean) or f"{clean} korean food"]
    if main_ingredients:
        en = INGREDIENT_EN_MAP.get(main_ingredients[0])
        if en:
            queries.append(f"{en} korean food dish")
    queries += ["korean food", "asian food dish"]
    return queries


@dataclass
class UnsplashImage:
    id: str
    url: str
    thumbnail: str
    description: Optional[str]
    alt_description: Optional[str]
    photographer: str
    photographer_url: str
    download_url: str


class UnsplashClient:
    def __init__(self, access_key: Optional[str], timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.access_key = access_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=UNSPLASH_API_BASE,
            headers={"Authorization": f"Client-ID {self.access_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def search_recipe_image(self, title: str, main_ingredients: Sequence[str] = ()) -> Optional[UnsplashImage]:
        # 키 없음/오류/결과 없음 → None
        if not self.access_key:
            log.warning("UNSPLASH_ACCESS_KEY not set")
            return None
        try:
            async with self._client() as cli:
                for q in search_queries(title, main_ingredients):
                    r = await cli.get(
                        "/search/photos",
                        params={"query": q, "per_page": 3, "orientation": "landscape"},
                    )
                    if r.status_code != 200:
                        log.warning("Unsplash error (%s): %s", q, r.status_code)
                        continue
                    results = r.json().get("results") or []
                    if not results:
                        continue
                    photo = results[0]
                    img = UnsplashImage(
                        id=photo["id"],
                        url=photo["urls"]["regular"],
                        thumbnail=photo["urls"]["small"],
                        description=photo.get("description"),
                        alt_description=photo.get("alt_description"),
                        photographer=photo["user"]["name"],
                        photographer_url=photo["user"]["links"]["html"],
                        download_url=photo["links"]["download_location"],
                    )
                    await self._track_download(cli, img.download_url)
                    return img
        except (httpx.HTTPError, KeyError, ValueError) as e:
            log.error("Unsplash search failed: %s", e)
            return None
        log.info("no Unsplash image for %r", title)
        return None

    async def _track_download(self, cli: httpx.AsyncClient, url: str) -> None:
        # Unsplash API 정책: 사용한 사진은 download_location 호출
        if not url:
            return
        try:
            await cli.get(url)
        except httpx.HTTPError as e:
            log.warning("Unsplash download tracking failed: %s", e)
