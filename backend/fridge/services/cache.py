# fridge/services/cache.py
# 생성 캐시 조회
# - 캐시 키: 재료명 정규화(NFKC/trim) → 빈 값 제거 → 중복 제거 → 정렬
# - 저장소는 "소유자 기준 후보"만 가져오고, 포함(superset) 판정은 여기서 한다

from __future__ import annotations
import logging
import unicodedata
from typing import Iterable, List, Optional, Protocol, Sequence

from fridge.db.models.recipe import Recipe

log = logging.getLogger(__name__)


class CandidateSource(Protocol):
    async def candidates_by_owner(self, user_id: str, limit: int) -> List[Recipe]: ...


def _nfkc(s: str) -> str:
    return unicodedata.normalize("NFKC", s or "")


def cache_key(names: Iterable[str]) -> List[str]:
    # 입력 순서와 무관하게 같은 키
    seen = {_nfkc(n).strip() for n in names if n}
    return sorted(n for n in seen if n)


def is_superset(candidate_main: Sequence[str], requested_key: Sequence[str]) -> bool:
    return set(cache_key(candidate_main)) >= set(requested_key)


async def lookup_cached_recipes(
    store: CandidateSource,
    key: Sequence[str],
    user_id: Optional[str],
    limit: int,
    candidate_limit: int = 200,
) -> List[Recipe]:
    # 비로그인은 캐시를 보지 않는다 (항상 새로 생성)
    if not user_id:
        return []
    if not key or limit <= 0:
        return []

    # 소유자의 최신 candidate_limit 건만 후보. 그보다 오래된 레시피는 캐시에 걸리지 않는다
    candidates = await store.candidates_by_owner(user_id, candidate_limit)
    hits = [r for r in candidates if is_superset(r.main_ingredients, key)]
    log.info("cache lookup user=%s key=%s candidates=%d hits=%d", user_id, key, len(candidates), len(hits))
    return hits[:limit]
