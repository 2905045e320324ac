# fridge/services/normalizer.py
# 모델 응답 텍스트 → Recipe 리스트
# - JSON 구간 추출 → 파싱 → 원소별 Ok/Skip
# - 기본값 규칙은 DEFAULTS 한 곳에만 둔다

from __future__ import annotations
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from fridge.db.models.recipe import DeepInfo, Recipe, StorageInfo

log = logging.getLogger(__name__)


class GenerationError(Exception):
    # 모델 응답 형식 오류 공통 부모 (API에서 502)
    pass


class ParseError(GenerationError):
    pass


class EmptyResultError(GenerationError):
    pass


class NoValidRecipesError(GenerationError):
    pass


# 누락/불량 필드 기본값 (servings는 항상 호출자 값이라 여기 없음)
DEFAULTS: Dict[str, Any] = {
    "description": "",
    "theme_tags": [],
    "ingredients": [],
    "steps": [],
    "deep_info": {},
    "chef_tips": [],
    "faq": [],
    "cooking_time_min": 30,
    "calories": 0,
    "protein": 0,
    "fat": 0,
    "carbohydrates": 0,
}

# nutrition 필드 ← meta 키
_NUTRITION_KEYS = {
    "calories": "calories_per_serving",
    "protein": "protein",
    "fat": "fat",
    "carbohydrates": "carbohydrates",
}


@dataclass
class Ok:
    recipe: Recipe


@dataclass
class Skip:
    reason: str


NormalizeResult = Union[Ok, Skip]


@dataclass
class NormalizedBatch:
    recipes: List[Recipe] = field(default_factory=list)
    skipped: int = 0
    reasons: List[str] = field(default_factory=list)


def extract_json_span(text: str) -> str:
    # 첫 '[' 또는 '{' 부터 마지막 ']' 또는 '}' 까지 (가장 큰 구간)
    text = text or ""
    starts = [i for i in (text.find("["), text.find("{")) if i != -1]
    ends = [i for i in (text.rfind("]"), text.rfind("}")) if i != -1]
    if not starts or not ends:
        raise ParseError("no JSON found in model response")
    start, end = min(starts), max(ends)
    if end <= start:
        raise ParseError("no JSON found in model response")
    return text[start:end + 1]


def parse_recipe_array(text: str) -> List[Any]:
    span = extract_json_span(text)
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise ParseError(f"failed to parse recipe JSON: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ParseError(f"unexpected JSON root: {type(data).__name__}")
    if not data:
        raise EmptyResultError("no recipes in model response")
    return data


def _list(v: Any, key: str) -> list:
    return v if isinstance(v, list) else list(DEFAULTS[key])


def _number(v: Any, key: str) -> Any:
    # 숫자가 아니거나 음수/inf/nan 이면 기본값
    if isinstance(v, bool):
        return DEFAULTS[key]
    if isinstance(v, str):
        try:
            v = float(v)
        except ValueError:
            return DEFAULTS[key]
    if isinstance(v, (int, float)) and math.isfinite(v) and v >= 0:
        return v
    return DEFAULTS[key]


def _flatten_steps(steps: list) -> List[str]:
    out: List[str] = []
    for i, s in enumerate(steps, start=1):
        if isinstance(s, str):
            out.append(s)
            continue
        if not isinstance(s, dict):
            continue
        no = s.get("step_no") or i
        action = s.get("action") or ""
        tip = s.get("tip")
        out.append(f"{no}. {action} (팁: {tip})" if tip else f"{no}. {action}")
    return out


def _cooking_time(meta: Dict[str, Any]) -> int:
    v = _number(meta.get("cooking_time_min"), "cooking_time_min")
    try:
        v = int(v)
    except (TypeError, ValueError):
        return DEFAULTS["cooking_time_min"]
    return v if v > 0 else DEFAULTS["cooking_time_min"]


def _storage(v: Any) -> Optional[Dict[str, Any]]:
    # 보관 정보는 부가 필드라 형식이 틀리면 버린다
    if not isinstance(v, dict):
        return None
    try:
        return StorageInfo.model_validate(v).model_dump()
    except ValidationError:
        return None


def _text(v: Any) -> Optional[str]:
    # 문자열/숫자 → 문자열, 리스트는 ", " 로 이어 붙임, 그 외 None
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, list):
        parts = [t for t in (_text(x) for x in v) if t]
        return ", ".join(parts) if parts else None
    return None


def _deep_info(v: Any) -> Dict[str, Any]:
    # 필드별로 맞는 것만 남긴다
    if not isinstance(v, dict):
        return dict(DEFAULTS["deep_info"])
    tips = v.get("tips")
    if isinstance(tips, str):
        tips = [tips]
    data = {
        "substitutions": _text(v.get("substitutions")),
        "tips": [t for t in (_text(x) for x in tips) if t] if isinstance(tips, list) else None,
        "difficulty": _text(v.get("difficulty")),
        "chef_kick": _text(v.get("chef_kick")),
        "storage": _text(v.get("storage")),
    }
    try:
        return DeepInfo.model_validate(data).model_dump()
    except ValidationError:
        return dict(DEFAULTS["deep_info"])


def _ingredients(v: Any) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for i in _list(v, "ingredients"):
        if not isinstance(i, dict):
            continue
        name = _text(i.get("name"))
        if not name or not name.strip():
            continue
        out.append({
            "name": name.strip(),
            "amount": _text(i.get("amount")) or "",
            "category": _text(i.get("category")),
            "main_or_sub": _text(i.get("main_or_sub")),
        })
    return out


def _faq(v: Any) -> List[Dict[str, str]]:
    # 질문/답이 둘 다 문자열인 항목만
    return [
        {"question": f["question"], "answer": f["answer"]}
        for f in _list(v, "faq")
        if isinstance(f, dict)
        and isinstance(f.get("question"), str) and f["question"].strip()
        and isinstance(f.get("answer"), str) and f["answer"].strip()
    ]


def normalize_recipe(raw: Any, servings: int, fallback_main: Sequence[str]) -> NormalizeResult:
    """모델이 준 레시피 1건을 Recipe로. 필수 필드가 없으면 Skip."""
    if not isinstance(raw, dict):
        return Skip("not an object")

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        return Skip("missing title")

    main = raw.get("main_ingredients")
    if not main:
        return Skip("missing main_ingredients")
    if not isinstance(main, list):
        # 리스트가 아니면 요청 재료로 대체
        main = list(fallback_main)
    main = [str(m).strip() for m in main if str(m).strip()]
    if not main:
        return Skip("missing main_ingredients")

    meta = raw.get("meta") if isinstance(raw.get("meta"), dict) else {}
    deep_info = _deep_info(raw.get("deep_info"))
    ingredients = _ingredients(raw.get("ingredients"))
    faq = _faq(raw.get("faq"))
    storage = _storage(raw.get("storage_info"))
    pairing = raw.get("pairing_suggestions") if isinstance(raw.get("pairing_suggestions"), str) else None
    description = raw.get("description") if isinstance(raw.get("description"), str) else DEFAULTS["description"]

    data = {
        "title": title.strip(),
        "description": description,
        "main_ingredients": main,
        "theme_tags": [str(t) for t in _list(raw.get("theme_tags"), "theme_tags")],
        "ingredients_detail": ingredients,
        "instructions": _flatten_steps(_list(raw.get("steps"), "steps")),
        "meta": {
            "difficulty": meta.get("difficulty") if isinstance(meta.get("difficulty"), str) else None,
            "calorie_signal": meta.get("calorie_signal") if isinstance(meta.get("calorie_signal"), str) else None,
        },
        "nutrition": {k: _number(meta.get(src), k) for k, src in _NUTRITION_KEYS.items()},
        "deep_info": deep_info,
        "cooking_time_min": _cooking_time(meta),
        "servings": servings,
        "chef_tips": [str(t) for t in _list(raw.get("chef_tips"), "chef_tips")],
        "faq": faq,
        "storage_info": storage,
        "pairing_suggestions": pairing,
    }
    try:
        return Ok(Recipe.model_validate(data))
    except ValidationError as e:
        return Skip(f"invalid shape: {e.error_count()} error(s)")


def normalize_response(text: str, servings: int, fallback_main: Sequence[str]) -> NormalizedBatch:
    # ParseError / EmptyResultError 는 그대로 올려보낸다
    items = parse_recipe_array(text)
    batch = NormalizedBatch()
    for idx, raw in enumerate(items, start=1):
        res = normalize_recipe(raw, servings, fallback_main)
        if isinstance(res, Ok):
            batch.recipes.append(res.recipe)
        else:
            batch.skipped += 1
            batch.reasons.append(res.reason)
            log.warning("skip recipe #%d: %s", idx, res.reason)
    log.info("normalized: parsed=%d accepted=%d skipped=%d", len(items), len(batch.recipes), batch.skipped)
    return batch


