# fridge/services/prompts.py
# Gemini 프롬프트 모음
# - 레시피 배치 생성 / 단건 생성 / 재료 분류 / 사진 재료 추출 / 안전 검사
# - 순수 문자열 조립만 한다 (I/O 없음)

from __future__ import annotations
from typing import List, Sequence

# 모델이 반드시 따라야 하는 레시피 JSON 한 건의 모양 (배열 원소 1개)
RECIPE_JSON_SCHEMA_TEMPLATE = """{
  "title": "레시피 제목",
  "description": "이 요리의 특징, 어울리는 상황, 맛의 매력을 4-5문장으로 작성 (구어체, 친근한 말투 사용)",
  "meta": {
    "difficulty": "초급/중급/고급",
    "cooking_time_min": 30,
    "calories_per_serving": 450,
    "protein": 25,
    "fat": 15,
    "carbohydrates": 50,
    "calorie_signal": "🟢/🟠/🔴"
  },
  "ingredients": [
    {"name": "재료명 (보정된 이름)", "amount": "100g", "category": "채소/육류/양념", "main_or_sub": "주재료/부재료"}
  ],
  "steps": [
    {"step_no": 1, "action": "조리 단계 설명", "tip": "중요한 팁"}
  ],
  "deep_info": {
    "chef_kick": "전문 셰프의 킥(추가 팁)",
    "storage": "보관 방법",
    "substitutions": "대체 재료 및 선택 이유 (알레르기 대응)"
  },
  "theme_tags": ["한식", "비오는날", "파티"],
  "main_ingredients": ["정렬된 주요 재료명 리스트 (캐싱 키로 사용)"],
  "chef_tips": [
    "멸치를 미리 볶으면 비린내가 사라져요",
    "마지막에 참기름 한 방울이 고소함을 더해줘요"
  ],
  "faq": [
    {"question": "대체 재료로 무엇을 써도 되나요?", "answer": "돼지고기 대신 소고기나 참치 통조림으로 대체 가능해요."}
  ],
  "storage_info": {
    "refrigerator_days": 3,
    "freezer_days": 14,
    "reheating_tip": "냄비에 물을 조금 붓고 약불에 데우세요."
  },
  "pairing_suggestions": "공깃밥과 김, 계란말이와 함께 먹으면 잘 어울려요."
}"""

ALLERGY_MARKER = "[필수 안전 조건]"


def _constraint_lines(theme: str, allergies: Sequence[str], dietary: Sequence[str]) -> List[str]:
    # 4번부터는 값이 있을 때만 번호를 붙여 나열
    lines: List[str] = []
    n = 4
    if theme:
        lines.append(f"{n}. 테마 선호: {theme}")
        n += 1
    if allergies:
        lines.append(f"{n}. **{ALLERGY_MARKER} 제외 재료 (알레르기 필터): {', '.join(allergies)}**")
        n += 1
    if dietary:
        lines.append(f"{n}. 식단 선호 (가능하면 피할 재료): {', '.join(dietary)}")
    return lines


def build_recipe_prompt(
    sorted_ingredients: Sequence[str],
    servings: int,
    theme_preference: str = "",
    allergies: Sequence[str] = (),
    dietary_preferences: Sequence[str] = (),
    recipes_to_generate: int = 3,
) -> str:
    """냉장고 재료 → N개 레시피 JSON 배열 생성 프롬프트.

    알레르기 목록이 비어있지 않으면 모든 항목이 원문 그대로 들어간다.
    """
    theme = (theme_preference or "").strip()
    allergies = [a for a in allergies if a]
    dietary = [d for d in dietary_preferences if d]
    n = recipes_to_generate

    head = [
        "## 역할 및 목표",
        "당신은 **실존하는 음식명을 먼저 도출**하고 그 정식 레시피를 기반으로 사용자에게 맞춤형 레시피를 제공하는 전문 셰프 AI입니다.",
        "",
        f"**중요: {n}개의 서로 다른 레시피를 JSON 배열 형태로 생성해야 합니다.**",
        "",
        "**레시피 명칭 규칙:** 모든 레시피의 제목과 설명은 **한국어 사용자**에게 자연스러운 언어로 작성하십시오. "
        "**제목이나 설명에 영어 번역을 괄호로 병기하지 마십시오.**",
        "",
        "응답은 반드시 다른 텍스트 설명 없이 **오직 JSON 배열만** 반환하십시오.",
        "",
        "---",
        "",
        "## 입력 재료 및 조건 (사용자 환경)",
        f"1. 냉장고 보유 재료 Pool: {', '.join(sorted_ingredients)}",
        f"2. 인분 기준: {servings}인분",
        "3. 레시피 모드: 가성비 모드",
        *_constraint_lines(theme, allergies, dietary),
        "",
        "---",
        "",
        "## 핵심 지침: 주재료 매핑 기반의 3단계 추론 (실재성 확보)",
        "",
        "### 1단계: 주재료 인식 및 실존 음식명 도출",
        "- **핵심 주재료 선별**: '냉장고 보유 재료 Pool'에서 레시피의 기반이 될 핵심 주재료를 1~2개 선별하십시오.",
        f"- **실존 음식명 도출**: 선별된 주재료를 활용하는 **실제 존재하는 음식명** {n}개를 도출하십시오. "
        "세상에 존재하지 않는 음식명 창조를 절대 금지합니다.",
        "",
        "### 2단계: 레시피 역추적 및 구성 (정식 레시피 기준)",
        "- **정식 레시피 사용**: 도출된 각 음식명의 검증된 정식 레시피를 기반으로 재료 구성과 단계를 확정하십시오.",
        "- **논리적 완성도 우선**: 냉장고 재료를 모두 사용할 강박을 버리고, 맛의 조화를 최우선으로 하세요.",
        "",
        "### 3단계: 냉장고 재료 매핑 및 최종 검증",
        "- **재료 목록 확정**: 최종 재료 목록은 정식 레시피의 모든 재료를 포함해야 합니다. "
        "(보유하지 않은 재료는 사용자가 따로 구매합니다.)",
        "- **품질 검증**: 1. 이 음식명은 실제로 존재하는가? 2. 레시피 구성이 논리적인가? 모두 \"예\"여야 합니다.",
        "",
        "---",
        "",
        "## 출력 상세 요구사항 및 추가 규칙",
    ]

    rules: List[str] = []
    if allergies:
        rules.append(
            f"**제외 재료(알레르기)가 포함된 요리는 절대 생성하지 마십시오: {', '.join(allergies)}**"
        )
        rules.append("제외 재료로 인해 레시피가 변경된 경우, 합리적인 대체 재료를 제안하고 그 이유를 deep_info.substitutions에 명시하십시오.")
    rules.append(f"생성된 레시피는 {servings}인분에 맞춰 모든 재료 양이 정확하게 스케일링되어야 합니다.")
    rules.append("요리 완료 후, 1인분 기준 칼로리, 단백질, 지방, 탄수화물 정보를 분석하여 JSON에 포함하십시오.")
    tag_rule = "레시피 메타 데이터로 '테마 태그'를 3개 이상 반드시 부여하십시오."
    if theme:
        tag_rule += f" 사용자가 선호한 테마({theme})를 반드시 반영하세요."
    rules.append(tag_rule)

    tail = [
        "",
        "- **비논리적 재료 금지**: 실존하지 않는 재료를 최종 목록에 절대 포함하지 마십시오.",
        "- **디저트/완제품 제외**: '수박바', '초콜릿', '콜라' 등 디저트/완제품을 주재료로 사용하지 마십시오.",
        "- **재료 분류**: 모든 재료를 '주재료' 또는 '부재료(양념, 소스)'로 명확히 분류하세요.",
        f"- **다양성**: {n}개의 레시피는 서로 다른 조리 방식, 장르, 스타일로 구성하세요.",
        "",
        "## 출력 JSON 스키마 (절대 준수)",
        "[",
        f"  {RECIPE_JSON_SCHEMA_TEMPLATE},",
        f"  ... (총 {n}개)",
        "]",
        "",
        "JSON 배열 외에 다른 텍스트는 절대 포함하지 마십시오.",
    ]

    numbered = [f"{i}. {r}" for i, r in enumerate(rules, start=1)]
    return "\n".join(head + numbered + tail)


def build_single_recipe_prompt(
    sorted_ingredients: Sequence[str],
    servings: int,
    theme_preference: str = "",
    allergies: Sequence[str] = (),
    dietary_preferences: Sequence[str] = (),
) -> str:
    # 단건 생성: 배열이 아니라 JSON 객체 하나
    theme = (theme_preference or "").strip()
    lines = [
        "## 역할 및 목표",
        "당신은 사용자의 냉장고 재료를 기반으로 안전하고 영양가 있는 레시피를 생성하는 전문 셰프 AI입니다. "
        "다른 텍스트 설명 없이 **오직 JSON 객체만** 반환하십시오.",
        "",
        "**레시피 명칭 규칙: 모든 레시피 제목과 설명은 반드시 한국어로만 작성하십시오.**",
        "",
    ]
    if allergies:
        lines += [
            "## 최우선 안전 규칙 (위반 절대 금지)",
            f"**{ALLERGY_MARKER} 다음 재료는 사용자의 알레르기 정보로 레시피에 절대 포함할 수 없습니다: {', '.join(allergies)}**",
            "- 이 재료들이 냉장고에 있더라도 절대 사용하지 마십시오.",
            "- 정식 레시피에 필요하다면 안전한 대체 재료를 사용하고 deep_info.substitutions에 이유를 명시하십시오.",
            "",
        ]
    if dietary_preferences:
        lines += [
            f"**[식단 선호] 가능한 다음 재료는 최소화하거나 피해주세요: {', '.join(dietary_preferences)}**",
            "",
        ]
    lines += [
        "## 입력 재료 및 조건",
        f"1. 사용자 보유 재료 (필수 사용): {', '.join(sorted_ingredients)}",
        f"2. 인분 기준: {servings}인분",
        "3. 레시피 모드: 가성비 모드",
    ]
    if theme:
        lines.append(f"4. 테마 선호: {theme}")
    lines += [
        "",
        "## 출력 JSON 스키마 (절대 준수)",
        RECIPE_JSON_SCHEMA_TEMPLATE,
        "",
        "JSON 외에 다른 텍스트는 절대 포함하지 마십시오.",
    ]
    return "\n".join(lines)


CLASSIFY_PROMPT = """다음 식재료를 아래 카테고리 중 하나로 분류하세요. 오직 카테고리 영문 한 단어만 응답하세요.

재료: {name}

카테고리:
- meat: 소고기, 돼지고기, 닭고기, 베이컨 등 육류
- vegetable: 양파, 감자, 당근, 버섯, 대파 등 채소
- seafood: 생선, 새우, 오징어, 조개 등 해산물
- grain: 쌀, 면, 밀가루, 식빵 등 곡류
- dairy: 우유, 치즈, 버터, 계란 등 유제품/알류
- seasoning: 간장, 소금, 설탕, 고추장, 식초 등 양념
- fruit: 사과, 바나나, 딸기 등 과일
- other: 그 외

응답: """


def build_classify_prompt(name: str) -> str:
    return CLASSIFY_PROMPT.format(name=name)


IMAGE_EXTRACT_PROMPT = """이 이미지를 분석하여 식재료 이름만 JSON 배열로 추출해주세요.

## 추출 규칙
1. **비식재료 제외**: '수세미', '세제', '칫솔', '비닐봉투', '휴지' 등 먹을 수 없는 물건은 절대 포함하지 마세요.
2. **디저트/완제품 포함**: '콜라', '아이스크림', '과자' 등 먹을 수 있는 완제품은 포함하세요.
3. **오타 보정**: '시빵' → '식빵' 처럼 명백한 OCR 오타는 보정하세요.
4. **정확도 필터**: 식별이 불분명한 단어는 추출하지 마세요.
5. **식재료 표준화**: '대파' (O), '파' (X) / '양파' (O), '양파1개' (X)

응답은 반드시 다음 형식의 JSON 배열만 반환하세요: ["재료1", "재료2", "재료3"]
설명이나 주석 없이 오직 JSON 배열만 반환하세요."""


SAFETY_PROMPT = """## 역할 및 목표
당신은 레시피 내용에 유해하거나 비도덕적인 내용이 포함되어 있는지 검토하는 안전 필터 AI입니다. 응답은 반드시 'SAFE' 또는 'UNSAFE' 둘 중 하나여야 합니다.

## 입력
{text}

## 출력 (단일 단어만 반환)
안전할 경우: SAFE
부적절할 경우: UNSAFE"""


def build_safety_prompt(text: str) -> str:
    return SAFETY_PROMPT.format(text=text)
