from fridge.services.prompts import (
    ALLERGY_MARKER,
    RECIPE_JSON_SCHEMA_TEMPLATE,
    build_classify_prompt,
    build_recipe_prompt,
    build_safety_prompt,
    build_single_recipe_prompt,
)


def test_every_allergy_term_appears_verbatim():
    allergies = ["땅콩", "우유", "새우 (갑각류)"]
    prompt = build_recipe_prompt(["감자", "양파"], 2, allergies=allergies, recipes_to_generate=3)
    for a in allergies:
        assert a in prompt
    assert ALLERGY_MARKER in prompt
    assert "절대 생성하지 마십시오" in prompt


def test_no_allergy_section_when_list_empty():
    prompt = build_recipe_prompt(["감자"], 2, recipes_to_generate=3)
    assert ALLERGY_MARKER not in prompt
    assert "4. " not in prompt.split("## 핵심 지침")[0]


def test_constraint_numbering_is_dynamic():
    p = build_recipe_prompt(["감자"], 2, theme_preference="캠핑", allergies=["땅콩"], dietary_preferences=["오이"])
    assert "4. 테마 선호: 캠핑" in p
    assert f"5. **{ALLERGY_MARKER}" in p
    assert "6. 식단 선호" in p

    p = build_recipe_prompt(["감자"], 2, allergies=["땅콩"], dietary_preferences=["오이"])
    assert f"4. **{ALLERGY_MARKER}" in p
    assert "5. 식단 선호" in p

    p = build_recipe_prompt(["감자"], 2, dietary_preferences=["오이"])
    assert "4. 식단 선호" in p


def test_requested_count_and_schema_embedded():
    p = build_recipe_prompt(["당근", "감자"], 3, recipes_to_generate=2)
    assert "2개의 서로 다른 레시피" in p
    assert "(총 2개)" in p
    assert RECIPE_JSON_SCHEMA_TEMPLATE in p
    assert "냉장고 보유 재료 Pool: 당근, 감자" in p
    assert "3인분" in p


def test_single_prompt_and_helpers():
    p = build_single_recipe_prompt(["김치"], 2, allergies=["돼지고기"])
    assert "돼지고기" in p and ALLERGY_MARKER in p
    assert "오직 JSON 객체만" in p
    assert "두부" in build_classify_prompt("두부")
    assert "Title: x" in build_safety_prompt("Title: x")
