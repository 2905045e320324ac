import pytest

from fridge.services.normalizer import (
    DEFAULTS,
    EmptyResultError,
    GenerationError,
    Ok,
    ParseError,
    Skip,
    extract_json_span,
    normalize_recipe,
    normalize_response,
    parse_recipe_array,
)

from conftest import model_text, recipe_json


def test_extracts_largest_bracketed_span_from_prose():
    text = '다음은 레시피입니다:\n[{"title": "a"}, {"title": "b"}]\n맛있게 드세요!'
    assert extract_json_span(text) == '[{"title": "a"}, {"title": "b"}]'


def test_no_brackets_is_parse_error():
    with pytest.raises(ParseError):
        extract_json_span("죄송합니다, 레시피를 만들 수 없습니다.")


def test_malformed_json_is_parse_error():
    with pytest.raises(ParseError):
        parse_recipe_array('[{"title": "감자볶음",]')


def test_empty_array_is_empty_result():
    with pytest.raises(EmptyResultError):
        parse_recipe_array("결과: []")


def test_single_object_is_wrapped():
    assert parse_recipe_array('{"title": "감자전"}') == [{"title": "감자전"}]


def test_format_errors_share_base_class():
    assert issubclass(ParseError, GenerationError)
    assert issubclass(EmptyResultError, GenerationError)


def test_missing_nutrition_defaults_to_zero():
    raw = recipe_json("감자볶음")
    raw["meta"] = {}
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    n = res.recipe.nutrition
    assert (n.calories, n.protein, n.fat, n.carbohydrates) == (0, 0, 0, 0)
    assert res.recipe.cooking_time_min == DEFAULTS["cooking_time_min"] == 30


def test_negative_or_garbage_numbers_fall_back():
    raw = recipe_json("감자볶음")
    raw["meta"].update({"calories_per_serving": -5, "protein": "많음", "fat": "7.5", "cooking_time_min": 0})
    r = normalize_recipe(raw, 2, ["감자"]).recipe
    assert r.nutrition.calories == 0
    assert r.nutrition.protein == 0
    assert r.nutrition.fat == 7.5
    assert r.cooking_time_min == 30


def test_missing_lists_default_empty():
    raw = {"title": "감자찜", "main_ingredients": ["감자"]}
    r = normalize_recipe(raw, 4, ["감자"]).recipe
    assert r.theme_tags == []
    assert r.ingredients_detail == []
    assert r.instructions == []
    assert r.servings == 4


def test_servings_always_from_caller():
    raw = recipe_json("감자볶음", servings=10)
    assert normalize_recipe(raw, 3, ["감자"]).recipe.servings == 3


def test_steps_are_flattened_with_optional_tip():
    r = normalize_recipe(recipe_json("감자볶음"), 2, ["감자"]).recipe
    assert r.instructions == [
        "1. 감자를 깍둑썰기 한다 (팁: 물에 담가 전분을 뺀다)",
        "2. 볶는다",
    ]


def test_missing_title_or_main_ingredients_is_skip():
    assert isinstance(normalize_recipe({"main_ingredients": ["감자"]}, 2, ["감자"]), Skip)
    assert isinstance(normalize_recipe({"title": "  "}, 2, ["감자"]), Skip)
    assert isinstance(normalize_recipe(recipe_json("x", main=[]), 2, ["감자"]), Skip)
    assert isinstance(normalize_recipe("not a dict", 2, ["감자"]), Skip)


def test_non_list_main_ingredients_uses_requested_key():
    raw = recipe_json("감자양파볶음")
    raw["main_ingredients"] = "감자, 양파"
    r = normalize_recipe(raw, 2, ["양파", "감자"]).recipe
    assert r.main_ingredients == ["감자", "양파"]


def test_partial_failure_keeps_valid_ones():
    items = [recipe_json("감자볶음"), {"main_ingredients": ["감자"]}, recipe_json("감자조림")]
    batch = normalize_response(model_text(items), 2, ["감자"])
    assert [r.title for r in batch.recipes] == ["감자볶음", "감자조림"]
    assert batch.skipped == 1
    assert batch.reasons == ["missing title"]


def test_bad_storage_info_is_dropped_not_fatal():
    raw = recipe_json("감자볶음", storage_info={"refrigerator_days": "사흘"})
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    assert res.recipe.storage_info is None


def test_blog_fields_are_kept():
    raw = recipe_json(
        "감자볶음",
        chef_tips=["센 불에 볶기"],
        faq=[{"question": "맵나요?", "answer": "아니요"}, {"question": "답 없음"}],
        storage_info={"refrigerator_days": 3},
        pairing_suggestions="흰쌀밥",
    )
    r = normalize_recipe(raw, 2, ["감자"]).recipe
    assert r.chef_tips == ["센 불에 볶기"]
    assert len(r.faq) == 1
    assert r.storage_info.refrigerator_days == 3
    assert r.pairing_suggestions == "흰쌀밥"


def test_list_substitutions_are_joined_not_fatal():
    raw = recipe_json("감자볶음", deep_info={"substitutions": ["버터 대신 식용유", "양파 대신 대파"], "tips": "약불"})
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    assert res.recipe.deep_info.substitutions == "버터 대신 식용유, 양파 대신 대파"
    assert res.recipe.deep_info.tips == ["약불"]


def test_deep_info_with_unusable_values_keeps_recipe():
    raw = recipe_json("감자볶음", deep_info={"chef_kick": {"x": 1}, "tips": 3})
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    assert res.recipe.deep_info.chef_kick is None
    assert res.recipe.deep_info.tips is None


def test_numeric_ingredient_fields_are_stringified():
    raw = recipe_json("감자볶음", ingredients=[
        {"name": "감자", "amount": 2, "category": 1, "main_or_sub": "주재료"},
        {"name": "소금", "category": {"bad": True}, "main_or_sub": None},
        {"name": 7},
        {"amount": "1개"},
    ])
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    details = res.recipe.ingredients_detail
    assert [(d.name, d.amount, d.category) for d in details] == [("감자", "2", "1"), ("소금", "", None), ("7", "", None)]
    assert details[0].group == "main"


def test_faq_entries_with_non_string_answers_are_dropped():
    raw = recipe_json("감자볶음", faq=[
        {"question": "몇 인분?", "answer": 2},
        {"question": ["?"], "answer": "네"},
        {"question": "냉동 가능?", "answer": "네, 한 달"},
    ])
    res = normalize_recipe(raw, 2, ["감자"])
    assert isinstance(res, Ok)
    assert [(f.question, f.answer) for f in res.recipe.faq] == [("냉동 가능?", "네, 한 달")]


@pytest.mark.parametrize("value", ["Infinity", "-Infinity", "NaN", '"inf"', '"nan"'])
def test_non_finite_numbers_fall_back(value):
    text = (
        '[{"title":"감자볶음","main_ingredients":["감자"],'
        f'"meta":{{"cooking_time_min": {value}, "calories_per_serving": {value}, "protein": 5}}}}]'
    )
    batch = normalize_response(text, 2, ["감자"])
    r = batch.recipes[0]
    assert r.cooking_time_min == DEFAULTS["cooking_time_min"]
    assert r.nutrition.calories == DEFAULTS["calories"]
    assert r.nutrition.protein == 5
