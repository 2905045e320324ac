import pytest

from fridge.db.models.recipe import Recipe
from fridge.services.generation import RecipeGenerator
from fridge.services.normalizer import NoValidRecipesError, ParseError
from fridge.services.recipe_store import PersistenceError

from conftest import FakeModel, FakeProfiles, MemoryStore, model_text, recipe_json


def _gen(store, model, profiles=None):
    return RecipeGenerator(store, profiles or FakeProfiles(), model, batch_size=3)


async def test_end_to_end_three_fresh_recipes():
    store = MemoryStore()
    items = [recipe_json("감자조림"), recipe_json("감자양파볶음"), recipe_json("당근감자전")]
    model = FakeModel([model_text(items, prose="여기 있습니다!\n")])

    out = await _gen(store, model).generate_batch(["감자", "양파", "당근"], servings=2)

    assert [r.title for r in out] == ["감자조림", "감자양파볶음", "당근감자전"]
    assert all(r.servings == 2 for r in out)
    assert store.insert_calls == 1
    assert len(store.rows) == 3
    assert model.calls == 1


async def test_cache_short_circuit_skips_model():
    store = MemoryStore()
    for t in ("a", "b", "c", "d"):
        store.rows.append(Recipe(title=t, main_ingredients=["감자", "양파"], user_id="u1"))
    model = FakeModel()

    out = await _gen(store, model).generate_batch(["양파", "감자"], user_id="u1")

    assert len(out) == 3
    assert model.calls == 0
    assert store.insert_calls == 0


async def test_partial_cache_generates_only_the_rest():
    store = MemoryStore()
    store.rows.append(Recipe(title="캐시된 감자볶음", main_ingredients=["감자"], user_id="u1"))
    model = FakeModel([model_text([recipe_json("감자전"), recipe_json("감자국")])])

    out = await _gen(store, model).generate_batch(["감자"], user_id="u1")

    assert [r.title for r in out] == ["캐시된 감자볶음", "감자전", "감자국"]
    assert "2개의 서로 다른 레시피" in model.prompts[0]
    # 캐시된 것은 다시 저장하지 않는다
    assert len(store.rows) == 3


async def test_extra_model_items_are_not_persisted():
    store = MemoryStore()
    items = [recipe_json(f"감자요리{i}") for i in range(5)]
    model = FakeModel([model_text(items)])

    out = await _gen(store, model).generate_batch(["감자"])

    assert len(out) == 3
    assert len(store.rows) == 3


async def test_unauthenticated_always_generates():
    store = MemoryStore()
    for t in ("a", "b", "c"):
        store.rows.append(Recipe(title=t, main_ingredients=["감자"], user_id="u1"))
    model = FakeModel([model_text([recipe_json("x"), recipe_json("y"), recipe_json("z")])])

    out = await _gen(store, model).generate_batch(["감자"], user_id=None)

    assert model.calls == 1
    assert store.candidate_calls == 0
    assert [r.title for r in out] == ["x", "y", "z"]


async def test_prose_without_brackets_raises_and_persists_nothing():
    store = MemoryStore()
    model = FakeModel(["죄송합니다. 지금은 레시피를 만들 수 없어요."])

    with pytest.raises(ParseError):
        await _gen(store, model).generate_batch(["감자"])
    assert store.insert_calls == 0
    assert store.rows == []


async def test_all_invalid_raises_no_valid_recipes():
    store = MemoryStore()
    model = FakeModel([model_text([{"description": "제목 없음"}, {"title": "주재료 없음"}])])

    with pytest.raises(NoValidRecipesError):
        await _gen(store, model).generate_batch(["감자"])
    assert store.insert_calls == 0


async def test_persistence_failure_returns_nothing():
    store = MemoryStore(fail_insert=True)
    model = FakeModel([model_text([recipe_json("감자볶음")])])

    with pytest.raises(PersistenceError):
        await _gen(store, model).generate_batch(["감자"])


async def test_profile_constraints_reach_prompt():
    store = MemoryStore()
    model = FakeModel([model_text([recipe_json("감자볶음")])])
    profiles = FakeProfiles(allergies=["땅콩", "우유"], dietary=["오이"])

    await _gen(store, model, profiles).generate_batch(["감자"], user_id="u1")

    assert "땅콩" in model.prompts[0]
    assert "우유" in model.prompts[0]
    assert "오이" in model.prompts[0]


async def test_profile_errors_are_ignored():
    store = MemoryStore()
    model = FakeModel([model_text([recipe_json("감자볶음")])])

    out = await _gen(store, model, FakeProfiles(fail=True)).generate_batch(["감자"], user_id="u1")
    assert [r.title for r in out] == ["감자볶음"]


async def test_generated_recipes_are_owned_by_caller():
    store = MemoryStore()
    model = FakeModel([model_text([recipe_json("감자볶음")])])

    out = await _gen(store, model).generate_batch(["감자"], user_id="u9")
    assert out[0].user_id == "u9"
    assert store.rows[0].user_id == "u9"


async def test_generate_single_uses_cache_then_model():
    store = MemoryStore()
    store.rows.append(Recipe(title="캐시", main_ingredients=["김치"], user_id="u1"))
    model = FakeModel([model_text(recipe_json("김치볶음밥", main=["김치", "밥"]))])
    gen = _gen(store, model)

    assert (await gen.generate_single(["김치"], user_id="u1")).title == "캐시"
    assert model.calls == 0

    r = await gen.generate_single(["김치"], servings=1)
    assert r.title == "김치볶음밥"
    assert r.servings == 1
    assert "JSON 객체" in model.prompts[0]
    assert store.insert_calls == 0
