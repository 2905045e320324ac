import httpx
import pytest

from fridge.core.config import settings
from fridge.db.models.recipe import Recipe
from fridge.main import create_app, wire_services
from fridge.services.generation import RecipeGenerator
from fridge.services.recipe_store import RecipeStore

from conftest import FakeModel, FakeProfiles, MemoryStore, model_text, recipe_json


@pytest.fixture(autouse=True)
def no_min_wait(monkeypatch):
    monkeypatch.setattr(settings, "GENERATION_MIN_SECONDS", 0.0)


@pytest.fixture
def model():
    return FakeModel()


@pytest.fixture
def app(db, model):
    # startup 훅은 돌리지 않고 app.state 를 직접 채운다
    app = create_app()
    wire_services(app, db, model)
    return app


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def test_generate_returns_camel_case_recipes(app, client):
    model = FakeModel([model_text([recipe_json("감자조림"), recipe_json("감자전"), recipe_json("감자국")])])
    store = MemoryStore()
    app.state.generator = RecipeGenerator(store, FakeProfiles(), model, batch_size=3)

    r = await client.post("/recipes/generate", json={"ingredients": ["감자", " "], "servings": 3})

    assert r.status_code == 200
    recipes = r.json()["recipes"]
    assert [x["title"] for x in recipes] == ["감자조림", "감자전", "감자국"]
    first = recipes[0]
    assert first["servings"] == 3
    assert first["mainIngredients"] == ["감자"]
    assert first["cookingTimeMinutes"] == 20
    assert [i["name"] for i in first["ingredients"]["main"]] == ["감자"]
    assert first["imageUrl"].startswith("https://images.unsplash.com/")
    assert len(store.rows) == 3


async def test_generate_rejects_empty_ingredients(client):
    r = await client.post("/recipes/generate", json={"ingredients": ["  "]})
    assert r.status_code == 422


async def test_generate_without_gemini_is_503(db):
    app = create_app()
    wire_services(app, db, None)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        r = await c.post("/recipes/generate", json={"ingredients": ["감자"]})
    assert r.status_code == 503


async def test_unparseable_model_output_is_502(app, client):
    app.state.generator = RecipeGenerator(MemoryStore(), FakeProfiles(), FakeModel(["레시피가 없어요"]))
    r = await client.post("/recipes/generate", json={"ingredients": ["감자"]})
    assert r.status_code == 502


async def test_persistence_failure_is_500(app, client):
    model = FakeModel([model_text([recipe_json("감자조림")])])
    app.state.generator = RecipeGenerator(MemoryStore(fail_insert=True), FakeProfiles(), model)
    r = await client.post("/recipes/generate", json={"ingredients": ["감자"]})
    assert r.status_code == 500


async def test_logged_in_generation_uses_profile_allergies(app, client, db):
    model = FakeModel([model_text([recipe_json("감자볶음")])])
    app.state.generator = RecipeGenerator(RecipeStore(db), app.state.profile_store, model)
    headers = {"X-User-Id": "u1"}

    assert (await client.post("/profile/allergies", json={"name": "땅콩"}, headers=headers)).status_code == 200
    r = await client.post("/recipes/generate", json={"ingredients": ["감자"]}, headers=headers)

    assert r.status_code == 200
    assert "땅콩" in model.prompts[0]
    saved = await db["generated_recipes"].find_one({"title": "감자볶음"})
    assert saved["user_id"] == "u1"


async def test_save_flow(client, db, model):
    original = Recipe(title="감자조림", main_ingredients=["감자"], instructions=["1. 졸인다"])
    await RecipeStore(db).insert_recipe(original)
    headers = {"X-User-Id": "u1"}

    assert (await client.post(f"/recipes/{original.id}/save")).status_code == 401

    r = await client.post(f"/recipes/{original.id}/save", headers=headers)
    assert r.status_code == 200
    copy_id = r.json()["id"]
    assert copy_id != original.id

    assert (await client.post(f"/recipes/{original.id}/save", headers=headers)).status_code == 409

    saved = await client.get("/recipes/saved", headers=headers)
    assert [x["id"] for x in saved.json()] == [copy_id]

    model.safe = False
    r = await client.put(f"/recipes/saved/{copy_id}", json={"title": "수상한 제목"}, headers=headers)
    assert r.status_code == 422

    r = await client.delete(f"/recipes/{original.id}/save", headers=headers)
    assert r.json() == {"ok": True, "deleted": 1}


async def test_recipe_detail_and_related(client, db):
    store = RecipeStore(db)
    base = Recipe(title="감자조림", main_ingredients=["감자"], theme_tags=["반찬"])
    other = Recipe(title="감자전", main_ingredients=["감자"])
    await store.insert_recipes([base, other])

    r = await client.get(f"/recipes/{base.id}")
    assert r.status_code == 200
    assert r.json()["title"] == "감자조림"

    r = await client.get(f"/recipes/{base.id}/related")
    assert [x["title"] for x in r.json()] == ["감자전"]

    assert (await client.get("/recipes/missing")).status_code == 404
    assert [x["title"] for x in (await client.get("/recipes/search", params={"q": "감자전"})).json()] == ["감자전"]


async def test_profile_requires_login_and_rejects_duplicates(client):
    assert (await client.get("/profile")).status_code == 401

    headers = {"X-User-Id": "u1"}
    await client.post("/profile/dietary-preferences", json={"name": "오이"}, headers=headers)
    r = await client.post("/profile/dietary-preferences", json={"name": "오이"}, headers=headers)
    assert r.status_code == 422

    r = await client.delete("/profile/dietary-preferences", params={"name": "오이"}, headers=headers)
    assert r.json()["dietary_preferences"] == []


async def test_ingredients_follow_anon_cookie(client):
    r = await client.post("/ingredients", json={"name": "감자", "quantity": "2개"})
    assert r.status_code == 200
    assert r.json()["category"] == "vegetable"
    assert "anon_id" in r.cookies

    # 같은 클라이언트(같은 쿠키)면 같은 냉장고
    items = (await client.get("/ingredients")).json()
    assert [i["name"] for i in items] == ["감자"]

    # 로그인 사용자는 별도 냉장고
    assert (await client.get("/ingredients", headers={"X-User-Id": "u1"})).json() == []


async def test_photo_upload_adds_detected_ingredients(client):
    await client.post("/ingredients", json={"name": "감자"})
    files = {"file": ("fridge.jpg", b"\xff\xd8fake", "image/jpeg")}

    r = await client.post("/ingredients/photo", files=files)

    assert r.status_code == 200
    body = r.json()
    assert body["detected"] == ["양파", "감자"]
    assert [a["name"] for a in body["added"]] == ["양파"]


async def test_photo_without_images_is_400(client):
    files = {"file": ("notes.txt", b"hello", "text/plain")}
    r = await client.post("/ingredients/photo", files=files)
    assert r.status_code == 400
