import asyncio

from jewelcraft.config import settings
from jewelcraft.routers import design as design_router
from jewelcraft.services import generation, image_storage

VISION = "14k yellow gold ring with a round diamond in a prong setting"


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_generate_returns_views_pricing_and_reports(client, fake_openai):
    response = client.post("/api/design/generate", json={"user_vision": VISION})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [img["view"] for img in body["images"]] == [1, 2]
    assert [img["type"] for img in body["images"]] == ["HERO", "TECHNICAL"]
    assert body["images"][0]["url"] == "https://images.test/view1.png"
    assert body["consistency"]["isConsistent"] is True
    assert body["consistency"]["consistencyScore"] == 100
    assert body["pricing"]["finalPrice"] > 0
    assert body["specs"]["gemstoneType"] == "diamond"
    assert 3 <= body["production_days"] <= 14
    assert body["specifications"].startswith("Materials:")
    assert body["warnings"] == []
    assert len(fake_openai.images.calls) == 2


def test_generate_uses_production_safe_vision(client, fake_openai):
    response = client.post("/api/design/generate", json={"user_vision": "floating diamond pendant in platinum"})

    assert response.status_code == 200
    body = response.json()
    assert body["production"]["isValid"] is False
    assert any("require physical support" in w for w in body["warnings"])
    prompt = fake_openai.images.calls[0]["prompt"]
    assert "floating" not in prompt.lower()
    assert "delicately suspended with minimal wire support" in prompt


def test_generate_four_views(client, fake_openai):
    response = client.post("/api/design/generate", json={"user_vision": VISION, "views": 4})

    assert response.status_code == 200
    assert [img["type"] for img in response.json()["images"]] == ["HERO", "TECHNICAL", "DETAIL", "LIFESTYLE"]


def test_generate_rejects_out_of_range_views(client, fake_openai):
    response = client.post("/api/design/generate", json={"user_vision": VISION, "views": 5})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert fake_openai.images.calls == []


def test_generate_rejects_short_vision(client, fake_openai):
    response = client.post("/api/design/generate", json={"user_vision": "ring"})

    assert response.status_code == 400
    assert response.json()["error"] == "Please provide a detailed description of your jewelry vision"


def test_generate_partial_failure_is_a_warning(client, fake_openai):
    fake_openai.images.failing_views = {2}

    response = client.post("/api/design/generate", json={"user_vision": VISION})

    assert response.status_code == 200
    body = response.json()
    assert [img["view"] for img in body["images"]] == [1]
    assert "1 image(s) failed to generate" in body["warnings"]
    assert body["consistency"]["consistencyScore"] == 0


def test_generate_all_views_failed(client, fake_openai):
    fake_openai.images.failing_views = {1, 2}

    response = client.post("/api/design/generate", json={"user_vision": VISION})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to generate any images. Please try again."


def test_generate_inconsistent_views_warn(client, fake_openai):
    fake_openai.images.revised = {
        1: "A rose gold ring with a round diamond",
        2: "A white gold ring with a round diamond",
    }

    body = client.post("/api/design/generate", json={"user_vision": VISION}).json()

    assert body["consistency"]["isConsistent"] is False
    assert any(w.startswith("INCONSISTENT") for w in body["warnings"])


def test_generate_flags_custom_text_dropped_by_image_model(client, fake_openai):
    vision = 'yellow gold pendant engraved "Forever"'
    fake_openai.images.default_revised = "A yellow gold pendant on a white background"

    body = client.post("/api/design/generate", json={"user_vision": vision}).json()

    inclusion, view1, view2 = body["text_validation"]
    assert inclusion["isValid"] is True
    assert view1["isValid"] is False
    assert 'DALL-E did NOT include custom text "Forever" - may not appear in image!' in view1["errors"]
    assert view2["isValid"] is False


def test_generate_specifications_fallback(client, fake_openai):
    fake_openai.chat.completions.fail = True

    body = client.post("/api/design/generate", json={"user_vision": VISION}).json()

    assert body["specifications"] == generation.SPEC_FALLBACK_TEXT


def test_generate_persists_images(client, fake_openai, fake_db, auth_headers, monkeypatch):
    async def fake_download(url):
        return b"\x89PNG"

    monkeypatch.setattr(image_storage, "download_image", fake_download)

    response = client.post(
        "/api/design/generate",
        json={"user_vision": VISION, "persist": True},
        headers=auth_headers,
    )

    assert response.status_code == 200
    images = response.json()["images"]
    assert all(img["storage_url"].startswith("https://storage.test/images/") for img in images)
    assert len(fake_db.storage.files) == 2
    assert all(path.startswith("11111111-1111-1111-1111-111111111111/") for path in fake_db.storage.files)


def test_regenerate_replaces_stored_views(client, fake_openai, fake_db, auth_headers, monkeypatch):
    async def fake_download(url):
        return b"\x89PNG"

    monkeypatch.setattr(image_storage, "download_image", fake_download)
    design_id = "33333333-3333-3333-3333-333333333333"
    old_view = f"11111111-1111-1111-1111-111111111111/{design_id}/view_1_1.png"
    other_design = "11111111-1111-1111-1111-111111111111/other/view_1_1.png"
    fake_db.storage.files = {old_view: b"old", other_design: b"keep"}

    response = client.post(
        "/api/design/generate",
        json={"user_vision": VISION, "persist": True, "design_id": design_id},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["design_id"] == design_id
    assert old_view not in fake_db.storage.files
    assert other_design in fake_db.storage.files
    assert len([p for p in fake_db.storage.files if f"/{design_id}/" in p]) == 2


def test_anonymous_regenerate_gets_a_new_design(client, fake_openai, fake_db, monkeypatch):
    async def fake_download(url):
        return b"\x89PNG"

    monkeypatch.setattr(image_storage, "download_image", fake_download)
    design_id = "33333333-3333-3333-3333-333333333333"
    fake_db.storage.files = {f"anonymous/{design_id}/view_1_1.png": b"someone else"}

    response = client.post(
        "/api/design/generate",
        json={"user_vision": VISION, "persist": True, "design_id": design_id},
    )

    assert response.status_code == 200
    assert response.json()["design_id"] != design_id
    assert f"anonymous/{design_id}/view_1_1.png" in fake_db.storage.files


def test_regenerate_rejects_malformed_design_id(client, fake_openai, auth_headers):
    response = client.post(
        "/api/design/generate",
        json={"user_vision": VISION, "design_id": "../../etc"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "design_id must be a UUID"
    assert fake_openai.images.calls == []


def test_generate_without_openai_key(client, monkeypatch):
    monkeypatch.setattr(generation, "client", None)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")

    response = client.post("/api/design/generate", json={"user_vision": VISION})

    assert response.status_code == 500
    assert response.json()["error"] == "OpenAI API key not configured"


def test_generate_timeout(client, monkeypatch):
    async def slow_generate(*args, **kwargs):
        await asyncio.sleep(1)

    monkeypatch.setattr(generation, "generate_design", slow_generate)
    monkeypatch.setattr(design_router, "GENERATION_TIMEOUT", 0.01)

    response = client.post("/api/design/generate", json={"user_vision": VISION})

    assert response.status_code == 504


def test_estimate(client):
    response = client.post("/api/design/estimate", json={"prompt": "simple small silver ring"})

    assert response.status_code == 200
    body = response.json()
    assert body["specs"]["material"] == "silver"
    assert body["pricing"]["finalPrice"] == 453
    assert body["complexity"] == 1
    assert body["production_days"] == 5
    assert body["spot_prices"]["source"] == "mock"


def test_estimate_requires_prompt(client):
    response = client.post("/api/design/estimate", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Prompt is required"}


def test_estimate_missing_body_field(client):
    response = client.post("/api/design/estimate", json={})

    assert response.status_code == 400
    assert response.json()["error"].startswith("prompt:")


def test_validate(client):
    response = client.post("/api/design/validate", json={"prompt": "ring named Mirja with anti-gravity stones"})

    assert response.status_code == 200
    body = response.json()
    assert body["production"]["isValid"] is False
    assert "asymmetrical balanced" in body["sanitized_prompt"]
    assert body["elements"]["names"] == ["Mirja"]
    assert body["suggestions"]
