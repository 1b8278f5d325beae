import json
import time

import pytest
from fastapi.testclient import TestClient

from shapefit import main
from shapefit.config import settings
from shapefit.errors import CatalogUnavailable
from shapefit.main import app
from shapefit.routers import deps
from shapefit.routers.deps import get_catalog_client, get_orchestrator, get_style_analyst
from shapefit.services.ai_quota import AIQuota
from shapefit.services.body_shape import ALL_SHAPES, HOURGLASS, PEAR
from shapefit.services.recommender import RecommendationOrchestrator
from shapefit.services.style_analysis import StyleAnalyst


client = TestClient(app)

WOMAN = {"gender": "woman", "bust": 85, "waist": 65, "hips": 100, "shoulders": 90}


class FakeCatalog:
    def __init__(self, products=None, error=None):
        self.products = products or []
        self.error = error
        self.domains = []

    async def fetch_products(self, store_domain):
        self.domains.append(store_domain)
        if self.error is not None:
            raise self.error
        return self.products


@pytest.fixture
def use_catalog():
    def install(catalog):
        app.dependency_overrides[get_catalog_client] = lambda: catalog
        app.dependency_overrides[get_orchestrator] = lambda: RecommendationOrchestrator(provider=None)
        return catalog

    yield install
    app.dependency_overrides.clear()


def hourglass_catalog(make_product):
    return [
        make_product("plain", "Plain Tee"),
        make_product("wrap", "Wrap Top"),
        make_product("dress", "Belted Wrap Dress"),
        make_product("baggy", "Baggy Tee"),
        make_product("tank", "Plain Tank"),
    ]


def test_health():
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_debug_status():
    r = client.get("/v1/debug/status")
    assert r.status_code == 200
    body = r.json()
    assert body["ai"]["provider"] == settings.ai_provider
    assert body["recommendations"]["minimum_match_score"] == settings.minimum_match_score


def test_body_shape():
    r = client.post("/v1/body-shape", json=WOMAN)
    assert r.status_code == 200
    body = r.json()
    assert body["shape"] == PEAR
    assert body["confidence"] == 0.9
    assert len(body["recommendations"]) == 4


def test_body_shape_rejects_non_positive_measurements():
    r = client.post("/v1/body-shape", json={**WOMAN, "waist": 0})
    assert r.status_code == 422


def test_body_shape_rejects_unknown_gender():
    r = client.post("/v1/body-shape", json={**WOMAN, "gender": "robot"})
    assert r.status_code == 422


def test_body_shapes():
    r = client.get("/v1/body-shapes")
    assert r.status_code == 200
    assert set(r.json()) == set(ALL_SHAPES)


def test_recommendations_with_shape(use_catalog, product_factory):
    catalog = use_catalog(FakeCatalog(hourglass_catalog(product_factory)))
    r = client.post(
        "/v1/recommendations",
        json={
            "store_domain": "demo.myshopify.com",
            "body_shape": HOURGLASS,
            "settings": {"number_of_suggestions": 10, "minimum_match_score": 40},
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["body_shape"] == HOURGLASS
    # "Baggy Tee" is removed by the hourglass deny-list
    assert [rec["product"]["id"] for rec in body["recommendations"]] == ["dress", "wrap", "plain", "tank"]
    assert [rec["suitability_score"] for rec in body["recommendations"]] == [80, 65, 50, 50]
    assert body["recommendations"][0]["product"]["available"] is True
    assert catalog.domains == ["demo.myshopify.com"]


def test_recommendations_classify_measurements(use_catalog, product_factory):
    use_catalog(FakeCatalog([product_factory("skirt", "A-Line Skirt")]))
    r = client.post(
        "/v1/recommendations",
        json={"store_domain": "demo.myshopify.com", "measurements": WOMAN, "ai_enabled": False},
    )
    assert r.status_code == 200
    assert r.json()["body_shape"] == PEAR
    assert [rec["product"]["id"] for rec in r.json()["recommendations"]] == ["skirt"]


def test_recommendations_need_shape_or_measurements(use_catalog, product_factory):
    use_catalog(FakeCatalog(hourglass_catalog(product_factory)))
    r = client.post("/v1/recommendations", json={"store_domain": "demo.myshopify.com"})
    assert r.status_code == 400


def test_unavailable_catalog_yields_empty_list(use_catalog):
    use_catalog(FakeCatalog(error=CatalogUnavailable("503 from store")))
    r = client.post("/v1/recommendations", json={"store_domain": "demo.myshopify.com", "body_shape": HOURGLASS})
    assert r.status_code == 200
    assert r.json() == {"body_shape": HOURGLASS, "recommendations": []}


def test_invalid_settings_are_rejected(use_catalog, product_factory):
    use_catalog(FakeCatalog(hourglass_catalog(product_factory)))
    r = client.post(
        "/v1/recommendations",
        json={"store_domain": "demo.myshopify.com", "body_shape": HOURGLASS, "settings": {"minimum_match_score": 140}},
    )
    assert r.status_code == 422


def test_rate_limit(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_burst", 2)
    monkeypatch.setattr(settings, "rate_limit_per_min", 1)
    assert client.get("/v1/health").status_code == 200
    assert client.get("/v1/health").status_code == 200
    r = client.get("/v1/health")
    assert r.status_code == 429
    assert r.json()["detail"] == "Too Many Requests"


def test_stale_rate_limit_buckets_are_pruned(monkeypatch):
    monkeypatch.setattr(main, "_last_prune", 0.0)
    main._buckets["203.0.113.7"] = (0.0, time.time() - 3600)
    assert client.get("/v1/health").status_code == 200
    assert "203.0.113.7" not in main._buckets


def test_budget_settings_defaults():
    r = client.get("/v1/budget-settings")
    assert r.status_code == 200
    assert r.json() == {"low_max": 30, "medium_max": 80, "high_max": 200}


def test_budget_settings_follow_configuration(monkeypatch):
    monkeypatch.setattr(settings, "budget_medium_max", 120)
    assert client.get("/v1/budget-settings").json()["medium_max"] == 120


def test_recommendations_apply_budget_tier(use_catalog, product_factory):
    use_catalog(
        FakeCatalog(
            [
                product_factory("wrap", "Wrap Top", price="25.00"),
                product_factory("dress", "Belted Wrap Dress", price="150.00"),
            ]
        )
    )
    r = client.post(
        "/v1/recommendations",
        json={
            "store_domain": "demo.myshopify.com",
            "body_shape": HOURGLASS,
            "settings": {"minimum_match_score": 0, "budget_range": "low"},
        },
    )
    assert r.status_code == 200
    assert [rec["product"]["id"] for rec in r.json()["recommendations"]] == ["wrap"]


def test_unknown_budget_tier_is_rejected(use_catalog, product_factory):
    use_catalog(FakeCatalog(hourglass_catalog(product_factory)))
    r = client.post(
        "/v1/recommendations",
        json={"store_domain": "demo.myshopify.com", "body_shape": HOURGLASS, "settings": {"budget_range": "cheap"}},
    )
    assert r.status_code == 422


def test_ai_dependencies_are_shared_across_requests(monkeypatch):
    monkeypatch.setattr(settings, "ai_provider", "none")
    for cached in (deps.get_stylist_provider, deps.get_ai_quota, get_orchestrator, get_style_analyst):
        cached.cache_clear()
    try:
        assert get_orchestrator() is get_orchestrator()
        assert get_orchestrator().quota is get_style_analyst().quota
        assert get_orchestrator().provider is get_style_analyst().provider
    finally:
        for cached in (deps.get_stylist_provider, deps.get_ai_quota, get_orchestrator, get_style_analyst):
            cached.cache_clear()


@pytest.fixture
def use_analyst():
    def install(analyst):
        app.dependency_overrides[get_style_analyst] = lambda: analyst
        return analyst

    yield install
    app.dependency_overrides.clear()


def test_body_shape_analysis(use_analyst, stub_provider):
    answer = {
        "analysis": "Defined waist.",
        "styleGoals": ["Highlight the waist"],
        "recommendations": [{"category": "Dresses", "items": ["Wrap dress"], "stylingTips": "Belt it"}],
        "avoidItems": [{"item": "Boxy tunics", "reason": "Hide the waist"}],
        "proTips": ["Tailor"],
    }
    use_analyst(StyleAnalyst(provider=stub_provider(text=json.dumps(answer))))
    r = client.post("/v1/style-analysis/body-shape", json={"body_shape": HOURGLASS, "store_domain": "demo.myshopify.com"})
    assert r.status_code == 200
    body = r.json()
    assert body["body_shape"] == HOURGLASS
    assert body["analysis"]["style_goals"] == ["Highlight the waist"]
    assert body["analysis"]["recommendations"][0]["styling_tips"] == "Belt it"
    assert body["analysis"]["avoid_items"] == [{"item": "Boxy tunics", "reason": "Hide the waist"}]


def test_color_season_analysis(use_analyst, stub_provider):
    answer = {"analysis": "Cool and deep.", "bestColors": ["Emerald"], "stylingTips": ["Wear black"]}
    provider = use_analyst(StyleAnalyst(provider=stub_provider(text=json.dumps(answer)))).provider
    r = client.post(
        "/v1/style-analysis/color-season",
        json={"color_season": "Deep Winter", "color_profile": {"undertone": "cool"}},
    )
    assert r.status_code == 200
    assert r.json()["analysis"]["best_colors"] == ["Emerald"]
    assert r.json()["analysis"]["color_palette"] == []
    assert "- Skin undertone: cool" in provider.calls[0]["task_prompt"]


def test_style_analysis_unconfigured(use_analyst, stub_provider):
    use_analyst(StyleAnalyst(provider=stub_provider(configured=False)))
    r = client.post("/v1/style-analysis/body-shape", json={"body_shape": HOURGLASS})
    assert r.status_code == 503


def test_style_analysis_bad_answer(use_analyst, stub_provider):
    use_analyst(StyleAnalyst(provider=stub_provider(text="no json here")))
    r = client.post("/v1/style-analysis/color-season", json={"color_season": "Spring"})
    assert r.status_code == 502
    assert r.json()["detail"] == "Failed to get style analysis"


def test_style_analysis_quota(use_analyst, stub_provider):
    answer = {"analysis": "Warm and bright."}
    quota = AIQuota(requests_per_minute=1, requests_per_day=100, enabled=True)
    use_analyst(StyleAnalyst(provider=stub_provider(text=json.dumps(answer)), quota=quota))
    payload = {"color_season": "Spring", "store_domain": "demo.myshopify.com"}
    assert client.post("/v1/style-analysis/color-season", json=payload).status_code == 200
    r = client.post("/v1/style-analysis/color-season", json=payload)
    assert r.status_code == 429
    assert r.json()["detail"].startswith("Rate limit reached")


def test_style_analysis_needs_a_subject(use_analyst, stub_provider):
    use_analyst(StyleAnalyst(provider=stub_provider(text="{}")))
    assert client.post("/v1/style-analysis/body-shape", json={"body_shape": ""}).status_code == 422
