from fastapi.testclient import TestClient
from main import app

client = TestClient(app)


def test_openapi_contains_routes():
    doc = client.get("/openapi.json")
    assert doc.status_code == 200
    paths = doc.json().get("paths", {})
    assert "/api/v1/pricing/calculate" in paths
    assert "/api/v1/currencies/{code}/rate" in paths
    assert "/api/v1/quotes/summary" in paths
    assert "/healthz" in paths


def test_pricing_schema_exposes_segment_totals():
    doc = client.get("/openapi.json")
    schemas = doc.json()["components"]["schemas"]
    name = next(n for n in schemas if n.startswith("PricingCalculation"))
    props = schemas[name].get("properties", {})
    assert "base_tour_final" in props
    assert "extra_night_final" in props


def test_healthz():
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_routes_share_lowercase_tags():
    paths = client.get("/openapi.json").json()["paths"]
    assert set(paths["/api/v1/quotes/summary"]["post"]["tags"]) == {"quotes"}
    assert set(paths["/api/v1/pricing/calculate"]["post"]["tags"]) == {"pricing"}
