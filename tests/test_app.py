import pytest

import app as storefront
from search import ProductSearchEngine

CATALOG = [
    {"id": 1, "title": "Mens Casual Slim Fit Jacket", "category": "men's clothing", "price": 15.99,
     "rating": {"rate": 2.1, "count": 430}},
    {"id": 2, "title": "Rain Jacket Women Windbreaker", "category": "women's clothing", "price": 39.99,
     "rating": {"rate": 3.8, "count": 679}},
    {"id": 3, "title": "John Hardy Gold Bracelet", "category": "jewelery", "price": 695.0,
     "rating": {"rate": 4.6, "count": 400}},
    {"id": 4, "title": "WD 2TB Portable External Hard Drive", "category": "electronics", "price": 64.0},
]


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(storefront, "engine", ProductSearchEngine(CATALOG, cache_haystacks=True))
    monkeypatch.setattr(storefront, "startup_error", None)
    return storefront.app.test_client()


def ids(items):
    return [item["id"] for item in items]


def test_index_lists_categories(client) -> None:
    body = client.get("/").get_json()
    assert body["total_products"] == 4
    assert {"value": "jewelery", "label": "Jewelery"} in body["categories"]
    assert "relevance" in body["sorts"]


def test_categories_route(client) -> None:
    body = client.get("/categories").get_json()
    assert [c["value"] for c in body] == ["electronics", "jewelery", "men's clothing", "women's clothing"]


def test_search_returns_scored_tiers(client) -> None:
    response = client.post("/search", json={"query": "jacket", "category": "Men’s Clothing"})
    assert response.status_code == 200
    body = response.get_json()
    assert ids(body["primary"]) == [1]
    assert body["primary"][0]["score"] > 0
    assert body["global"] == []
    assert ids(body["suggestions"]) == [3, 2, 4]
    assert "score" not in body["suggestions"][0]
    assert body["diagnostics"]["category"] == "men's clothing"


def test_search_falls_back_to_global_and_sorts(client) -> None:
    body = client.post(
        "/search", json={"query": "jacket", "category": "electronics", "sort": "price-desc"}
    ).get_json()
    assert body["primary"] == []
    assert ids(body["global"]) == [2, 1]


def test_search_without_query_is_plain_browse(client) -> None:
    body = client.post("/search", json={"category": "all"}).get_json()
    assert ids(body["primary"]) == [1, 2, 3, 4]
    assert "score" not in body["primary"][0]
    assert body["global"] == [] and body["suggestions"] == []


def test_search_rejects_unknown_sort(client) -> None:
    response = client.post("/search", json={"query": "jacket", "sort": "newest"})
    assert response.status_code == 400
    assert "Unknown sort" in response.get_json()["error"]


def test_startup_error_is_reported(monkeypatch) -> None:
    monkeypatch.setattr(storefront, "engine", None)
    monkeypatch.setattr(storefront, "startup_error", "catalog missing")
    client = storefront.app.test_client()
    response = client.post("/search", json={"query": "jacket"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "catalog missing"}
