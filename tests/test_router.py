"""Tests for the catalogue HTTP API."""

import pytest
from fastapi.testclient import TestClient

from storefront.catalog.router import get_product_source, get_rate_limiter
from storefront.catalog.store import LocalProductSource
from storefront.errors import DataUnavailable
from storefront.main import app
from storefront.security import RateLimiter


class FailingSource:
    async def __call__(self, status=None):
        raise DataUnavailable("offline")

    async def get(self, product_id):
        raise DataUnavailable("offline")


@pytest.fixture
def client():
    app.dependency_overrides[get_product_source] = lambda: LocalProductSource()
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter({"minute": 1000})
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def names(response):
    return [item["name"] for item in response.json()["items"]]


class TestListProducts:
    def test_defaults_to_published_sorted_by_name(self, client):
        response = client.get("/api/catalog/products")
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 6
        assert body["page"] == 1
        assert body["total_pages"] == 1
        assert names(response) == [
            "Armário Faro",
            "Cadeira Braga",
            "Cama Coimbra",
            "Mesa de Centro Sintra",
            "Secretária Aveiro",
            "Sofá Lisboa",
        ]

    def test_search(self, client):
        assert names(client.get("/api/catalog/products", params={"q": "mesa"})) == ["Mesa de Centro Sintra"]
        # The draft MES001 never shows up
        assert names(client.get("/api/catalog/products", params={"q": "MES"})) == ["Mesa de Centro Sintra"]

    def test_out_of_stock_listing(self, client):
        response = client.get("/api/catalog/products", params={"status": "out_of_stock"})
        assert names(response) == ["Estante Évora"]

    @pytest.mark.parametrize("status", ["draft", ""])
    def test_drafts_cannot_be_requested(self, client, status):
        response = client.get("/api/catalog/products", params={"status": status})
        assert response.status_code == 422

    def test_price_bounds(self, client):
        response = client.get("/api/catalog/products", params={"price_min": 200, "price_max": 1000, "sort": "price-asc"})
        assert names(response) == ["Mesa de Centro Sintra", "Sofá Lisboa", "Armário Faro"]

    def test_pagination_is_clamped(self, client):
        response = client.get("/api/catalog/products", params={"page_size": 4, "page": 99})
        body = response.json()
        assert body["page"] == 2
        assert body["total_pages"] == 2
        assert len(body["items"]) == 2

    def test_unknown_sort_is_rejected(self, client):
        assert client.get("/api/catalog/products", params={"sort": "popularity"}).status_code == 422

    def test_source_failure(self, client):
        app.dependency_overrides[get_product_source] = lambda: FailingSource()
        assert client.get("/api/catalog/products").status_code == 503


class TestGetProduct:
    def test_found(self, client):
        response = client.get("/api/catalog/products/p-007")
        assert response.status_code == 200
        assert response.json()["code"] == "MES002"

    def test_out_of_stock_is_visible(self, client):
        response = client.get("/api/catalog/products/p-006")
        assert response.status_code == 200
        assert response.json()["status"] == "out_of_stock"

    def test_draft_is_hidden(self, client):
        assert client.get("/api/catalog/products/p-002").status_code == 404

    def test_not_found(self, client):
        assert client.get("/api/catalog/products/nope").status_code == 404

    def test_source_failure(self, client):
        app.dependency_overrides[get_product_source] = lambda: FailingSource()
        assert client.get("/api/catalog/products/p-001").status_code == 503


def test_rate_limit(client):
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    limiter = RateLimiter({"minute": 2})
    assert client.get("/api/catalog/products").status_code == 200
    assert client.get("/api/catalog/products").status_code == 200
    refused = client.get("/api/catalog/products")
    assert refused.status_code == 429
    assert int(refused.headers["Retry-After"]) > 0


def test_health_check(client):
    assert client.get("/").json()["status"] == "ok"
