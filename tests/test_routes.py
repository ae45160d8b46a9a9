from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from main import app
from services import mongo_service

from conftest import FakeCollection


def make_product(title, price, **extra):
    return {
        "_id": ObjectId(),
        "title": title,
        "price": price,
        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
        **extra,
    }


@pytest.fixture
def products():
    collection = FakeCollection("products", [make_product(f"Shirt {i}", 10 * i) for i in range(20)])
    app.dependency_overrides[mongo_service.products_collection] = lambda: collection
    yield collection
    app.dependency_overrides.clear()


@pytest.fixture
def brands():
    collection = FakeCollection("brands")
    app.dependency_overrides[mongo_service.brands_collection] = lambda: collection
    yield collection
    app.dependency_overrides.clear()


@pytest.fixture
def sub_categories():
    collection = FakeCollection("subcategories")
    app.dependency_overrides[mongo_service.sub_categories_collection] = lambda: collection
    yield collection
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


class TestListing:

    def test_products_use_their_own_page_size(self, client, products):
        response = client.get("/api/v1/products/")

        assert response.status_code == 200
        body = response.json()
        assert body["results"] == 15
        assert body["paginationResult"] == {
            "currentPage": 1,
            "resultsPerPage": 15,
            "numberOfPages": 2,
            "nextPage": 2,
        }
        assert isinstance(body["data"][0]["_id"], str)

    def test_query_string_reaches_storage(self, client, products):
        response = client.get("/api/v1/products/", params={
            "price[gte]": "100",
            "price[lte]": "500",
            "keyword": "shirt",
            "sort": "price,-ratingsAverage",
            "fields": "title,price",
            "page": "2",
            "limit": "5",
        })

        assert response.status_code == 200
        cursor = products.cursors[0]
        assert cursor.filter["$and"][0] == {"price": {"$gte": 100, "$lte": 500}}
        assert cursor.filter["$and"][1]["$or"][0] == {"title": {"$regex": "shirt", "$options": "i"}}
        assert cursor.projection == {"title": 1, "price": 1}
        assert cursor.sort_keys == [("price", 1), ("ratingsAverage", -1)]
        assert (cursor.skip_count, cursor.limit_count) == (5, 5)
        assert products.count_filters == [cursor.filter]
        assert response.json()["paginationResult"]["previousPage"] == 1

    def test_brands_default_to_ten_per_page(self, client, brands):
        brands.documents = [{"_id": ObjectId(), "name": f"b{i}"} for i in range(25)]

        body = client.get("/api/v1/brands/").json()

        assert body["results"] == 10
        assert body["paginationResult"]["numberOfPages"] == 3

    def test_nested_sub_categories_are_pre_filtered(self, client, sub_categories):
        response = client.get("/api/v1/categories/c1/subcategories", params={"name": "Phones"})

        assert response.status_code == 200
        assert sub_categories.cursors[0].filter == {"$and": [{"category": "c1"}, {"name": "Phones"}]}

    def test_storage_failure_is_reported_as_500(self, client, products):
        products.fail = True

        response = client.get("/api/v1/products/")

        assert response.status_code == 500
        assert response.json() == {"detail": "Query execution failed"}


class TestResources:

    def test_create_brand_sets_slug(self, client, brands):
        response = client.post("/api/v1/brands/", json={"name": "Acme Tools"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["slug"] == "acme-tools"
        assert "__v" not in data
        assert brands.documents[0]["__v"] == 0

    def test_get_update_delete_brand(self, client, brands):
        brand_id = ObjectId()
        brands.documents = [{"_id": brand_id, "name": "Old", "slug": "old"}]

        assert client.get(f"/api/v1/brands/{brand_id}").json()["data"]["name"] == "Old"

        updated = client.put(f"/api/v1/brands/{brand_id}", json={"name": "New Name"}).json()["data"]
        assert updated["slug"] == "new-name"

        assert client.delete(f"/api/v1/brands/{brand_id}").status_code == 204
        assert brands.documents == []

    def test_missing_brand_is_404(self, client, brands):
        brand_id = ObjectId()

        response = client.get(f"/api/v1/brands/{brand_id}")

        assert response.status_code == 404
        assert response.json()["detail"] == f"No brand for this id {brand_id}"
        assert client.delete(f"/api/v1/brands/{brand_id}").status_code == 404

    def test_malformed_id_is_400(self, client, brands):
        assert client.get("/api/v1/brands/not-an-id").status_code == 400

    def test_create_product_keeps_extra_fields(self, client, products):
        response = client.post("/api/v1/products/", json={"title": "Blue Shirt", "price": 20, "color": "blue"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["slug"] == "blue-shirt"
        assert data["color"] == "blue"

    def test_update_product_without_title_keeps_slug(self, client, products):
        product = products.documents[0]

        data = client.put(f"/api/v1/products/{product['_id']}", json={"price": 99}).json()["data"]

        assert data["price"] == 99
        assert "slug" not in data

    def test_nested_create_takes_category_from_path(self, client, sub_categories):
        response = client.post("/api/v1/categories/c9/subcategories", json={"name": "Smart Phones"})

        assert response.status_code == 201
        assert response.json()["data"]["category"] == "c9"
        assert response.json()["data"]["slug"] == "smart-phones"

    def test_sub_category_requires_category(self, client, sub_categories):
        assert client.post("/api/v1/subcategories/", json={"name": "Loose"}).status_code == 400

    def test_client_operators_never_reach_storage(self, client, products):
        response = client.get("/api/v1/products/", params={
            "$where": "sleep(5000)",
            "price[$ne]": "1",
            "brand": "acme",
        })

        assert response.status_code == 200
        assert products.cursors[0].filter == {"brand": "acme"}
        assert products.count_filters == [{"brand": "acme"}]

    def test_limit_is_capped_per_endpoint(self, client, products):
        body = client.get("/api/v1/products/", params={"limit": "1000000000"}).json()

        assert products.cursors[0].limit_count == 100
        assert body["paginationResult"]["resultsPerPage"] == 100


class TestLifespan:

    def test_client_is_closed_on_shutdown(self, monkeypatch):
        closed = []

        async def close_client():
            closed.append(True)

        monkeypatch.setattr(mongo_service, "close_client", close_client)
        with TestClient(app):
            assert closed == []

        assert closed == [True]
