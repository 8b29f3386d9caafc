from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error
from app.schemas.product import Product, ProductDetail


def test_list_products_envelope_and_cache_headers(client: TestClient, product_factory):
    for i in range(3):
        product_factory(name=f"Panel {i}")

    r1 = api_call(client, "GET", "/products/")
    body = r1.json()
    assert body["success"] is True
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["limit"] == 12
    for item in body["data"]:
        Product.model_validate(item)
    assert r1.headers["X-Cache"] == "MISS"
    assert r1.headers["X-Cache-Key"].startswith("products:list:")
    assert r1.headers["Cache-Control"] == "public, max-age=300"

    r2 = api_call(client, "GET", "/products/")
    assert r2.headers["X-Cache"] == "HIT"
    assert r2.content == r1.content
    assert r2.headers["ETag"] == r1.headers["ETag"]


def test_list_products_filters_and_sorting(client: TestClient, product_factory, category_factory, brand_factory):
    panels = category_factory(name="Solar Panels")
    acme = brand_factory(name="Acme")
    product_factory(name="Cheap Panel", category=panels, price=50.0, brand=acme)
    product_factory(name="Premium Panel", category=panels, price=500.0, is_featured=True)
    product_factory(name="Inverter")
    product_factory(name="Hidden Panel", category=panels, is_active=False)

    r = api_call(client, "GET", "/products/", params={"category": "solar-panels", "sort": "price_desc"})
    names = [p["name"] for p in r.json()["data"]]
    assert names == ["Premium Panel", "Cheap Panel"]

    r = api_call(client, "GET", "/products/", params={"brand": "acme"})
    assert [p["name"] for p in r.json()["data"]] == ["Cheap Panel"]

    r = api_call(client, "GET", "/products/", params={"featured": "true"})
    assert [p["name"] for p in r.json()["data"]] == ["Premium Panel"]

    r = api_call(client, "GET", "/products/", params={"search": "inverter"})
    assert [p["name"] for p in r.json()["data"]] == ["Inverter"]


def test_list_products_pagination(client: TestClient, product_factory):
    for i in range(5):
        product_factory(name=f"Item {i}")
    r = api_call(client, "GET", "/products/", params={"page": 2, "limit": 2})
    pagination = r.json()["pagination"]
    assert len(r.json()["data"]) == 2
    assert pagination == {"page": 2, "limit": 2, "total": 5, "pages": 3, "has_next": True, "has_previous": True}


def test_unknown_sort_is_rejected(client: TestClient):
    r = client.get("/products/", params={"sort": "popularity"})
    assert_error(r, 400, "BAD_REQUEST")


def test_inactive_listing_requires_admin_and_bypasses_cache(client: TestClient, product_factory, admin_headers):
    product_factory(name="Active")
    product_factory(name="Retired", is_active=False)

    assert_error(client.get("/products/", params={"include_inactive": "true"}), 403, "FORBIDDEN")

    r = api_call(client, "GET", "/products/", params={"include_inactive": "true"}, headers=admin_headers)
    assert r.json()["pagination"]["total"] == 2
    assert r.headers["X-Cache"] == "BYPASS"
    assert r.headers["Cache-Control"] == "no-store"
    assert "X-Cache-Key" not in r.headers

    r = api_call(client, "GET", "/products/", params={"include_inactive": "true"}, headers=admin_headers)
    assert r.headers["X-Cache"] == "BYPASS"


def test_read_product_by_id_and_slug(client: TestClient, product_factory):
    product = product_factory(name="Mono 400W")
    by_id = api_call(client, "GET", f"/products/{product.id}").json()["data"]
    by_slug = api_call(client, "GET", "/products/mono-400w").json()["data"]
    ProductDetail.model_validate(by_id)
    assert by_id == by_slug
    assert by_id["category"]["id"] == product.category_id
    assert by_id["related_blogs"] == []


def test_missing_product_returns_error_envelope(client: TestClient):
    body = assert_error(client.get("/products/does-not-exist"), 404, "NOT_FOUND")
    assert body["request_id"]
    assert "does-not-exist" in body["error"]["message"]


def test_mutations_require_admin_key(client: TestClient, category_factory):
    category = category_factory()
    payload = {"name": "Panel", "price": 10, "category_id": category.id}
    assert_error(client.post("/products/", json=payload), 401, "UNAUTHORIZED")
    assert_error(client.post("/products/", json=payload, headers={"X-Admin-Key": "wrong"}), 403, "FORBIDDEN")


def test_create_product_generates_unique_slug(client: TestClient, category_factory, admin_headers):
    category = category_factory()
    payload = {"name": "Mono Panel 400W", "price": 199.99, "stock": 4, "category_id": category.id}
    first = api_call(client, "POST", "/products/", json=payload, headers=admin_headers)
    assert first.status_code == 201
    assert first.json()["data"]["slug"] == "mono-panel-400w"

    second = api_call(client, "POST", "/products/", json=payload, headers=admin_headers)
    assert second.json()["data"]["slug"] == "mono-panel-400w-2"

    duplicate = client.post("/products/", json={**payload, "slug": "mono-panel-400w"}, headers=admin_headers)
    assert_error(duplicate, 409, "CONFLICT")


def test_create_product_with_unknown_category(client: TestClient, admin_headers):
    r = client.post("/products/", json={"name": "X", "price": 1, "category_id": 999}, headers=admin_headers)
    assert_error(r, 400)


def test_update_is_visible_on_next_read(client: TestClient, product_factory, admin_headers):
    product = product_factory(name="Battery", price=300.0)
    api_call(client, "GET", f"/products/{product.id}")
    api_call(client, "GET", "/products/battery")
    assert api_call(client, "GET", "/products/battery").headers["X-Cache"] == "HIT"

    api_call(client, "PUT", f"/products/{product.id}", json={"price": 275.5}, headers=admin_headers)

    for path in (f"/products/{product.id}", "/products/battery"):
        r = api_call(client, "GET", path)
        assert r.headers["X-Cache"] == "MISS"
        assert r.json()["data"]["price"] == 275.5


def test_update_purges_zero_padded_id_reads(client: TestClient, product_factory, admin_headers):
    product = product_factory(name="Inverter", price=300.0)
    padded = f"/products/0{product.id}"
    api_call(client, "GET", padded)
    cached = api_call(client, "GET", padded)
    assert cached.headers["X-Cache"] == "HIT"
    assert cached.headers["X-Cache-Key"] == f"product:{product.id}"

    api_call(client, "PUT", f"/products/{product.id}", json={"price": 275.5}, headers=admin_headers)

    r = api_call(client, "GET", padded)
    assert r.headers["X-Cache"] == "MISS"
    assert r.json()["data"]["price"] == 275.5


def test_non_ascii_digits_are_not_ids(client: TestClient, product_factory):
    product_factory(name="Panel")
    assert_error(client.get("/products/\u0661"), 404, "NOT_FOUND")


def test_slug_change_purges_old_slug(client: TestClient, product_factory, admin_headers):
    product_factory(name="Old Name")
    api_call(client, "GET", "/products/old-name")
    api_call(client, "PUT", "/products/old-name", json={"slug": "new-name"}, headers=admin_headers)
    assert_error(client.get("/products/old-name"), 404)
    assert api_call(client, "GET", "/products/new-name").json()["data"]["slug"] == "new-name"


def test_delete_product(client: TestClient, product_factory, admin_headers):
    product = product_factory(name="Doomed")
    api_call(client, "GET", f"/products/{product.id}")
    r = api_call(client, "DELETE", f"/products/{product.id}", headers=admin_headers)
    assert r.json()["data"] == {"id": product.id, "slug": "doomed"}
    assert_error(client.get(f"/products/{product.id}"), 404)
    assert_error(client.delete(f"/products/{product.id}", headers=admin_headers), 404)
