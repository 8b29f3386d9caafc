from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error


def test_brand_crud_round(client: TestClient, admin_headers):
    created = api_call(client, "POST", "/brands/", json={"name": "Sun Power"}, headers=admin_headers)
    assert created.json()["data"]["slug"] == "sun-power"

    listing = api_call(client, "GET", "/brands/")
    assert [b["slug"] for b in listing.json()["data"]] == ["sun-power"]
    assert api_call(client, "GET", "/brands/").headers["X-Cache"] == "HIT"

    api_call(client, "PUT", "/brands/sun-power", json={"description": "Panels and more"}, headers=admin_headers)
    assert api_call(client, "GET", "/brands/sun-power").json()["data"]["description"] == "Panels and more"
    assert api_call(client, "GET", "/brands/").headers["X-Cache"] == "MISS"

    api_call(client, "DELETE", "/brands/sun-power", headers=admin_headers)
    assert_error(client.get("/brands/sun-power"), 404)


def test_brand_delete_blocked_by_products(client: TestClient, brand_factory, product_factory, admin_headers):
    acme = brand_factory(name="Acme")
    product_factory(brand=acme)
    assert_error(client.delete(f"/brands/{acme.id}", headers=admin_headers), 409)
