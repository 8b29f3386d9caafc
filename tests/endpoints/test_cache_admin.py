from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error


def test_admin_cache_routes_require_key(client: TestClient):
    for method, path in [("GET", "/admin/cache/stats"), ("GET", "/admin/cache/keys"), ("POST", "/admin/cache/clear"),
                         ("POST", "/admin/cache/invalidate/product/1")]:
        assert_error(client.request(method, path), 401)


def test_stats_track_hits_and_misses(client: TestClient, product_factory, admin_headers):
    product_factory()
    api_call(client, "GET", "/products/")
    api_call(client, "GET", "/products/")

    stats = api_call(client, "GET", "/admin/cache/stats", headers=admin_headers).json()["data"]
    assert stats["store"]["backend"] == "memory"
    assert stats["read_through"]["hits"] == 1
    assert stats["read_through"]["misses"] == 1
    assert stats["hit_ratio"] == 0.5


def test_health(client: TestClient):
    r = api_call(client, "GET", "/admin/cache/health")
    assert r.json()["data"] == {"status": "healthy", "backend": "memory", "healthy": True}


def test_keys_and_clear(client: TestClient, product_factory, admin_headers):
    product = product_factory()
    api_call(client, "GET", "/products/")
    api_call(client, "GET", f"/products/{product.id}")

    keys = api_call(client, "GET", "/admin/cache/keys", headers=admin_headers).json()["data"]
    assert keys["count"] == 2
    assert f"product:{product.id}" in keys["keys"]

    listing_only = api_call(client, "GET", "/admin/cache/keys", params={"prefix": "products:list:"}, headers=admin_headers)
    assert listing_only.json()["data"]["count"] == 1

    cleared = api_call(client, "POST", "/admin/cache/clear", params={"prefix": "products:list:"}, headers=admin_headers)
    assert cleared.json()["data"]["deleted"] == 1
    assert api_call(client, "GET", f"/products/{product.id}").headers["X-Cache"] == "HIT"

    api_call(client, "POST", "/admin/cache/clear", headers=admin_headers)
    assert api_call(client, "GET", "/admin/cache/keys", headers=admin_headers).json()["data"]["count"] == 0


def test_manual_invalidation(client: TestClient, product_factory, admin_headers):
    product = product_factory(name="Manual")
    api_call(client, "GET", "/products/manual")

    r = api_call(client, "POST", "/admin/cache/invalidate/product/manual", headers=admin_headers)
    report = r.json()["data"]
    assert report["ok"] is True
    assert report["deleted"] == 1
    assert api_call(client, "GET", "/products/manual").headers["X-Cache"] == "MISS"

    assert_error(client.post("/admin/cache/invalidate/widget/1", headers=admin_headers), 422)
