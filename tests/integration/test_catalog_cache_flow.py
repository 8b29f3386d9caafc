from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call
from app.core.constants import BlogStatusEnum
from app.crud.blog import blog as crud_blog
from app.crud.product import product as crud_product

LISTING_PARAMS = {"category": "solar-panels", "page": 1, "limit": 12, "sort": "newest"}


def _count_calls(monkeypatch, crud, name):
    calls = {"count": 0}
    original = getattr(crud, name)

    def counting(*args, **kwargs):
        calls["count"] += 1
        return original(*args, **kwargs)

    monkeypatch.setattr(crud, name, counting)
    return calls


def test_listing_is_served_from_cache_until_a_product_is_added(
    client: TestClient, monkeypatch, category_factory, product_factory, admin_headers
):
    solar = category_factory(name="Solar Panels")
    for i in range(3):
        product_factory(name=f"Panel {i}", category=solar)
    calls = _count_calls(monkeypatch, crud_product, "list_filtered")

    first = api_call(client, "GET", "/products/", params=LISTING_PARAMS)
    second = api_call(client, "GET", "/products/", params=LISTING_PARAMS)
    assert first.headers["X-Cache"] == "MISS"
    assert second.headers["X-Cache"] == "HIT"
    assert first.content == second.content
    assert first.headers["X-Cache-Key"] == second.headers["X-Cache-Key"]
    assert calls["count"] == 1
    assert first.json()["pagination"]["total"] == 3

    api_call(client, "POST", "/products/", headers=admin_headers, json={
        "name": "Panel 3", "price": 199.0, "stock": 5, "category_id": solar.id,
    })

    third = api_call(client, "GET", "/products/", params=LISTING_PARAMS)
    assert third.headers["X-Cache"] == "MISS"
    assert third.json()["pagination"]["total"] == 4
    assert third.json()["data"][0]["name"] == "Panel 3"
    assert calls["count"] == 2


def test_equivalent_queries_share_one_key(client: TestClient, category_factory, product_factory):
    solar = category_factory(name="Solar Panels")
    product_factory(category=solar)

    first = api_call(client, "GET", "/products/", params=LISTING_PARAMS)
    reordered = api_call(client, "GET", "/products/", params=dict(reversed(list(LISTING_PARAMS.items()))))
    with_empty = api_call(client, "GET", "/products/?category=solar-panels&brand=&sort=newest&limit=12")

    assert reordered.headers["X-Cache"] == "HIT"
    assert with_empty.headers["X-Cache"] == "HIT"
    assert first.headers["X-Cache-Key"] == reordered.headers["X-Cache-Key"] == with_empty.headers["X-Cache-Key"]


def test_admin_listing_never_touches_public_keys(
    client: TestClient, monkeypatch, blog_factory, admin_headers
):
    blog_factory(title="Live Post")
    blog_factory(title="Draft Post", status=BlogStatusEnum.DRAFT)
    calls = _count_calls(monkeypatch, crud_blog, "list_filtered")

    public = api_call(client, "GET", "/blogs/")
    assert public.headers["X-Cache"] == "MISS"
    assert [b["title"] for b in public.json()["data"]] == ["Live Post"]

    for _ in range(2):
        admin = api_call(client, "GET", "/blogs/", params={"status": "all"}, headers=admin_headers)
        assert admin.headers["X-Cache"] == "BYPASS"
        assert "X-Cache-Key" not in admin.headers
        assert admin.headers["Cache-Control"] == "no-store"
        assert admin.json()["pagination"]["total"] == 2
    assert calls["count"] == 3

    keys = api_call(client, "GET", "/admin/cache/keys", headers=admin_headers).json()["data"]["keys"]
    assert keys == [public.headers["X-Cache-Key"]]
    assert api_call(client, "GET", "/blogs/").headers["X-Cache"] == "HIT"


def test_publishing_a_draft_refreshes_public_pages(client: TestClient, blog_factory, product_factory, admin_headers):
    product = product_factory(name="Inverter")
    draft = blog_factory(title="Inverter Guide", status=BlogStatusEnum.DRAFT, primary_product=product)

    assert api_call(client, "GET", "/blogs/").json()["pagination"]["total"] == 0
    assert api_call(client, "GET", f"/products/{product.id}").json()["data"]["related_blogs"] == []

    api_call(client, "PUT", f"/blogs/{draft.slug}", json={"status": "published"}, headers=admin_headers)

    listing = api_call(client, "GET", "/blogs/")
    assert listing.headers["X-Cache"] == "MISS"
    assert [b["slug"] for b in listing.json()["data"]] == ["inverter-guide"]
    detail = api_call(client, "GET", f"/products/{product.id}")
    assert detail.headers["X-Cache"] == "MISS"
    assert [b["slug"] for b in detail.json()["data"]["related_blogs"]] == ["inverter-guide"]
