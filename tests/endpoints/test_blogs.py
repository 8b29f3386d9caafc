from fastapi.testclient import TestClient
from tests.helpers.asserts import api_call, assert_error
from app.core.constants import BlogStatusEnum
from app.schemas.blog import Blog, BlogDetail


def test_public_listing_shows_only_published(client: TestClient, blog_factory):
    blog_factory(title="Published Post")
    blog_factory(title="Draft Post", status=BlogStatusEnum.DRAFT)

    r = api_call(client, "GET", "/blogs/")
    data = r.json()["data"]
    assert [b["title"] for b in data] == ["Published Post"]
    Blog.model_validate(data[0])
    assert r.headers["X-Cache"] == "MISS"
    assert api_call(client, "GET", "/blogs/").headers["X-Cache"] == "HIT"


def test_all_statuses_requires_admin_and_is_never_cached(client: TestClient, blog_factory, admin_headers):
    blog_factory(title="Published Post")
    blog_factory(title="Draft Post", status=BlogStatusEnum.DRAFT)

    assert_error(client.get("/blogs/", params={"status": "all"}), 403)
    assert_error(client.get("/blogs/", params={"status": "draft"}), 403)

    r = api_call(client, "GET", "/blogs/", params={"status": "all"}, headers=admin_headers)
    assert r.json()["pagination"]["total"] == 2
    assert r.headers["X-Cache"] == "BYPASS"
    assert r.headers["Cache-Control"] == "no-store"

    # The public listing still only ever sees published posts
    public = api_call(client, "GET", "/blogs/").json()
    assert public["pagination"]["total"] == 1


def test_unknown_status_is_rejected(client: TestClient):
    assert_error(client.get("/blogs/", params={"status": "secret"}), 400)


def test_listing_is_localized_with_english_fallback(client: TestClient, blog_factory):
    blog_factory(title="Solar Basics", translations={"ur": "سولر کی بنیادی باتیں"})
    blog_factory(title="Inverter Care")

    r = api_call(client, "GET", "/blogs/", params={"language": "ur", "sort_by": "created_at", "sort_order": "asc"})
    titles = [b["title"] for b in r.json()["data"]]
    assert titles == ["سولر کی بنیادی باتیں", "Inverter Care"]
    assert {b["language"] for b in r.json()["data"]} == {"ur"}

    en = api_call(client, "GET", "/blogs/", params={"language": "en"})
    assert en.headers["X-Cache-Key"] != r.headers["X-Cache-Key"]


def test_unsupported_language_is_rejected(client: TestClient):
    assert_error(client.get("/blogs/", params={"language": "fr"}), 400)


def test_featured_blogs(client: TestClient, blog_factory):
    blog_factory(title="Featured One", is_featured=True)
    blog_factory(title="Plain One")
    r = api_call(client, "GET", "/blogs/featured")
    assert [b["title"] for b in r.json()["data"]] == ["Featured One"]
    assert r.headers["Cache-Control"] == "public, max-age=900"


def test_blog_detail_and_drafts(client: TestClient, blog_factory, product_factory, admin_headers):
    product = product_factory(name="Mono 400W")
    blog_factory(title="Panel Review", primary_product=product, related_products=[product])
    blog_factory(title="Secret Draft", status=BlogStatusEnum.DRAFT)

    r = api_call(client, "GET", "/blogs/panel-review", params={"language": "ps"})
    detail = r.json()["data"]
    BlogDetail.model_validate(detail)
    assert detail["language"] == "ps"
    assert detail["primary_product"]["slug"] == "mono-400w"
    assert [p["id"] for p in detail["related_products"]] == [product.id]
    assert r.headers["X-Cache-Key"] == "blog:panel-review:ps"

    assert_error(client.get("/blogs/secret-draft"), 404)
    preview = api_call(client, "GET", "/blogs/secret-draft", headers=admin_headers)
    assert preview.headers["X-Cache"] == "BYPASS"
    assert preview.json()["data"]["status"] == "draft"


def test_create_blog_requires_english_title(client: TestClient, admin_headers):
    r = client.post("/blogs/", json={"title": {"ur": "صرف اردو"}}, headers=admin_headers)
    assert_error(r, 422, "VALIDATION_ERROR")


def test_creating_blog_refreshes_related_product_page(client: TestClient, product_factory, admin_headers):
    product = product_factory(name="Lithium Battery")
    before = api_call(client, "GET", f"/products/{product.id}").json()["data"]
    assert before["related_blogs"] == []

    api_call(client, "POST", "/blogs/", headers=admin_headers, json={
        "title": {"en": "Battery Guide"},
        "status": "published",
        "related_product_ids": [product.id],
    })

    after = api_call(client, "GET", f"/products/{product.id}")
    assert after.headers["X-Cache"] == "MISS"
    assert [b["slug"] for b in after.json()["data"]["related_blogs"]] == ["battery-guide"]


def test_publishing_a_draft_shows_it_in_public_listing(client: TestClient, blog_factory, admin_headers):
    blog_factory(title="Coming Soon", status=BlogStatusEnum.DRAFT)
    assert api_call(client, "GET", "/blogs/").json()["pagination"]["total"] == 0

    r = api_call(client, "PUT", "/blogs/coming-soon", json={"status": "published"}, headers=admin_headers)
    assert r.json()["data"]["published_at"] is not None

    listing = api_call(client, "GET", "/blogs/")
    assert listing.headers["X-Cache"] == "MISS"
    assert listing.json()["pagination"]["total"] == 1


def test_updating_blog_purges_every_locale(client: TestClient, blog_factory, admin_headers):
    blog_factory(title="Wiring Tips", translations={"ur": "وائرنگ"})
    for language in ("en", "ur"):
        api_call(client, "GET", "/blogs/wiring-tips", params={"language": language})

    api_call(client, "PUT", "/blogs/wiring-tips", headers=admin_headers,
             json={"title": {"en": "Wiring Tips 2", "ur": "وائرنگ ۲"}})

    en = api_call(client, "GET", "/blogs/wiring-tips", params={"language": "en"})
    ur = api_call(client, "GET", "/blogs/wiring-tips", params={"language": "ur"})
    assert en.json()["data"]["title"] == "Wiring Tips 2"
    assert ur.json()["data"]["title"] == "وائرنگ ۲"


def test_delete_blog(client: TestClient, blog_factory, admin_headers):
    blog_factory(title="Old News")
    api_call(client, "GET", "/blogs/old-news")
    api_call(client, "DELETE", "/blogs/old-news", headers=admin_headers)
    assert_error(client.get("/blogs/old-news"), 404)
