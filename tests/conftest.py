import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Settings are read at import time
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "true"
os.environ.pop("REDIS_URL", None)

import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from app.core.config import settings
from app.core.constants import BlogStatusEnum
from app.core.database import Base, get_db
from app.crud.blog import blog as crud_blog
from app.crud.brand import brand as crud_brand
from app.crud.category import category as crud_category
from app.crud.product import product as crud_product
from app.utils import deps as deps_utils
from app.utils.slug import slugify
import main
import uuid


@pytest.fixture(scope="session")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(database_engine):
    Base.metadata.create_all(bind=database_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=database_engine)

@pytest.fixture(scope="function")
def client(db_session):
    # Re-initialize the app for each test function so every test gets a fresh cache and rate guard
    from importlib import reload
    reload(main)
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client

@pytest.fixture
def app_state(client):
    return main.app.state

@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": settings.ADMIN_API_KEY}

@pytest.fixture
def category_factory(db_session):
    def _category_factory(name=None, parent_id=None, is_active=True):
        name = name or f"Category {uuid.uuid4().hex[:6]}"
        return crud_category.create(db_session, obj_in={
            "name": name,
            "slug": slugify(name),
            "parent_id": parent_id,
            "is_active": is_active,
        })
    return _category_factory

@pytest.fixture
def brand_factory(db_session):
    def _brand_factory(name=None, is_active=True):
        name = name or f"Brand {uuid.uuid4().hex[:6]}"
        return crud_brand.create(db_session, obj_in={"name": name, "slug": slugify(name), "is_active": is_active})
    return _brand_factory

@pytest.fixture
def product_factory(db_session, category_factory):
    def _product_factory(name=None, category=None, brand=None, price=100.0, stock=10, is_active=True, is_featured=False):
        name = name or f"Product {uuid.uuid4().hex[:6]}"
        category = category or category_factory()
        return crud_product.create(db_session, obj_in={
            "name": name,
            "slug": slugify(name),
            "price": price,
            "stock": stock,
            "category_id": category.id,
            "brand_id": brand.id if brand else None,
            "is_active": is_active,
            "is_featured": is_featured,
        })
    return _product_factory

@pytest.fixture
def blog_factory(db_session):
    def _blog_factory(title=None, status=BlogStatusEnum.PUBLISHED, primary_product=None, related_products=(),
                      category=None, is_featured=False, translations=None):
        title = title or f"Post {uuid.uuid4().hex[:6]}"
        blog = crud_blog.create(db_session, obj_in={
            "slug": slugify(title),
            "title": {"en": title, **(translations or {})},
            "excerpt": {"en": f"About {title}"},
            "content": {"en": f"<p>{title}</p>"},
            "status": status,
            "category_id": category.id if category else None,
            "primary_product_id": primary_product.id if primary_product else None,
            "is_featured": is_featured,
            "published_at": datetime.now(timezone.utc) if status == BlogStatusEnum.PUBLISHED else None,
        }, commit=False)
        crud_blog.set_related_products(db_session, blog=blog, products=list(related_products))
        db_session.commit()
        db_session.refresh(blog)
        return blog
    return _blog_factory
