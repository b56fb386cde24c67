"""Shared fixtures: in-memory database, seeded catalog, services and Flask client."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from werkzeug.security import generate_password_hash

from app import create_app
from config import ShopConfig
from common.config import AppConfig
from common.db.session import init_db, make_session_factory
from common.models.category import Category, CategoryType
from common.models.news import News
from common.models.product import Product
from common.models.service import Service
from common.services.cart_service import CartService
from common.services.catalog_service import CatalogService
from common.services.category_service import CategoryService
from common.services.content_service import ContentService
from common.services.order_service import OrderService


ADMIN_PASSWORD = "secret-pass"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def seed(session_factory):
    """Two product categories (parent/child), one service and one news category, five products."""

    with session_factory() as s:
        s.add_all(
            [
                Category(id="cat-parts", name="Phụ tùng", slug="phu-tung", type=CategoryType.PRODUCT),
                Category(id="cat-oil", name="Dầu nhớt", slug="dau-nhot", type=CategoryType.PRODUCT, parent_id="cat-parts"),
                Category(id="cat-repair", name="Sửa chữa", slug="sua-chua", type=CategoryType.SERVICE),
                Category(id="cat-blog", name="Tin tức", slug="tin-tuc", type=CategoryType.NEWS),
            ]
        )
        s.flush()
        s.add_all(
            [
                Product(
                    id="p1",
                    name="Nhớt Motul 300V",
                    slug="nhot-motul-300v",
                    price=Decimal("100"),
                    sale_price=Decimal("80"),
                    in_stock=True,
                    featured=True,
                    images=[{"url": "/img/p1.jpg", "alt": "p1"}, {"url": "/img/p1b.jpg"}],
                    category_id="cat-oil",
                ),
                Product(id="p2", name="Lọc gió", slug="loc-gio", price=Decimal("50"), in_stock=True, category_id="cat-parts"),
                Product(id="p3", name="Má phanh", slug="ma-phanh", price=Decimal("30"), in_stock=False, category_id="cat-parts"),
                Product(id="p4", name="Lốp Michelin", slug="lop-michelin", price=Decimal("200"), sale_price=Decimal("250"), in_stock=True),
                Product(id="p5", name="Bugi NGK", slug="bugi-ngk", price=Decimal("40"), sale_price=Decimal("0"), in_stock=True),
                Product(id="p-hidden", name="Ẩn", slug="an", price=Decimal("10"), in_stock=True, is_active=False),
            ]
        )
        s.add(Service(id="s1", name="Thay nhớt", slug="thay-nhot", price=Decimal("50"), category_id="cat-repair", featured=True))
        s.add(News(id="n1", title="Khai trương", slug="khai-truong", summary="...", category_id="cat-blog"))
    return {"parent": "cat-parts", "child": "cat-oil", "service_cat": "cat-repair", "news_cat": "cat-blog"}


@pytest.fixture
def cart_service(session_factory):
    return CartService(session_factory)


@pytest.fixture
def order_service(session_factory):
    return OrderService(session_factory, currency="VND")


@pytest.fixture
def category_service(session_factory):
    return CategoryService(session_factory, delete_policy="block")


@pytest.fixture
def catalog_service(session_factory):
    return CatalogService(session_factory, cache_ttl_seconds=0)


@pytest.fixture
def content_service(session_factory):
    return ContentService(session_factory)


@pytest.fixture
def shop_config(tmp_path):
    return ShopConfig(
        secret_key="test-secret",
        admin_username="admin",
        admin_password_hash=generate_password_hash(ADMIN_PASSWORD),
        data_dir=tmp_path,
        app=AppConfig(database_url="sqlite://", log_level="ERROR", currency="VND"),
    )


@pytest.fixture
def app(shop_config, session_factory, seed):
    flask_app = create_app(shop_config, session_factory=session_factory)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    resp = client.post("/admin/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD
