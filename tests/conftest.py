from datetime import timedelta

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.extensions import db
from storefront.model import Category, Coupon, Product
from storefront.utils.dates import today, utcnow
from storefront.utils.money import D


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email, name="Test User", password="secret123"):
    resp = client.post("/api/auth/register", json={"email": email, "name": name, "password": password})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(client):
    # the first account becomes admin
    return register(client, "admin@example.com", name="Admin")


@pytest.fixture
def admin_headers(admin):
    return bearer(admin["token"])


@pytest.fixture
def customer(client, admin):
    return register(client, "asha@example.com", name="Asha")


@pytest.fixture
def customer_headers(customer):
    return bearer(customer["token"])


@pytest.fixture
def make_category(app):
    def _make(name="Lehengas", slug=None):
        with app.app_context():
            c = Category(name=name, slug=slug or name.lower())
            db.session.add(c)
            db.session.commit()
            return c.id
    return _make


@pytest.fixture
def make_product(app):
    counter = {"n": 0}

    def _make(name="Silk Saree", price="1000", stock=10, category_id=None,
              rental_rate=None, deposit=None, is_active=True):
        counter["n"] += 1
        with app.app_context():
            p = Product(
                name=name,
                slug=f"product-{counter['n']}",
                sku=f"SKU-{counter['n']:03d}",
                price=D(price),
                is_rental=rental_rate is not None,
                rental_price_per_day=D(rental_rate) if rental_rate is not None else None,
                security_deposit=D(deposit) if deposit is not None else None,
                stock_quantity=stock,
                category_id=category_id,
                is_active=is_active,
            )
            db.session.add(p)
            db.session.commit()
            return p.id
    return _make


@pytest.fixture
def make_coupon(app):
    def _make(code="SAVE10", discount_type="percentage", value="10", **kw):
        now = utcnow()
        with app.app_context():
            c = Coupon(
                code=code,
                discount_type=discount_type,
                discount_value=D(value),
                min_order_value=D(kw["min_order_value"]) if kw.get("min_order_value") is not None else None,
                max_discount=D(kw["max_discount"]) if kw.get("max_discount") is not None else None,
                usage_limit=kw.get("usage_limit"),
                usage_per_user=kw.get("usage_per_user", 1),
                used_count=kw.get("used_count", 0),
                applicable_to=kw.get("applicable_to", "all"),
                category_ids=kw.get("category_ids", []),
                product_ids=kw.get("product_ids", []),
                valid_from=kw.get("valid_from", now - timedelta(days=1)),
                valid_to=kw.get("valid_to", now + timedelta(days=30)),
                is_active=kw.get("is_active", True),
            )
            db.session.add(c)
            db.session.commit()
            return c.id
    return _make


def days_ahead(n):
    return (today() + timedelta(days=n)).isoformat()


ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
}
