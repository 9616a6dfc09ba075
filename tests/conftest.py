"""Pytest fixtures for storefront tests."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from storefront.db.session import init_db, make_session_factory
from storefront.models import Category, Discount, Product, ProductVariant, ShippingRule
from storefront.schemas import CheckoutRequest
from storefront.services import CartService, DiscountService, OrderService, ShippingService


NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def catalog(session_factory):
    """Seed a category, two products (one with variants) and an inactive product."""
    with session_factory() as session:
        session.add(Category(id="cat-1", name="Apparel", slug="apparel"))
        session.add(
            Product(
                id="p-tee",
                slug="classic-tee",
                sku="TEE-001",
                name="Classic Tee",
                base_price=Decimal("500"),
                currency="INR",
                category_id="cat-1",
                stock_quantity=10,
            )
        )
        session.add(
            Product(
                id="p-mug",
                slug="coffee-mug",
                sku="MUG-001",
                name="Coffee Mug",
                base_price=Decimal("250"),
                currency="INR",
                stock_quantity=None,
            )
        )
        session.add(
            ProductVariant(
                id="v-mug-large",
                product_id="p-mug",
                variant_name="Large",
                sku="MUG-001-L",
                price=Decimal("300"),
                stock_quantity=3,
            )
        )
        session.add(
            Product(
                id="p-old",
                slug="retired",
                sku="OLD-001",
                name="Retired Item",
                base_price=Decimal("99"),
                currency="INR",
                is_active=False,
            )
        )
    return {"tee": "p-tee", "mug": "p-mug", "mug_large": "v-mug-large", "retired": "p-old"}


@pytest.fixture
def shipping_rules(session_factory):
    with session_factory() as session:
        session.add(
            ShippingRule(
                id="r-mumbai",
                pincode_start="400001",
                pincode_end="400099",
                state="Maharashtra",
                delivery_days=3,
                shipping_charge=Decimal("50"),
                is_cod_available=True,
                created_at=datetime(2024, 1, 1),
            )
        )
        session.add(
            ShippingRule(
                id="r-delhi",
                pincode_start="110001",
                pincode_end="110099",
                state="Delhi",
                delivery_days=2,
                shipping_charge=Decimal("0"),
                is_cod_available=False,
                created_at=datetime(2024, 1, 1),
            )
        )
        session.add(
            ShippingRule(
                id="r-closed",
                pincode_start="560001",
                pincode_end="560099",
                state="Karnataka",
                delivery_days=4,
                shipping_charge=Decimal("60"),
                is_active=False,
                created_at=datetime(2024, 1, 1),
            )
        )
    return ["r-mumbai", "r-delhi", "r-closed"]


def _discount(code, kind, value, **kw):
    return Discount(
        id=f"d-{code.lower()}",
        code=code,
        kind=kind,
        value=Decimal(str(value)),
        min_order_amount=Decimal(str(kw.pop("min_order_amount", 0))),
        max_discount_amount=kw.pop("max_discount_amount", None),
        usage_limit=kw.pop("usage_limit", None),
        used_count=kw.pop("used_count", 0),
        valid_from=kw.pop("valid_from", datetime(2024, 1, 1)),
        valid_until=kw.pop("valid_until", datetime(2024, 12, 31, 23, 59, 59)),
        is_active=kw.pop("is_active", True),
    )


@pytest.fixture
def discounts(session_factory):
    rows = [
        _discount("SAVE10", "percentage", 10, min_order_amount=500),
        _discount("CAPPED20", "percentage", 20, max_discount_amount=Decimal("150")),
        _discount("FLAT100", "fixed", 100),
        _discount("BIGSPENDER", "percentage", 15, min_order_amount=2000),
        _discount("OLDSALE", "fixed", 50, valid_from=datetime(2023, 1, 1), valid_until=datetime(2023, 12, 31)),
        _discount("PAUSED", "fixed", 50, is_active=False),
        _discount("ONCE", "fixed", 25, usage_limit=1),
        _discount("HUGE", "fixed", 100000),
        _discount("EVERGREEN", "percentage", 5, valid_from=datetime(2000, 1, 1), valid_until=datetime(2100, 1, 1)),
    ]
    with session_factory() as session:
        session.add_all(rows)
    return {d.code: d.id for d in rows}


@pytest.fixture
def cart_service(session_factory):
    return CartService(session_factory)


@pytest.fixture
def shipping_service(session_factory):
    return ShippingService(session_factory)


@pytest.fixture
def discount_service(session_factory):
    return DiscountService(session_factory)


@pytest.fixture
def order_service(session_factory):
    return OrderService(session_factory, clock=lambda: NOW)


@pytest.fixture
def make_request():
    """Build a CheckoutRequest with sensible defaults."""

    def _make(user_id="user-1", pincode="400050", **overrides):
        data = {
            "user_id": user_id,
            "customer_name": "Asha Rao",
            "customer_email": "asha@example.com",
            "customer_phone": "9876543210",
            "shipping_address": {
                "line1": "12 Marine Drive",
                "city": "Mumbai",
                "state": "Maharashtra",
                "pincode": pincode,
            },
            "payment_method": "cod",
        }
        data.update(overrides)
        return CheckoutRequest.model_validate(data)

    return _make


def fill_cart(cart_service, user_id="user-1"):
    """Two tees at 500 each: subtotal 1000."""
    cart_service.add_item(user_id=user_id, product_id="p-tee", quantity=2)
