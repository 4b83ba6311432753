from decimal import Decimal
from typing import Optional

import pytest

from storefront_mcp.api import StorefrontAPIError
from storefront_mcp.cart import CartStore
from storefront_mcp.config import StorefrontConfig
from storefront_mcp.state import DiscountCode, Product
from storefront_mcp.storage import CartStorage


def make_product(
    product_id="p1",
    price="50.00",
    discount_price=None,
    colors=None,
    sizes=None,
    stock=10,
    name=None,
) -> Product:
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        price=Decimal(price),
        discount_price=Decimal(discount_price) if discount_price is not None else None,
        colors=colors or [],
        sizes=sizes or [],
        stock=stock,
    )


class FakeAPI:
    """In-memory stand-in for StorefrontAPI used by the tool tests."""

    def __init__(self, products=None, discounts=None):
        self.products = {p.id: p for p in (products or [])}
        self.discounts = {d.code: d for d in (discounts or [])}
        self.orders = []
        self.fail_orders = False
        self.reviews = []
        self.subscribers = []

    def get_categories(self):
        return [{"id": "c1", "name": "Coats", "slug": "coats", "gender": "women"}]

    def get_products(self, category_id=None):
        return [p for p in self.products.values() if category_id is None or p.category_id == category_id]

    def get_featured_products(self, limit=6):
        return [p for p in self.products.values() if p.is_featured][:limit]

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def get_discount_code(self, code: str) -> Optional[DiscountCode]:
        return self.discounts.get(code.strip().upper())

    def create_order(self, order, items):
        if self.fail_orders:
            raise StorefrontAPIError("POST orders returned 500: boom", status_code=500)
        row = {**order, "id": f"order-{len(self.orders) + 1}"}
        self.orders.append((row, items))
        return row

    def get_order(self, order_number):
        for row, items in self.orders:
            if row["order_number"] == order_number:
                return {**row, "order_items": items}
        return None

    def get_product_reviews(self, product_id):
        return [r for r in reversed(self.reviews) if r["product_id"] == product_id]

    def create_review(self, review):
        row = {**review, "id": f"review-{len(self.reviews) + 1}"}
        self.reviews.append(row)
        return row

    def subscribe_newsletter(self, email):
        if email in self.subscribers:
            raise StorefrontAPIError("POST newsletter_subscribers returned 409: duplicate key", status_code=409)
        self.subscribers.append(email)
        return {"id": f"sub-{len(self.subscribers)}", "email": email, "is_active": True}


@pytest.fixture
def config(tmp_path):
    return StorefrontConfig(
        supabase={"url": "https://demo.supabase.co", "anon_key": "anon"},
        storage={"state_dir": str(tmp_path / "state")},
    )


@pytest.fixture
def storage(tmp_path):
    return CartStorage(str(tmp_path / "state"))


@pytest.fixture
def cart(storage):
    return CartStore(storage)


@pytest.fixture
def shirt():
    return make_product("shirt", price="100.00", discount_price="80.00", colors=["Red", "Blue"], sizes=["M", "L"], stock=3)


@pytest.fixture
def scarf():
    return make_product("scarf", price="25.50", stock=5)


@pytest.fixture
def welcome10():
    return DiscountCode(id="d1", code="WELCOME10", type="percentage", value=Decimal("10"))
