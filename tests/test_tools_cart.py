"""Tests for the cart tools exposed over MCP."""

from decimal import Decimal

import pytest

from storefront_mcp.discounts import DiscountEvaluator
from storefront_mcp.state import DiscountCode
from storefront_mcp.tools.cart import (
    add_to_cart,
    apply_discount_code,
    clear_cart,
    get_cart,
    remove_discount_code,
    remove_from_cart,
    set_cart_open,
    update_cart_quantity,
)

from conftest import FakeAPI


@pytest.fixture
def api(shirt, scarf, welcome10):
    fixed = DiscountCode(id="d2", code="FLAT500", type="fixed", value=Decimal("500"))
    return FakeAPI(products=[shirt, scarf], discounts=[welcome10, fixed])


@pytest.fixture
def evaluator(api):
    return DiscountEvaluator(api.get_discount_code)


class TestAddToCart:
    async def test_adds_variant(self, cart, api, config):
        result = await add_to_cart(cart, api, config, "shirt", "Red", "M")
        assert result["success"]
        assert result["item"]["quantity"] == 1
        assert result["cart"]["subtotal"] == "80.00"

    async def test_same_variant_merges(self, cart, api, config):
        await add_to_cart(cart, api, config, "scarf")
        result = await add_to_cart(cart, api, config, "scarf")
        assert result["item"]["quantity"] == 2
        assert len(result["cart"]["items"]) == 1

    async def test_unknown_product(self, cart, api, config):
        result = await add_to_cart(cart, api, config, "ghost")
        assert result["code"] == "PRODUCT_NOT_FOUND"

    async def test_color_required_when_product_has_colors(self, cart, api, config):
        result = await add_to_cart(cart, api, config, "shirt", "", "M")
        assert result["code"] == "INVALID_COLOR"
        assert cart.lines == []

    async def test_size_must_be_offered(self, cart, api, config):
        result = await add_to_cart(cart, api, config, "shirt", "Red", "XXL")
        assert result["code"] == "INVALID_SIZE"

    async def test_variant_on_plain_product_rejected(self, cart, api, config):
        result = await add_to_cart(cart, api, config, "scarf", "Red")
        assert result["code"] == "INVALID_COLOR"

    async def test_stock_limit(self, cart, api, config):
        for _ in range(3):
            assert (await add_to_cart(cart, api, config, "shirt", "Red", "M"))["success"]
        result = await add_to_cart(cart, api, config, "shirt", "Red", "M")
        assert result["code"] == "OUT_OF_STOCK"
        assert cart.total_item_count() == 3

    async def test_quantity_update_respects_stock(self, cart, api, config):
        await add_to_cart(cart, api, config, "shirt", "Red", "M")
        result = await update_cart_quantity(cart, api, config, "shirt", 500, "Red", "M")
        assert result["code"] == "OUT_OF_STOCK"
        assert cart.find("shirt", "Red", "M").quantity == 1

    async def test_quantity_update_up_to_stock(self, cart, api, config):
        await add_to_cart(cart, api, config, "shirt", "Red", "M")
        result = await update_cart_quantity(cart, api, config, "shirt", 3, "Red", "M")
        assert result["success"]
        assert result["cart"]["items"][0]["quantity"] == 3

    async def test_quantity_update_for_delisted_product(self, cart, api, config, scarf):
        cart.add(scarf)
        del api.products["scarf"]
        result = await update_cart_quantity(cart, api, config, "scarf", 2)
        assert result["code"] == "PRODUCT_NOT_FOUND"
        removed = await update_cart_quantity(cart, api, config, "scarf", 0)
        assert removed["success"]
        assert cart.lines == []


class TestCartEditing:
    async def test_get_cart_shape(self, cart, api, config):
        await add_to_cart(cart, api, config, "scarf")
        result = await get_cart(cart, config)
        assert result["items"][0]["cart_index"] == 0
        assert result["item_count"] == 1
        assert result["total"] == "25.50"
        assert result["currency"] == "₾"

    async def test_remove_by_index(self, cart, api, config):
        await add_to_cart(cart, api, config, "scarf")
        result = await remove_from_cart(cart, config, 0)
        assert result["success"]
        assert result["cart"]["items"] == []

    async def test_remove_invalid_index(self, cart, config):
        result = await remove_from_cart(cart, config, 3)
        assert result["code"] == "INVALID_INDEX"

    async def test_update_quantity_to_zero_removes(self, cart, api, config):
        await add_to_cart(cart, api, config, "shirt", "Blue", "L")
        result = await update_cart_quantity(cart, api, config, "shirt", 0, "Blue", "L")
        assert result["success"]
        assert result["cart"]["items"] == []

    async def test_update_unknown_line(self, cart, api, config):
        result = await update_cart_quantity(cart, api, config, "shirt", 2, "Blue", "L")
        assert result["code"] == "LINE_NOT_FOUND"

    async def test_clear(self, cart, api, config):
        await add_to_cart(cart, api, config, "scarf")
        assert (await clear_cart(cart))["success"]
        assert cart.lines == []

    @pytest.mark.parametrize("action, expected", [("open", True), ("close", False), ("toggle", True)])
    async def test_drawer(self, cart, action, expected):
        result = await set_cart_open(cart, action)
        assert result["is_open"] is expected

    async def test_drawer_unknown_action(self, cart):
        assert (await set_cart_open(cart, "slam"))["code"] == "INVALID_ACTION"


class TestDiscountTools:
    async def test_apply_percentage(self, cart, api, evaluator, config):
        await add_to_cart(cart, api, config, "shirt", "Red", "M")
        await add_to_cart(cart, api, config, "scarf")
        result = await apply_discount_code(cart, evaluator, config, "welcome10")
        assert result["success"]
        assert result["discount_amount"] == "10.55"
        assert result["cart"]["total"] == "94.95"

    async def test_fixed_amount_capped_at_subtotal(self, cart, api, evaluator, config):
        await add_to_cart(cart, api, config, "scarf")
        result = await apply_discount_code(cart, evaluator, config, "FLAT500")
        assert result["discount_amount"] == "25.50"
        assert result["cart"]["total"] == "0.00"

    async def test_invalid_code(self, cart, api, evaluator, config):
        await add_to_cart(cart, api, config, "scarf")
        result = await apply_discount_code(cart, evaluator, config, "BOGUS")
        assert result["code"] == "INVALID_DISCOUNT"
        assert cart.state.applied_discount is None

    async def test_remove_discount(self, cart, api, evaluator, config):
        await add_to_cart(cart, api, config, "scarf")
        await apply_discount_code(cart, evaluator, config, "WELCOME10")
        result = await remove_discount_code(cart, config)
        assert result["cart"]["discount_code"] is None
        assert result["cart"]["total"] == "25.50"
