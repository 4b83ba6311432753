import logging
from typing import Any, Optional

from storefront_mcp.api import StorefrontAPI
from storefront_mcp.cart import CartStore
from storefront_mcp.config import StorefrontConfig
from storefront_mcp.discounts import DiscountEvaluator
from storefront_mcp.state import Product

logger = logging.getLogger(__name__)


def render_cart(cart: CartStore, config: StorefrontConfig) -> dict[str, Any]:
    items = []
    for i, line in enumerate(cart.lines):
        items.append(
            {
                "cart_index": i,
                "product_id": line.product.id,
                "name": line.product.name,
                "color": line.color,
                "size": line.size,
                "quantity": line.quantity,
                "unit_price": str(line.product.effective_price),
                "line_total": str(line.line_total),
            }
        )

    discount = cart.state.applied_discount
    return {
        "items": items,
        "item_count": cart.total_item_count(),
        "is_open": cart.state.is_open,
        "currency": config.preferences.currency_symbol,
        "subtotal": str(cart.subtotal()),
        "discount_code": discount.code if discount else None,
        "discount_amount": str(cart.state.discount_amount),
        "total": str(cart.final_total()),
    }


def _variant_error(product: Product, color: str, size: str) -> Optional[dict[str, Any]]:
    if product.colors and color not in product.colors:
        return {
            "success": False,
            "error": f"Choose a color for {product.name}: {', '.join(product.colors)}.",
            "code": "INVALID_COLOR",
        }
    if not product.colors and color:
        return {
            "success": False,
            "error": f"{product.name} has no color options.",
            "code": "INVALID_COLOR",
        }
    if product.sizes and size not in product.sizes:
        return {
            "success": False,
            "error": f"Choose a size for {product.name}: {', '.join(product.sizes)}.",
            "code": "INVALID_SIZE",
        }
    if not product.sizes and size:
        return {
            "success": False,
            "error": f"{product.name} has no size options.",
            "code": "INVALID_SIZE",
        }
    return None


async def get_cart(cart: CartStore, config: StorefrontConfig) -> dict[str, Any]:
    """View the current cart contents and running total."""
    return {"success": True, **render_cart(cart, config)}


async def add_to_cart(
    cart: CartStore,
    api: StorefrontAPI,
    config: StorefrontConfig,
    product_id: str,
    color: str = "",
    size: str = "",
) -> dict[str, Any]:
    """Add one unit of a product variant to the cart."""
    try:
        product = api.get_product(product_id)
        if product is None:
            return {
                "success": False,
                "error": f"Product {product_id} not found.",
                "code": "PRODUCT_NOT_FOUND",
            }

        error = _variant_error(product, color, size)
        if error:
            return error

        existing = cart.find(product.id, color, size)
        in_cart = existing.quantity if existing else 0
        if in_cart + 1 > product.stock:
            return {
                "success": False,
                "error": f"Only {product.stock} of {product.name} in stock.",
                "code": "OUT_OF_STOCK",
            }

        line = cart.add(product, color or None, size or None)
        return {
            "success": True,
            "item": {
                "product_id": product.id,
                "name": product.name,
                "color": line.color,
                "size": line.size,
                "quantity": line.quantity,
            },
            "cart": render_cart(cart, config),
        }

    except Exception as e:
        logger.exception("Error adding to cart")
        return {"success": False, "error": str(e), "code": "ADD_FAILED"}


async def remove_from_cart(
    cart: CartStore,
    config: StorefrontConfig,
    cart_index: int,
) -> dict[str, Any]:
    """Remove a line from the cart by its cart index."""
    if cart_index < 0 or cart_index >= len(cart.lines):
        return {
            "success": False,
            "error": f"Invalid cart index {cart_index}. Cart has {len(cart.lines)} lines.",
            "code": "INVALID_INDEX",
        }

    removed = cart.lines[cart_index]
    cart.remove(cart_index)
    return {
        "success": True,
        "removed_item": removed.product.name,
        "cart": render_cart(cart, config),
    }


async def update_cart_quantity(
    cart: CartStore,
    api: StorefrontAPI,
    config: StorefrontConfig,
    product_id: str,
    quantity: int,
    color: str = "",
    size: str = "",
) -> dict[str, Any]:
    """Set the quantity of a cart line; zero or less removes it."""
    not_found = {
        "success": False,
        "error": f"No cart line for product {product_id} (color={color or None}, size={size or None}).",
        "code": "LINE_NOT_FOUND",
    }
    if quantity <= 0:
        if not cart.update_quantity(product_id, quantity, color or None, size or None):
            return not_found
        return {"success": True, "cart": render_cart(cart, config)}

    try:
        if cart.find(product_id, color, size) is None:
            return not_found

        product = api.get_product(product_id)
        if product is None:
            return {
                "success": False,
                "error": f"Product {product_id} not found.",
                "code": "PRODUCT_NOT_FOUND",
            }
        if quantity > product.stock:
            return {
                "success": False,
                "error": f"Only {product.stock} of {product.name} in stock.",
                "code": "OUT_OF_STOCK",
            }

        cart.update_quantity(product_id, quantity, color or None, size or None)
        return {"success": True, "cart": render_cart(cart, config)}

    except Exception as e:
        logger.exception("Error updating cart quantity")
        return {"success": False, "error": str(e), "code": "UPDATE_FAILED"}


async def clear_cart(cart: CartStore) -> dict[str, Any]:
    """Empty the cart and drop any applied discount."""
    cart.clear()
    return {"success": True, "message": "Cart cleared."}


async def set_cart_open(cart: CartStore, action: str = "toggle") -> dict[str, Any]:
    """Open, close or toggle the cart drawer."""
    if action == "toggle":
        cart.toggle_open()
    elif action == "open":
        cart.open()
    elif action == "close":
        cart.close()
    else:
        return {
            "success": False,
            "error": f"Unknown action {action!r}. Use toggle, open or close.",
            "code": "INVALID_ACTION",
        }
    return {"success": True, "is_open": cart.state.is_open}


async def apply_discount_code(
    cart: CartStore,
    evaluator: DiscountEvaluator,
    config: StorefrontConfig,
    code: str,
) -> dict[str, Any]:
    """Validate a discount code against the cart and apply it."""
    try:
        subtotal = cart.subtotal()
        result = evaluator.validate(code, subtotal, cart.lines)
        if not result.valid:
            return {"success": False, "error": result.error, "code": "INVALID_DISCOUNT"}

        amount = evaluator.compute_amount(result.discount, subtotal, cart.lines)
        cart.apply_discount(result.discount, amount)
        logger.info(f"Applied discount {result.discount.code} for {amount}")
        return {
            "success": True,
            "discount_code": result.discount.code,
            "discount_amount": str(amount),
            "cart": render_cart(cart, config),
        }

    except Exception as e:
        logger.exception("Error applying discount")
        return {"success": False, "error": str(e), "code": "DISCOUNT_FAILED"}


async def remove_discount_code(cart: CartStore, config: StorefrontConfig) -> dict[str, Any]:
    """Remove the applied discount code."""
    cart.remove_discount()
    return {"success": True, "cart": render_cart(cart, config)}
