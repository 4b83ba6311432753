import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP, Context

from storefront_mcp.api import StorefrontAPI
from storefront_mcp.cart import CartStore
from storefront_mcp.config import StorefrontConfig, load_config
from storefront_mcp.discounts import DiscountEvaluator
from storefront_mcp.storage import CartStorage
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
from storefront_mcp.tools.catalog import get_featured_products, get_product, list_categories, list_products
from storefront_mcp.tools.order import get_order, place_order, preview_order
from storefront_mcp.tools.reviews import get_product_reviews, submit_review, subscribe_newsletter

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def build_context(config: StorefrontConfig) -> dict[str, Any]:
    """Wire the cart store and its collaborators for one visitor."""
    api = StorefrontAPI(config.supabase)
    storage = CartStorage(config.storage.state_dir)
    cart = CartStore(storage)
    logger.info(
        f"Visitor {storage.ensure_visitor_id()} cart loaded with {len(cart.lines)} lines"
    )
    return {
        "config": config,
        "api": api,
        "cart": cart,
        "discounts": DiscountEvaluator(api.get_discount_code),
    }


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Initialize config and cart state on startup."""
    logger.info("Starting storefront MCP server...")

    try:
        config = load_config()
        logger.info("Config loaded successfully")
    except FileNotFoundError as e:
        logger.error(str(e))
        raise

    yield build_context(config)

    logger.info("Shutting down storefront MCP server")


host = os.environ.get("HOST", "0.0.0.0")
port = int(os.environ.get("PORT", "8000"))

mcp = FastMCP(
    "Storefront MCP Server",
    lifespan=lifespan,
    host=host,
    port=port,
)


def _get_deps(ctx) -> dict[str, Any]:
    """Extract the lifespan context (config, api, cart, discounts)."""
    return ctx.request_context.lifespan_context


def _dump(result: dict[str, Any]) -> str:
    return json.dumps(result, default=str)


# --- Catalog Tools ---


@mcp.tool()
async def tool_list_categories(ctx: Context) -> str:
    """List the store's product categories."""
    deps = _get_deps(ctx)
    return _dump(await list_categories(deps["api"]))


@mcp.tool()
async def tool_list_products(ctx: Context, category_id: str = "") -> str:
    """List products, newest first. Pass a category_id from list_categories to filter."""
    deps = _get_deps(ctx)
    return _dump(await list_products(deps["api"], category_id))


@mcp.tool()
async def tool_get_featured_products(ctx: Context) -> str:
    """List featured products."""
    deps = _get_deps(ctx)
    return _dump(await get_featured_products(deps["api"]))


@mcp.tool()
async def tool_get_product(ctx: Context, product_id: str) -> str:
    """Get a product's price, available colors and sizes, and stock."""
    deps = _get_deps(ctx)
    return _dump(await get_product(deps["api"], product_id))


# --- Cart Tools ---


@mcp.tool()
async def tool_get_cart(ctx: Context) -> str:
    """View the current cart contents, subtotal, discount and total."""
    deps = _get_deps(ctx)
    return _dump(await get_cart(deps["cart"], deps["config"]))


@mcp.tool()
async def tool_add_to_cart(
    ctx: Context,
    product_id: str,
    color: str = "",
    size: str = "",
) -> str:
    """Add one unit of a product to the cart. If the product has colors or sizes,
    one of each must be chosen (see get_product). Adding the same variant again
    increases its quantity."""
    deps = _get_deps(ctx)
    result = await add_to_cart(deps["cart"], deps["api"], deps["config"], product_id, color, size)
    return _dump(result)


@mcp.tool()
async def tool_remove_from_cart(ctx: Context, cart_index: int) -> str:
    """Remove a line from the cart by its cart index (from get_cart response)."""
    deps = _get_deps(ctx)
    return _dump(await remove_from_cart(deps["cart"], deps["config"], cart_index))


@mcp.tool()
async def tool_update_cart_quantity(
    ctx: Context,
    product_id: str,
    quantity: int,
    color: str = "",
    size: str = "",
) -> str:
    """Set the quantity of a cart line identified by product, color and size.
    A quantity of 0 or less removes the line. The quantity cannot exceed stock."""
    deps = _get_deps(ctx)
    result = await update_cart_quantity(deps["cart"], deps["api"], deps["config"], product_id, quantity, color, size)
    return _dump(result)


@mcp.tool()
async def tool_clear_cart(ctx: Context) -> str:
    """Empty the entire cart. Also removes any applied discount code."""
    deps = _get_deps(ctx)
    return _dump(await clear_cart(deps["cart"]))


@mcp.tool()
async def tool_set_cart_open(ctx: Context, action: str = "toggle") -> str:
    """Open, close or toggle the cart drawer. action: toggle, open or close."""
    deps = _get_deps(ctx)
    return _dump(await set_cart_open(deps["cart"], action))


@mcp.tool()
async def tool_apply_discount_code(ctx: Context, code: str) -> str:
    """Apply a promotional code to the cart. Replaces any code already applied.
    The discount amount is fixed at the moment the code is applied."""
    deps = _get_deps(ctx)
    result = await apply_discount_code(deps["cart"], deps["discounts"], deps["config"], code)
    return _dump(result)


@mcp.tool()
async def tool_remove_discount_code(ctx: Context) -> str:
    """Remove the applied discount code."""
    deps = _get_deps(ctx)
    return _dump(await remove_discount_code(deps["cart"], deps["config"]))


# --- Order Tools ---


@mcp.tool()
async def tool_preview_order(ctx: Context) -> str:
    """Show the lines, subtotal, discount and total that place_order would submit.
    Does NOT place the order."""
    deps = _get_deps(ctx)
    return _dump(await preview_order(deps["cart"], deps["config"]))


@mcp.tool()
async def tool_place_order(
    ctx: Context,
    confirm_order: str,
    name: str,
    surname: str,
    phone: str,
    city: str,
    address: str,
    payment_method: str = "cash",
) -> str:
    """SUBMITS A REAL ORDER. Requires explicit confirmation.
    Call preview_order first and show the total to the user.
    The confirm_order parameter must be exactly 'YES_PLACE_MY_ORDER' to proceed.
    On success the cart is emptied."""
    deps = _get_deps(ctx)
    result = await place_order(
        deps["cart"],
        deps["api"],
        deps["config"],
        confirm_order,
        name,
        surname,
        phone,
        city,
        address,
        payment_method,
    )
    return _dump(result)


@mcp.tool()
async def tool_get_order(ctx: Context, order_number: str) -> str:
    """Look up a placed order by its order number."""
    deps = _get_deps(ctx)
    return _dump(await get_order(deps["api"], order_number))


# --- Review & Newsletter Tools ---


@mcp.tool()
async def tool_get_product_reviews(ctx: Context, product_id: str) -> str:
    """List customer reviews for a product, newest first, with the average rating."""
    deps = _get_deps(ctx)
    return _dump(await get_product_reviews(deps["api"], product_id))


@mcp.tool()
async def tool_submit_review(
    ctx: Context,
    order_number: str,
    product_id: str,
    customer_name: str,
    rating: int,
    comment: str = "",
) -> str:
    """Review a product from a completed order. rating is 1-5; comment is optional.
    Only orders with status 'completed' accept reviews."""
    deps = _get_deps(ctx)
    result = await submit_review(deps["api"], order_number, product_id, customer_name, rating, comment)
    return _dump(result)


@mcp.tool()
async def tool_subscribe_newsletter(ctx: Context, email: str) -> str:
    """Subscribe an email address to the store newsletter."""
    deps = _get_deps(ctx)
    return _dump(await subscribe_newsletter(deps["api"], email))


if __name__ == "__main__":
    logger.info(f"Starting MCP server on {host}:{port}")
    mcp.run(transport="streamable-http")
