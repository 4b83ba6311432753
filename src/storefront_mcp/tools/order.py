import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from storefront_mcp.api import StorefrontAPI, generate_order_number
from storefront_mcp.cart import CartStore
from storefront_mcp.config import StorefrontConfig
from storefront_mcp.tools.cart import render_cart

logger = logging.getLogger(__name__)

LOG_PATH = os.environ.get("LOG_PATH", "/data/orders.log")

CONFIRMATION = "YES_PLACE_MY_ORDER"


def _audit_log(message: str) -> None:
    """Append an entry to the audit log."""
    try:
        log_dir = os.path.dirname(LOG_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        with open(LOG_PATH, "a") as f:
            f.write(f"{timestamp} | {message}\n")
    except Exception as e:
        logger.warning(f"Failed to write audit log: {e}")


async def preview_order(cart: CartStore, config: StorefrontConfig) -> dict[str, Any]:
    """Show what place_order would submit, without submitting anything."""
    if not cart.lines:
        return {
            "success": False,
            "error": "Cart is empty. Add items first.",
            "code": "EMPTY_CART",
        }
    return {
        "success": True,
        **render_cart(cart, config),
        "payment_methods": config.preferences.payment_methods,
    }


async def place_order(
    cart: CartStore,
    api: StorefrontAPI,
    config: StorefrontConfig,
    confirm_order: str,
    name: str,
    surname: str,
    phone: str,
    city: str,
    address: str,
    payment_method: str = "cash",
) -> dict[str, Any]:
    """Submit the cart as an order. Requires confirm_order='YES_PLACE_MY_ORDER'."""
    dry_run = os.environ.get("DRY_RUN", "false").lower() in ("true", "1", "yes")

    if config.preferences.confirm_before_order and confirm_order != CONFIRMATION:
        _audit_log("PLACE_ORDER | ABORTED | reason=NOT_CONFIRMED")
        return {
            "success": False,
            "error": f"Order not confirmed. Pass confirm_order='{CONFIRMATION}' to proceed.",
            "code": "NOT_CONFIRMED",
        }

    if not cart.lines:
        _audit_log("PLACE_ORDER | ABORTED | reason=EMPTY_CART")
        return {
            "success": False,
            "error": "Cart is empty. Add items first.",
            "code": "EMPTY_CART",
        }

    customer = {
        "name": name,
        "surname": surname,
        "phone": phone,
        "city": city,
        "address": address,
    }
    missing = [field for field, value in customer.items() if not value.strip()]
    if missing:
        return {
            "success": False,
            "error": f"Missing customer details: {', '.join(missing)}.",
            "code": "MISSING_CUSTOMER_INFO",
        }

    if payment_method not in config.preferences.payment_methods:
        return {
            "success": False,
            "error": f"Unsupported payment method {payment_method!r}. "
            f"Choose one of: {', '.join(config.preferences.payment_methods)}.",
            "code": "INVALID_PAYMENT_METHOD",
        }

    # read once; everything below works from this snapshot
    lines = list(cart.lines)
    total = cart.final_total()

    max_amount = config.preferences.max_order_amount
    if max_amount and total > max_amount:
        _audit_log(f"PLACE_ORDER | ABORTED | reason=OVER_MAX | total={total} | max={max_amount}")
        return {
            "success": False,
            "error": f"Order total {config.preferences.currency_symbol}{total} exceeds max "
            f"{config.preferences.currency_symbol}{max_amount:.2f}",
            "code": "OVER_MAX",
        }

    item_summary = [
        f"{line.product.name} ({line.color or 'N/A'}, {line.size or 'N/A'}) x{line.quantity}"
        for line in lines
    ]

    if dry_run:
        _audit_log(f"PLACE_ORDER | DRY_RUN | items={json.dumps(item_summary)} | total={total}")
        cart.clear()
        return {
            "success": True,
            "order_number": "DRY_RUN_NO_ORDER",
            "dry_run": True,
            "total_amount": str(total),
            "message": "DRY RUN — order was NOT submitted. Set DRY_RUN=false to submit real orders.",
        }

    order = {
        "order_number": generate_order_number(),
        "customer_name": name.strip(),
        "customer_surname": surname.strip(),
        "customer_phone": phone.strip(),
        "customer_city": city.strip(),
        "customer_address": address.strip(),
        "payment_method": payment_method,
        "total_amount": float(total),
        "status": "pending",
    }
    items = [
        {
            "product_id": line.product.id,
            "quantity": line.quantity,
            "price": float(line.product.effective_price),
            "color": line.color,
            "size": line.size,
        }
        for line in lines
    ]

    try:
        created = api.create_order(order, items)
    except Exception as e:
        logger.exception("Error placing order")
        _audit_log(f"PLACE_ORDER | ERROR | reason={e}")
        return {"success": False, "error": str(e), "code": "PLACE_FAILED"}

    order_number = created.get("order_number", order["order_number"])
    _audit_log(
        f"PLACE_ORDER | CONFIRMED | items={json.dumps(item_summary)} | "
        f"total={total} | order_number={order_number}"
    )

    # Clear cart after successful placement
    cart.clear()

    return {
        "success": True,
        "order_number": order_number,
        "total_amount": str(total),
        "status": created.get("status", "pending"),
        "message": f"Order {order_number} placed. Look it up with get_order.",
    }


async def get_order(api: StorefrontAPI, order_number: str) -> dict[str, Any]:
    """Look up a placed order by its order number."""
    try:
        order = api.get_order(order_number)
        if order is None:
            return {
                "success": False,
                "error": f"Order {order_number} not found.",
                "code": "ORDER_NOT_FOUND",
            }

        items = [
            {
                "product_id": item.get("product_id"),
                "name": (item.get("product") or {}).get("name"),
                "quantity": item.get("quantity"),
                "price": item.get("price"),
                "color": item.get("color"),
                "size": item.get("size"),
            }
            for item in order.get("order_items") or []
        ]
        return {
            "success": True,
            "order_number": order.get("order_number"),
            "status": order.get("status"),
            "total_amount": order.get("total_amount"),
            "payment_method": order.get("payment_method"),
            "created_at": order.get("created_at"),
            "items": items,
        }

    except Exception as e:
        logger.exception("Error fetching order")
        return {"success": False, "error": str(e), "code": "ORDER_LOOKUP_FAILED"}
