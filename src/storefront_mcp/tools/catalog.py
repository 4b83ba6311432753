import logging
from typing import Any

from storefront_mcp.api import StorefrontAPI
from storefront_mcp.state import Product

logger = logging.getLogger(__name__)


def product_summary(product: Product) -> dict[str, Any]:
    return {
        "product_id": product.id,
        "name": product.name,
        "price": str(product.price),
        "discount_price": str(product.discount_price) if product.discount_price is not None else None,
        "colors": product.colors,
        "sizes": product.sizes,
        "in_stock": product.stock > 0,
        "stock": product.stock,
        "is_new": product.is_new,
        "is_limited": product.is_limited,
    }


async def list_categories(api: StorefrontAPI) -> dict[str, Any]:
    """List product categories."""
    try:
        categories = [
            {
                "category_id": c.get("id"),
                "name": c.get("name"),
                "slug": c.get("slug"),
                "gender": c.get("gender"),
            }
            for c in api.get_categories()
        ]
        return {"success": True, "categories": categories}

    except Exception as e:
        logger.exception("Error listing categories")
        return {"success": False, "error": str(e), "code": "CATEGORIES_FAILED"}


async def list_products(api: StorefrontAPI, category_id: str = "") -> dict[str, Any]:
    """List products, optionally restricted to one category."""
    try:
        products = api.get_products(category_id or None)
        return {
            "success": True,
            "category_id": category_id or None,
            "products": [product_summary(p) for p in products],
            "total_products": len(products),
        }

    except Exception as e:
        logger.exception("Error listing products")
        return {"success": False, "error": str(e), "code": "PRODUCTS_FAILED"}


async def get_featured_products(api: StorefrontAPI) -> dict[str, Any]:
    """List featured products for the home page."""
    try:
        products = api.get_featured_products()
        return {"success": True, "products": [product_summary(p) for p in products]}

    except Exception as e:
        logger.exception("Error listing featured products")
        return {"success": False, "error": str(e), "code": "PRODUCTS_FAILED"}


async def get_product(api: StorefrontAPI, product_id: str) -> dict[str, Any]:
    """Get one product with its variants and stock."""
    try:
        product = api.get_product(product_id)
        if product is None:
            return {
                "success": False,
                "error": f"Product {product_id} not found.",
                "code": "PRODUCT_NOT_FOUND",
            }
        details = product_summary(product)
        details["images"] = product.images
        details["category_id"] = product.category_id
        return {"success": True, "product": details}

    except Exception as e:
        logger.exception("Error fetching product")
        return {"success": False, "error": str(e), "code": "PRODUCT_FAILED"}
