"""REST client for the hosted storefront database.

Talks to the PostgREST interface that Supabase exposes under ``/rest/v1``.
Catalog reads, orders, reviews and newsletter signups live here; catalog admin
is done in the Supabase dashboard.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from storefront_mcp.config import SupabaseConfig
from storefront_mcp.state import DiscountCode, Product

logger = logging.getLogger(__name__)

PRODUCT_SELECT = "*,category:categories(*)"
ORDER_SELECT = "*,order_items:order_items(*,product:products(*))"


class StorefrontAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now.strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"


class StorefrontAPI:
    def __init__(self, config: SupabaseConfig, session: Optional[requests.Session] = None):
        self.base_url = config.url.rstrip("/") + "/rest/v1"
        self.timeout = config.timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": config.anon_key,
                "Authorization": f"Bearer {config.anon_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        json_body: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}/{table}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StorefrontAPIError(f"{method} {table} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message", resp.text)
            except ValueError:
                detail = resp.text
            raise StorefrontAPIError(
                f"{method} {table} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )

        if not resp.content:
            return None
        return resp.json()

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        return self._request("GET", table, params=params) or []

    # --- Catalog ---

    def get_categories(self) -> list[dict[str, Any]]:
        return self._select("categories", {"select": "*", "order": "name"})

    def get_products(self, category_id: Optional[str] = None) -> list[Product]:
        params = {"select": PRODUCT_SELECT, "order": "created_at.desc"}
        if category_id:
            params["category_id"] = f"eq.{category_id}"
        return [Product.from_dict(row) for row in self._select("products", params)]

    def get_product(self, product_id: str) -> Optional[Product]:
        rows = self._select(
            "products",
            {"select": PRODUCT_SELECT, "id": f"eq.{product_id}", "limit": "1"},
        )
        return Product.from_dict(rows[0]) if rows else None

    def get_featured_products(self, limit: int = 6) -> list[Product]:
        rows = self._select(
            "products",
            {"select": PRODUCT_SELECT, "is_featured": "eq.true", "limit": str(limit)},
        )
        return [Product.from_dict(row) for row in rows]

    # --- Discounts ---

    def get_discount_code(self, code: str) -> Optional[DiscountCode]:
        rows = self._select(
            "discount_codes",
            {"select": "*", "code": f"eq.{code.strip().upper()}", "limit": "1"},
        )
        return DiscountCode.from_dict(rows[0]) if rows else None

    # --- Orders ---

    def create_order(
        self, order: dict[str, Any], items: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Insert an order row followed by its line items."""
        prefer = {"Prefer": "return=representation"}
        created = self._request("POST", "orders", json_body=order, headers=prefer)
        if not created:
            raise StorefrontAPIError("Order insert returned no row")
        row = created[0] if isinstance(created, list) else created

        order_items = [{**item, "order_id": row["id"]} for item in items]
        try:
            self._request("POST", "order_items", json_body=order_items)
        except StorefrontAPIError as e:
            logger.error(f"Order {row.get('order_number')} (id={row['id']}) saved without its items: {e}")
            raise StorefrontAPIError(
                f"Order {row.get('order_number')} (id={row['id']}) was created but its items were not saved: {e}",
                status_code=e.status_code,
            ) from e
        logger.info(f"Created order {row.get('order_number')} with {len(order_items)} items")
        return row

    def get_order(self, order_number: str) -> Optional[dict[str, Any]]:
        rows = self._select(
            "orders",
            {"select": ORDER_SELECT, "order_number": f"eq.{order_number}", "limit": "1"},
        )
        return rows[0] if rows else None

    # --- Reviews & newsletter ---

    def get_product_reviews(self, product_id: str) -> list[dict[str, Any]]:
        return self._select(
            "reviews",
            {"select": "*", "product_id": f"eq.{product_id}", "order": "created_at.desc"},
        )

    def create_review(self, review: dict[str, Any]) -> dict[str, Any]:
        created = self._request(
            "POST", "reviews", json_body=review, headers={"Prefer": "return=representation"}
        )
        if not created:
            raise StorefrontAPIError("Review insert returned no row")
        return created[0] if isinstance(created, list) else created

    def subscribe_newsletter(self, email: str) -> dict[str, Any]:
        created = self._request(
            "POST",
            "newsletter_subscribers",
            json_body={"email": email},
            headers={"Prefer": "return=representation"},
        )
        if not created:
            raise StorefrontAPIError("Subscription insert returned no row")
        return created[0] if isinstance(created, list) else created
