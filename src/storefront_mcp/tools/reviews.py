import logging
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError

from storefront_mcp.api import StorefrontAPI, StorefrontAPIError

logger = logging.getLogger(__name__)

REVIEWABLE_STATUS = "completed"

_email = TypeAdapter(EmailStr)


async def get_product_reviews(api: StorefrontAPI, product_id: str) -> dict[str, Any]:
    """List a product's reviews, newest first, with the average rating."""
    try:
        rows = api.get_product_reviews(product_id)
        reviews = [
            {
                "customer_name": r.get("customer_name"),
                "rating": r.get("rating"),
                "comment": r.get("comment"),
                "created_at": r.get("created_at"),
            }
            for r in rows
        ]
        ratings = [r["rating"] for r in reviews if isinstance(r["rating"], int)]
        return {
            "success": True,
            "product_id": product_id,
            "reviews": reviews,
            "review_count": len(reviews),
            "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else None,
        }

    except Exception as e:
        logger.exception("Error fetching reviews")
        return {"success": False, "error": str(e), "code": "REVIEWS_FAILED"}


async def submit_review(
    api: StorefrontAPI,
    order_number: str,
    product_id: str,
    customer_name: str,
    rating: int,
    comment: str = "",
) -> dict[str, Any]:
    """Leave a review for a product from a completed order."""
    if not customer_name.strip():
        return {
            "success": False,
            "error": "Customer name is required.",
            "code": "MISSING_NAME",
        }
    if rating < 1 or rating > 5:
        return {
            "success": False,
            "error": "Rating must be between 1 and 5.",
            "code": "INVALID_RATING",
        }

    try:
        order = api.get_order(order_number)
        if order is None:
            return {
                "success": False,
                "error": f"Order {order_number} not found.",
                "code": "ORDER_NOT_FOUND",
            }
        if order.get("status") != REVIEWABLE_STATUS:
            return {
                "success": False,
                "error": f"Order {order_number} is {order.get('status')}; reviews open once it is completed.",
                "code": "ORDER_NOT_COMPLETED",
            }
        ordered = {str(item.get("product_id")) for item in order.get("order_items") or []}
        if str(product_id) not in ordered:
            return {
                "success": False,
                "error": f"Product {product_id} is not part of order {order_number}.",
                "code": "PRODUCT_NOT_IN_ORDER",
            }

        review = api.create_review(
            {
                "product_id": product_id,
                "order_id": order["id"],
                "customer_name": customer_name.strip(),
                "rating": rating,
                "comment": comment.strip() or None,
            }
        )
        logger.info(f"Review {review.get('id')} saved for product {product_id}")
        return {"success": True, "review_id": review.get("id"), "message": "Thank you for your review!"}

    except Exception as e:
        logger.exception("Error submitting review")
        return {"success": False, "error": str(e), "code": "REVIEW_FAILED"}


async def subscribe_newsletter(api: StorefrontAPI, email: str) -> dict[str, Any]:
    """Subscribe an email address to the newsletter."""
    try:
        address = _email.validate_python(email.strip())
    except ValidationError:
        return {
            "success": False,
            "error": f"{email!r} is not a valid email address.",
            "code": "INVALID_EMAIL",
        }

    try:
        api.subscribe_newsletter(address)
        return {"success": True, "email": address, "message": "Subscribed."}

    except StorefrontAPIError as e:
        # unique constraint on email
        if e.status_code == 409:
            return {
                "success": False,
                "error": f"{address} is already subscribed.",
                "code": "ALREADY_SUBSCRIBED",
            }
        logger.exception("Error subscribing to newsletter")
        return {"success": False, "error": str(e), "code": "SUBSCRIBE_FAILED"}
