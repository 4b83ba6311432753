"""Tests for product reviews and newsletter signup."""

import pytest

from storefront_mcp.tools.reviews import get_product_reviews, submit_review, subscribe_newsletter

from conftest import FakeAPI


@pytest.fixture
def api(shirt, scarf):
    api = FakeAPI(products=[shirt, scarf])
    api.create_order(
        {"order_number": "ORD-20260301-ABC123", "status": "completed"},
        [{"product_id": "shirt", "quantity": 1, "price": 80.0, "color": "Red", "size": "M"}],
    )
    api.create_order(
        {"order_number": "ORD-20260302-DEF456", "status": "shipped"},
        [{"product_id": "scarf", "quantity": 1, "price": 25.5, "color": None, "size": None}],
    )
    return api


class TestSubmitReview:
    async def test_saves_review_for_completed_order(self, api):
        result = await submit_review(api, "ORD-20260301-ABC123", "shirt", " Nino ", 5, "Fits well ")
        assert result["success"]
        saved = api.reviews[0]
        assert saved["order_id"] == "order-1"
        assert saved["customer_name"] == "Nino"
        assert saved["comment"] == "Fits well"

    async def test_blank_comment_is_stored_as_none(self, api):
        await submit_review(api, "ORD-20260301-ABC123", "shirt", "Nino", 4)
        assert api.reviews[0]["comment"] is None

    async def test_order_must_be_completed(self, api):
        result = await submit_review(api, "ORD-20260302-DEF456", "scarf", "Nino", 4)
        assert result["code"] == "ORDER_NOT_COMPLETED"
        assert api.reviews == []

    async def test_unknown_order(self, api):
        result = await submit_review(api, "ORD-NOPE", "shirt", "Nino", 4)
        assert result["code"] == "ORDER_NOT_FOUND"

    async def test_product_must_be_in_order(self, api):
        result = await submit_review(api, "ORD-20260301-ABC123", "scarf", "Nino", 4)
        assert result["code"] == "PRODUCT_NOT_IN_ORDER"

    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_range(self, api, rating):
        result = await submit_review(api, "ORD-20260301-ABC123", "shirt", "Nino", rating)
        assert result["code"] == "INVALID_RATING"

    async def test_name_required(self, api):
        result = await submit_review(api, "ORD-20260301-ABC123", "shirt", "   ", 5)
        assert result["code"] == "MISSING_NAME"


class TestProductReviews:
    async def test_lists_newest_first_with_average(self, api):
        await submit_review(api, "ORD-20260301-ABC123", "shirt", "Nino", 5)
        await submit_review(api, "ORD-20260301-ABC123", "shirt", "Giorgi", 4, "Runs small")
        result = await get_product_reviews(api, "shirt")
        assert [r["customer_name"] for r in result["reviews"]] == ["Giorgi", "Nino"]
        assert result["review_count"] == 2
        assert result["average_rating"] == 4.5

    async def test_no_reviews(self, api):
        result = await get_product_reviews(api, "scarf")
        assert result["reviews"] == []
        assert result["average_rating"] is None


class TestNewsletter:
    async def test_subscribes(self, api):
        result = await subscribe_newsletter(api, " nino@boutique.ge ")
        assert result["success"]
        assert api.subscribers == ["nino@boutique.ge"]

    @pytest.mark.parametrize("email", ["", "not-an-email", "nino@", "@boutique.ge"])
    async def test_rejects_invalid_email(self, api, email):
        result = await subscribe_newsletter(api, email)
        assert result["code"] == "INVALID_EMAIL"
        assert api.subscribers == []

    async def test_duplicate_subscription(self, api):
        await subscribe_newsletter(api, "nino@boutique.ge")
        result = await subscribe_newsletter(api, "nino@boutique.ge")
        assert result["code"] == "ALREADY_SUBSCRIBED"
