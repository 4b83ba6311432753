import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from storefront_mcp.api import StorefrontAPIError
from storefront_mcp.state import FIXED, PERCENTAGE, CartLine, DiscountCode, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class DiscountValidation:
    valid: bool
    discount: Optional[DiscountCode] = None
    error: Optional[str] = None


class DiscountEvaluator:
    """Validates promo codes and computes the amount they take off a subtotal."""

    def __init__(self, lookup: Callable[[str], Optional[DiscountCode]]):
        self.lookup = lookup

    def validate(self, code: str, subtotal: Decimal, lines: list[CartLine]) -> DiscountValidation:
        code = (code or "").strip()
        if not code:
            return DiscountValidation(False, error="Enter a discount code.")
        if not lines:
            return DiscountValidation(False, error="Cart is empty. Add items first.")

        try:
            discount = self.lookup(code)
        except StorefrontAPIError as e:
            logger.warning(f"Discount lookup for {code!r} failed: {e}")
            return DiscountValidation(False, error="Could not verify discount code right now.")

        if discount is None:
            return DiscountValidation(False, error=f"Discount code {code!r} does not exist.")
        if not discount.is_active:
            return DiscountValidation(False, error=f"Discount code {code!r} is no longer active.")
        if subtotal < discount.min_subtotal:
            return DiscountValidation(
                False,
                error=f"Discount code {code!r} requires a subtotal of at least {discount.min_subtotal}.",
            )
        return DiscountValidation(True, discount=discount)

    def compute_amount(
        self, discount: DiscountCode, subtotal: Decimal, lines: list[CartLine]
    ) -> Decimal:
        if discount.type == PERCENTAGE:
            amount = subtotal * discount.value / 100
        elif discount.type == FIXED:
            amount = discount.value
        else:
            amount = ZERO
        amount = to_money(amount)
        return min(max(amount, ZERO), subtotal)
