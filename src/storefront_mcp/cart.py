"""Cart store: the in-memory cart every tool operates on.

One ``CartStore`` is created in the server lifespan and passed to the tools.
Each mutation is followed by a save to the visitor's durable slot; the
drawer-open flag is presentation state and never triggers a save.
"""

from decimal import Decimal
from typing import Optional

from storefront_mcp.state import CartLine, CartState, DiscountCode, Product, line_key, to_money

ZERO = Decimal("0.00")


class CartStore:
    def __init__(self, storage=None, state: Optional[CartState] = None):
        self.storage = storage
        if state is not None:
            self.state = state
        elif storage is not None:
            storage.ensure_visitor_id()
            self.state = storage.load()
        else:
            self.state = CartState()

    @property
    def lines(self) -> list[CartLine]:
        return self.state.items

    def _persist(self) -> None:
        if self.storage is not None:
            self.storage.save(self.state)

    def find(
        self, product_id: str, color: Optional[str] = None, size: Optional[str] = None
    ) -> Optional[CartLine]:
        key = line_key(product_id, color, size)
        return next((line for line in self.state.items if line.key == key), None)

    # --- Line items ---

    def add(
        self, product: Product, color: Optional[str] = None, size: Optional[str] = None
    ) -> CartLine:
        """Add one unit of a variant, merging into its existing line if present."""
        existing = self.find(product.id, color, size)
        if existing:
            existing.quantity += 1
            line = existing
        else:
            line = CartLine(product=product, quantity=1, color=color or None, size=size or None)
            self.state.items.append(line)
        self._persist()
        return line

    def remove_by_key(
        self, product_id: str, color: Optional[str] = None, size: Optional[str] = None
    ) -> bool:
        key = line_key(product_id, color, size)
        remaining = [line for line in self.state.items if line.key != key]
        if len(remaining) == len(self.state.items):
            return False
        self.state.items = remaining
        self._persist()
        return True

    def remove(self, line_index: int) -> bool:
        """Remove the line at a rendered position.

        The index is resolved to the line's identity key first, so the removal
        never hits a different line. Out-of-range indices are ignored.
        """
        if line_index < 0 or line_index >= len(self.state.items):
            return False
        line = self.state.items[line_index]
        return self.remove_by_key(line.product.id, line.color, line.size)

    def update_quantity(
        self,
        product_id: str,
        quantity: int,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> bool:
        if quantity <= 0:
            return self.remove_by_key(product_id, color, size)

        line = self.find(product_id, color, size)
        if line is None:
            return False
        line.quantity = quantity
        self._persist()
        return True

    def clear(self) -> None:
        self.state.items = []
        self.state.applied_discount = None
        self.state.discount_amount = ZERO
        self._persist()

    # --- Drawer flag ---

    def toggle_open(self) -> bool:
        self.state.is_open = not self.state.is_open
        return self.state.is_open

    def open(self) -> None:
        self.state.is_open = True

    def close(self) -> None:
        self.state.is_open = False

    # --- Discounts ---

    def apply_discount(self, discount: DiscountCode, amount) -> None:
        """Store a discount and its precomputed amount, replacing any previous one.

        Negative amounts are stored as zero. The amount must be a finite
        monetary value; anything else raises ``ValueError`` from ``to_money``.
        """
        amount = max(ZERO, to_money(amount))
        self.state.applied_discount = discount
        self.state.discount_amount = amount
        self._persist()

    def remove_discount(self) -> None:
        self.state.applied_discount = None
        self.state.discount_amount = ZERO
        self._persist()

    # --- Derived values ---

    def total_item_count(self) -> int:
        return sum(line.quantity for line in self.state.items)

    def subtotal(self) -> Decimal:
        # product-level sale prices; the cart-level code is applied in final_total
        return to_money(sum((line.product.effective_price * line.quantity for line in self.state.items), ZERO))

    def final_total(self) -> Decimal:
        # the discount amount is frozen when applied and only clamped here
        return max(ZERO, self.subtotal() - self.state.discount_amount)
