from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

CENTS = Decimal("0.01")

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)


class InvalidProductError(ValueError):
    pass


def to_money(value: Any) -> Decimal:
    """Convert a price-like value (str, int, float, Decimal) to cents."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid monetary value: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary value: {value!r}")
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Monetary value out of range: {value!r}") from e


def line_key(
    product_id: str, color: Optional[str] = None, size: Optional[str] = None
) -> tuple[str, Optional[str], Optional[str]]:
    return (str(product_id), color or None, size or None)


@dataclass
class Product:
    id: str
    name: str
    price: Decimal
    discount_price: Optional[Decimal] = None
    colors: list[str] = field(default_factory=list)
    sizes: list[str] = field(default_factory=list)
    stock: int = 0
    category_id: Optional[str] = None
    images: list[str] = field(default_factory=list)
    is_featured: bool = False
    is_new: bool = False
    is_limited: bool = False

    def __post_init__(self):
        self.id = str(self.id)
        self.price = to_money(self.price)
        if self.discount_price is not None:
            self.discount_price = to_money(self.discount_price)
            if self.discount_price > self.price:
                raise InvalidProductError(
                    f"Product {self.id}: discount price {self.discount_price} "
                    f"exceeds base price {self.price}"
                )

    @property
    def effective_price(self) -> Decimal:
        if self.discount_price is not None:
            return self.discount_price
        return self.price

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        try:
            return cls(
                id=data["id"],
                name=data.get("name", ""),
                price=data["price"],
                discount_price=data.get("discount_price"),
                colors=list(data.get("colors") or []),
                sizes=list(data.get("sizes") or []),
                stock=int(data.get("stock") or 0),
                category_id=data.get("category_id"),
                images=list(data.get("images") or []),
                is_featured=bool(data.get("is_featured", False)),
                is_new=bool(data.get("is_new", False)),
                is_limited=bool(data.get("is_limited", False)),
            )
        except InvalidProductError:
            raise
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidProductError(f"Malformed product row: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "discount_price": str(self.discount_price) if self.discount_price is not None else None,
            "colors": list(self.colors),
            "sizes": list(self.sizes),
            "stock": self.stock,
            "category_id": self.category_id,
            "images": list(self.images),
            "is_featured": self.is_featured,
            "is_new": self.is_new,
            "is_limited": self.is_limited,
        }


@dataclass
class CartLine:
    product: Product
    quantity: int = 1
    color: Optional[str] = None
    size: Optional[str] = None

    @property
    def key(self) -> tuple[str, Optional[str], Optional[str]]:
        return line_key(self.product.id, self.color, self.size)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.product.effective_price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "color": self.color,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        return cls(
            product=Product.from_dict(data["product"]),
            quantity=int(data["quantity"]),
            color=data.get("color"),
            size=data.get("size"),
        )


@dataclass
class DiscountCode:
    id: str
    code: str
    type: str
    value: Decimal
    min_subtotal: Decimal = Decimal("0.00")
    is_active: bool = True

    def __post_init__(self):
        self.id = str(self.id)
        if self.type not in DISCOUNT_TYPES:
            raise ValueError(f"Unknown discount type: {self.type!r}")
        self.value = to_money(self.value)
        self.min_subtotal = to_money(self.min_subtotal or 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "type": self.type,
            "value": str(self.value),
            "min_subtotal": str(self.min_subtotal),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscountCode":
        return cls(
            id=data["id"],
            code=data["code"],
            type=data["type"],
            value=data["value"],
            min_subtotal=data.get("min_subtotal") or 0,
            is_active=bool(data.get("is_active", True)),
        )


@dataclass
class CartState:
    items: list[CartLine] = field(default_factory=list)
    is_open: bool = False
    applied_discount: Optional[DiscountCode] = None
    discount_amount: Decimal = Decimal("0.00")

    def to_dict(self) -> dict[str, Any]:
        # is_open is presentation state and stays out of the durable slot
        return {
            "items": [line.to_dict() for line in self.items],
            "applied_discount": self.applied_discount.to_dict() if self.applied_discount else None,
            "discount_amount": str(self.discount_amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartState":
        discount = data.get("applied_discount")
        amount = to_money(data.get("discount_amount") or 0)
        if amount < 0:
            raise ValueError(f"Negative discount amount: {amount}")
        items = [CartLine.from_dict(item) for item in data.get("items", [])]
        if any(line.quantity <= 0 for line in items):
            raise ValueError("Stored cart contains a non-positive quantity")
        if len({line.key for line in items}) != len(items):
            raise ValueError("Stored cart contains duplicate variant lines")
        return cls(
            items=items,
            applied_discount=DiscountCode.from_dict(discount) if discount else None,
            discount_amount=amount,
        )
