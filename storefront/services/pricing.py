"""Order price breakdown: subtotal, discount, shipping, tax and total."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..errors import EmptyCart, InvalidDiscount
from ..utils.dto import money


DEFAULT_TAX_RATE = Decimal("0.18")
ZERO = Decimal("0")


def as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


@dataclass(frozen=True)
class PricedLine:
    """A cart line with its unit price resolved from the catalog."""

    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: Optional[str] = None
    product_name: str = ""
    variant_name: Optional[str] = None
    cart_item_id: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return as_decimal(self.unit_price) * self.quantity

    def to_dict(self) -> Dict:
        return {
            "cart_item_id": self.cart_item_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "line_total": money(self.line_total),
        }


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    shipping_charge: Decimal
    tax_amount: Decimal
    total_amount: Decimal

    def to_dict(self) -> Dict:
        return {
            "subtotal": money(self.subtotal),
            "discount_amount": money(self.discount_amount),
            "shipping_charge": money(self.shipping_charge),
            "tax_amount": money(self.tax_amount),
            "total_amount": money(self.total_amount),
        }


def cart_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    lines = list(lines)
    if not lines:
        raise EmptyCart()
    return sum((line.line_total for line in lines), ZERO)


def compute_breakdown(
    lines: Iterable[PricedLine],
    shipping,
    discount=None,
    tax_rate=DEFAULT_TAX_RATE,
) -> PriceBreakdown:
    """Combine priced lines, a shipping quote and an optional validated discount.

    Tax applies to the pre-discount subtotal. The discount is subtracted last
    and never takes the total below zero.
    """
    lines: List[PricedLine] = list(lines)
    subtotal = cart_subtotal(lines)

    discount_amount = ZERO
    if discount is not None:
        if not discount.accepted:
            raise InvalidDiscount(discount.code, discount.reason)
        discount_amount = as_decimal(discount.amount)

    shipping_charge = as_decimal(shipping.shipping_charge) if shipping is not None else ZERO
    tax_amount = subtotal * as_decimal(tax_rate)
    gross = subtotal + shipping_charge + tax_amount
    discount_amount = min(discount_amount, gross)

    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount_amount,
        shipping_charge=shipping_charge,
        tax_amount=tax_amount,
        total_amount=gross - discount_amount,
    )
