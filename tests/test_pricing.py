"""Tests for the price breakdown computation."""

from decimal import Decimal

import pytest

from storefront.errors import EmptyCart, InvalidDiscount
from storefront.services.discount_service import DiscountValidation
from storefront.services.pricing import PricedLine, cart_subtotal, compute_breakdown
from storefront.services.shipping_service import ShippingQuote
from storefront.utils.dto import money


def quote(charge="50"):
    return ShippingQuote(
        rule_id="r-1",
        state="Maharashtra",
        delivery_days=3,
        shipping_charge=Decimal(charge),
        cod_available=True,
    )


def line(price="500", qty=2, product_id="p-1"):
    return PricedLine(product_id=product_id, quantity=qty, unit_price=Decimal(price))


class TestComputeBreakdown:
    def test_no_discount(self):
        b = compute_breakdown([line()], quote(), tax_rate=Decimal("0.18"))

        assert b.subtotal == Decimal("1000")
        assert b.tax_amount == Decimal("180")
        assert b.shipping_charge == Decimal("50")
        assert b.discount_amount == 0
        assert b.total_amount == Decimal("1230")

    def test_percentage_discount_subtracted_last(self):
        discount = DiscountValidation(code="SAVE10", accepted=True, amount=Decimal("100"))
        b = compute_breakdown([line()], quote(), discount)

        assert b.discount_amount == Decimal("100")
        assert b.total_amount == Decimal("1130")

    def test_tax_on_pre_discount_subtotal(self):
        discount = DiscountValidation(code="FLAT100", accepted=True, amount=Decimal("100"))
        b = compute_breakdown([line()], quote(), discount, tax_rate=Decimal("0.10"))

        assert b.tax_amount == Decimal("100")

    def test_mixed_lines_sum(self):
        lines = [line("500", 1), line("300", 3, product_id="p-2")]

        assert cart_subtotal(lines) == Decimal("1400")

    def test_free_shipping(self):
        b = compute_breakdown([line("100", 1)], quote("0"), tax_rate=0)

        assert b.total_amount == Decimal("100")

    def test_float_tax_rate_accepted(self):
        b = compute_breakdown([line("100", 1)], quote("0"), tax_rate=0.18)

        assert b.tax_amount == Decimal("18")

    def test_empty_cart_raises(self):
        with pytest.raises(EmptyCart):
            compute_breakdown([], quote())

    def test_rejected_discount_raises(self):
        rejected = DiscountValidation(code="OLD", accepted=False, reason="expired")

        with pytest.raises(InvalidDiscount) as exc:
            compute_breakdown([line()], quote(), rejected)
        assert exc.value.reason == "expired"

    def test_total_never_negative(self):
        discount = DiscountValidation(code="HUGE", accepted=True, amount=Decimal("100000"))
        b = compute_breakdown([line()], quote(), discount)

        assert b.total_amount == 0
        assert b.discount_amount == Decimal("1230")

    @pytest.mark.parametrize("qty", [1, 2, 5, 17])
    def test_total_monotonic_in_quantity(self, qty):
        discount = DiscountValidation(code="FLAT100", accepted=True, amount=Decimal("100"))
        smaller = compute_breakdown([line("199.99", qty)], quote(), discount)
        larger = compute_breakdown([line("199.99", qty + 1)], quote(), discount)

        assert larger.total_amount >= smaller.total_amount

    def test_to_dict_rounds_for_display(self):
        b = compute_breakdown([line("333.33", 1)], quote("0"), tax_rate=Decimal("0.18"))

        assert b.tax_amount == Decimal("59.9994")
        assert b.to_dict()["tax_amount"] == 60.0

    @pytest.mark.parametrize("raw,shown", [("0.125", 0.13), ("2.675", 2.68), ("10.005", 10.01), ("-0.125", -0.13)])
    def test_display_rounds_half_up(self, raw, shown):
        assert money(Decimal(raw)) == shown
