"""Tests for discount validation, usage accounting and administration."""

from datetime import datetime
from decimal import Decimal

import pytest

from storefront.errors import DiscountNotFound, DuplicateEntry
from storefront.models import Discount
from storefront.services.discount_service import DiscountService, evaluate_discount

from conftest import NOW


def make(kind="percentage", value="10", **kw):
    return Discount(
        code="TEST",
        kind=kind,
        value=Decimal(value),
        min_order_amount=Decimal(str(kw.get("min_order_amount", 0))),
        max_discount_amount=kw.get("max_discount_amount"),
        usage_limit=kw.get("usage_limit"),
        used_count=kw.get("used_count", 0),
        valid_from=kw.get("valid_from", datetime(2024, 1, 1)),
        valid_until=kw.get("valid_until", datetime(2024, 12, 31)),
        is_active=kw.get("is_active", True),
    )


class TestEvaluateDiscount:
    def test_percentage_amount(self):
        result = evaluate_discount(make(), "TEST", Decimal("1000"), NOW)

        assert result.accepted
        assert result.amount == Decimal("100")

    def test_fixed_amount(self):
        result = evaluate_discount(make("fixed", "75"), "TEST", Decimal("1000"), NOW)

        assert result.amount == Decimal("75")

    @pytest.mark.parametrize("subtotal", ["0", "10", "749.99", "750", "1000", "99999"])
    def test_cap_bounds_percentage(self, subtotal):
        d = make(value="20", max_discount_amount=Decimal("150"))
        result = evaluate_discount(d, "TEST", Decimal(subtotal), NOW)

        assert result.amount <= Decimal("150")
        assert result.amount == min(Decimal(subtotal) * Decimal("0.2"), Decimal("150"))

    def test_cap_ignored_for_fixed(self):
        d = make("fixed", "500", max_discount_amount=Decimal("100"))

        assert evaluate_discount(d, "TEST", Decimal("1000"), NOW).amount == Decimal("500")

    def test_missing(self):
        result = evaluate_discount(None, "NOPE", Decimal("1000"), NOW)

        assert not result.accepted
        assert result.reason == "not_found"

    def test_inactive(self):
        assert evaluate_discount(make(is_active=False), "TEST", 1000, NOW).reason == "inactive"

    @pytest.mark.parametrize(
        "now",
        [datetime(2023, 12, 31, 23, 59, 59), datetime(2025, 1, 1)],
    )
    def test_outside_window_is_expired(self, now):
        result = evaluate_discount(make(), "TEST", Decimal("1000000"), now)

        assert result.reason == "expired"

    @pytest.mark.parametrize("now", [datetime(2024, 1, 1), datetime(2024, 12, 31)])
    def test_window_bounds_inclusive(self, now):
        assert evaluate_discount(make(), "TEST", Decimal("1000"), now).accepted

    def test_minimum_not_met(self):
        d = make(min_order_amount=2000)

        assert evaluate_discount(d, "TEST", Decimal("1000"), NOW).reason == "minimum_not_met"
        assert evaluate_discount(d, "TEST", Decimal("2000"), NOW).accepted

    def test_usage_limit_reached(self):
        d = make(usage_limit=5, used_count=5)

        assert evaluate_discount(d, "TEST", Decimal("1000"), NOW).reason == "usage_limit_reached"

    def test_inactive_checked_before_window(self):
        d = make(is_active=False, valid_until=datetime(2020, 1, 1))

        assert evaluate_discount(d, "TEST", 1000, NOW).reason == "inactive"


class TestDiscountService:
    def test_lookup_is_case_insensitive(self, discount_service, discounts):
        result = discount_service.validate("  save10 ", Decimal("1000"), now=NOW)

        assert result.accepted
        assert result.code == "SAVE10"
        assert result.amount == Decimal("100")

    def test_unknown_code(self, discount_service, discounts):
        assert discount_service.validate("GHOST", 1000, now=NOW).reason == "not_found"

    def test_redeem_respects_limit(self, session_factory, discounts):
        with session_factory() as session:
            assert DiscountService.redeem_in(session, "once")
            assert not DiscountService.redeem_in(session, "ONCE")
        with session_factory() as session:
            assert session.get(Discount, discounts["ONCE"]).used_count == 1

    def test_redeem_unlimited(self, session_factory, discounts):
        with session_factory() as session:
            for _ in range(3):
                assert DiscountService.redeem_in(session, "SAVE10")
        with session_factory() as session:
            assert session.get(Discount, discounts["SAVE10"]).used_count == 3

    def test_release_never_goes_negative(self, session_factory, discounts):
        with session_factory() as session:
            DiscountService.release_in(session, "SAVE10")
        with session_factory() as session:
            assert session.get(Discount, discounts["SAVE10"]).used_count == 0

    def test_create_upper_cases_code(self, discount_service):
        dto = discount_service.create_discount(
            code=" summer25 ",
            kind="percentage",
            value=25,
            valid_from=datetime(2024, 6, 1),
            valid_until=datetime(2024, 8, 31),
            max_discount_amount=300,
        )

        assert dto["code"] == "SUMMER25"
        assert dto["used_count"] == 0
        assert dto["max_discount_amount"] == 300.0

    def test_create_rejects_duplicate(self, discount_service, discounts):
        with pytest.raises(DuplicateEntry):
            discount_service.create_discount(
                code="save10",
                kind="fixed",
                value=10,
                valid_from=datetime(2024, 1, 1),
                valid_until=datetime(2024, 2, 1),
            )

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"kind": "bogus", "value": 10},
            {"kind": "fixed", "value": 0},
            {"kind": "fixed", "value": 10, "valid_until": datetime(2024, 1, 1)},
        ],
    )
    def test_create_validation(self, discount_service, kwargs):
        params = {
            "code": "BAD",
            "valid_from": datetime(2024, 1, 1),
            "valid_until": datetime(2024, 2, 1),
        }
        params.update(kwargs)

        with pytest.raises(ValueError):
            discount_service.create_discount(**params)

    def test_update_and_delete(self, discount_service, discounts):
        dto = discount_service.update_discount(discounts["FLAT100"], value=150, is_active=False)

        assert dto["value"] == 150.0
        assert dto["is_active"] is False

        discount_service.delete_discount(discounts["FLAT100"])
        with pytest.raises(DiscountNotFound):
            discount_service.get_discount(discounts["FLAT100"])

    def test_list_search(self, discount_service, discounts):
        codes = [d["code"] for d in discount_service.list_discounts(search="save")]

        assert codes == ["SAVE10"]
