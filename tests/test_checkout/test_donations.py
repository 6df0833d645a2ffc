"""Tests for django_storefront.checkout.services.donations."""

from decimal import Decimal

import pytest

from django_storefront.checkout.services.donations import (
    coerce_donation_amount,
    parse_donation_amount,
    settle_donation_amount,
)


class TestParseDonationAmount:
    @pytest.mark.unit
    def test_number(self):
        assert parse_donation_amount(" 12.50 ") == Decimal("12.50")

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["", "   ", "abc", "12abc", "NaN", "Infinity"])
    def test_unparsable_is_none(self, text):
        assert parse_donation_amount(text) is None


class TestSettleDonationAmount:
    @pytest.mark.unit
    def test_clamps_to_minimum(self):
        assert settle_donation_amount("3", Decimal(10)) == Decimal(10)

    @pytest.mark.unit
    def test_keeps_amount_above_minimum(self):
        assert settle_donation_amount(Decimal(25), Decimal(10)) == Decimal(25)

    @pytest.mark.unit
    def test_garbage_becomes_minimum(self):
        assert settle_donation_amount("oops", Decimal(5)) == Decimal(5)

    @pytest.mark.unit
    def test_no_minimum(self):
        assert settle_donation_amount(None, None) == Decimal(0)
        assert coerce_donation_amount(7.5) == Decimal("7.5")
