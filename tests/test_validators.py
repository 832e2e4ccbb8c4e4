"""Tests for cross-field consistency validators."""

from datetime import date
from decimal import Decimal

import pytest

from pattern_extraction.patterns.pattern_definition import PatternCategory
from pattern_extraction.postprocessor.validators import (
    AmountConsistencyValidator,
    ConsistencyValidator,
    DateConsistencyValidator
)


class TestAmountConsistencyValidator:
    """Total = subtotal + tax."""

    @pytest.fixture
    def validator(self):
        return AmountConsistencyValidator(tolerance=Decimal("0.01"))

    def test_consistent(self, validator):
        valid, _ = validator.validate(Decimal("93.50"), Decimal("85.00"), Decimal("8.50"))
        assert valid

    def test_within_tolerance(self, validator):
        valid, _ = validator.validate(Decimal("93.51"), Decimal("85.00"), Decimal("8.50"))
        assert valid

    def test_subtotal_exceeds_total(self, validator):
        valid, message = validator.validate(Decimal("50.00"), Decimal("60.00"), None)
        assert not valid
        assert message == "Subtotal 60.00 exceeds total 50.00"

    def test_sum_mismatch(self, validator):
        valid, message = validator.validate(Decimal("100.00"), Decimal("85.00"), Decimal("8.50"))
        assert not valid
        assert "does not match total 100.00" in message

    def test_missing_amounts(self, validator):
        assert validator.validate(None, Decimal("1.00"), None)[0]
        assert validator.validate(Decimal("1.00"), None, Decimal("5.00"))[0]

    def test_tolerance_from_configuration(self):
        assert AmountConsistencyValidator().tolerance == Decimal("0.01")


class TestDateConsistencyValidator:
    """Due date must not precede the invoice date."""

    def test_valid(self):
        assert DateConsistencyValidator().validate(date(2016, 1, 25), date(2016, 2, 24))[0]

    def test_same_day(self):
        assert DateConsistencyValidator().validate(date(2016, 1, 25), date(2016, 1, 25))[0]

    def test_due_before_invoice(self):
        valid, message = DateConsistencyValidator().validate(date(2016, 2, 24), date(2016, 1, 25))
        assert not valid
        assert message == "Due date 2016-01-25 is before invoice date 2016-02-24"

    def test_missing_dates(self):
        assert DateConsistencyValidator().validate(None, date(2016, 1, 25))[0]


class TestConsistencyValidator:
    """Combined warnings."""

    def test_no_warnings(self):
        values = {
            PatternCategory.AMOUNT: Decimal("93.50"),
            PatternCategory.SUBTOTAL_AMOUNT: Decimal("85.00"),
            PatternCategory.TAX_AMOUNT: Decimal("8.50"),
            PatternCategory.INVOICE_DATE: date(2016, 1, 25),
            PatternCategory.DUE_DATE: date(2016, 2, 24),
        }
        assert ConsistencyValidator().check(values) == []

    def test_collects_all_warnings(self):
        values = {
            PatternCategory.AMOUNT: Decimal("50.00"),
            PatternCategory.SUBTOTAL_AMOUNT: Decimal("60.00"),
            PatternCategory.INVOICE_DATE: date(2016, 2, 24),
            PatternCategory.DUE_DATE: date(2016, 1, 25),
        }
        warnings = ConsistencyValidator().check(values)
        assert warnings == [
            "Subtotal 60.00 exceeds total 50.00",
            "Due date 2016-01-25 is before invoice date 2016-02-24",
        ]

    def test_empty_values(self):
        assert ConsistencyValidator().check({}) == []
