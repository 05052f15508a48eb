from decimal import Decimal

from bizledger.utils.formatting import (
    format_category_name,
    format_currency,
    format_flow_category,
    format_source_name,
    is_deductible_category,
)
from bizledger.utils.money import as_money, money_sum, quantize_money


def test_quantize_money_rounds_half_up_to_cents():
    assert quantize_money(Decimal("10.005")) == Decimal("10.01")
    assert quantize_money(Decimal("10.004")) == Decimal("10.00")
    assert quantize_money(None) is None


def test_quantize_money_is_idempotent():
    once = quantize_money(Decimal("1234.5678"))
    assert quantize_money(once) == once == Decimal("1234.57")


def test_as_money_treats_missing_as_zero():
    assert as_money(None) == Decimal("0.00")
    assert as_money(7) == Decimal("7.00")


def test_money_sum_has_no_float_drift():
    assert money_sum([0.1, 0.2]) == Decimal("0.30")
    assert money_sum([Decimal("4000"), None, "1000.50"]) == Decimal("5000.50")
    assert money_sum([]) == Decimal("0.00")


def test_format_currency():
    assert format_currency(Decimal("6000")) == "₦6,000.00"
    assert format_currency(Decimal("-5000.5")) == "-₦5,000.50"
    assert format_currency(None) == "₦0.00"


def test_display_names():
    assert format_source_name("OTHER_INCOME") == "Other Income"
    assert format_source_name("SOMETHING_ELSE") == "SOMETHING_ELSE"
    assert format_category_name("RENT_RATES") == "Rent Rates"
    assert format_flow_category("INVESTING") == "Investing Activities"


def test_non_deductible_categories():
    assert is_deductible_category("RENT_RATES") is True
    assert is_deductible_category("FINES_PENALTIES") is False
