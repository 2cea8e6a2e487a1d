"""Decimal coercion and rounding helpers."""
from decimal import Decimal

from dealdesk.models.scenario import AftermarketProduct
from dealdesk.money import format_money, money_sum, to_cents, to_decimal, to_optional_decimal


def test_to_decimal_treats_blank_and_garbage_as_zero():
    assert to_decimal(None) == 0
    assert to_decimal("") == 0
    assert to_decimal("   ") == 0
    assert to_decimal("abc") == 0
    assert to_decimal("NaN") == 0
    assert to_decimal("Infinity") == 0


def test_to_decimal_parses_form_input():
    assert to_decimal("30,000.50") == Decimal("30000.50")
    assert to_decimal(" 12 ") == Decimal("12")
    assert to_decimal(250) == Decimal("250")


def test_to_decimal_float_goes_through_str():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(19.99) == Decimal("19.99")


def test_to_optional_decimal_keeps_unset():
    assert to_optional_decimal(None) is None
    assert to_optional_decimal("") is None
    assert to_optional_decimal("6") == Decimal("6")


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("0.005")) == Decimal("0.01")
    assert to_cents(Decimal("333.3333")) == Decimal("333.33")
    assert to_cents(Decimal("-0.005")) == Decimal("-0.01")


def test_money_sum_and_format():
    assert money_sum(["100.10", None, Decimal("0.90")]) == Decimal("101.00")
    assert format_money(Decimal("-3000")) == "-3,000.00"
    assert format_money(Decimal("1234567.891")) == "1,234,567.89"


def test_money_fields_never_hold_floats():
    product = AftermarketProduct(label="GAP", price=795.5)
    assert isinstance(product.price, Decimal)
    assert product.price == Decimal("795.5")
