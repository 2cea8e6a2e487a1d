"""Amount financed and the amortized monthly payment for finance deals."""
from __future__ import annotations

import decimal
from decimal import Decimal

from dealdesk.money import HUNDRED, MONEY_CONTEXT, ONE, ZERO


def calculate_amount_financed(
    selling_price: Decimal,
    total_tax: Decimal,
    total_fees: Decimal,
    aftermarket_total: Decimal,
    trade_payoff: Decimal,
    down_payment: Decimal,
    rebates: Decimal,
    trade_allowance: Decimal,
) -> Decimal:
    """Price plus additions (tax, fees, products, payoff) less reductions.

    May be negative when reductions exceed the price; the caller warns.
    """
    with decimal.localcontext(MONEY_CONTEXT):
        return (
            selling_price + total_tax + total_fees + aftermarket_total + trade_payoff
            - down_payment - rebates - trade_allowance
        )


def calculate_monthly_payment(principal: Decimal, apr_percent: Decimal, term: int) -> Decimal:
    """Standard PMT formula for a fixed-rate amortizing loan.

    PMT = P * r * (1+r)^n / ((1+r)^n - 1), with r = APR / 100 / 12.
    A zero rate pays the principal off in equal installments; a non-positive
    term yields zero.
    """
    if term <= 0:
        return ZERO
    with decimal.localcontext(MONEY_CONTEXT):
        if apr_percent == 0:
            return principal / term
        r = apr_percent / HUNDRED / 12
        power = (ONE + r) ** term
        return principal * r * power / (power - ONE)
