"""Shared deal terms read from a scenario, common to every deal type."""
from __future__ import annotations

import decimal
from dataclasses import dataclass
from decimal import Decimal

from dealdesk.models.scenario import Scenario
from dealdesk.money import MONEY_CONTEXT, money_sum, to_decimal


@dataclass(frozen=True)
class SharedTerms:
    selling_price: Decimal
    trade_allowance: Decimal
    trade_payoff: Decimal
    trade_equity: Decimal
    down_payment: Decimal
    rebates: Decimal
    other_incentives: Decimal
    aftermarket_total: Decimal
    total_fees: Decimal
    total_tax: Decimal
    term: int


def read_shared_terms(scenario: Scenario) -> SharedTerms:
    trade_allowance = to_decimal(scenario.trade_allowance)
    trade_payoff = to_decimal(scenario.trade_payoff)
    with decimal.localcontext(MONEY_CONTEXT):
        trade_equity = trade_allowance - trade_payoff
    return SharedTerms(
        selling_price=to_decimal(scenario.vehicle_price),
        trade_allowance=trade_allowance,
        trade_payoff=trade_payoff,
        trade_equity=trade_equity,
        down_payment=to_decimal(scenario.down_payment),
        rebates=to_decimal(scenario.manufacturer_rebate),
        other_incentives=to_decimal(scenario.other_incentives),
        aftermarket_total=money_sum(p.price for p in scenario.aftermarket_products),
        total_fees=to_decimal(scenario.total_fees),
        total_tax=to_decimal(scenario.total_tax),
        term=max(scenario.term or 0, 0),
    )
