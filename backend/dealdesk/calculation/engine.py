"""Calculation engine — maps a scenario snapshot to derived values and warnings.

``derive`` is pure: it reads only input fields, so feeding its outputs back
onto the scenario (as the store does) and deriving again yields the same
numbers. Degenerate inputs produce warnings, never exceptions.
"""
from __future__ import annotations

import decimal
from typing import Optional

from dealdesk.calculation.finance import calculate_amount_financed, calculate_monthly_payment
from dealdesk.calculation.lease import derive_lease
from dealdesk.calculation.terms import SharedTerms, read_shared_terms
from dealdesk.models.calculation import (
    CalculationResult,
    CalculationWarning,
    DerivedValues,
    WarningCode,
)
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.models.tax import TaxProfile
from dealdesk.money import MONEY_CONTEXT, ZERO, format_money, to_decimal


def derive(scenario: Scenario, tax_profile: Optional[TaxProfile] = None) -> CalculationResult:
    """Derive payment figures for a finance, lease or cash scenario."""
    terms = read_shared_terms(scenario)
    warnings: list[CalculationWarning] = []

    if terms.trade_equity < 0:
        warnings.append(CalculationWarning(
            code=WarningCode.NEGATIVE_TRADE_EQUITY,
            message=f"Negative trade equity: {format_money(terms.trade_equity)}",
        ))

    if scenario.scenario_type == ScenarioType.LEASE:
        outputs, type_warnings = derive_lease(scenario, terms, tax_profile)
    elif scenario.scenario_type == ScenarioType.FINANCE:
        outputs, type_warnings = _derive_finance(scenario, terms)
    else:
        outputs, type_warnings = _derive_cash(terms)

    return CalculationResult(
        scenario_type=scenario.scenario_type,
        outputs=outputs,
        warnings=warnings + type_warnings,
    )


def _base_values(terms: SharedTerms) -> dict:
    return dict(
        selling_price=terms.selling_price,
        trade_allowance=terms.trade_allowance,
        trade_payoff=terms.trade_payoff,
        trade_equity=terms.trade_equity,
        down_payment=terms.down_payment,
        rebates=terms.rebates,
        other_incentives=terms.other_incentives,
        total_fees=terms.total_fees,
        total_tax=terms.total_tax,
        aftermarket_total=terms.aftermarket_total,
    )


def _derive_finance(
    scenario: Scenario, terms: SharedTerms,
) -> tuple[DerivedValues, list[CalculationWarning]]:
    warnings: list[CalculationWarning] = []
    amount_financed = calculate_amount_financed(
        selling_price=terms.selling_price,
        total_tax=terms.total_tax,
        total_fees=terms.total_fees,
        aftermarket_total=terms.aftermarket_total,
        trade_payoff=terms.trade_payoff,
        down_payment=terms.down_payment,
        rebates=terms.rebates,
        trade_allowance=terms.trade_allowance,
    )
    if amount_financed < 0:
        warnings.append(CalculationWarning(
            code=WarningCode.NEGATIVE_AMOUNT_FINANCED,
            message=f"Amount financed is negative: {format_money(amount_financed)}",
        ))

    if terms.term == 0:
        warnings.append(CalculationWarning(code=WarningCode.ZERO_TERM, message="Term is zero"))

    monthly_payment = calculate_monthly_payment(amount_financed, to_decimal(scenario.apr), terms.term)
    with decimal.localcontext(MONEY_CONTEXT):
        total_cost = terms.down_payment + monthly_payment * terms.term

    outputs = DerivedValues(
        **_base_values(terms),
        amount_financed=amount_financed,
        monthly_payment=monthly_payment,
        total_cost=total_cost,
    )
    return outputs, warnings


def _derive_cash(terms: SharedTerms) -> tuple[DerivedValues, list[CalculationWarning]]:
    """Cash deals carry no amortization; the payment is simply not applicable."""
    with decimal.localcontext(MONEY_CONTEXT):
        total_cost = (
            terms.selling_price + terms.total_fees + terms.total_tax + terms.aftermarket_total
            - terms.rebates - terms.other_incentives - terms.trade_equity
        )
    outputs = DerivedValues(
        **_base_values(terms),
        amount_financed=ZERO,
        monthly_payment=ZERO,
        total_cost=total_cost,
    )
    return outputs, []
