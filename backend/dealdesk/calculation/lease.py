"""Lease calculation — gross cap cost through drive-off total.

Steps:
  1. gross cap cost = price + acquisition fee + aftermarket
  2. cap reductions = cash down + trade equity + rebates + other incentives
  3. adjusted cap cost = gross - reductions
  4. residual value = MSRP x residual% / 100
  5. depreciation = adjusted - residual, spread over the term
  6. rent charge = (adjusted + residual) x money factor
  7. base payment = depreciation charge + rent charge
  8. tax per the jurisdiction's method
  9. drive-off = first payment + cash down + upfront tax
"""
from __future__ import annotations

import decimal
from decimal import Decimal
from typing import Optional

from dealdesk.calculation.tax import LeaseTaxBasis, calculate_lease_tax
from dealdesk.calculation.terms import SharedTerms
from dealdesk.config import settings
from dealdesk.models.calculation import CalculationWarning, DerivedValues, WarningCode
from dealdesk.models.scenario import Scenario
from dealdesk.models.tax import TaxProfile
from dealdesk.money import HUNDRED, MONEY_CONTEXT, ZERO, format_money, to_decimal

_MONEY_FACTOR_TO_APR = Decimal("2400")


def money_factor_to_apr(money_factor: Decimal) -> Decimal:
    """APR-equivalent percentage of a money factor (MF x 2400)."""
    with decimal.localcontext(MONEY_CONTEXT):
        return (to_decimal(money_factor) * _MONEY_FACTOR_TO_APR).quantize(Decimal("0.01"))


def apr_to_money_factor(apr_percent: Decimal) -> Decimal:
    with decimal.localcontext(MONEY_CONTEXT):
        return (to_decimal(apr_percent) / _MONEY_FACTOR_TO_APR).quantize(Decimal("0.000001"))


def derive_lease(
    scenario: Scenario,
    terms: SharedTerms,
    tax_profile: Optional[TaxProfile] = None,
) -> tuple[DerivedValues, list[CalculationWarning]]:
    warnings: list[CalculationWarning] = []

    # Unset lease inputs fall back to the desk defaults
    msrp = to_decimal(scenario.msrp) or terms.selling_price
    cash_down = terms.down_payment if scenario.cash_down is None else to_decimal(scenario.cash_down)
    money_factor = to_decimal(scenario.money_factor) or to_decimal(settings.DEFAULT_MONEY_FACTOR)
    residual_percent = to_decimal(scenario.residual_percent) or to_decimal(settings.DEFAULT_RESIDUAL_PERCENT)
    acquisition_fee = to_decimal(scenario.acquisition_fee)

    with decimal.localcontext(MONEY_CONTEXT):
        gross_cap_cost = terms.selling_price + acquisition_fee + terms.aftermarket_total
        total_cap_reductions = cash_down + terms.trade_equity + terms.rebates + terms.other_incentives
        adjusted_cap_cost = gross_cap_cost - total_cap_reductions
        if adjusted_cap_cost < 0:
            warnings.append(CalculationWarning(
                code=WarningCode.CAP_REDUCTIONS_EXCEED_GROSS_CAP,
                message=(
                    f"Cap reductions ({format_money(total_cap_reductions)}) exceed "
                    f"gross cap cost ({format_money(gross_cap_cost)})"
                ),
            ))

        residual_value = msrp * residual_percent / HUNDRED
        depreciation = adjusted_cap_cost - residual_value
        if depreciation < 0:
            warnings.append(CalculationWarning(
                code=WarningCode.NEGATIVE_DEPRECIATION,
                message="Residual value exceeds adjusted cap cost",
            ))

        if terms.term > 0:
            monthly_depreciation_charge = depreciation / terms.term
        else:
            monthly_depreciation_charge = ZERO
            warnings.append(CalculationWarning(code=WarningCode.ZERO_TERM, message="Term is zero"))

        monthly_rent_charge = (adjusted_cap_cost + residual_value) * money_factor
        base_monthly_payment = monthly_depreciation_charge + monthly_rent_charge

        tax = calculate_lease_tax(
            LeaseTaxBasis(
                base_monthly_payment=base_monthly_payment,
                adjusted_cap_cost=adjusted_cap_cost,
                selling_price=terms.selling_price,
                cash_down=cash_down,
                trade_equity=terms.trade_equity,
            ),
            terms.total_tax,
            tax_profile,
        )
        monthly_payment = base_monthly_payment + tax.monthly_tax
        drive_off_total = monthly_payment + cash_down + tax.upfront_tax
        total_cost = monthly_payment * terms.term + drive_off_total

    outputs = DerivedValues(
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
        amount_financed=adjusted_cap_cost,
        monthly_payment=monthly_payment,
        total_cost=total_cost,
        gross_cap_cost=gross_cap_cost,
        total_cap_reductions=total_cap_reductions,
        adjusted_cap_cost=adjusted_cap_cost,
        residual_value=residual_value,
        depreciation=depreciation,
        monthly_depreciation_charge=monthly_depreciation_charge,
        monthly_rent_charge=monthly_rent_charge,
        base_monthly_payment=base_monthly_payment,
        monthly_tax=tax.monthly_tax,
        upfront_tax=tax.upfront_tax,
        drive_off_total=drive_off_total,
        apr_equivalent=money_factor_to_apr(money_factor),
    )
    return outputs, warnings
