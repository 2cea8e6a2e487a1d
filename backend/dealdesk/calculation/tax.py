"""Tax step — lease tax strategies keyed by TaxMethod, and sales tax estimates.

Each lease strategy receives the figures a jurisdiction may tax and returns
the monthly and upfront tax. When no tax profile has been wired in yet, the
placeholder behavior taxes the payment at ``DEFAULT_LEASE_TAX_RATE`` if the
scenario carries any tax at all.
"""
from __future__ import annotations

import decimal
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from dealdesk.config import settings
from dealdesk.models.scenario import Scenario
from dealdesk.models.tax import TaxMethod, TaxProfile
from dealdesk.money import MONEY_CONTEXT, ZERO, money_sum, to_cents, to_decimal


@dataclass(frozen=True)
class LeaseTaxBasis:
    """Figures from the lease calculation that a jurisdiction may tax."""
    base_monthly_payment: Decimal
    adjusted_cap_cost: Decimal
    selling_price: Decimal
    cash_down: Decimal
    trade_equity: Decimal


@dataclass(frozen=True)
class LeaseTax:
    monthly_tax: Decimal = ZERO
    upfront_tax: Decimal = ZERO


LeaseTaxStrategy = Callable[[LeaseTaxBasis, Decimal], LeaseTax]


def _payment_tax(basis: LeaseTaxBasis, rate: Decimal) -> Decimal:
    # Taxed on the rounded base payment, as printed on the contract
    return to_cents(to_cents(basis.base_monthly_payment) * rate)


def _tax_on_payment(basis: LeaseTaxBasis, rate: Decimal) -> LeaseTax:
    return LeaseTax(monthly_tax=_payment_tax(basis, rate))


def _tax_on_total_cap(basis: LeaseTaxBasis, rate: Decimal) -> LeaseTax:
    return LeaseTax(upfront_tax=to_cents(max(basis.adjusted_cap_cost, ZERO) * rate))


def _tax_on_selling_price(basis: LeaseTaxBasis, rate: Decimal) -> LeaseTax:
    return LeaseTax(upfront_tax=to_cents(max(basis.selling_price, ZERO) * rate))


def _tax_on_cap_reduction(basis: LeaseTaxBasis, rate: Decimal) -> LeaseTax:
    positive_equity = max(basis.trade_equity, ZERO)
    return LeaseTax(
        monthly_tax=_payment_tax(basis, rate),
        upfront_tax=to_cents((basis.cash_down + positive_equity) * rate),
    )


_LEASE_TAX_STRATEGIES: dict[TaxMethod, LeaseTaxStrategy] = {
    TaxMethod.PAYMENT: _tax_on_payment,
    TaxMethod.TOTAL_CAP: _tax_on_total_cap,
    TaxMethod.SELLING_PRICE: _tax_on_selling_price,
    TaxMethod.CAP_REDUCTION: _tax_on_cap_reduction,
}


def get_lease_tax_strategy(method: TaxMethod) -> LeaseTaxStrategy:
    """Return the strategy for a tax method. Defaults to payment taxation."""
    return _LEASE_TAX_STRATEGIES.get(method, _tax_on_payment)


def calculate_lease_tax(
    basis: LeaseTaxBasis,
    scenario_total_tax: Decimal,
    tax_profile: Optional[TaxProfile] = None,
) -> LeaseTax:
    with decimal.localcontext(MONEY_CONTEXT):
        if tax_profile is None:
            if scenario_total_tax <= 0:
                return LeaseTax()
            rate = to_decimal(settings.DEFAULT_LEASE_TAX_RATE)
            return _tax_on_payment(basis, rate)
        strategy = get_lease_tax_strategy(tax_profile.method)
        return strategy(basis, tax_profile.combined_rate)


def calculate_sales_tax(scenario: Scenario, tax_profile: TaxProfile) -> Decimal:
    """Estimate sales tax on a finance or cash deal, in cents.

    The taxable base starts at the selling price and follows the
    jurisdiction's rules for rebates, trade-in credit, doc fees and
    aftermarket products. It never goes below zero.
    """
    rules = tax_profile.rules
    with decimal.localcontext(MONEY_CONTEXT):
        taxable = to_decimal(scenario.vehicle_price)
        if rules.rebate_reduces_base:
            taxable -= to_decimal(scenario.manufacturer_rebate)
        if rules.trade_in_reduces_base:
            taxable -= to_decimal(scenario.trade_allowance)
        if rules.doc_fee_taxable:
            taxable += to_decimal(scenario.total_fees)
        if rules.aftermarket_taxable:
            taxable += money_sum(p.price for p in scenario.aftermarket_products)
        taxable = max(taxable, ZERO)
        return to_cents(taxable * tax_profile.combined_rate)
