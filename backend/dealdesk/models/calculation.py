from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dealdesk.models.scenario import ScenarioType, computed_fields_for
from dealdesk.money import to_cents


class WarningCode(str, Enum):
    NEGATIVE_TRADE_EQUITY = "NEGATIVE_TRADE_EQUITY"
    NEGATIVE_AMOUNT_FINANCED = "NEGATIVE_AMOUNT_FINANCED"
    CAP_REDUCTIONS_EXCEED_GROSS_CAP = "CAP_REDUCTIONS_EXCEED_GROSS_CAP"
    NEGATIVE_DEPRECIATION = "NEGATIVE_DEPRECIATION"
    ZERO_TERM = "ZERO_TERM"


class CalculationWarning(BaseModel):
    """Non-fatal finding attached to a calculation result."""
    model_config = ConfigDict(frozen=True)

    code: WarningCode
    message: str


class DerivedValues(BaseModel):
    """Values derived from one scenario snapshot.

    Full precision; use ``rounded()`` or ``scenario_fields()`` for cents.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    selling_price: Decimal
    trade_allowance: Decimal
    trade_payoff: Decimal
    trade_equity: Decimal
    down_payment: Decimal
    rebates: Decimal
    other_incentives: Decimal
    total_fees: Decimal
    total_tax: Decimal
    aftermarket_total: Decimal
    amount_financed: Decimal
    monthly_payment: Decimal
    total_cost: Decimal

    # Lease only
    gross_cap_cost: Optional[Decimal] = None
    total_cap_reductions: Optional[Decimal] = None
    adjusted_cap_cost: Optional[Decimal] = None
    residual_value: Optional[Decimal] = None
    depreciation: Optional[Decimal] = None
    monthly_depreciation_charge: Optional[Decimal] = None
    monthly_rent_charge: Optional[Decimal] = None
    base_monthly_payment: Optional[Decimal] = None
    monthly_tax: Optional[Decimal] = None
    upfront_tax: Optional[Decimal] = None
    drive_off_total: Optional[Decimal] = None
    apr_equivalent: Optional[Decimal] = None

    def rounded(self) -> "DerivedValues":
        """Copy with every monetary value quantized to cents."""
        values = {}
        for name, value in self:
            if value is not None and name != "apr_equivalent":
                value = to_cents(value)
            values[name] = value
        return DerivedValues(**values)

    def scenario_fields(self, scenario_type: ScenarioType) -> dict[str, Decimal]:
        """Cent-quantized computed fields to write back onto a scenario."""
        return {
            name: to_cents(getattr(self, name))
            for name in computed_fields_for(scenario_type)
            if getattr(self, name) is not None
        }


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    scenario_type: ScenarioType
    outputs: DerivedValues
    warnings: list[CalculationWarning] = []

    @property
    def validated(self) -> bool:
        return not self.warnings

    def has_warning(self, code: WarningCode) -> bool:
        return any(w.code == code for w in self.warnings)
