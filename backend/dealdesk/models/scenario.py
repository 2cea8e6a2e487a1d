"""Scenario model and the per-type sets of updatable fields."""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from dealdesk.exceptions import InvalidFieldUpdate
from dealdesk.money import ZERO, Money, OptionalMoney, to_optional_decimal


def to_optional_term(value: Any) -> Optional[int]:
    """Coerce a term in months. Blank input is unset; unparseable text is 0."""
    if value is None or isinstance(value, int):
        return value
    months = to_optional_decimal(value)
    return None if months is None else int(months)


Term = Annotated[Optional[int], BeforeValidator(to_optional_term)]


class ScenarioType(str, Enum):
    FINANCE = "FINANCE"
    LEASE = "LEASE"
    CASH = "CASH"


class AftermarketProduct(BaseModel):
    """F&I product or physical add-on sold with the vehicle."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    label: str
    price: Money = ZERO
    category: Optional[str] = None


class Scenario(BaseModel):
    """One financial structuring of a deal.

    Input fields are entered on the desk; computed fields are written back
    from the calculation engine (cent-quantized) so they can be persisted.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    deal_id: str
    scenario_type: ScenarioType
    name: str = "Scenario 1"

    # Inputs
    vehicle_price: Money = ZERO
    trade_allowance: Money = ZERO
    trade_payoff: Money = ZERO
    down_payment: Money = ZERO
    manufacturer_rebate: Money = ZERO
    other_incentives: Money = ZERO
    total_fees: Money = ZERO
    total_tax: Money = ZERO
    term: Term = None
    apr: OptionalMoney = None              # percent, 6 means 6%
    money_factor: OptionalMoney = None
    residual_percent: OptionalMoney = None
    msrp: OptionalMoney = None
    acquisition_fee: Money = ZERO
    cash_down: OptionalMoney = None
    aftermarket_products: list[AftermarketProduct] = []
    tax_jurisdiction_id: Optional[str] = None

    # Computed
    amount_financed: OptionalMoney = None
    monthly_payment: OptionalMoney = None
    total_cost: OptionalMoney = None
    gross_cap_cost: OptionalMoney = None
    total_cap_reductions: OptionalMoney = None
    adjusted_cap_cost: OptionalMoney = None
    residual_value: OptionalMoney = None
    depreciation: OptionalMoney = None
    monthly_depreciation_charge: OptionalMoney = None
    monthly_rent_charge: OptionalMoney = None
    base_monthly_payment: OptionalMoney = None
    monthly_tax: OptionalMoney = None
    upfront_tax: OptionalMoney = None
    drive_off_total: OptionalMoney = None


COMPUTED_FIELDS: tuple[str, ...] = (
    "amount_financed",
    "monthly_payment",
    "total_cost",
)

LEASE_COMPUTED_FIELDS: tuple[str, ...] = (
    "gross_cap_cost",
    "total_cap_reductions",
    "adjusted_cap_cost",
    "residual_value",
    "depreciation",
    "monthly_depreciation_charge",
    "monthly_rent_charge",
    "base_monthly_payment",
    "monthly_tax",
    "upfront_tax",
    "drive_off_total",
)


def computed_fields_for(scenario_type: ScenarioType) -> tuple[str, ...]:
    if scenario_type == ScenarioType.LEASE:
        return COMPUTED_FIELDS + LEASE_COMPUTED_FIELDS
    return COMPUTED_FIELDS


# ---------------------------------------------------------------------------
# Updatable fields per scenario type
# ---------------------------------------------------------------------------
class CashFieldUpdate(BaseModel):
    """Fields a desk user may edit on a cash scenario."""
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    vehicle_price: Money = ZERO
    trade_allowance: Money = ZERO
    trade_payoff: Money = ZERO
    down_payment: Money = ZERO
    manufacturer_rebate: Money = ZERO
    other_incentives: Money = ZERO
    total_fees: Money = ZERO
    total_tax: Money = ZERO
    aftermarket_products: list[AftermarketProduct] = []
    tax_jurisdiction_id: Optional[str] = None


class FinanceFieldUpdate(CashFieldUpdate):
    term: Term = None
    apr: OptionalMoney = None


class LeaseFieldUpdate(CashFieldUpdate):
    term: Term = None
    money_factor: OptionalMoney = None
    residual_percent: OptionalMoney = None
    msrp: OptionalMoney = None
    acquisition_fee: Money = ZERO
    cash_down: OptionalMoney = None


_UPDATE_MODELS: dict[ScenarioType, type[CashFieldUpdate]] = {
    ScenarioType.CASH: CashFieldUpdate,
    ScenarioType.FINANCE: FinanceFieldUpdate,
    ScenarioType.LEASE: LeaseFieldUpdate,
}


def updatable_fields(scenario_type: ScenarioType) -> frozenset[str]:
    return frozenset(_UPDATE_MODELS[scenario_type].model_fields)


def parse_field_updates(scenario_type: ScenarioType, values: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce a field map for the given scenario type.

    Returns only the fields present in ``values``, keyed by attribute name.
    Raises InvalidFieldUpdate for fields the type does not accept or values
    that cannot be coerced.
    """
    model = _UPDATE_MODELS[scenario_type]
    try:
        update = model.model_validate(values)
    except ValidationError as e:
        bad = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise InvalidFieldUpdate(
            scenario_type.value, bad or sorted(values), detail=f"{e.error_count()} error(s)",
        ) from e
    return {name: getattr(update, name) for name in update.model_fields_set}
