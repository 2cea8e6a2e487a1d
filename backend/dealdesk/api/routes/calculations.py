from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from dealdesk.calculation import apr_to_money_factor, derive, money_factor_to_apr
from dealdesk.models.calculation import CalculationWarning, DerivedValues
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.models.tax import TaxProfile

router = APIRouter(prefix="/calculations", tags=["calculations"])


class DeriveRequest(BaseModel):
    """Inline scenario, optionally with the jurisdiction's tax profile."""
    scenario: Scenario
    tax_profile: Optional[TaxProfile] = None


class DeriveResponse(BaseModel):
    scenario_type: ScenarioType
    outputs: DerivedValues
    warnings: list[CalculationWarning]
    validated: bool


class MoneyFactorConversion(BaseModel):
    money_factor: Decimal
    apr: Decimal


@router.post("/derive", response_model=DeriveResponse)
def derive_endpoint(request: DeriveRequest):
    """Derive payment figures for a scenario, rounded to cents.

    Degenerate inputs come back as warnings alongside the numbers.
    """
    result = derive(request.scenario, request.tax_profile)
    return DeriveResponse(
        scenario_type=result.scenario_type,
        outputs=result.outputs.rounded(),
        warnings=result.warnings,
        validated=result.validated,
    )


@router.get("/money-factor", response_model=MoneyFactorConversion)
def convert_money_factor(apr: Optional[Decimal] = None, money_factor: Optional[Decimal] = None):
    """Convert between a lease money factor and its APR equivalent."""
    if (apr is None) == (money_factor is None):
        raise HTTPException(status_code=422, detail="Provide exactly one of apr or money_factor")
    if apr is not None:
        return MoneyFactorConversion(money_factor=apr_to_money_factor(apr), apr=apr)
    return MoneyFactorConversion(money_factor=money_factor, apr=money_factor_to_apr(money_factor))
