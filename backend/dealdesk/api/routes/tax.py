from decimal import Decimal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from dealdesk.calculation import calculate_sales_tax
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.models.tax import TaxProfile

router = APIRouter(prefix="/tax", tags=["tax"])


class TaxEstimateRequest(BaseModel):
    scenario: Scenario
    tax_profile: TaxProfile


class TaxEstimateResponse(BaseModel):
    jurisdiction_id: str
    combined_rate: Decimal
    sales_tax: Decimal


@router.post("/estimate", response_model=TaxEstimateResponse)
def estimate_sales_tax(request: TaxEstimateRequest):
    """Sales tax estimate for a finance or cash scenario.

    Lease tax depends on the jurisdiction's lease method and is part of the
    derive endpoint instead.
    """
    if request.scenario.scenario_type == ScenarioType.LEASE:
        raise HTTPException(
            status_code=422,
            detail="Lease tax is computed by /api/calculations/derive",
        )
    return TaxEstimateResponse(
        jurisdiction_id=request.tax_profile.jurisdiction_id,
        combined_rate=request.tax_profile.combined_rate,
        sales_tax=calculate_sales_tax(request.scenario, request.tax_profile),
    )
