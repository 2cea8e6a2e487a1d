from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from dealdesk.exceptions import InvalidFieldUpdate
from dealdesk.models.deal import Deal, DealState, ValidationIssue
from dealdesk.models.scenario import Scenario, parse_field_updates
from dealdesk.services.workflow import blocking_issues, next_state, validate_deal

router = APIRouter(prefix="/deals", tags=["deals"])


class DealValidationRequest(BaseModel):
    """Deal plus its live scenario, with any unsaved edits applied on top."""
    deal: Deal
    scenario: Optional[Scenario] = None
    pending_updates: dict[str, Any] = {}


class DealValidationResponse(BaseModel):
    deal_id: str
    deal_state: DealState
    next_state: Optional[DealState]
    issues: list[ValidationIssue]
    can_advance: bool


@router.post("/validate", response_model=DealValidationResponse)
def validate_deal_endpoint(request: DealValidationRequest):
    """Validation issues for a deal and whether it may advance."""
    scenario = request.scenario
    if request.pending_updates:
        if scenario is None:
            raise HTTPException(status_code=422, detail="pending_updates require a scenario")
        try:
            updates = parse_field_updates(scenario.scenario_type, request.pending_updates)
        except InvalidFieldUpdate as e:
            raise HTTPException(status_code=422, detail=str(e))
        scenario = scenario.model_copy(update=updates)

    issues = validate_deal(request.deal, scenario)
    target = next_state(request.deal.deal_state)
    return DealValidationResponse(
        deal_id=request.deal.id,
        deal_state=request.deal.deal_state,
        next_state=target,
        issues=issues,
        can_advance=target is not None and not blocking_issues(issues),
    )
