"""Deal workflow gate: validation issues and deal-state transitions.

Validation always runs against the live scenario (including unsaved edits),
never the last persisted copy. Advancing with blocking errors is rejected
before any request goes out.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from dealdesk.exceptions import DealValidationError, InvalidTransitionError
from dealdesk.models.deal import Deal, DealState, IssueSeverity, ValidationIssue
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.money import to_decimal

logger = logging.getLogger(__name__)

_NEXT_STATE: dict[DealState, Optional[DealState]] = {
    DealState.DRAFT: DealState.IN_PROGRESS,
    DealState.IN_PROGRESS: DealState.APPROVED,
    DealState.APPROVED: None,
    DealState.CANCELLED: None,
}

_CANCELLABLE = frozenset({DealState.DRAFT, DealState.IN_PROGRESS})


class DealStateService(Protocol):
    async def update_deal_state(self, deal_id: str, deal_state: DealState) -> Deal: ...


def next_state(state: DealState) -> Optional[DealState]:
    return _NEXT_STATE.get(state)


def can_cancel(state: DealState) -> bool:
    return state in _CANCELLABLE


def _error(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, severity=IssueSeverity.error)


def validate_deal(deal: Deal, scenario: Optional[Scenario]) -> list[ValidationIssue]:
    """Compute blocking and advisory issues for a deal and its live scenario."""
    issues: list[ValidationIssue] = []

    if deal.customer is None:
        issues.append(_error("Customer", "Customer must be selected"))
    elif not deal.customer.email and not deal.customer.phone:
        issues.append(_error("Customer Contact", "Email or phone number required"))

    # Missing VIN is advisory in draft, blocking once the deal is in progress
    if deal.vehicle is None or not deal.vehicle.vin:
        issues.append(ValidationIssue(
            field="Vehicle VIN",
            message="VIN is required for final approval" if deal.vehicle else "Vehicle must be selected",
            severity=IssueSeverity.warning if deal.deal_state == DealState.DRAFT else IssueSeverity.error,
        ))

    if scenario is None or to_decimal(scenario.vehicle_price) <= 0:
        issues.append(_error("Vehicle Price", "Valid vehicle price required"))

    if scenario is not None and scenario.scenario_type != ScenarioType.CASH:
        if not scenario.term or scenario.term <= 0:
            issues.append(_error("Term", "Finance term must be set"))

        if scenario.scenario_type == ScenarioType.FINANCE:
            if scenario.apr is None or scenario.apr < 0:
                issues.append(_error("APR", "APR must be set for finance deals"))

        if scenario.scenario_type == ScenarioType.LEASE:
            if scenario.money_factor is None or scenario.money_factor <= 0:
                issues.append(_error("Money Factor", "Money factor required for lease"))
            if scenario.residual_percent is None or scenario.residual_percent <= 0:
                issues.append(_error("Residual", "Residual percent required for lease"))

    if scenario is None or not scenario.tax_jurisdiction_id:
        issues.append(_error("Tax Jurisdiction", "Tax jurisdiction must be selected"))

    return issues


def blocking_issues(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    return [issue for issue in issues if issue.is_blocking]


class DealWorkflow:
    """Advances or cancels a deal through the deal-state service."""

    def __init__(self, service: DealStateService) -> None:
        self._service = service

    async def advance(self, deal: Deal, live_scenario: Optional[Scenario]) -> Deal:
        target = next_state(deal.deal_state)
        if target is None:
            raise InvalidTransitionError(f"Deal {deal.id} cannot advance from {deal.deal_state.value}")

        errors = blocking_issues(validate_deal(deal, live_scenario))
        if errors:
            logger.info("Deal %s blocked from %s: %d error(s)", deal.id, target.value, len(errors))
            raise DealValidationError(errors)

        logger.info("Advancing deal %s: %s -> %s", deal.id, deal.deal_state.value, target.value)
        return await self._service.update_deal_state(deal.id, target)

    async def cancel(self, deal: Deal) -> Deal:
        if not can_cancel(deal.deal_state):
            raise InvalidTransitionError(f"Deal {deal.id} cannot be cancelled from {deal.deal_state.value}")
        logger.info("Cancelling deal %s from %s", deal.id, deal.deal_state.value)
        return await self._service.update_deal_state(deal.id, DealState.CANCELLED)
