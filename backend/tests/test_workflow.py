"""Deal validation issues and deal-state transitions."""
import pytest

from conftest import FakeDealApi
from dealdesk.exceptions import DealStateUpdateFailure, DealValidationError, InvalidTransitionError
from dealdesk.models.deal import CustomerRef, Deal, DealState, IssueSeverity, VehicleRef
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.services.workflow import (
    DealWorkflow,
    blocking_issues,
    can_cancel,
    next_state,
    validate_deal,
)


def _make_deal(**overrides) -> Deal:
    defaults = dict(
        id="D-1",
        deal_state=DealState.DRAFT,
        customer=CustomerRef(id="C-1", email="buyer@example.com"),
        vehicle=VehicleRef(id="V-1", vin="1HGCM82633A004352"),
        active_scenario_id="S-1",
    )
    defaults.update(overrides)
    return Deal(**defaults)


def _make_scenario(**overrides) -> Scenario:
    defaults = dict(
        id="S-1",
        deal_id="D-1",
        scenario_type=ScenarioType.FINANCE,
        vehicle_price="20000",
        term=60,
        apr="6",
        tax_jurisdiction_id="J-1",
    )
    defaults.update(overrides)
    return Scenario(**defaults)


def _fields(issues):
    return {issue.field for issue in issues}


def test_complete_deal_has_no_issues():
    assert validate_deal(_make_deal(), _make_scenario()) == []


def test_missing_customer_and_price_block():
    issues = validate_deal(_make_deal(customer=None), _make_scenario(vehicle_price="0"))
    assert {"Customer", "Vehicle Price"} <= _fields(blocking_issues(issues))


def test_customer_needs_contact():
    issues = validate_deal(_make_deal(customer=CustomerRef(id="C-1")), _make_scenario())
    assert _fields(issues) == {"Customer Contact"}


def test_missing_vin_warns_in_draft_and_blocks_later():
    draft = validate_deal(_make_deal(vehicle=VehicleRef(id="V-1")), _make_scenario())
    assert [i.severity for i in draft] == [IssueSeverity.warning]
    assert blocking_issues(draft) == []

    in_progress = validate_deal(
        _make_deal(deal_state=DealState.IN_PROGRESS, vehicle=VehicleRef(id="V-1")), _make_scenario(),
    )
    assert _fields(blocking_issues(in_progress)) == {"Vehicle VIN"}


def test_finance_requires_term_and_apr():
    issues = validate_deal(_make_deal(), _make_scenario(term=None, apr=None))
    assert _fields(issues) == {"Term", "APR"}


def test_zero_apr_is_valid_for_finance():
    assert validate_deal(_make_deal(), _make_scenario(apr="0")) == []


def test_lease_requires_money_factor_and_residual():
    lease = _make_scenario(scenario_type=ScenarioType.LEASE, apr=None, money_factor=None, residual_percent=None)
    assert _fields(validate_deal(_make_deal(), lease)) == {"Money Factor", "Residual"}


def test_cash_needs_no_term():
    cash = _make_scenario(scenario_type=ScenarioType.CASH, term=None, apr=None)
    assert validate_deal(_make_deal(), cash) == []


def test_missing_jurisdiction_blocks():
    assert _fields(validate_deal(_make_deal(), _make_scenario(tax_jurisdiction_id=None))) == {"Tax Jurisdiction"}


def test_state_machine():
    assert next_state(DealState.DRAFT) == DealState.IN_PROGRESS
    assert next_state(DealState.IN_PROGRESS) == DealState.APPROVED
    assert next_state(DealState.APPROVED) is None
    assert next_state(DealState.CANCELLED) is None
    assert can_cancel(DealState.DRAFT)
    assert can_cancel(DealState.IN_PROGRESS)
    assert not can_cancel(DealState.APPROVED)
    assert not can_cancel(DealState.CANCELLED)


@pytest.mark.asyncio
async def test_advance_sends_next_state():
    api = FakeDealApi()
    deal = await DealWorkflow(api).advance(_make_deal(), _make_scenario())
    assert deal.deal_state == DealState.IN_PROGRESS
    assert api.state_calls == [("D-1", DealState.IN_PROGRESS)]


@pytest.mark.asyncio
async def test_advance_with_errors_makes_no_request():
    api = FakeDealApi()
    with pytest.raises(DealValidationError) as exc:
        await DealWorkflow(api).advance(_make_deal(), _make_scenario(vehicle_price="0"))
    assert _fields(exc.value.issues) == {"Vehicle Price"}
    assert api.state_calls == []


@pytest.mark.asyncio
async def test_advance_validates_live_scenario():
    api = FakeDealApi()
    workflow = DealWorkflow(api)
    live = _make_scenario(vehicle_price="0").model_copy(update={"vehicle_price": 18000})
    deal = await workflow.advance(_make_deal(), live)
    assert deal.deal_state == DealState.IN_PROGRESS


@pytest.mark.asyncio
async def test_cannot_advance_from_terminal_state():
    api = FakeDealApi()
    with pytest.raises(InvalidTransitionError):
        await DealWorkflow(api).advance(_make_deal(deal_state=DealState.APPROVED), _make_scenario())
    assert api.state_calls == []


@pytest.mark.asyncio
async def test_cancel():
    api = FakeDealApi()
    workflow = DealWorkflow(api)
    deal = await workflow.cancel(_make_deal(deal_state=DealState.IN_PROGRESS))
    assert deal.deal_state == DealState.CANCELLED
    with pytest.raises(InvalidTransitionError):
        await workflow.cancel(_make_deal(deal_state=DealState.APPROVED))


@pytest.mark.asyncio
async def test_state_update_failure_propagates():
    api = FakeDealApi()
    api.fail_state_update = True
    with pytest.raises(DealStateUpdateFailure):
        await DealWorkflow(api).advance(_make_deal(), _make_scenario())
