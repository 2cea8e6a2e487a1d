import asyncio
from typing import Optional

import pytest

from dealdesk.exceptions import DealStateUpdateFailure, PersistenceFailure, RecalculationFailure
from dealdesk.models.deal import Deal, DealState
from dealdesk.models.persistence import PersistScenarioRequest
from dealdesk.models.scenario import Scenario
from dealdesk.models.tax import TaxRecalculationResponse


class FakeDealApi:
    """In-memory stand-in for the deal API.

    Keeps a server copy of each known scenario, records every request and
    can be told to fail or to hold a save open until released.
    """

    def __init__(self, scenarios=(), deals=()):
        self.scenarios: dict[str, Scenario] = {s.id: s for s in scenarios}
        self.deals: dict[str, Deal] = {d.id: d for d in deals}
        self.persist_calls: list[PersistScenarioRequest] = []
        self.tax_calls: list[str] = []
        self.state_calls: list[tuple[str, DealState]] = []
        self.persist_failures = 0
        self.hold_saves: Optional[asyncio.Event] = None
        self.tax_response: Optional[TaxRecalculationResponse] = None
        self.fail_tax = False
        self.fail_state_update = False

    async def persist_scenario(self, request: PersistScenarioRequest) -> Optional[Scenario]:
        self.persist_calls.append(request)
        if self.hold_saves is not None:
            await self.hold_saves.wait()
        if self.persist_failures > 0:
            self.persist_failures -= 1
            raise PersistenceFailure("Scenario save failed with status 500")
        base = self.scenarios.get(request.scenario_id)
        if base is None:
            return None
        record = base.model_copy(update=request.updates)
        self.scenarios[record.id] = record
        return record

    async def recalculate_tax(self, deal_id: str) -> TaxRecalculationResponse:
        self.tax_calls.append(deal_id)
        if self.fail_tax:
            raise RecalculationFailure("Tax recalculation timed out")
        if self.tax_response is None:
            return TaxRecalculationResponse(success=False, message="No jurisdiction")
        return self.tax_response

    async def update_deal_state(self, deal_id: str, deal_state: DealState) -> Deal:
        self.state_calls.append((deal_id, deal_state))
        if self.fail_state_update:
            raise DealStateUpdateFailure("Deal state update failed with status 503")
        deal = self.deals.get(deal_id, Deal(id=deal_id))
        updated = deal.model_copy(update={"deal_state": deal_state})
        self.deals[deal_id] = updated
        return updated


@pytest.fixture
def fake_api():
    return FakeDealApi()
