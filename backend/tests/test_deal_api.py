"""Deal API client against an httpx mock transport."""
import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from dealdesk.clients.deal_api import DealApiClient
from dealdesk.exceptions import DealStateUpdateFailure, PersistenceFailure, RecalculationFailure
from dealdesk.models.deal import DealState
from dealdesk.models.persistence import AuditLogEntry, PersistScenarioRequest
from dealdesk.models.scenario import AftermarketProduct, ScenarioType
from dealdesk.models.tax import TaxMethod

_SCENARIO_RECORD = {
    "id": "S-1",
    "dealId": "D-1",
    "scenarioType": "FINANCE",
    "vehiclePrice": "21000.00",
    "term": 60,
    "apr": "6",
}


def _client(handler) -> DealApiClient:
    return DealApiClient(base_url="http://deal-api.test", transport=httpx.MockTransport(handler))


def _persist_request() -> PersistScenarioRequest:
    return PersistScenarioRequest(
        deal_id="D-1",
        scenario_id="S-1",
        updates={
            "vehicle_price": Decimal("21000"),
            "aftermarket_products": [AftermarketProduct(label="GAP", price="795")],
        },
        change_log=[
            AuditLogEntry(
                field_name="vehicle_price",
                old_value="20000",
                new_value="21000",
                acting_user_id="U-1",
                timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            ),
        ],
        acting_user_id="U-1",
    )


@pytest.mark.asyncio
async def test_persist_scenario_sends_camel_case_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_SCENARIO_RECORD)

    async with _client(handler) as api:
        record = await api.persist_scenario(_persist_request())

    assert seen["method"] == "PATCH"
    assert seen["path"] == "/api/deals/D-1/scenarios/S-1"
    body = seen["body"]
    assert body["userId"] == "U-1"
    assert body["updates"]["vehiclePrice"] == "21000"
    assert body["updates"]["aftermarketProducts"] == [{"label": "GAP", "price": "795", "category": None}]
    assert body["changeLog"][0]["fieldName"] == "vehicle_price"
    assert body["changeLog"][0]["oldValue"] == "20000"
    assert body["changeLog"][0]["actingUserId"] == "U-1"
    assert record.scenario_type == ScenarioType.FINANCE
    assert record.vehicle_price == Decimal("21000.00")


@pytest.mark.asyncio
async def test_persist_error_status_maps_to_persistence_failure():
    async with _client(lambda request: httpx.Response(500, json={"error": "db down"})) as api:
        with pytest.raises(PersistenceFailure, match="500"):
            await api.persist_scenario(_persist_request())


@pytest.mark.asyncio
async def test_persist_timeout_maps_to_persistence_failure():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with _client(handler) as api:
        with pytest.raises(PersistenceFailure, match="timed out"):
            await api.persist_scenario(_persist_request())


@pytest.mark.asyncio
async def test_persist_unexpected_payload():
    async with _client(lambda request: httpx.Response(200, json={"id": "S-1"})) as api:
        with pytest.raises(PersistenceFailure, match="unexpected payload"):
            await api.persist_scenario(_persist_request())


@pytest.mark.asyncio
async def test_recalculate_tax():
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/tax/deals/D-1/recalculate"
        return httpx.Response(200, json={
            "success": True,
            "taxProfile": {
                "jurisdictionId": "J-1",
                "jurisdiction": "Travis County",
                "combinedRate": "0.0825",
                "method": "CAP_REDUCTION",
                "rules": {"tradeInReducesBase": False},
            },
        })

    async with _client(handler) as api:
        response = await api.recalculate_tax("D-1")
    assert response.success
    assert response.tax_profile.method == TaxMethod.CAP_REDUCTION
    assert response.tax_profile.combined_rate == Decimal("0.0825")
    assert response.tax_profile.rules.trade_in_reduces_base is False


@pytest.mark.asyncio
async def test_recalculate_tax_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as api:
        with pytest.raises(RecalculationFailure, match="request failed"):
            await api.recalculate_tax("D-1")


@pytest.mark.asyncio
async def test_update_deal_state():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "D-1", "dealState": "IN_PROGRESS"})

    async with _client(handler) as api:
        deal = await api.update_deal_state("D-1", DealState.IN_PROGRESS)
    assert seen["path"] == "/api/deals/D-1"
    assert seen["body"] == {"dealId": "D-1", "dealState": "IN_PROGRESS"}
    assert deal.deal_state == DealState.IN_PROGRESS


@pytest.mark.asyncio
async def test_update_deal_state_rejected():
    async with _client(lambda request: httpx.Response(409, text="conflict")) as api:
        with pytest.raises(DealStateUpdateFailure, match="409"):
            await api.update_deal_state("D-1", DealState.APPROVED)
