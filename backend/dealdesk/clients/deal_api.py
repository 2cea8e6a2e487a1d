"""HTTP client for the deal API: scenario persistence, tax recalculation and
deal-state updates.

Transport errors, timeouts and non-2xx responses surface as the desk's own
failure types so callers never handle httpx exceptions directly.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from dealdesk.config import settings
from dealdesk.exceptions import (
    DealDeskError,
    DealStateUpdateFailure,
    PersistenceFailure,
    RecalculationFailure,
)
from dealdesk.models.deal import Deal, DealState
from dealdesk.models.persistence import DealStateUpdateRequest, PersistScenarioRequest
from dealdesk.models.scenario import Scenario
from dealdesk.models.tax import TaxRecalculationResponse

logger = logging.getLogger(__name__)


class DealApiClient:
    """Async client; use as ``async with DealApiClient() as api: ...``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.DEAL_API_BASE_URL,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "DealApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def persist_scenario(self, request: PersistScenarioRequest) -> Scenario:
        data = await self._send(
            "PATCH",
            f"/api/deals/{request.deal_id}/scenarios/{request.scenario_id}",
            PersistenceFailure,
            "Scenario save",
            json=request.wire_body(),
        )
        return self._parse(Scenario, data, PersistenceFailure, "Scenario save")

    async def recalculate_tax(self, deal_id: str) -> TaxRecalculationResponse:
        data = await self._send(
            "POST", f"/api/tax/deals/{deal_id}/recalculate", RecalculationFailure, "Tax recalculation",
        )
        return self._parse(TaxRecalculationResponse, data, RecalculationFailure, "Tax recalculation")

    async def update_deal_state(self, deal_id: str, deal_state: DealState) -> Deal:
        body = DealStateUpdateRequest(deal_id=deal_id, deal_state=deal_state)
        data = await self._send(
            "PATCH",
            f"/api/deals/{deal_id}",
            DealStateUpdateFailure,
            "Deal state update",
            json=body.model_dump(mode="json", by_alias=True),
        )
        return self._parse(Deal, data, DealStateUpdateFailure, "Deal state update")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _send(
        self,
        method: str,
        url: str,
        failure: type[DealDeskError],
        action: str,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("%s timed out: %s %s", action, method, url)
            raise failure(f"{action} timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("%s rejected: %s %s -> %d", action, method, url, e.response.status_code)
            raise failure(f"{action} failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("%s request error: %s", action, e)
            raise failure(f"{action} request failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise failure(f"{action} returned invalid JSON") from e

    @staticmethod
    def _parse(model, data: Any, failure: type[DealDeskError], action: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise failure(f"{action} returned an unexpected payload: {e.error_count()} error(s)") from e
