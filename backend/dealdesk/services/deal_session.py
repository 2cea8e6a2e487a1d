"""Desk session: one user structuring one deal with one active scenario.

Wires the scenario store to the auto-save pipeline, the tax profile
recalculator and the workflow gate. Edits apply synchronously and update the
derived numbers at once; persistence follows after the quiet period.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from dealdesk.exceptions import PersistenceFailure
from dealdesk.models.calculation import CalculationResult
from dealdesk.models.deal import Deal, ValidationIssue
from dealdesk.models.scenario import AftermarketProduct, Scenario
from dealdesk.models.tax import TaxProfile
from dealdesk.services.autosave import AutoSavePipeline, ScenarioPersistence
from dealdesk.services.scenario_store import SaveStatus, ScenarioStore, SnapshotOutcome
from dealdesk.services.tax_profile_service import TaxProfileRecalculator, TaxService
from dealdesk.services.workflow import DealStateService, DealWorkflow, blocking_issues, validate_deal

logger = logging.getLogger(__name__)


@runtime_checkable
class DealApi(ScenarioPersistence, TaxService, DealStateService, Protocol):
    """Everything a session needs from the deal API (see DealApiClient)."""


class DealSession:
    def __init__(
        self,
        deal: Deal,
        scenario: Scenario,
        api: DealApi,
        acting_user_id: str,
        tax_profile: Optional[TaxProfile] = None,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self.deal = deal
        self.acting_user_id = acting_user_id
        self.store = ScenarioStore(scenario, tax_profile)
        self.autosave = AutoSavePipeline(self.store, api, acting_user_id, debounce_seconds)
        self.tax = TaxProfileRecalculator(api, deal.id, tax_profile)
        self.workflow = DealWorkflow(api)
        self._tax_task: Optional[asyncio.Task] = None

    @property
    def scenario(self) -> Scenario:
        return self.store.scenario

    @property
    def calculation(self) -> CalculationResult:
        return self.store.calculation

    @property
    def save_status(self) -> SaveStatus:
        return self.store.save_status

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def update_field(self, name: str, value: Any) -> CalculationResult:
        result = self.store.update_field(name, value)
        self.autosave.schedule()
        return result

    def update_fields(self, values: dict[str, Any]) -> CalculationResult:
        result = self.store.update_fields(values)
        self.autosave.schedule()
        return result

    def update_aftermarket_products(self, products: list[AftermarketProduct]) -> CalculationResult:
        result = self.store.update_aftermarket_products(products)
        self.autosave.schedule()
        return result

    def discard_changes(self) -> None:
        self.autosave.cancel()
        self.store.discard_changes()

    # ------------------------------------------------------------------
    # Server pushes and scenario switching
    # ------------------------------------------------------------------
    def receive_server_snapshot(self, scenario: Scenario) -> SnapshotOutcome:
        outcome = self.store.receive_server_snapshot(scenario)
        if outcome == SnapshotOutcome.SWITCHED:
            self.autosave.cancel()
            self.deal = self.deal.model_copy(update={"active_scenario_id": scenario.id})
        return outcome

    async def switch_scenario(self, scenario: Scenario, discard: bool = False) -> SnapshotOutcome:
        """Retire the active scenario and make ``scenario`` active.

        Unsaved edits are flushed first, or dropped when ``discard`` is set.
        Raises PersistenceFailure if the flush fails, leaving the current
        scenario active with its edits intact.
        """
        logger.info("Switching scenario %s -> %s (discard=%s)", self.store.scenario_id, scenario.id, discard)
        if self.store.has_unsaved_changes:
            if discard:
                self.discard_changes()
            else:
                await self.autosave.flush()
                if self.store.is_dirty:
                    raise PersistenceFailure(
                        f"Unsaved changes on scenario {self.store.scenario_id} could not be saved"
                    )
        return self.receive_server_snapshot(scenario)

    # ------------------------------------------------------------------
    # Tax profile
    # ------------------------------------------------------------------
    async def recalculate_tax(self) -> Optional[TaxProfile]:
        profile = await self.tax.recalculate()
        if profile is not self.store.tax_profile:
            self.store.set_tax_profile(profile)
            self.autosave.schedule()
        return profile

    def request_tax_recalculation(self) -> asyncio.Task:
        """Start a recalculation without waiting for it."""
        self._tax_task = asyncio.ensure_future(self.recalculate_tax())
        return self._tax_task

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------
    def validation_issues(self) -> list[ValidationIssue]:
        return validate_deal(self.deal, self.store.scenario)

    @property
    def can_advance(self) -> bool:
        return not blocking_issues(self.validation_issues())

    async def advance(self) -> Deal:
        self.deal = await self.workflow.advance(self.deal, self.store.scenario)
        return self.deal

    async def cancel_deal(self) -> Deal:
        self.deal = await self.workflow.cancel(self.deal)
        return self.deal

    async def aclose(self) -> None:
        await self.autosave.aclose()
        if self._tax_task is not None and not self._tax_task.done():
            await self._tax_task
