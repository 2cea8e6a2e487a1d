"""Scenario store — the live scenario for one desk session.

Owns the canonical in-memory scenario, the set of fields edited since the
last successful save (dirty set), the pre-edit value of each dirty field
(previous-value map, used for the audit trail) and the save status shown to
the desk.

Recalculation is two-phase: ``derive`` runs on the current immutable
snapshot, then every computed field whose cent value changed is applied in a
single batched copy.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from dealdesk.calculation.engine import derive
from dealdesk.models.calculation import CalculationResult
from dealdesk.models.persistence import AuditLogEntry, PersistScenarioRequest, audit_value
from dealdesk.models.scenario import AftermarketProduct, Scenario, parse_field_updates
from dealdesk.models.tax import TaxProfile

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class SnapshotOutcome(str, Enum):
    SWITCHED = "switched"  # different scenario id, state replaced
    ADOPTED = "adopted"    # same id, no local edits
    IGNORED = "ignored"    # same id, local edits win


class ScenarioStore:
    """Live scenario plus unsaved-edit tracking for a single active scenario."""

    def __init__(self, scenario: Scenario, tax_profile: Optional[TaxProfile] = None) -> None:
        self._scenario = scenario
        self._tax_profile = tax_profile
        self._dirty: set[str] = set()
        self._previous: dict[str, Any] = {}
        # Fields captured by a save that has not completed yet
        self._in_flight: set[str] = set()
        self._in_flight_previous: dict[str, Any] = {}
        self.save_status = SaveStatus.IDLE
        self.last_saved_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._result = self._recalculate(mark_dirty=False)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def scenario(self) -> Scenario:
        return self._scenario

    @property
    def scenario_id(self) -> str:
        return self._scenario.id

    @property
    def calculation(self) -> CalculationResult:
        return self._result

    @property
    def tax_profile(self) -> Optional[TaxProfile]:
        return self._tax_profile

    @property
    def dirty_fields(self) -> frozenset[str]:
        return frozenset(self._dirty)

    @property
    def previous_values(self) -> dict[str, Any]:
        return dict(self._previous)

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    @property
    def has_unsaved_changes(self) -> bool:
        """Dirty fields or fields in a save not yet acknowledged."""
        return bool(self._dirty or self._in_flight)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def update_field(self, name: str, value: Any) -> CalculationResult:
        return self.update_fields({name: value})

    def update_fields(self, values: dict[str, Any]) -> CalculationResult:
        """Merge edits into the live scenario and recalculate.

        Raises InvalidFieldUpdate when a field does not belong to the
        scenario's type.
        """
        updates = parse_field_updates(self._scenario.scenario_type, values)
        if not updates:
            return self._result
        self._apply(updates, mark_dirty=True)
        self._result = self._recalculate(mark_dirty=True)
        return self._result

    def update_aftermarket_products(self, products: list[AftermarketProduct]) -> CalculationResult:
        return self.update_fields({"aftermarket_products": products})

    def set_tax_profile(self, tax_profile: Optional[TaxProfile]) -> CalculationResult:
        """Use a new jurisdiction profile for the tax step and recalculate."""
        self._tax_profile = tax_profile
        self._result = self._recalculate(mark_dirty=True)
        return self._result

    def discard_changes(self) -> None:
        """Drop unsaved edits, restoring each dirty field's pre-edit value."""
        if not self._dirty:
            return
        logger.info(
            "Discarding %d unsaved field(s) on scenario %s", len(self._dirty), self.scenario_id,
        )
        restore = {name: self._previous[name] for name in self._dirty if name in self._previous}
        self._scenario = self._scenario.model_copy(update=restore)
        self._dirty.clear()
        self._previous.clear()
        self._result = self._recalculate(mark_dirty=False)
        if not self._in_flight:
            self.save_status = SaveStatus.IDLE

    # ------------------------------------------------------------------
    # Server reconciliation
    # ------------------------------------------------------------------
    def receive_server_snapshot(self, server_scenario: Scenario) -> SnapshotOutcome:
        """Reconcile a server-pushed scenario with local state.

        A different id is a scenario switch: state is replaced wholesale.
        The same id is adopted only when nothing local is unsaved.
        """
        if server_scenario.id != self._scenario.id:
            if self.has_unsaved_changes:
                logger.warning(
                    "Scenario switch %s -> %s drops %d unsaved field(s)",
                    self._scenario.id, server_scenario.id, len(self._dirty | self._in_flight),
                )
            self._scenario = server_scenario
            self._reset_tracking()
            self.save_status = SaveStatus.IDLE
            self.last_error = None
            self._result = self._recalculate(mark_dirty=False)
            return SnapshotOutcome.SWITCHED

        if self.has_unsaved_changes:
            logger.debug("Ignoring server snapshot for %s: local edits pending", server_scenario.id)
            return SnapshotOutcome.IGNORED

        self._scenario = server_scenario
        self._result = self._recalculate(mark_dirty=False)
        return SnapshotOutcome.ADOPTED

    # ------------------------------------------------------------------
    # Save bookkeeping (driven by the auto-save pipeline)
    # ------------------------------------------------------------------
    def begin_save(self, acting_user_id: str) -> Optional[PersistScenarioRequest]:
        """Capture the dirty fields into a save payload.

        Edits made after this call accumulate for the next save.
        Returns None when nothing is dirty.
        """
        if not self._dirty:
            return None
        now = datetime.now(timezone.utc)
        fields = sorted(self._dirty)
        updates = {name: getattr(self._scenario, name) for name in fields}
        change_log = [
            AuditLogEntry(
                field_name=name,
                old_value=audit_value(self._previous.get(name)),
                new_value=audit_value(updates[name]),
                acting_user_id=acting_user_id,
                timestamp=now,
            )
            for name in fields
        ]
        self._in_flight = set(self._dirty)
        self._in_flight_previous = dict(self._previous)
        self._dirty.clear()
        self._previous.clear()
        self.save_status = SaveStatus.SAVING
        return PersistScenarioRequest(
            deal_id=self._scenario.deal_id,
            scenario_id=self._scenario.id,
            updates=updates,
            change_log=change_log,
            acting_user_id=acting_user_id,
        )

    def complete_save(self, request: PersistScenarioRequest, record: Optional[Scenario] = None) -> None:
        if request.scenario_id != self._scenario.id:
            return
        self._in_flight.clear()
        self._in_flight_previous.clear()
        self.last_saved_at = datetime.now(timezone.utc)
        self.last_error = None
        if self._dirty:
            # Newer edits arrived during the save; they ride the next cycle
            self.save_status = SaveStatus.PENDING
            return
        self.save_status = SaveStatus.SAVED
        if record is not None:
            self.receive_server_snapshot(record)

    def fail_save(self, request: PersistScenarioRequest, error: Exception) -> None:
        """Return the captured fields to the dirty set for the next attempt."""
        if request.scenario_id != self._scenario.id:
            return
        self._dirty |= self._in_flight
        # The older baseline wins for fields edited again during the save
        self._previous = {**self._previous, **self._in_flight_previous}
        self._in_flight.clear()
        self._in_flight_previous.clear()
        self.last_error = str(error)
        self.save_status = SaveStatus.ERROR

    def mark_pending(self) -> None:
        if self.save_status != SaveStatus.SAVING:
            self.save_status = SaveStatus.PENDING

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _apply(self, updates: dict[str, Any], mark_dirty: bool) -> None:
        if mark_dirty:
            for name in updates:
                if name not in self._dirty:
                    self._previous[name] = getattr(self._scenario, name)
                self._dirty.add(name)
        self._scenario = self._scenario.model_copy(update=updates)

    def _recalculate(self, mark_dirty: bool) -> CalculationResult:
        result = derive(self._scenario, self._tax_profile)
        computed = result.outputs.scenario_fields(self._scenario.scenario_type)
        changed = {
            name: value for name, value in computed.items()
            if getattr(self._scenario, name) != value
        }
        if changed:
            self._apply(changed, mark_dirty=mark_dirty)
        return result

    def _reset_tracking(self) -> None:
        self._dirty.clear()
        self._previous.clear()
        self._in_flight.clear()
        self._in_flight_previous.clear()
