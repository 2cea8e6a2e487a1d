"""Error taxonomy for the deal desk.

Calculation problems are never raised: the engine reports them as
``CalculationWarning`` entries on its result. The exceptions below cover the
workflow gate and the two asynchronous collaborators (persistence and tax
recalculation).
"""
from __future__ import annotations


class DealDeskError(Exception):
    """Base class for deal desk errors."""


class InvalidFieldUpdate(DealDeskError, ValueError):
    """A field update names fields the scenario type does not accept."""

    def __init__(self, scenario_type: str, fields: list[str], detail: str = ""):
        self.scenario_type = scenario_type
        self.fields = fields
        message = f"Invalid update for {scenario_type} scenario: {', '.join(fields)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DealValidationError(DealDeskError):
    """Blocking validation issues prevent a deal-state transition."""

    def __init__(self, issues):
        self.issues = list(issues)
        fields = ", ".join(issue.field for issue in self.issues)
        super().__init__(f"Deal has blocking validation errors: {fields}")


class InvalidTransitionError(DealDeskError):
    """The requested deal-state transition is not allowed."""


class PersistenceFailure(DealDeskError):
    """Saving scenario fields failed; dirty data is retained for retry."""


class RecalculationFailure(DealDeskError):
    """The tax service failed; the prior tax profile stays in effect."""


class DealStateUpdateFailure(DealDeskError):
    """The deal-state update request failed."""
