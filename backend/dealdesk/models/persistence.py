"""Wire models for the persistence, tax and deal-state interfaces."""
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dealdesk.models.deal import DealState


class AuditLogEntry(BaseModel):
    """One changed field in one save."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    acting_user_id: str
    timestamp: datetime


class PersistScenarioRequest(BaseModel):
    """Body for ``PATCH /api/deals/{dealId}/scenarios/{scenarioId}``.

    ``updates`` is keyed by attribute name; ``wire_body()`` renders the
    camelCase JSON the deal API expects.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deal_id: str
    scenario_id: str
    updates: dict[str, Any]
    change_log: list[AuditLogEntry]
    acting_user_id: str

    def wire_body(self) -> dict[str, Any]:
        return {
            "updates": {to_camel(name): wire_value(value) for name, value in self.updates.items()},
            "changeLog": [entry.model_dump(mode="json", by_alias=True) for entry in self.change_log],
            "userId": self.acting_user_id,
        }


class DealStateUpdateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deal_id: str
    deal_state: DealState


def wire_value(value: Any) -> Any:
    """JSON-safe rendering of a scenario field value."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [wire_value(v) for v in value]
    return value


def audit_value(value: Any) -> Optional[str]:
    """String form stored in the audit log (``None`` stays ``None``)."""
    if value is None:
        return None
    rendered = wire_value(value)
    if isinstance(rendered, (list, dict)):
        return json.dumps(rendered, sort_keys=True)
    return str(rendered)
