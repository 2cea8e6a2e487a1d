from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DealState(str, Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class IssueSeverity(str, Enum):
    error = "error"      # blocks advancement
    warning = "warning"  # informational


class CustomerRef(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: Optional[str] = None
    phone: Optional[str] = None


class VehicleRef(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    vin: Optional[str] = None


class Deal(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    deal_state: DealState = DealState.DRAFT
    customer: Optional[CustomerRef] = None
    vehicle: Optional[VehicleRef] = None
    active_scenario_id: Optional[str] = None


class ValidationIssue(BaseModel):
    field: str
    message: str
    severity: IssueSeverity

    @property
    def is_blocking(self) -> bool:
        return self.severity == IssueSeverity.error
