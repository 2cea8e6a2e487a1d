from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dealdesk.money import Money


class TaxMethod(str, Enum):
    """How a jurisdiction taxes a lease."""
    PAYMENT = "PAYMENT"              # tax on each monthly payment
    TOTAL_CAP = "TOTAL_CAP"          # tax upfront on adjusted cap cost
    SELLING_PRICE = "SELLING_PRICE"  # tax upfront on selling price
    CAP_REDUCTION = "CAP_REDUCTION"  # tax on cap reductions plus on payment


class TaxRules(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    trade_in_reduces_base: bool = True
    rebate_reduces_base: bool = True
    doc_fee_taxable: bool = True
    aftermarket_taxable: bool = True


class TaxProfile(BaseModel):
    """Jurisdiction tax profile produced by the external tax service."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    jurisdiction_id: str
    jurisdiction: str = ""
    combined_rate: Money
    method: TaxMethod = TaxMethod.PAYMENT
    rules: TaxRules = TaxRules()


class TaxRecalculationResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    tax_profile: Optional[TaxProfile] = None
    message: Optional[str] = None
