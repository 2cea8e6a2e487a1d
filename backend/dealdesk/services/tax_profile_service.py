"""Tax profile recalculation for a deal.

The tax service is an external collaborator. A failed recalculation keeps the
prior profile in effect; calculation carries on with it (or with the default
rate when no profile was ever loaded) until the desk retries.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from dealdesk.exceptions import RecalculationFailure
from dealdesk.models.tax import TaxProfile, TaxRecalculationResponse

logger = logging.getLogger(__name__)


class TaxService(Protocol):
    async def recalculate_tax(self, deal_id: str) -> TaxRecalculationResponse: ...


class TaxProfileRecalculator:
    """Holds the current tax profile for a deal and refreshes it on request."""

    def __init__(self, service: TaxService, deal_id: str, profile: Optional[TaxProfile] = None) -> None:
        self._service = service
        self._deal_id = deal_id
        self.profile = profile
        self.last_error: Optional[str] = None
        self.in_progress = False

    @property
    def failed(self) -> bool:
        return self.last_error is not None

    async def recalculate(self) -> Optional[TaxProfile]:
        """Fetch a fresh profile. Returns the profile in effect afterwards."""
        self.in_progress = True
        try:
            response = await self._service.recalculate_tax(self._deal_id)
            if not response.success or response.tax_profile is None:
                raise RecalculationFailure(response.message or "Tax service returned no profile")
        except RecalculationFailure as e:
            self.last_error = str(e)
            logger.warning(
                "Tax recalculation failed for deal %s, keeping prior profile: %s", self._deal_id, e,
            )
            return self.profile
        finally:
            self.in_progress = False

        self.profile = response.tax_profile
        self.last_error = None
        logger.info(
            "Tax profile for deal %s: %s %s @ %s",
            self._deal_id, self.profile.jurisdiction, self.profile.method.value, self.profile.combined_rate,
        )
        return self.profile

    async def retry(self) -> Optional[TaxProfile]:
        return await self.recalculate()
