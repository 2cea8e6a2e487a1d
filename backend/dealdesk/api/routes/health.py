from fastapi import APIRouter

from dealdesk.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "version": "0.1.0",
        "settings": {
            "autosave_debounce_ms": settings.AUTOSAVE_DEBOUNCE_MS,
            "default_lease_tax_rate": settings.DEFAULT_LEASE_TAX_RATE,
            "default_money_factor": settings.DEFAULT_MONEY_FACTOR,
            "default_residual_percent": settings.DEFAULT_RESIDUAL_PERCENT,
        },
    }
