"""Decimal arithmetic layer.

Every monetary value in the desk is a ``Decimal``. Calculations run inside
``MONEY_CONTEXT`` (20 significant digits, half-up rounding) and keep full
precision; values are quantized to cents only when they are written back to a
scenario, serialized or displayed.
"""
from __future__ import annotations

import decimal
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

MONEY_CONTEXT = decimal.Context(prec=20, rounding=ROUND_HALF_UP)

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Coerce form input to a Decimal.

    ``None``, blank strings and unparseable text become zero. Floats are
    routed through ``str()`` so the binary representation never reaches the
    arithmetic.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ZERO
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def to_optional_decimal(value: Any) -> Optional[Decimal]:
    """Like :func:`to_decimal` but keeps "not entered" as ``None``."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_decimal(value)


def to_cents(value: Decimal) -> Decimal:
    """Quantize to whole cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP, context=MONEY_CONTEXT)


def money_sum(values) -> Decimal:
    with decimal.localcontext(MONEY_CONTEXT):
        return sum((to_decimal(v) for v in values), ZERO)


def format_money(value: Decimal) -> str:
    """Render a value as a display string, e.g. ``-3,000.00``."""
    return f"{to_cents(value):,.2f}"


Money = Annotated[Decimal, BeforeValidator(to_decimal)]
OptionalMoney = Annotated[Optional[Decimal], BeforeValidator(to_optional_decimal)]
