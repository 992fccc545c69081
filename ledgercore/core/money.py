from __future__ import annotations

import decimal
from decimal import Decimal

from ledgercore.core.config import get_settings


ZERO = Decimal("0")


def _step() -> Decimal:
    return Decimal(1).scaleb(-get_settings().currency_precision)


def _rounding() -> str:
    mode = get_settings().rounding_mode.upper()
    if not hasattr(decimal, mode) or not mode.startswith("ROUND_"):
        raise ValueError(f"unknown rounding mode: {mode}")
    return getattr(decimal, mode)


def q(value: Decimal | int | str | float) -> Decimal:
    """Quantize an amount to the tenant currency precision."""
    return Decimal(str(value)).quantize(_step(), rounding=_rounding())


def q_down(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_step(), rounding=decimal.ROUND_DOWN)


def tolerance() -> Decimal:
    return Decimal(get_settings().balance_tolerance)


def is_balanced(debit_total: Decimal, credit_total: Decimal) -> bool:
    return abs(q(debit_total) - q(credit_total)) < tolerance()
