"""Грошові округлення (round-half-up) для відповідей API.

Float у Python округлює до парного (`round(2.345, 2) == 2.35`, але
`round(2.675, 2) == 2.67`), тому рахуємо через `Decimal`, побудований з
найкоротшого repr числа: `2.345 -> 2.35`, `-2.345 -> -2.35`.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

MONEY_PLACES = 2
SHARES_PLACES = 4


def round_half_up(value: float, places: int) -> float:
    """Округлює `value` до `places` знаків, половини: від нуля."""

    if not math.isfinite(value):
        raise ValueError(f"cannot round non-finite value: {value!r}")
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_money(value: float) -> float:
    return round_half_up(value, MONEY_PLACES)


def round_shares(value: float) -> float:
    return round_half_up(value, SHARES_PLACES)


__all__ = [
    "MONEY_PLACES",
    "SHARES_PLACES",
    "round_half_up",
    "round_money",
    "round_shares",
]
