"""Контракти (schemas) між модулями проєкту.

Тут зберігаються TypedDict-описання payload між рушієм і HTTP-шаром.

Принцип: contract-first: спочатку описуємо payload, потім імплементуємо.
"""

from __future__ import annotations

from .profit import (  # noqa: F401
    PROFIT_SCHEMA_VERSION,
    DateRangePayload,
    ErrorPayload,
    MinMaxPayload,
    PricePointPayload,
    PriceRangePayload,
    ProfitPayload,
    StatsPayload,
)

__all__ = [
    "PROFIT_SCHEMA_VERSION",
    "DateRangePayload",
    "ErrorPayload",
    "MinMaxPayload",
    "PricePointPayload",
    "PriceRangePayload",
    "ProfitPayload",
    "StatsPayload",
]
