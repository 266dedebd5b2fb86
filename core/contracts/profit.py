"""Канонічні контракти відповідей price-window API.

Призначення:
- SSOT для TypedDict, які йдуть "по дроту" (HTTP JSON);
- ключі у camelCase, як їх очікує фронтенд графіка.

`core/` не імпортує `profit_core/*` чи `api/*`.
"""

from __future__ import annotations

from typing import TypedDict

PROFIT_SCHEMA_VERSION: str = "price_window_v1"


class PricePointPayload(TypedDict):
    timestamp: str
    price: float


class DateRangePayload(TypedDict):
    start: str
    end: str


class PriceRangePayload(TypedDict):
    min: float
    max: float


class StatsPayload(TypedDict):
    """Агрегати по всьому ряду (готові після warm-up)."""

    totalPoints: int
    dateRange: DateRangePayload
    priceRange: PriceRangePayload


class MinMaxPayload(TypedDict):
    """Межі доступного ряду для date-picker-а."""

    min: str
    max: str


class ProfitPayload(TypedDict):
    """Відповідь POST /api/profit.

    Грошові поля округлені до 2 знаків, `numShares`: до 4 (half-up).
    """

    buyTime: str
    sellTime: str
    buyPrice: float
    sellPrice: float
    numShares: float
    profit: float
    totalCost: float
    netProfit: float
    profitPercent: float
    chartData: list[PricePointPayload]


class ErrorPayload(TypedDict, total=False):
    error: str
    message: str


__all__ = [
    "PROFIT_SCHEMA_VERSION",
    "PricePointPayload",
    "DateRangePayload",
    "PriceRangePayload",
    "StatsPayload",
    "MinMaxPayload",
    "ProfitPayload",
    "ErrorPayload",
]
