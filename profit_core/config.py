"""Константи та базовий конфіг для profit-core."""

from __future__ import annotations

from dataclasses import dataclass

from config.config import (
    CHART_CACHE_CAPACITY,
    INDEX_STRIDE,
    MAX_CHART_POINTS,
    MAX_FUNDS,
    MAX_RANGE_DAYS,
    MIN_MEANINGFUL_PROFIT,
    PAIR_CACHE_CAPACITY,
)


@dataclass(frozen=True, slots=True)
class ProfitEngineConfig:
    """Ліміти та ємності, що визначають поведінку рушія."""

    index_stride: int = INDEX_STRIDE  # Кожен K-тий запис у розрідженому індексі
    max_chart_points: int = MAX_CHART_POINTS  # Стеля кількості бакетів графіка
    pair_cache_capacity: int = PAIR_CACHE_CAPACITY  # LRU best-pair за діапазоном
    chart_cache_capacity: int = CHART_CACHE_CAPACITY  # LRU графіків за (діапазон, бакети)
    max_funds: float = MAX_FUNDS  # Верхня межа інвестованої суми
    max_range_days: int = MAX_RANGE_DAYS  # Максимальна ширина запиту в днях
    min_profit: float = MIN_MEANINGFUL_PROFIT  # Менший прибуток: float-шум

    def __post_init__(self) -> None:
        if self.index_stride < 1:
            raise ValueError("index_stride must be >= 1")
        if self.max_chart_points < 1:
            raise ValueError("max_chart_points must be >= 1")
        if self.pair_cache_capacity < 1 or self.chart_cache_capacity < 1:
            raise ValueError("cache capacities must be >= 1")
        if self.max_funds <= 0:
            raise ValueError("max_funds must be positive")
        if self.max_range_days < 1:
            raise ValueError("max_range_days must be >= 1")

    @property
    def max_range_ms(self) -> int:
        return self.max_range_days * 86_400_000


PROFIT_ENGINE_CONFIG = ProfitEngineConfig()

__all__ = ["PROFIT_ENGINE_CONFIG", "ProfitEngineConfig"]
