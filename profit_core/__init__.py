"""Публічний API для profit-core шару."""

from __future__ import annotations

from profit_core.config import PROFIT_ENGINE_CONFIG, ProfitEngineConfig
from profit_core.downsample import BucketDownsampler, downsample
from profit_core.engine import BestPair, best_trade
from profit_core.lru_cache import BoundedLruCache
from profit_core.service import MinMaxRange, PriceEngineService, ProfitResult
from profit_core.stats import PriceStats, StatsAggregator, compute_stats

__all__ = [
    "PROFIT_ENGINE_CONFIG",
    "ProfitEngineConfig",
    "BucketDownsampler",
    "downsample",
    "BestPair",
    "best_trade",
    "BoundedLruCache",
    "MinMaxRange",
    "PriceEngineService",
    "ProfitResult",
    "PriceStats",
    "StatsAggregator",
    "compute_stats",
]
