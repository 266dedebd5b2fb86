"""PriceEngineService: фасад запитів до price-window рушія.

Операції для HTTP-шару:
    • get_min_max(): межі ряду (перший/останній запис, швидкий шлях);
    • get_stats(): агрегати після warm-up або StatsNotReady;
    • compute_profit(): найкраща угода + графік діапазону;
    • get_chart_data(): лише графік діапазону.

Потік запиту: валідація (до будь-якого читання файлу) → кеші → build-once
індекс → Range Scanner → один прохід (profit і графік в одному проході,
якщо бракує обох) → write-through у кеші → відповідь.

Методи блокуючі (файлове I/O); async-шар викликає їх через executor.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from time import perf_counter
from typing import Any

from core.contracts.profit import MinMaxPayload, ProfitPayload
from core.errors import InvalidFunds, InvalidRange
from core.money import round_money, round_shares
from core.serialization import dt_to_iso_z, iso_to_ms, safe_float
from data.price_source import PricePoint, PriceSource
from data.range_scanner import scan_range
from data.time_index import SparseTimeIndex
from profit_core.config import PROFIT_ENGINE_CONFIG, ProfitEngineConfig
from profit_core.downsample import BucketDownsampler, downsample
from profit_core.engine import BestPair, best_trade, ensure_min_profit
from profit_core.lru_cache import BoundedLruCache
from profit_core.stats import PriceStats, StatsAggregator

logger = logging.getLogger("profit_core.service")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True, slots=True)
class MinMaxRange:
    start: str
    end: str

    def to_payload(self) -> MinMaxPayload:
        return {"min": self.start, "max": self.end}


@dataclass(frozen=True, slots=True)
class ProfitResult:
    """Результат compute_profit з уже округленими грошовими полями."""

    buy_time: str
    sell_time: str
    buy_price: float
    sell_price: float
    num_shares: float
    profit: float
    total_cost: float
    net_profit: float
    profit_percent: float
    chart_data: tuple[PricePoint, ...]

    def to_payload(self) -> ProfitPayload:
        return {
            "buyTime": self.buy_time,
            "sellTime": self.sell_time,
            "buyPrice": self.buy_price,
            "sellPrice": self.sell_price,
            "numShares": self.num_shares,
            "profit": self.profit,
            "totalCost": self.total_cost,
            "netProfit": self.net_profit,
            "profitPercent": self.profit_percent,
            "chartData": [p.to_payload() for p in self.chart_data],
        }


def _timestamp_to_ms(value: Any, field_name: str) -> int:
    if isinstance(value, datetime):
        return iso_to_ms(dt_to_iso_z(value))
    if isinstance(value, str):
        text = value.strip()
        # query string: epoch ms приходить як рядок цифр
        if text.isascii() and text.removeprefix("-").isdigit():
            return int(text)
        try:
            return iso_to_ms(text)
        except (ValueError, TypeError) as exc:
            raise InvalidRange(f"{field_name} must be a valid ISO 8601 timestamp") from exc
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise InvalidRange(f"{field_name} must be finite")
        return int(value)
    raise InvalidRange(f"{field_name} must be a valid ISO 8601 timestamp")


class PriceEngineService:
    """Власник джерела, індексу, статистики та кешів одного ряду."""

    def __init__(
        self,
        source: PriceSource,
        *,
        config: ProfitEngineConfig = PROFIT_ENGINE_CONFIG,
        index: SparseTimeIndex | None = None,
        stats: StatsAggregator | None = None,
    ) -> None:
        self.source = source
        self.config = config
        self.index = index if index is not None else SparseTimeIndex(config.index_stride)
        self.stats = stats if stats is not None else StatsAggregator(source)
        self.pair_cache: BoundedLruCache[str, BestPair] = BoundedLruCache(
            config.pair_cache_capacity, name="best_pair"
        )
        self.chart_cache: BoundedLruCache[str, tuple[PricePoint, ...]] = BoundedLruCache(
            config.chart_cache_capacity, name="chart"
        )
        self._min_max: MinMaxRange | None = None

    @classmethod
    def from_path(
        cls, path: str | Path, *, config: ProfitEngineConfig = PROFIT_ENGINE_CONFIG
    ) -> PriceEngineService:
        return cls(PriceSource.open(path), config=config)

    # ── Warm-up ─────────────────────────────────────────────────────────────

    def ensure_index(self) -> SparseTimeIndex:
        return self.index.build(self.source)

    async def warm_up(self) -> None:
        """Фоновий прогрів: статистика та індекс паралельно в executor-і."""

        index_job = asyncio.ensure_future(asyncio.to_thread(self.ensure_index))
        await self.stats.start_warm_up()
        try:
            await index_job
        except Exception:
            logger.exception("[ProfitService] Індекс не побудовано; запити підуть повним проходом")

    # ── Операції ────────────────────────────────────────────────────────────

    def get_min_max(self) -> MinMaxRange:
        if self._min_max is None:
            first, last = self.source.read_first_last()
            self._min_max = MinMaxRange(start=first.timestamp, end=last.timestamp)
        return self._min_max

    def is_stats_ready(self) -> bool:
        return self.stats.is_ready()

    def get_stats(self) -> PriceStats:
        return self.stats.get_stats()

    def compute_profit(self, start: Any, end: Any, funds: Any) -> ProfitResult:
        start_ms, end_ms = self.validate_range(start, end)
        amount = self.validate_funds(funds)
        buckets = self.config.max_chart_points
        pair_key = f"{start_ms}|{end_ms}"
        chart_key = f"{start_ms}|{end_ms}|{buckets}"

        pair = self.pair_cache.get(pair_key)
        chart = self.chart_cache.get(chart_key)
        started = perf_counter()
        if pair is None:
            sampler = BucketDownsampler(start_ms, end_ms, buckets) if chart is None else None
            with closing(self._scan(start_ms, end_ms)) as points:
                feed = sampler.tap(points) if sampler is not None else points
                pair = best_trade(feed)
            self.pair_cache.put(pair_key, pair)
            if sampler is not None:
                chart = tuple(sampler.points())
                self.chart_cache.put(chart_key, chart)
            logger.debug(
                "[ProfitService] Profit scan [%d, %d] за %.1f мс",
                start_ms,
                end_ms,
                (perf_counter() - started) * 1000.0,
            )
        elif chart is None:
            chart = self._build_chart(start_ms, end_ms, buckets)
            self.chart_cache.put(chart_key, chart)

        return self._build_result(pair, amount, chart)

    def get_chart_data(
        self, start: Any, end: Any, max_buckets: Any = None
    ) -> list[PricePoint]:
        start_ms, end_ms = self.validate_range(start, end)
        buckets = self.resolve_buckets(max_buckets)
        chart_key = f"{start_ms}|{end_ms}|{buckets}"
        chart = self.chart_cache.get(chart_key)
        if chart is None:
            chart = self._build_chart(start_ms, end_ms, buckets)
            self.chart_cache.put(chart_key, chart)
        return list(chart)

    # ── Валідація ───────────────────────────────────────────────────────────

    def validate_range(self, start: Any, end: Any) -> tuple[int, int]:
        start_ms = _timestamp_to_ms(start, "startTime")
        end_ms = _timestamp_to_ms(end, "endTime")
        if start_ms >= end_ms:
            raise InvalidRange("invalid or reversed date range")
        if end_ms - start_ms > self.config.max_range_ms:
            raise InvalidRange(
                f"date range cannot exceed {self.config.max_range_days} days"
            )
        return start_ms, end_ms

    def validate_funds(self, funds: Any) -> float:
        if isinstance(funds, str):
            funds = funds.strip()
        amount = safe_float(funds, finite=True)
        if amount is None or amount <= 0:
            raise InvalidFunds("funds must be a positive number")
        if amount > self.config.max_funds:
            raise InvalidFunds("funds amount too large")
        return amount

    def resolve_buckets(self, max_buckets: Any) -> int:
        """None → стеля з конфігу; більше стелі: обрізаємо до стелі."""

        cap = self.config.max_chart_points
        if max_buckets is None:
            return cap
        if isinstance(max_buckets, bool) or not isinstance(max_buckets, int):
            raise InvalidRange("maxPoints must be an integer")
        if max_buckets < 1:
            raise InvalidRange("maxPoints must be >= 1")
        return min(max_buckets, cap)

    # ── Внутрішнє ───────────────────────────────────────────────────────────

    def _scan(self, start_ms: int, end_ms: int) -> Iterator[PricePoint]:
        return scan_range(self.source, self.ensure_index(), start_ms, end_ms)

    def _build_chart(self, start_ms: int, end_ms: int, buckets: int) -> tuple[PricePoint, ...]:
        with closing(self._scan(start_ms, end_ms)) as points:
            return tuple(downsample(points, start_ms, end_ms, buckets))

    def _build_result(
        self,
        pair: BestPair,
        funds: float,
        chart: tuple[PricePoint, ...],
    ) -> ProfitResult:
        buy, sell = pair.buy, pair.sell
        num_shares = round_shares(funds / buy.price)
        profit = round_money(round_money(sell.price - buy.price) * num_shares)
        ensure_min_profit(pair, funds, self.config.min_profit, rounded_profit=profit)
        total_cost = round_money(buy.price * num_shares)
        profit_percent = round_money(profit / total_cost * 100.0) if total_cost > 0 else 0.0
        return ProfitResult(
            buy_time=buy.timestamp,
            sell_time=sell.timestamp,
            buy_price=round_money(buy.price),
            sell_price=round_money(sell.price),
            num_shares=num_shares,
            profit=profit,
            total_cost=total_cost,
            net_profit=profit,
            profit_percent=profit_percent,
            chart_data=chart,
        )


__all__ = ["MinMaxRange", "PriceEngineService", "ProfitResult"]
