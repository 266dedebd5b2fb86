"""Stats Aggregator: агрегати по всьому ряду з одноразовим warm-up.

Warm-up стартує у фоні при запуску процесу, рахує один лінійний прохід
у default executor-і і кешує результат назавжди (файл: статичний snapshot).
Падіння warm-up логуються і залишають `is_ready()` у False: статистика:
best-effort функція, а не умова живучості процесу.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from time import perf_counter

from rich.console import Console
from rich.logging import RichHandler

from core.contracts.profit import StatsPayload
from core.errors import EmptyRangeError, StatsNotReady
from data.price_source import PriceSource

logger = logging.getLogger("profit_core.stats")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=True))
    logger.propagate = False


@dataclass(frozen=True, slots=True)
class PriceStats:
    total_points: int
    start: str
    end: str
    min_price: float
    max_price: float

    def to_payload(self) -> StatsPayload:
        return {
            "totalPoints": self.total_points,
            "dateRange": {"start": self.start, "end": self.end},
            "priceRange": {"min": self.min_price, "max": self.max_price},
        }


def compute_stats(source: PriceSource) -> PriceStats:
    """Один прохід: кількість, перший/останній час, мін/макс ціна."""

    total = 0
    first = last = None
    min_price = float("inf")
    max_price = float("-inf")
    for point in source.iterate():
        total += 1
        if first is None:
            first = point
        last = point
        if point.price < min_price:
            min_price = point.price
        if point.price > max_price:
            max_price = point.price

    if first is None or last is None:
        raise EmptyRangeError("no data found for stats")
    return PriceStats(
        total_points=total,
        start=first.timestamp,
        end=last.timestamp,
        min_price=min_price,
        max_price=max_price,
    )


class StatsAggregator:
    """Власник кешованої статистики з явним прапорцем готовності."""

    def __init__(self, source: PriceSource) -> None:
        self._source = source
        self._stats: PriceStats | None = None
        self._task: asyncio.Task[None] | None = None
        self._failed = False

    def is_ready(self) -> bool:
        return self._stats is not None

    @property
    def failed(self) -> bool:
        return self._failed

    def get_stats(self) -> PriceStats:
        stats = self._stats
        if stats is None:
            raise StatsNotReady("stats not ready yet")
        return stats

    def start_warm_up(self) -> asyncio.Task[None]:
        """Планує warm-up фоновою задачею (повторні виклики: та сама задача)."""

        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self.warm_up(), name="stats-warm-up"
            )
        return self._task

    async def warm_up(self) -> None:
        if self._stats is not None or self._failed:
            return
        started = perf_counter()
        try:
            stats = await asyncio.to_thread(compute_stats, self._source)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._failed = True
            logger.exception("[Stats] Не вдалося попередньо порахувати статистику")
            return
        self._stats = stats
        logger.info(
            "[Stats] Кеш статистики готовий: %d точок, %s → %s (%.1f мс)",
            stats.total_points,
            stats.start,
            stats.end,
            (perf_counter() - started) * 1000.0,
        )


__all__ = ["PriceStats", "StatsAggregator", "compute_stats"]
