"""Тести для profit_core.stats: compute_stats та warm-up StatsAggregator."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from core.errors import EmptyRangeError, StatsNotReady
from data.price_source import PriceSource
from profit_core.stats import StatsAggregator, compute_stats
from price_fixtures import ts_at


def test_compute_stats_single_pass(ndjson_file: Callable[..., Path]) -> None:
    source = PriceSource.open(ndjson_file([10.0, 7.5, 12.25, 9.0]))

    stats = compute_stats(source)

    assert stats.to_payload() == {
        "totalPoints": 4,
        "dateRange": {"start": ts_at(0), "end": ts_at(3)},
        "priceRange": {"min": 7.5, "max": 12.25},
    }


def test_compute_stats_on_empty_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "empty.ndjson"
    path.write_text("", encoding="utf-8")

    with pytest.raises(EmptyRangeError):
        compute_stats(PriceSource.open(path))


@pytest.mark.asyncio
async def test_stats_not_ready_until_warm_up_finishes(ndjson_file: Callable[..., Path]) -> None:
    aggregator = StatsAggregator(PriceSource.open(ndjson_file([1.0, 2.0, 3.0])))

    assert not aggregator.is_ready()
    with pytest.raises(StatsNotReady):
        aggregator.get_stats()

    task = aggregator.start_warm_up()
    assert aggregator.start_warm_up() is task
    await task

    assert aggregator.is_ready()
    assert aggregator.get_stats().total_points == 3


@pytest.mark.asyncio
async def test_failed_warm_up_leaves_stats_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "empty.ndjson"
    path.write_text("\n", encoding="utf-8")
    aggregator = StatsAggregator(PriceSource.open(path))

    await aggregator.warm_up()

    assert aggregator.failed
    assert not aggregator.is_ready()
    with pytest.raises(StatsNotReady):
        aggregator.get_stats()
