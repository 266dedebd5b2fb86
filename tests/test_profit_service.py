"""Тести для profit_core.service.PriceEngineService.

Фокус:
- грошові поля відповіді та їх узгодженість між собою;
- валідація до будь-якого читання файлу;
- кеші best-pair/графіка (повторний запит не читає файл);
- однаковий результат з індексом будь-якої щільності.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from pathlib import Path

import pytest

from core.errors import (
    EmptyRangeError,
    InvalidFunds,
    InvalidRange,
    NoProfitableTrade,
    StatsNotReady,
)
from core.money import round_money
from core.serialization import iso_to_ms
from data.price_source import PriceSource, SourceFormat
from profit_core.config import ProfitEngineConfig
from profit_core.service import PriceEngineService
from price_fixtures import ts_at


def _service(path: Path, **overrides: int | float) -> PriceEngineService:
    return PriceEngineService.from_path(path, config=ProfitEngineConfig(**overrides))


def test_compute_profit_money_fields(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([100.0, 90.0, 95.0, 120.0, 110.0]), index_stride=2)

    result = service.compute_profit(ts_at(0), ts_at(4), 1000)
    payload = result.to_payload()

    assert payload["buyTime"] == ts_at(1)
    assert payload["sellTime"] == ts_at(3)
    assert payload["buyPrice"] == 90.0
    assert payload["sellPrice"] == 120.0
    assert payload["numShares"] == 11.1111
    assert payload["profit"] == 333.33
    assert payload["netProfit"] == payload["profit"]
    assert payload["totalCost"] == 1000.0
    assert payload["profitPercent"] == 33.33
    assert [p["timestamp"] for p in payload["chartData"]] == [ts_at(i) for i in range(5)]


def test_profit_is_consistent_with_rounded_spread_and_shares(ndjson_file: Callable[..., Path]) -> None:
    rng = random.Random(11)
    prices = [round(rng.uniform(80, 120), 2) for _ in range(400)]
    service = _service(ndjson_file(prices), index_stride=16)

    for _ in range(25):
        a, b = sorted(rng.sample(range(400), 2))
        funds = round(rng.uniform(10, 50_000), 2)
        try:
            result = service.compute_profit(ts_at(a), ts_at(b), funds)
        except (NoProfitableTrade, EmptyRangeError):
            continue
        assert result.buy_time <= result.sell_time
        assert iso_to_ms(ts_at(a)) <= iso_to_ms(result.buy_time)
        assert iso_to_ms(result.sell_time) <= iso_to_ms(ts_at(b))
        assert result.profit == round_money(
            round_money(result.sell_price - result.buy_price) * result.num_shares
        )
        assert result.profit > 0


def test_results_identical_for_sparse_and_dense_index(ndjson_file: Callable[..., Path]) -> None:
    rng = random.Random(5)
    path = ndjson_file([round(rng.uniform(50, 150), 4) for _ in range(600)])
    dense = _service(path, index_stride=1)
    sparse = _service(path, index_stride=1000)
    medium = _service(path, index_stride=37)

    for _ in range(30):
        a, b = sorted(rng.sample(range(-10, 610), 2))
        outcomes = []
        for service in (dense, sparse, medium):
            try:
                outcomes.append(service.compute_profit(ts_at(a), ts_at(b), 1000).to_payload())
            except (NoProfitableTrade, EmptyRangeError) as exc:
                outcomes.append(type(exc).__name__)
        assert outcomes[0] == outcomes[1] == outcomes[2]


def test_validation_happens_before_reading_the_file(tmp_path: Path) -> None:
    service = PriceEngineService(PriceSource(tmp_path / "missing.ndjson", SourceFormat.NDJSON))

    with pytest.raises(InvalidRange):
        service.compute_profit(ts_at(10), ts_at(0), 100)
    with pytest.raises(InvalidRange):
        service.compute_profit(ts_at(5), ts_at(5), 100)
    with pytest.raises(InvalidRange):
        service.compute_profit("yesterday", ts_at(5), 100)
    with pytest.raises(InvalidRange):
        service.compute_profit(ts_at(0), ts_at(91 * 86_400), 100)
    with pytest.raises(InvalidFunds):
        service.compute_profit(ts_at(0), ts_at(5), 0)
    with pytest.raises(InvalidFunds):
        service.compute_profit(ts_at(0), ts_at(5), -10)
    with pytest.raises(InvalidFunds):
        service.compute_profit(ts_at(0), ts_at(5), "abc")
    with pytest.raises(InvalidFunds):
        service.compute_profit(ts_at(0), ts_at(5), True)
    with pytest.raises(InvalidFunds):
        service.compute_profit(ts_at(0), ts_at(5), 100_000_000.01)


def test_funds_at_upper_limit_are_accepted(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([10.0, 11.0]))

    result = service.compute_profit(ts_at(0), ts_at(1), 100_000_000)

    assert result.num_shares == 10_000_000.0
    assert result.profit == 10_000_000.0


def test_repeated_request_is_served_from_cache(ndjson_file: Callable[..., Path]) -> None:
    path = ndjson_file([3.0, 1.0, 4.0, 1.5, 5.0, 2.0])
    service = _service(path)
    first = service.compute_profit(ts_at(0), ts_at(5), 100)

    path.unlink()
    again = service.compute_profit(ts_at(0), ts_at(5), 100)
    other_funds = service.compute_profit(ts_at(0), ts_at(5), 200)
    chart = service.get_chart_data(ts_at(0), ts_at(5))

    assert again == first
    assert (other_funds.buy_time, other_funds.sell_time) == (first.buy_time, first.sell_time)
    assert other_funds.profit == 800.0
    assert tuple(chart) == first.chart_data
    assert service.pair_cache.hits == 2


def test_compute_profit_accepts_epoch_ms(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([2.0, 1.0, 3.0]))

    by_iso = service.compute_profit(ts_at(0), ts_at(2), 10)
    by_ms = service.compute_profit(iso_to_ms(ts_at(0)), iso_to_ms(ts_at(2)), 10)

    assert by_iso == by_ms


def test_chart_accepts_epoch_ms_digit_strings(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([2.0, 1.0, 3.0]))
    start, end = str(iso_to_ms(ts_at(0))), str(iso_to_ms(ts_at(2)))

    assert service.get_chart_data(start, end) == service.get_chart_data(ts_at(0), ts_at(2))
    with pytest.raises(InvalidRange):
        service.get_chart_data("12ab", end)


def test_empty_and_unprofitable_ranges(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([5.0, 4.0, 3.0, 2.0]))

    with pytest.raises(EmptyRangeError):
        service.compute_profit(ts_at(1), iso_to_ms(ts_at(1)) + 500, 100)
    with pytest.raises(EmptyRangeError):
        service.compute_profit(ts_at(100), ts_at(200), 100)
    with pytest.raises(NoProfitableTrade):
        service.compute_profit(ts_at(0), ts_at(3), 100)


def test_tiny_profit_below_floor_is_not_reported(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([100.0, 100.0001]))

    with pytest.raises(NoProfitableTrade):
        service.compute_profit(ts_at(0), ts_at(1), 1)


def test_chart_buckets_are_clamped_and_validated(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([float(i + 1) for i in range(50)]), max_chart_points=5)

    assert len(service.get_chart_data(ts_at(0), ts_at(49))) == 5
    assert len(service.get_chart_data(ts_at(0), ts_at(49), 500)) == 5
    assert len(service.get_chart_data(ts_at(0), ts_at(49), 2)) == 2
    with pytest.raises(InvalidRange):
        service.get_chart_data(ts_at(0), ts_at(49), 0)
    with pytest.raises(InvalidRange):
        service.get_chart_data(ts_at(0), ts_at(49), "ten")


def test_profit_chart_respects_configured_cap(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([float(i % 7 + 1) for i in range(300)]), max_chart_points=10)

    result = service.compute_profit(ts_at(0), ts_at(299), 100)

    assert 0 < len(result.chart_data) <= 10
    assert result.chart_data[0].timestamp == ts_at(0)


def test_min_max_returns_first_and_last_timestamps(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([1.0, 2.0, 3.0, 4.0]))

    assert service.get_min_max().to_payload() == {"min": ts_at(0), "max": ts_at(3)}


@pytest.mark.asyncio
async def test_warm_up_builds_index_and_stats(ndjson_file: Callable[..., Path]) -> None:
    service = _service(ndjson_file([1.0, 3.0, 2.0]), index_stride=1)

    assert not service.is_stats_ready()
    with pytest.raises(StatsNotReady):
        service.get_stats()

    await service.warm_up()

    assert service.index.is_built
    assert service.is_stats_ready()
    assert service.get_stats().to_payload()["priceRange"] == {"min": 1.0, "max": 3.0}


def _write_hourly(path: Path, rows: list[tuple[str, float]]) -> Path:
    path.write_text(
        "".join(f'{{"timestamp":"2025-01-02T{hm}:00.000Z","price":{price}}}\n' for hm, price in rows),
        encoding="utf-8",
    )
    return path


def test_equal_profit_candidates_pick_shortest_window(tmp_path: Path) -> None:
    path = _write_hourly(
        tmp_path / "tie.ndjson",
        [("09:00", 100), ("09:30", 120), ("10:00", 100), ("11:00", 120), ("12:00", 100), ("13:00", 120)],
    )
    service = _service(path)

    result = service.compute_profit("2025-01-02T09:00:00Z", "2025-01-02T14:00:00Z", 1000)

    assert result.buy_time == "2025-01-02T09:00:00.000Z"
    assert result.sell_time == "2025-01-02T09:30:00.000Z"
    assert result.profit == 200.0


def test_two_point_scenario(tmp_path: Path) -> None:
    path = _write_hourly(tmp_path / "two.ndjson", [("09:00", 100), ("10:00", 120)])
    service = _service(path)

    result = service.compute_profit("2025-01-02T09:00:00Z", "2025-01-02T10:00:00Z", 1000)

    assert result.num_shares == 10.0
    assert result.profit == 200.0
    assert result.buy_time == "2025-01-02T09:00:00.000Z"
    assert result.sell_time == "2025-01-02T10:00:00.000Z"


def test_chart_is_ascending_bounded_and_inside_range(ndjson_file: Callable[..., Path]) -> None:
    rng = random.Random(9)
    service = _service(ndjson_file([rng.uniform(1, 2) for _ in range(500)]), max_chart_points=1000)

    for buckets in (1, 3, 17, 250, 1000):
        a, b = sorted(rng.sample(range(500), 2))
        chart = service.get_chart_data(ts_at(a), ts_at(b), buckets)
        assert 0 < len(chart) <= buckets
        assert all(x.ts_ms < y.ts_ms for x, y in zip(chart, chart[1:]))
        assert chart[0].ts_ms >= iso_to_ms(ts_at(a))
        assert chart[-1].ts_ms <= iso_to_ms(ts_at(b))
