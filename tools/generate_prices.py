"""Генератор синтетичного ряду цін (геометричний броунівський рух).

Одна точка на крок (за замовчуванням 1 с) між `--start` і `--end`
включно. Ціна: `S_{i} = S_{i-1} * (1 + drift + volatility * eps)`,
`eps ~ N(0, 1)` з numpy RNG (з `--seed` ряд відтворюваний). У файл
пишемо ціну, округлену до 4 знаків, і timestamp у форматі
`YYYY-MM-DDTHH:MM:SS.mmmZ`.

Приклад:
    python -m tools.generate_prices --start 2025-01-01T00:00:00Z \\
        --end 2025-04-01T00:00:00Z --out datastore/prices.ndjson
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TextIO

import numpy as np

from core.errors import InvalidRange
from core.money import round_half_up
from core.serialization import iso_z_to_dt, json_dumps

logger = logging.getLogger("tools.generate_prices")
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

DEFAULT_START_PRICE = 100.0
DEFAULT_DRIFT = 2e-7
DEFAULT_VOLATILITY = 5e-4
PROGRESS_EVERY = 1_000_000
_CHUNK = 65_536


def _iso_ms(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_prices(
    start: datetime,
    end: datetime,
    *,
    start_price: float = DEFAULT_START_PRICE,
    drift: float = DEFAULT_DRIFT,
    volatility: float = DEFAULT_VOLATILITY,
    step_seconds: int = 1,
    seed: int | None = None,
) -> Iterator[dict[str, object]]:
    """Лінивий генератор точок `{"timestamp", "price"}` у порядку часу."""

    if end < start:
        raise InvalidRange("end must not be earlier than start")
    if step_seconds < 1:
        raise InvalidRange("step_seconds must be >= 1")
    if start_price <= 0:
        raise ValueError("start_price must be positive")

    rng = np.random.default_rng(seed)
    total = int((end - start).total_seconds()) // step_seconds + 1
    step = timedelta(seconds=step_seconds)
    current = float(start_price)
    produced = 0
    while produced < total:
        size = min(_CHUNK, total - produced)
        factors = 1.0 + drift + volatility * rng.standard_normal(size)
        prices = current * np.cumprod(factors)
        for offset, price in enumerate(prices.tolist()):
            ts = start + (produced + offset) * step
            yield {"timestamp": _iso_ms(ts), "price": round_half_up(price, 4)}
        current = float(prices[-1])
        produced += size


def write_prices(
    points: Iterator[dict[str, object]],
    out: TextIO,
    *,
    fmt: str = "ndjson",
) -> int:
    """Пише точки у `out` як NDJSON або JSON-масив; повертає кількість."""

    count = 0
    if fmt == "json-array":
        out.write("[\n")
    for point in points:
        if fmt == "json-array":
            out.write(("  " if count == 0 else ",\n  ") + json_dumps(point))
        else:
            out.write(json_dumps(point) + "\n")
        count += 1
        if count % PROGRESS_EVERY == 0:
            logger.info("[GenPrices] …%d точок згенеровано", count)
    if fmt == "json-array":
        out.write("\n]\n")
    return count


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Генерація синтетичного ряду цін (GBM) для price-window рушія",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--start", required=True, help="Початок ряду (ISO-8601, UTC)")
    parser.add_argument("--end", required=True, help="Кінець ряду включно (ISO-8601, UTC)")
    parser.add_argument("--start-price", type=float, default=DEFAULT_START_PRICE)
    parser.add_argument("--drift", type=float, default=DEFAULT_DRIFT)
    parser.add_argument("--volatility", type=float, default=DEFAULT_VOLATILITY)
    parser.add_argument("--step-seconds", type=int, default=1)
    parser.add_argument("--seed", type=int, default=None, help="Seed для numpy RNG")
    parser.add_argument(
        "--format",
        choices=("ndjson", "json-array"),
        default="ndjson",
        help="Формат вихідного файлу",
    )
    parser.add_argument(
        "--out",
        default="-",
        help="Шлях до вихідного файлу ('-': stdout)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        start = iso_z_to_dt(args.start)
        end = iso_z_to_dt(args.end)
    except ValueError as exc:
        logger.error("[GenPrices] Некоректна дата: %s", exc)
        return 2

    try:
        points = generate_prices(
            start.astimezone(UTC),
            end.astimezone(UTC),
            start_price=args.start_price,
            drift=args.drift,
            volatility=args.volatility,
            step_seconds=args.step_seconds,
            seed=args.seed,
        )
        if args.out == "-":
            count = write_prices(points, sys.stdout, fmt=args.format)
        else:
            out_path = Path(args.out)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("[GenPrices] %s → %s у %s", args.start, args.end, out_path)
            with open(out_path, "w", encoding="utf-8", newline="\n") as fh:
                count = write_prices(points, fh, fmt=args.format)
    except (InvalidRange, ValueError) as exc:
        logger.error("[GenPrices] %s", exc)
        return 2

    logger.info("[GenPrices] Готово: %d точок", count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
