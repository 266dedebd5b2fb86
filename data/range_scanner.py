"""Range Scanner: точки діапазону [start, end] з seek через індекс.

Єдине місце з логікою seek → fallback: Profit Engine і Downsampler
отримують уже відфільтровану послідовність і не знають про offset-и.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from data.price_source import PricePoint, PriceSource
from data.time_index import SparseTimeIndex

logger = logging.getLogger("data.range_scanner")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


def _within(points: Iterable[PricePoint], start_ms: int, end_ms: int) -> Iterator[PricePoint]:
    for point in points:
        if point.ts_ms > end_ms:
            # ряд висхідний: далі точок у діапазоні не буде
            return
        if point.ts_ms >= start_ms:
            yield point


def scan_range(
    source: PriceSource,
    index: SparseTimeIndex | None,
    start_ms: int,
    end_ms: int,
) -> Iterator[PricePoint]:
    """Лінива послідовність точок з `start_ms <= ts <= end_ms`.

    Якщо seek-прохід не дав жодної точки (offset хибний або seek не
    підтримується), повторюємо повним проходом з тим самим предикатом.
    """

    offset = 0
    if index is not None and index.is_built and source.supports_seek:
        offset = index.find_offset(start_ms)

    if offset > 0:
        yielded = 0
        for point in _within(source.iter_from_offset(offset), start_ms, end_ms):
            yielded += 1
            yield point
        if yielded:
            return
        logger.debug(
            "[RangeScanner] seek @%d не дав точок для [%d, %d] → повний прохід",
            offset,
            start_ms,
            end_ms,
        )

    yield from _within(source.iterate(), start_ms, end_ms)


__all__ = ["scan_range"]
