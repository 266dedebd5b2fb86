"""Downsampler: не більше N точок для графіка через часові бакети.

`[start, end]` ділимо на `max_buckets` рівних бакетів і з кожного беремо
першу точку (first-sample, без усереднення). `BucketDownsampler` можна
годувати з того ж проходу, що й Profit Engine, без другого читання файлу.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator

from data.price_source import PricePoint


class BucketDownsampler:
    """Інкрементальний first-sample бакетизатор для висхідного ряду."""

    __slots__ = ("start_ms", "end_ms", "max_buckets", "bucket_width", "_last_bucket", "_points")

    def __init__(self, start_ms: int, end_ms: int, max_buckets: int) -> None:
        if max_buckets < 1:
            raise ValueError("max_buckets must be >= 1")
        self.start_ms = start_ms
        self.end_ms = end_ms
        self.max_buckets = max_buckets
        self.bucket_width = max(1.0, (end_ms - start_ms) / max_buckets)
        self._last_bucket = -1
        self._points: list[PricePoint] = []

    def bucket_of(self, ts_ms: int) -> int:
        idx = math.floor((ts_ms - self.start_ms) / self.bucket_width)
        # ts == end потрапляє рівно на межу останнього бакета
        return min(idx, self.max_buckets - 1)

    def add(self, point: PricePoint) -> None:
        if point.ts_ms < self.start_ms or point.ts_ms > self.end_ms:
            return
        bucket = self.bucket_of(point.ts_ms)
        if bucket > self._last_bucket:
            self._last_bucket = bucket
            self._points.append(point)

    def points(self) -> list[PricePoint]:
        return list(self._points)

    def tap(self, points: Iterable[PricePoint]) -> Iterator[PricePoint]:
        """Пропускає точки далі, по дорозі заповнюючи бакети."""

        for point in points:
            self.add(point)
            yield point


def downsample(
    points: Iterable[PricePoint],
    start_ms: int,
    end_ms: int,
    max_buckets: int,
) -> list[PricePoint]:
    sampler = BucketDownsampler(start_ms, end_ms, max_buckets)
    for point in points:
        sampler.add(point)
    return sampler.points()


__all__ = ["BucketDownsampler", "downsample"]
