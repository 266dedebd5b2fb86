"""SparseTimeIndex: розріджений індекс (timestamp → byte offset) для NDJSON.

Шлях: ``data/time_index.py``

Призначення:
    • один повний прохід по файлу, запис кожного K-того розпарсеного рядка;
    • наближений seek за часом через бінарний пошук;
    • build-once latch: перший виклик `build()` будує, решта: no-op.

Інваріанти:
    • `timestamp_ms` і `byte_offset` неспадні по списку записів;
    • offset запису завжди вказує на початок рядка (ніколи не в середину);
    • `find_offset(t)` ніколи не "перестрибує" перший запис з ts ≥ t.

Індекс: лише підказка продуктивності: биті рядки пропускаються мовчки,
а Range Scanner має fallback на повний прохід.
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_left
from dataclasses import dataclass
from time import perf_counter

from rich.console import Console
from rich.logging import RichHandler

from config.config import INDEX_STRIDE
from data.price_source import PriceSource, parse_line

logger = logging.getLogger("data.time_index")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=True))
    logger.propagate = False


@dataclass(frozen=True, slots=True)
class IndexEntry:
    timestamp_ms: int
    byte_offset: int


class SparseTimeIndex:
    """Індекс кожного K-того запису з однократною побудовою.

    Записи публікуються атомарно (tuple присвоюється після повного проходу),
    тож читачі бачать або "ще не побудовано", або повний індекс.
    """

    def __init__(self, stride: int = INDEX_STRIDE) -> None:
        if stride < 1:
            raise ValueError("stride must be >= 1")
        self.stride = int(stride)
        self._lock = threading.Lock()
        self._entries: tuple[IndexEntry, ...] = ()
        self._timestamps: tuple[int, ...] = ()
        self._built = False

    @property
    def is_built(self) -> bool:
        return self._built

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def build(self, source: PriceSource) -> SparseTimeIndex:
        """Будує індекс один раз; паралельні виклики чекають на перший."""

        if self._built:
            return self
        with self._lock:
            if self._built:
                return self
            started = perf_counter()
            entries = self._scan(source) if source.supports_seek else []
            self._timestamps = tuple(e.timestamp_ms for e in entries)
            self._entries = tuple(entries)
            self._built = True
            logger.info(
                "[TimeIndex] Побудовано %d записів (stride=%d, %s) за %.1f мс",
                len(entries),
                self.stride,
                source.format.value,
                (perf_counter() - started) * 1000.0,
            )
        return self

    def _scan(self, source: PriceSource) -> list[IndexEntry]:
        entries: list[IndexEntry] = []
        record_no = 0
        skipped = 0
        last_ts: int | None = None
        for offset, raw in source.iter_lines_with_offsets():
            if not raw.strip():
                continue
            try:
                point = parse_line(raw)
            except (ValueError, TypeError):
                skipped += 1
                continue
            if record_no % self.stride == 0:
                if last_ts is None or point.ts_ms >= last_ts:
                    entries.append(IndexEntry(point.ts_ms, offset))
                    last_ts = point.ts_ms
            record_no += 1
        if skipped:
            logger.warning("[TimeIndex] Пропущено %d битих рядків під час індексації", skipped)
        return entries

    def find_offset(self, target_ms: int) -> int:
        """Offset, з якого безпечно починати читання для `ts >= target_ms`.

        Беремо останній запис зі `timestamp < target`: таймстемпи можуть
        повторюватись, і запис з `timestamp == target` міг би стояти вже
        після інших точок з тим самим часом. 0, якщо такого запису немає.
        """

        pos = bisect_left(self._timestamps, target_ms)
        if pos == 0:
            return 0
        return self._entries[pos - 1].byte_offset


__all__ = ["IndexEntry", "SparseTimeIndex"]
