"""PriceSource: файлове джерело точок ціни (NDJSON | JSON-масив).

Шлях: ``data/price_source.py``

Призначення:
    • автодетект формату за першим непробільним байтом (`[` → JSON-масив);
    • лінивий, впорядкований, перезапускуваний прохід по точках;
    • byte-offset-и записів для розрідженого індексу та seek-читання;
    • швидкий шлях first/last без повного проходу (head + tail-блок).

Особливості реалізації:
    • NDJSON читаємо у binary-режимі, щоб offset-и рахувались у байтах разом
      із термінатором рядка (`\\n` або `\\r\\n`);
    • legacy JSON-масив завантажується в RAM один раз (файл: статичний
      snapshot на час життя процесу);
    • джерело лише для читання: кожен прохід відкриває власний дескриптор.
"""

from __future__ import annotations

import logging
import math
import os
import threading
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO

from rich.console import Console
from rich.logging import RichHandler

from core.contracts.profit import PricePointPayload
from core.errors import DataNotFound, EmptyRangeError, ParseError
from core.serialization import iso_to_ms, json_loads

# ── Логування ──
logger = logging.getLogger("data.price_source")
if not logger.handlers:  # guard проти повторної ініціалізації
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=True))
    logger.propagate = False

# ── Константи ──
_BOM = b"\xef\xbb\xbf"
_WHITESPACE = b" \t\r\n\x0b\x0c"
_DETECT_CHUNK = 4096
_READ_BUFFER = 1 << 20
_TAIL_BLOCK = 64 * 1024


class SourceFormat(str, Enum):
    """Формат файлу з цінами."""

    NDJSON = "ndjson"
    JSON_ARRAY = "json_array"


@dataclass(frozen=True, slots=True)
class PricePoint:
    """Одна точка ряду. Незмінна після читання.

    `timestamp`: рядок як у файлі (віддаємо клієнту без переформатування),
    `ts_ms`: той самий момент у UTC epoch ms для порівнянь та бакетів.
    """

    timestamp: str
    ts_ms: int
    price: float

    def to_payload(self) -> PricePointPayload:
        return {"timestamp": self.timestamp, "price": self.price}


def point_from_record(record: Any) -> PricePoint:
    """Будує PricePoint з JSON-об'єкта; кидає ValueError/TypeError на битих даних."""

    if not isinstance(record, dict):
        raise ValueError("record must be a JSON object")
    timestamp = record.get("timestamp")
    if not isinstance(timestamp, str):
        raise ValueError("'timestamp' must be an ISO-8601 string")
    raw_price = record.get("price")
    if isinstance(raw_price, bool) or not isinstance(raw_price, (int, float)):
        raise ValueError("'price' must be a number")
    price = float(raw_price)
    if not math.isfinite(price):
        raise ValueError("'price' must be finite")
    if price < 0:
        # 0.0 пропускаємо: на нього реагує InvalidState у Profit Engine
        raise ValueError("'price' must not be negative")
    return PricePoint(timestamp=timestamp, ts_ms=iso_to_ms(timestamp), price=price)


def parse_line(raw: bytes) -> PricePoint:
    """Парсить один NDJSON-рядок (з термінатором або без)."""

    if raw.startswith(_BOM):
        raw = raw[len(_BOM) :]
    return point_from_record(json_loads(raw))


def detect_format(path: Path) -> SourceFormat:
    """Визначає формат за першим непробільним байтом файлу.

    Порожній файл (або лише пробіли) вважаємо NDJSON без точок.
    """

    with open(path, "rb") as fh:
        first_chunk = True
        while chunk := fh.read(_DETECT_CHUNK):
            if first_chunk and chunk.startswith(_BOM):
                chunk = chunk[len(_BOM) :]
            first_chunk = False
            stripped = chunk.lstrip(_WHITESPACE)
            if stripped:
                if stripped[:1] == b"[":
                    return SourceFormat.JSON_ARRAY
                return SourceFormat.NDJSON
    return SourceFormat.NDJSON


class PriceSource:
    """Read-only джерело точок ціни поверх одного файлу."""

    def __init__(self, path: str | Path, fmt: SourceFormat) -> None:
        self.path = Path(path)
        self.format = fmt
        self._array_points: tuple[PricePoint, ...] | None = None
        self._array_lock = threading.Lock()

    @classmethod
    def open(cls, path: str | Path) -> PriceSource:
        """Відкриває джерело: перевіряє наявність файлу та визначає формат."""

        resolved = Path(path)
        if not resolved.is_file():
            raise DataNotFound(f"price file not found: {resolved}")
        fmt = detect_format(resolved)
        logger.info("[PriceSource] %s → формат %s", resolved, fmt.value)
        return cls(resolved, fmt)

    @property
    def supports_seek(self) -> bool:
        """Byte-seek має сенс лише для построкового формату."""

        return self.format is SourceFormat.NDJSON

    # ── Проходи ─────────────────────────────────────────────────────────────

    def iterate(self) -> Iterator[PricePoint]:
        """Новий прохід з початку файлу.

        Битий запис зупиняє прохід з `ParseError`; порожні рядки ігноруються.
        """

        if self.format is SourceFormat.JSON_ARRAY:
            yield from self._load_array()
            return

        with self._open_binary() as fh:
            offset = 0
            for line_no, raw in enumerate(fh, start=1):
                start = offset
                offset += len(raw)
                if not raw.strip():
                    continue
                try:
                    point = parse_line(raw)
                except (ValueError, TypeError) as exc:
                    raise ParseError(
                        f"malformed record at line {line_no}: {exc}",
                        line_no=line_no,
                        byte_offset=start,
                    ) from exc
                yield point

    def iter_lines_with_offsets(self) -> Iterator[tuple[int, bytes]]:
        """Сирі рядки NDJSON разом з byte-offset-ом початку кожного рядка."""

        if not self.supports_seek:
            return
        with self._open_binary() as fh:
            offset = 0
            for raw in fh:
                yield offset, raw
                offset += len(raw)

    def iter_from_offset(self, offset: int) -> Iterator[PricePoint]:
        """Прохід від довільного byte-offset-у.

        Якщо offset не збігся з початком запису, перший непорожній шматок є
        хвостом розрізаного рядка; його мовчки пропускаємо. Усі наступні биті
        записи вважаємо корупцією і піднімаємо `ParseError`.
        """

        if offset <= 0:
            yield from self.iterate()
            return
        if not self.supports_seek:
            raise ValueError(f"seek is not supported for {self.format.value} sources")

        with self._open_binary() as fh:
            fh.seek(offset)
            pos = offset
            first_chunk = True
            for raw in fh:
                start = pos
                pos += len(raw)
                if not raw.strip():
                    continue
                try:
                    point = parse_line(raw)
                except (ValueError, TypeError) as exc:
                    if first_chunk:
                        first_chunk = False
                        logger.debug(
                            "[PriceSource] Пропущено фрагмент після seek @%d", start
                        )
                        continue
                    raise ParseError(
                        f"malformed record at byte {start}: {exc}",
                        byte_offset=start,
                    ) from exc
                first_chunk = False
                yield point

    # ── Швидкі шляхи ────────────────────────────────────────────────────────

    def read_first_last(self) -> tuple[PricePoint, PricePoint]:
        """Перша та остання точка без повного проходу по NDJSON."""

        if self.format is SourceFormat.JSON_ARRAY:
            points = self._load_array()
            if not points:
                raise EmptyRangeError("no price points in source")
            return points[0], points[-1]

        with closing(self.iterate()) as it:
            first = next(it, None)
        if first is None:
            raise EmptyRangeError("no price points in source")
        return first, self._read_last_ndjson()

    def _read_last_ndjson(self) -> PricePoint:
        with self._open_binary() as fh:
            size = fh.seek(0, os.SEEK_END)
            block = _TAIL_BLOCK
            while True:
                start = max(0, size - block)
                fh.seek(start)
                lines = fh.read(size - start).splitlines()
                if start > 0:
                    # перший рядок блоку може бути обрізаним
                    lines = lines[1:]
                for raw in reversed(lines):
                    if not raw.strip():
                        continue
                    try:
                        return parse_line(raw)
                    except (ValueError, TypeError) as exc:
                        raise ParseError(f"malformed last record: {exc}") from exc
                if start == 0:
                    raise EmptyRangeError("no price points in source")
                block *= 2

    # ── Внутрішнє ───────────────────────────────────────────────────────────

    def _open_binary(self) -> BinaryIO:
        try:
            return open(self.path, "rb", buffering=_READ_BUFFER)
        except FileNotFoundError as exc:
            raise DataNotFound(f"price file not found: {self.path}") from exc

    def _load_array(self) -> tuple[PricePoint, ...]:
        with self._array_lock:
            if self._array_points is not None:
                return self._array_points
            try:
                raw = self.path.read_bytes()
            except FileNotFoundError as exc:
                raise DataNotFound(f"price file not found: {self.path}") from exc
            if raw.startswith(_BOM):
                raw = raw[len(_BOM) :]
            try:
                records = json_loads(raw)
            except ValueError as exc:
                raise ParseError(f"malformed JSON array: {exc}") from exc
            if not isinstance(records, list):
                raise ParseError("top-level JSON value must be an array")
            points: list[PricePoint] = []
            for idx, record in enumerate(records):
                try:
                    points.append(point_from_record(record))
                except (ValueError, TypeError) as exc:
                    raise ParseError(f"malformed record #{idx}: {exc}") from exc
            self._array_points = tuple(points)
            logger.info(
                "[PriceSource] JSON-масив завантажено у RAM: %d точок",
                len(points),
            )
            return self._array_points


__all__ = [
    "PricePoint",
    "PriceSource",
    "SourceFormat",
    "detect_format",
    "parse_line",
    "point_from_record",
]
