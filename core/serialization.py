"""SSOT для серіалізації (JSON) та часу.

Мета: один набір функцій для ISO-8601 ⇄ epoch ms і JSON I/O, щоб джерело
цін, HTTP-шар і генератор фікстур не дублювали `json.dumps/json.loads`
та ручний розбір дат.

Принципи:
- без "магії" та прихованих перетворень;
- naive ISO трактуємо як UTC;
- fallback у `str(obj)` тільки коли інакше не можна.
"""

from __future__ import annotations

# ── Imports ───────────────────────────────────────────────────────────────
import json
import math
from dataclasses import asdict, is_dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

# ── Time ──────────────────────────────────────────────────────────────────

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now_ms() -> int:
    """Повертає поточний UTC timestamp у мілісекундах."""

    return int(datetime.now(tz=UTC).timestamp() * 1000)


def dt_to_iso_z(dt: datetime) -> str:
    """Конвертує datetime у RFC3339 рядок із суфіксом `Z` (UTC).

    Naive `dt` трактуємо як UTC, aware: переводимо в UTC.
    """

    if dt.tzinfo is None:
        dt_utc = dt.replace(tzinfo=UTC)
    else:
        dt_utc = dt.astimezone(UTC)
    return dt_utc.isoformat().replace("+00:00", "Z")


def iso_z_to_dt(value: str) -> datetime:
    """Парсить RFC3339 рядок у datetime (UTC).

    Приймає як суфікс `Z`, так і `+00:00`.
    Якщо tzinfo відсутній, трактуємо як UTC.
    """

    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"

    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iso_to_ms(value: str) -> int:
    """ISO-8601 рядок → UTC epoch у мілісекундах.

    Кидає `ValueError`/`TypeError` для непарсабельних значень; рахуємо через
    timedelta, щоб не втрачати мілісекунди на float.
    """

    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    dt = iso_z_to_dt(value)
    delta = dt - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def utc_ms_to_iso_z(ts_ms: int) -> str:
    """Конвертує UTC timestamp (мс) у RFC3339 рядок з суфіксом `Z`."""

    seconds, remainder = divmod(int(ts_ms), 1000)
    dt = datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=remainder * 1000)
    if remainder:
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return dt_to_iso_z(dt)


def safe_float(value: Any, *, finite: bool = False) -> float | None:
    """Безпечно приводить значення до float.

    Якщо `finite=True`, відкидає NaN/inf. `bool` не вважаємо числом.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if finite and not math.isfinite(result):
        return None
    return result


# ── JSON-friendly conversion ──────────────────────────────────────────────


def to_jsonable(obj: Any) -> Any:
    """Конвертує об'єкт у JSON-friendly значення (консервативно).

    - datetime -> RFC3339 з `Z` (UTC)
    - date -> ISO YYYY-MM-DD
    - Decimal -> str
    - Enum -> value
    - Path -> str
    - dataclass -> dict (через asdict) + рекурсія
    - об'єкти з `to_payload()` -> результат `to_payload()`
    """

    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, datetime):
        return dt_to_iso_z(obj)

    if isinstance(obj, date):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return str(obj)

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, Path):
        return str(obj)

    to_payload = getattr(obj, "to_payload", None)
    if callable(to_payload):
        return to_jsonable(to_payload())

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [to_jsonable(v) for v in obj]

    return str(obj)


# ── JSON I/O ──────────────────────────────────────────────────────────────


def json_dumps(obj: Any, *, pretty: bool = False) -> str:
    """Серіалізує об'єкт у компактний JSON-рядок.

    Порядок ключів зберігаємо (без sort_keys): payload-и відповідей
    мають стабільний порядок полів з контрактів.
    """

    if pretty:
        return json.dumps(obj, ensure_ascii=False, indent=2, default=to_jsonable)

    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        default=to_jsonable,
    )


def json_loads(data: str | bytes | bytearray) -> Any:
    """Десеріалізує JSON у Python-об'єкт.

    Для bytes використовуємо UTF-8 з ``errors='replace'``; синтаксичні
    помилки (`json.JSONDecodeError`) віддаємо викликачу.
    """

    if isinstance(data, (bytes, bytearray)):
        text = data.decode("utf-8", errors="replace")
    else:
        text = data
    return json.loads(text)


__all__ = [
    "utc_now_ms",
    "dt_to_iso_z",
    "iso_z_to_dt",
    "iso_to_ms",
    "utc_ms_to_iso_z",
    "safe_float",
    "to_jsonable",
    "json_dumps",
    "json_loads",
]
