"""Центральне джерело конфігурації price-window рушія.

У модулі зібрані дефолтні константи (ліміти, ємності кешів, шлях до файлу
цін). Усі значення можна перевизначити через ENV; runtime-налаштування
процесу (`app/settings.py`) беруть дефолти саме звідси.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = [
    "PROJECT_ROOT",
    "PRICES_FILE",
    "INDEX_STRIDE",
    "MAX_CHART_POINTS",
    "PAIR_CACHE_CAPACITY",
    "CHART_CACHE_CAPACITY",
    "MAX_FUNDS",
    "MAX_RANGE_DAYS",
    "MIN_MEANINGFUL_PROFIT",
    "HTTP_HOST",
    "HTTP_PORT",
    "API_KEY",
]

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = str(raw).strip()
    return value or default


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    """Безпечно читає int із ENV з відкатом до дефолту."""

    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(str(raw).strip())
    except ValueError:
        return default


# ───────────────────────────── Джерело даних ─────────────────────────────

# NDJSON (або legacy JSON-масив) з точками {"timestamp": ISO-8601, "price": number}.
PRICES_FILE: str = _env_str(
    "PRICES_FILE", str(PROJECT_ROOT / "datastore" / "prices.ndjson")
)

# Кожен K-тий запис потрапляє у розріджений індекс часу.
INDEX_STRIDE: int = _env_int("INDEX_STRIDE", 1000, minimum=1)

# ───────────────────────────── Кеші та ліміти ─────────────────────────────

MAX_CHART_POINTS: int = _env_int("MAX_CHART_POINTS", 1000, minimum=1)
PAIR_CACHE_CAPACITY: int = _env_int("PAIR_CACHE_CAPACITY", 200, minimum=1)
CHART_CACHE_CAPACITY: int = _env_int("CHART_CACHE_CAPACITY", 50, minimum=1)

MAX_FUNDS: float = _env_float("MAX_FUNDS", 100_000_000.0)
MAX_RANGE_DAYS: int = _env_int("MAX_RANGE_DAYS", 90, minimum=1)
# Прибуток нижче цієї суми (у валюті) вважаємо шумом float-арифметики.
MIN_MEANINGFUL_PROFIT: float = _env_float("MIN_PROFIT", 0.01)

# ───────────────────────────── HTTP ─────────────────────────────

HTTP_HOST: str = _env_str("HTTP_HOST", "127.0.0.1")
HTTP_PORT: int = _env_int("HTTP_PORT", 3000, minimum=0)
# Порожній ключ вимикає перевірку X-API-Key.
API_KEY: str = os.getenv("API_KEY", "demo-api-key-2024").strip()
