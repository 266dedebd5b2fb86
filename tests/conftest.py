"""Спільні фікстури тестів."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from price_fixtures import make_records, write_ndjson


@pytest.fixture
def ndjson_file(tmp_path: Path) -> Callable[..., Path]:
    """Фабрика NDJSON-файлу з ціновим рядом (крок 1 с від BASE_TS)."""

    def _make(prices: Sequence[float], *, name: str = "prices.ndjson", step_s: int = 1) -> Path:
        return write_ndjson(tmp_path / name, make_records(prices, step_s=step_s))

    return _make
