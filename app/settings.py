"""Конфігураційна модель застосунку (джерело цін, HTTP, ліміти рушія).

Шлях: ``app/settings.py``

Використовує pydantic-settings для декларативної моделі; значення беруться з
process-ENV та `.env` у корені проєкту. Дефолти тягнемо з `config.config` як
єдиного джерела правди.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.config import (
    API_KEY,
    CHART_CACHE_CAPACITY,
    HTTP_HOST,
    HTTP_PORT,
    INDEX_STRIDE,
    MAX_CHART_POINTS,
    MAX_FUNDS,
    MAX_RANGE_DAYS,
    MIN_MEANINGFUL_PROFIT,
    PAIR_CACHE_CAPACITY,
    PRICES_FILE,
    PROJECT_ROOT,
)
from profit_core.config import ProfitEngineConfig

logger = logging.getLogger("app.settings")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

_ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(_ENV_FILE)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",  # ігноруємо невідомі змінні замість ValidationError
    )

    prices_file: Path = Path(PRICES_FILE)
    http_host: str = HTTP_HOST
    http_port: int = HTTP_PORT
    api_key: str | None = API_KEY or None
    log_level: str = "INFO"

    index_stride: int = INDEX_STRIDE
    max_chart_points: int = MAX_CHART_POINTS
    pair_cache_capacity: int = PAIR_CACHE_CAPACITY
    chart_cache_capacity: int = CHART_CACHE_CAPACITY
    max_funds: float = MAX_FUNDS
    max_range_days: int = MAX_RANGE_DAYS
    min_profit: float = MIN_MEANINGFUL_PROFIT

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return None
        if isinstance(v, str):
            value = v.strip()
            return value or None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):  # type: ignore[no-untyped-def]
        value = str(v or "").strip().upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return "INFO"
        return value

    def engine_config(self) -> ProfitEngineConfig:
        return ProfitEngineConfig(
            index_stride=self.index_stride,
            max_chart_points=self.max_chart_points,
            pair_cache_capacity=self.pair_cache_capacity,
            chart_cache_capacity=self.chart_cache_capacity,
            max_funds=self.max_funds,
            max_range_days=self.max_range_days,
            min_profit=self.min_profit,
        )


settings = Settings()  # буде валідовано під час імпорту

__all__ = ["Settings", "settings"]
