"""Таксономія помилок price-window рушія.

Усі винятки наслідують `PriceEngineError`, щоб HTTP-шар міг мапити їх
на статус-коди в одному місці. Коди (`code`) ідуть "по дроту" як
значення поля `error`.
"""

from __future__ import annotations


class PriceEngineError(Exception):
    """Базовий виняток рушія."""

    code = "engine_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class DataNotFound(PriceEngineError):
    """Файл з цінами відсутній."""

    code = "data_not_found"


class ParseError(PriceEngineError):
    """Битий запис у джерелі (не артефакт seek)."""

    code = "parse_error"

    def __init__(
        self,
        message: str,
        *,
        line_no: int | None = None,
        byte_offset: int | None = None,
    ) -> None:
        super().__init__(message)
        self.line_no = line_no
        self.byte_offset = byte_offset


class EmptyRangeError(PriceEngineError):
    """Замало точок: <2 для угоди або 0 для статистики."""

    code = "empty_range"


class InvalidRange(PriceEngineError):
    code = "invalid_range"


class InvalidFunds(PriceEngineError):
    code = "invalid_funds"


class NoProfitableTrade(PriceEngineError):
    code = "no_profitable_trade"


class StatsNotReady(PriceEngineError):
    """Warm-up статистики ще не завершився (або впав)."""

    code = "stats_not_ready"


class InvalidState(PriceEngineError):
    """Нульова ціна купівлі (захист від ділення на нуль)."""

    code = "invalid_state"


__all__ = [
    "PriceEngineError",
    "DataNotFound",
    "ParseError",
    "EmptyRangeError",
    "InvalidRange",
    "InvalidFunds",
    "NoProfitableTrade",
    "StatsNotReady",
    "InvalidState",
]
