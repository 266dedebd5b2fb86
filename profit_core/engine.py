"""Profit Engine: найкраща пара (buy, sell) за один прохід.

Алгоритм (O(n) часу, O(1) пам'яті):
    • тримаємо `running_min`: найдешевшу точку, побачену до поточної;
    • кожна наступна точка `p`: кандидат на продаж проти `running_min`;
    • порівнюємо дохідність `(p - min) / min`: для фіксованих funds прибуток
      `(p - min) * funds / min` їй пропорційний, тож ідентичність найкращої
      пари від суми не залежить.

Чому одного проходу досить: для фіксованого продажу прибуток максимальний
при найнижчій ціні купівлі до нього: це і є `running_min` у цій позиції;
для фіксованої купівлі прибуток строго зростає з ціною продажу.

Tie-break при рівному прибутку: (1) коротша тривалість `sell - buy`,
(2) раніший `buy`. Тому `running_min` оновлюється і на рівній ціні: пізніша
точка з тією ж ціною дає той самий прибуток з коротшою тривалістю для
будь-якого майбутнього продажу.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from core.errors import EmptyRangeError, InvalidState, NoProfitableTrade
from data.price_source import PricePoint


@dataclass(frozen=True, slots=True)
class BestPair:
    """Оптимальна угода в діапазоні; `buy.ts_ms <= sell.ts_ms`."""

    buy: PricePoint
    sell: PricePoint

    @property
    def duration_ms(self) -> int:
        return self.sell.ts_ms - self.buy.ts_ms

    @property
    def return_ratio(self) -> float:
        return (self.sell.price - self.buy.price) / self.buy.price

    def profit_for(self, funds: float) -> float:
        """Номінальний прибуток без округлень."""

        return (self.sell.price - self.buy.price) * (funds / self.buy.price)


def _prefer_on_tie(buy: PricePoint, sell: PricePoint, best: BestPair) -> bool:
    duration = sell.ts_ms - buy.ts_ms
    if duration != best.duration_ms:
        return duration < best.duration_ms
    return buy.ts_ms < best.buy.ts_ms


def ensure_min_profit(
    pair: BestPair,
    funds: float,
    min_profit: float,
    *,
    rounded_profit: float | None = None,
) -> None:
    """Поріг мінімального прибутку: номінальний і (якщо є) округлений.

    Raises:
        NoProfitableTrade: прибуток для `funds` нижчий за `min_profit`.
    """

    nominal = pair.profit_for(funds)
    if nominal < min_profit or (rounded_profit is not None and rounded_profit < min_profit):
        raise NoProfitableTrade(
            f"best profit {nominal:.6f} is below the minimum of {min_profit}"
        )


def best_trade(
    points: Iterable[PricePoint],
    funds: float | None = None,
    *,
    min_profit: float = 0.0,
) -> BestPair:
    """Повертає найкращу пару (buy, sell) за один прохід по `points`.

    Raises:
        EmptyRangeError: менше двох точок.
        InvalidState: ціна кандидата на купівлю дорівнює нулю.
        NoProfitableTrade: жодна пара не дає додатного прибутку або (коли
            задано `funds`) прибуток нижчий за `min_profit`.
    """

    it = iter(points)
    running_min = next(it, None)
    if running_min is None:
        raise EmptyRangeError("not enough data points for profit calculation")

    count = 1
    best: BestPair | None = None
    best_ratio = 0.0
    for point in it:
        count += 1
        if running_min.price == 0:
            raise InvalidState(
                f"zero buy price at {running_min.timestamp}; cannot size position"
            )
        ratio = (point.price - running_min.price) / running_min.price
        if ratio > 0 and (
            best is None
            or ratio > best_ratio
            or (ratio == best_ratio and _prefer_on_tie(running_min, point, best))
        ):
            best = BestPair(buy=running_min, sell=point)
            best_ratio = ratio
        if point.price <= running_min.price:
            running_min = point

    if count < 2:
        raise EmptyRangeError("not enough data points for profit calculation")
    if best is None:
        raise NoProfitableTrade("no profitable trade found in the given range")
    if funds is not None:
        ensure_min_profit(best, funds, min_profit)
    return best


__all__ = ["BestPair", "best_trade", "ensure_min_profit"]
