"""
Decimal money aggregates used by the report engine.

Sums are kept exact through addition; rounding only happens when a value is
formatted for output.
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from expense_tracker.errors import CurrencyMismatchError

if TYPE_CHECKING:
    from expense_tracker.domain.exchange_rates import ExchangeRates

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def format_decimal(value: Decimal, places: Decimal = CENTS) -> str:
    return str(value.quantize(places, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Total:
    """An amount of money in a single currency."""

    sum: Decimal = ZERO
    currency: str = ""

    def is_zero(self) -> bool:
        return self.sum == ZERO

    def __add__(self, other: Optional["Total"]) -> "Total":
        if other is None or other.is_zero():
            return self
        if not self.is_zero() and self.currency != other.currency:
            raise CurrencyMismatchError(
                f"cannot add {other.currency} to {self.currency}"
            )
        return Total(self.sum + other.sum, other.currency)

    def formatted(self) -> str:
        return format_decimal(self.sum)


@dataclass(frozen=True)
class TotalInfo:
    """
    An original-currency total with its optional base-currency conversion.

    ``rate`` is the rate table the conversion was made with. Addition keeps
    the conversion only while both sides agree on the base currency.
    """

    original: Total = field(default_factory=Total)
    converted: Optional[Total] = None
    rate: Optional["ExchangeRates"] = None

    def __add__(self, other: "TotalInfo") -> "TotalInfo":
        original = self.original + other.original
        if not self._can_combine_with(other):
            return TotalInfo(original=original)

        converted = Total()
        for side in (self, other):
            if side.converted is not None:
                converted = converted + side.converted
        rate = self.rate if self.rate is not None else other.rate
        return TotalInfo(original=original, converted=converted, rate=rate)

    def _can_combine_with(self, other: "TotalInfo") -> bool:
        if self.rate is None and other.rate is None:
            return False
        if self.rate is not None and other.rate is not None:
            return self.rate.base_currency == other.rate.base_currency
        return True


@dataclass(frozen=True)
class GrandTotal:
    """
    Per-currency buckets of TotalInfo.

    ``total`` is the single base-currency figure, available only when every
    bucket was converted into the same currency.
    """

    sub_totals: Dict[str, TotalInfo] = field(default_factory=dict)

    def add(self, info: TotalInfo) -> "GrandTotal":
        if info.original.is_zero() and info.converted is None:
            return self
        sub_totals = dict(self.sub_totals)
        currency = info.original.currency
        sub_totals[currency] = sub_totals.get(currency, TotalInfo()) + info
        return GrandTotal(sub_totals)

    def combine(self, other: "GrandTotal") -> "GrandTotal":
        result = self
        for info in other.sub_totals.values():
            result = result.add(info)
        return result

    @classmethod
    def of(cls, infos: Iterable[TotalInfo]) -> "GrandTotal":
        result = cls()
        for info in infos:
            result = result.add(info)
        return result

    @property
    def total(self) -> Optional[Total]:
        if not self.sub_totals:
            return None
        converted = [info.converted for info in self.sub_totals.values()]
        if any(value is None for value in converted):
            return None
        if len({value.currency for value in converted}) != 1:
            return None
        total = Total()
        for value in converted:
            total = total + value
        return total

    def originals(self) -> Dict[str, Total]:
        return {currency: info.original for currency, info in self.sub_totals.items()}
