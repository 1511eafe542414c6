"""
Daily exchange-rate tables, date ranges and report intervals.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Union

from expense_tracker.domain.money import Total
from expense_tracker.errors import IncorrectInputError

ONE = Decimal("1")


def to_decimal(value: Union[str, int, float, Decimal]) -> Decimal:
    """Convert a raw rate to Decimal without going through binary float noise."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise IncorrectInputError(f"invalid decimal value: {value!r}", cause=exc)


def utc_day(value: Union[date, datetime]) -> date:
    """Return the UTC calendar day of a timestamp. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


@dataclass(frozen=True)
class ExchangeRates:
    """
    Rate table for one calendar day.

    A rate ``r`` for currency ``c`` means ``1 base_currency = r c``. The base
    currency itself is implicit and never stored in ``rates``.
    """

    date: date
    base_currency: str
    rates: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        base = (self.base_currency or "").strip().upper()
        if not base:
            raise IncorrectInputError("base currency should not be empty")

        normalized: Dict[str, Decimal] = {}
        for currency, rate in self.rates.items():
            code = currency.strip().upper()
            if code == base:
                continue
            value = to_decimal(rate)
            if value <= 0:
                raise IncorrectInputError(f"rate for {code} should be positive")
            normalized[code] = value
        if not normalized:
            raise IncorrectInputError("rates should not be empty")

        object.__setattr__(self, "date", utc_day(self.date))
        object.__setattr__(self, "base_currency", base)
        object.__setattr__(self, "rates", normalized)

    def rate_for(self, currency: str) -> Optional[Decimal]:
        if currency == self.base_currency:
            return ONE
        return self.rates.get(currency)

    def supports(self, currency: str) -> bool:
        return self.rate_for(currency) is not None

    def convert(self, total: Total) -> Optional[Total]:
        """Convert ``total`` into the base currency, or None if the currency is unknown."""
        if total.currency == self.base_currency:
            return total
        rate = self.rates.get(total.currency)
        if rate is None:
            return None
        return Total(total.sum / rate, self.base_currency)

    def change_base_currency(self, target: str) -> "ExchangeRates":
        target = target.strip().upper()
        if target == self.base_currency:
            return self
        base_rate = self.rates.get(target)
        if base_rate is None:
            raise IncorrectInputError(
                f"cannot rebase rates of {self.date.isoformat()} to {target}: no such rate"
            )
        rates = {
            currency: rate / base_rate
            for currency, rate in self.rates.items()
            if currency != target
        }
        rates[self.base_currency] = ONE / base_rate
        return ExchangeRates(date=self.date, base_currency=target, rates=rates)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __post_init__(self):
        start = utc_day(self.start)
        end = utc_day(self.end)
        if start > end:
            raise IncorrectInputError("From date is after To date")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def dates(self) -> List[date]:
        days = (self.end - self.start).days
        return [self.start + timedelta(days=offset) for offset in range(days + 1)]


class Interval(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"

    def truncate(self, day: date) -> date:
        if self is Interval.MONTH:
            return day.replace(day=1)
        if self is Interval.YEAR:
            return day.replace(month=1, day=1)
        return day


def index_by_date(rates: Iterable[ExchangeRates]) -> Dict[date, ExchangeRates]:
    return {rate.date: rate for rate in rates}
