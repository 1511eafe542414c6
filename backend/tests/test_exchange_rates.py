"""
Unit tests for rate tables, date ranges and report intervals.
"""
import os
import sys
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expense_tracker.domain.exchange_rates import (  # noqa: E402
    DateRange,
    ExchangeRates,
    Interval,
    utc_day,
)
from expense_tracker.domain.money import Total  # noqa: E402
from expense_tracker.errors import IncorrectInputError  # noqa: E402

DAY = date(2021, 7, 10)


def test_rates_are_normalized() -> None:
    rates = ExchangeRates(date=DAY, base_currency="usd", rates={"eur": 0.84, "USD": 1, "gbp": "0.72"})

    assert rates.base_currency == "USD"
    assert rates.rates == {"EUR": Decimal("0.84"), "GBP": Decimal("0.72")}
    assert rates.rate_for("USD") == Decimal("1")
    assert rates.rate_for("CHF") is None


@pytest.mark.parametrize(
    "base, raw",
    [
        ("", {"EUR": "1.1"}),
        ("USD", {}),
        ("USD", {"USD": "1"}),
        ("USD", {"EUR": "0"}),
        ("USD", {"EUR": "abc"}),
    ],
)
def test_invalid_rates_are_rejected(base, raw) -> None:
    with pytest.raises(IncorrectInputError):
        ExchangeRates(date=DAY, base_currency=base, rates=raw)


def test_convert_divides_by_rate() -> None:
    rates = ExchangeRates(date=DAY, base_currency="USD", rates={"EUR": "2.0"})

    assert rates.convert(Total(Decimal("10"), "EUR")) == Total(Decimal("5"), "USD")
    assert rates.convert(Total(Decimal("10"), "USD")) == Total(Decimal("10"), "USD")
    assert rates.convert(Total(Decimal("10"), "JPY")) is None


def test_change_base_currency() -> None:
    rates = ExchangeRates(date=DAY, base_currency="USD", rates={"EUR": "0.5", "GBP": "0.25"})

    rebased = rates.change_base_currency("EUR")

    assert rebased.base_currency == "EUR"
    assert rebased.date == DAY
    assert rebased.rates == {"GBP": Decimal("0.5"), "USD": Decimal("2")}
    assert rates.change_base_currency("USD") is rates


def test_change_base_currency_round_trip() -> None:
    rates = ExchangeRates(date=DAY, base_currency="USD", rates={"EUR": "0.8412", "GBP": "0.7231", "JPY": "110.3"})

    back = rates.change_base_currency("JPY").change_base_currency("USD")

    assert back.base_currency == "USD"
    assert set(back.rates) == set(rates.rates)
    for currency, rate in rates.rates.items():
        assert abs(back.rates[currency] - rate) < Decimal("1e-20")


def test_change_base_currency_to_unknown_currency() -> None:
    rates = ExchangeRates(date=DAY, base_currency="USD", rates={"EUR": "0.5"})
    with pytest.raises(IncorrectInputError):
        rates.change_base_currency("CHF")


def test_date_range_is_inclusive() -> None:
    date_range = DateRange(date(2021, 7, 10), date(2021, 7, 12))

    assert date_range.dates() == [date(2021, 7, 10), date(2021, 7, 11), date(2021, 7, 12)]
    assert date(2021, 7, 12) in date_range
    assert date(2021, 7, 13) not in date_range
    assert DateRange(DAY, DAY).dates() == [DAY]


def test_date_range_crosses_month_end() -> None:
    dates = DateRange(date(2021, 2, 27), date(2021, 3, 2)).dates()
    assert dates == [date(2021, 2, 27) + timedelta(days=n) for n in range(4)]


def test_date_range_rejects_reversed_bounds() -> None:
    with pytest.raises(IncorrectInputError):
        DateRange(date(2021, 7, 12), date(2021, 7, 10))


def test_utc_day_uses_utc_calendar() -> None:
    late_evening = datetime(2021, 7, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert utc_day(late_evening) == date(2021, 7, 11)
    assert utc_day(datetime(2021, 7, 10, 23, 30)) == date(2021, 7, 10)


def test_interval_truncation() -> None:
    day = date(2021, 7, 10)
    assert Interval.DAY.truncate(day) == day
    assert Interval.MONTH.truncate(day) == date(2021, 7, 1)
    assert Interval.YEAR.truncate(day) == date(2021, 1, 1)
    assert Interval("month") is Interval.MONTH
