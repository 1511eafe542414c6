from decimal import Decimal
from typing import List, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_tracker import models
from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates
from expense_tracker.repositories.base import ExchangeRateRepository
from expense_tracker.repositories.common import store_errors


def rates_from_row(row: models.ExchangeRate) -> ExchangeRates:
    return ExchangeRates(
        date=row.date,
        base_currency=row.base_currency,
        rates={currency: Decimal(value) for currency, value in row.rates.items()},
    )


class SqlExchangeRateRepository(ExchangeRateRepository):
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, date_range: DateRange) -> List[ExchangeRates]:
        with store_errors(self.db, "find exchange rates"):
            rows = (
                self.db.query(models.ExchangeRate)
                .filter(
                    models.ExchangeRate.date >= date_range.start,
                    models.ExchangeRate.date <= date_range.end,
                )
                .order_by(models.ExchangeRate.date)
                .all()
            )
        return [rates_from_row(row) for row in rows]

    def upsert_all(self, rates: Sequence[ExchangeRates]) -> int:
        with store_errors(self.db, "upsert exchange rates"):
            for rate in rates:
                try:
                    self._upsert(rate)
                    self.db.commit()
                except IntegrityError:
                    # Another writer inserted the same day first; last writer wins.
                    self.db.rollback()
                    self._upsert(rate)
                    self.db.commit()
        return len(rates)

    def _upsert(self, rate: ExchangeRates) -> None:
        payload = {currency: str(value) for currency, value in rate.rates.items()}
        existing = (
            self.db.query(models.ExchangeRate)
            .filter(models.ExchangeRate.date == rate.date)
            .first()
        )
        if existing:
            existing.base_currency = rate.base_currency
            existing.rates = payload
            existing.updated_at = models.utcnow()
        else:
            self.db.add(
                models.ExchangeRate(
                    date=rate.date,
                    base_currency=rate.base_currency,
                    rates=payload,
                )
            )
