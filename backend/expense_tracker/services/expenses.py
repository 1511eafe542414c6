import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from expense_tracker.domain.category import Category
from expense_tracker.domain.exchange_rates import DateRange, Interval
from expense_tracker.domain.expense import Expense
from expense_tracker.domain.report import ReportByDate, ReportGenerator
from expense_tracker.errors import IncorrectInputError
from expense_tracker.models import utcnow
from expense_tracker.repositories.base import (
    CategoryRepository,
    ExpenseRepository,
    ReportRepository,
)
from expense_tracker.services.categories import new_id
from expense_tracker.services.exchange_rate_service import ExchangeRateService

logger = logging.getLogger(__name__)


class ExpenseService:
    def __init__(
        self,
        repo: ExpenseRepository,
        categories: CategoryRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self.categories = categories
        self.clock = clock

    def create(
        self,
        category_id: str,
        price: Decimal,
        currency: str,
        quantity: Decimal,
        date: date,
        comment: Optional[str] = None,
        trip: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> str:
        """Record an expense against an existing category and return its id."""
        category: Optional[Category] = self.categories.get(category_id)
        if category is None:
            raise IncorrectInputError(f"Invalid provided category with ID {category_id}")

        expense = Expense(
            id=new_id(),
            category_id=category.id,
            price=price,
            currency=currency,
            quantity=quantity,
            date=date,
            comment=comment,
            trip=trip,
            created_at=self.clock(),
            created_by=created_by,
        )
        self.repo.insert(expense)
        logger.info(f"[EXPENSE] Created expense {expense.id} in category {category.id}")
        return expense.id


class ReportService:
    """Builds expense reports for a date range."""

    def __init__(
        self,
        repo: ReportRepository,
        rates: ExchangeRateService,
        rate_lookback_days: int = 0,
    ):
        self.repo = repo
        self.rates = rates
        self.rate_lookback_days = rate_lookback_days

    def generate(
        self,
        date_from: date,
        date_to: date,
        interval: Interval = Interval.DAY,
        base_currency: Optional[str] = None,
    ) -> ReportByDate:
        date_range = DateRange(date_from, date_to)
        expenses = self.repo.get_all(date_range)
        rates = self.rates.get_rates(date_range)

        report = ReportGenerator(
            expenses,
            date_range,
            interval=interval,
            rates=rates,
            base_currency=base_currency,
            lookback_days=self.rate_lookback_days,
        ).generate()
        logger.info(
            f"[REPORT] {len(expenses)} expenses, {len(rates)} rate tables, "
            f"{len(report.dates)} {interval.value} rows for {date_range.start} to {date_range.end}"
        )
        return report
