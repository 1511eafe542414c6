from expense_tracker.repositories.base import (
    CategoryRepository,
    ExchangeRateFetcher,
    ExchangeRateRepository,
    ExpenseRepository,
    ReportRepository,
    UserRepository,
)
from expense_tracker.repositories.categories import SqlCategoryRepository
from expense_tracker.repositories.exchange_rates import SqlExchangeRateRepository
from expense_tracker.repositories.expenses import SqlExpenseRepository, SqlReportRepository
from expense_tracker.repositories.users import SqlUserRepository

__all__ = [
    "CategoryRepository",
    "ExchangeRateFetcher",
    "ExchangeRateRepository",
    "ExpenseRepository",
    "ReportRepository",
    "UserRepository",
    "SqlCategoryRepository",
    "SqlExchangeRateRepository",
    "SqlExpenseRepository",
    "SqlReportRepository",
    "SqlUserRepository",
]
