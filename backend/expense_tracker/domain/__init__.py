from expense_tracker.domain.category import ROOT_DESTINATION, Category, CategoryFilter
from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates, Interval
from expense_tracker.domain.expense import Expense
from expense_tracker.domain.money import GrandTotal, Total, TotalInfo
from expense_tracker.domain.report import (
    CategoryExpenses,
    DateExpenses,
    ReportByDate,
    ReportGenerator,
)
from expense_tracker.domain.user import User

__all__ = [
    "ROOT_DESTINATION",
    "Category",
    "CategoryFilter",
    "CategoryExpenses",
    "DateExpenses",
    "DateRange",
    "ExchangeRates",
    "Expense",
    "GrandTotal",
    "Interval",
    "ReportByDate",
    "ReportGenerator",
    "Total",
    "TotalInfo",
    "User",
]
