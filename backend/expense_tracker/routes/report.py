"""
Expense report and exchange-rate endpoints, plus the domain-to-response
converters for report trees.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates, Interval
from expense_tracker.domain.expense import Expense
from expense_tracker.domain.money import GrandTotal, Total, TotalInfo, format_decimal
from expense_tracker.domain.report import CategoryExpenses, ReportByDate
from expense_tracker.routes.dependencies import get_exchange_rate_service, get_report_service
from expense_tracker.schemas import (
    CategoryExpensesResponse,
    CategoryResponse,
    DateReportResponse,
    ExchangeRatesResponse,
    ExpenseReportResponse,
    ExpenseResponse,
    GrandTotalResponse,
    RateResponse,
    TotalInfoResponse,
    TotalResponse,
)
from expense_tracker.services.exchange_rate_service import ExchangeRateService
from expense_tracker.services.expenses import ReportService

router = APIRouter()
rates_router = APIRouter()


def total_to_response(total: Optional[Total]) -> Optional[TotalResponse]:
    if total is None:
        return None
    return TotalResponse(sum=total.formatted(), currency=total.currency)


def rates_to_response(rates: Optional[ExchangeRates]) -> Optional[ExchangeRatesResponse]:
    if rates is None:
        return None
    return ExchangeRatesResponse(
        date=rates.date,
        base_currency=rates.base_currency,
        rates=[
            RateResponse(currency=currency, price=str(rate))
            for currency, rate in sorted(rates.rates.items())
        ],
    )


def total_info_to_response(info: TotalInfo) -> TotalInfoResponse:
    return TotalInfoResponse(
        original=total_to_response(info.original),
        converted=total_to_response(info.converted),
        rate=rates_to_response(info.rate),
    )


def grand_total_to_response(grand_total: GrandTotal) -> GrandTotalResponse:
    return GrandTotalResponse(
        sub_totals=[
            total_info_to_response(info)
            for _, info in sorted(grand_total.sub_totals.items())
        ],
        total=total_to_response(grand_total.total),
    )


def expense_to_response(expense: Expense) -> ExpenseResponse:
    return ExpenseResponse(
        id=expense.id,
        category_id=expense.category_id,
        price=format_decimal(expense.price),
        currency=expense.currency,
        quantity=str(expense.quantity.normalize()),
        comment=expense.comment,
        trip=expense.trip,
        date=expense.date,
        total_info=total_info_to_response(expense.total_info),
    )


def category_expenses_to_response(node: CategoryExpenses) -> CategoryExpensesResponse:
    category = node.category
    return CategoryExpensesResponse(
        category=CategoryResponse(
            id=category.id,
            name=category.name,
            icon=category.icon,
            parent_id=category.parent_id,
            path=category.path,
            level=category.level,
        ),
        expenses=[expense_to_response(e) for e in node.expenses] or None,
        sub_categories=[category_expenses_to_response(c) for c in node.sub_categories] or None,
        grand_total=grand_total_to_response(node.grand_total),
    )


def report_to_response(report: ReportByDate) -> ExpenseReportResponse:
    return ExpenseReportResponse(
        date_reports=[
            DateReportResponse(
                date=date_expenses.date,
                category_expenses=[
                    category_expenses_to_response(node) for node in date_expenses.sub_categories
                ],
                grand_total=grand_total_to_response(date_expenses.grand_total),
                exchange_rates=rates_to_response(date_expenses.exchange_rates),
            )
            for date_expenses in report.dates
        ],
        grand_total=grand_total_to_response(report.grand_total),
    )


@router.get("", response_model=ExpenseReportResponse, response_model_exclude_none=True)
def generate_report(
    date_from: date = Query(alias="from"),
    date_to: date = Query(alias="to"),
    interval: Interval = Query(default=Interval.DAY),
    base_currency: Optional[str] = Query(default=None, alias="baseCurrency", min_length=1),
    service: ReportService = Depends(get_report_service),
):
    """Aggregate expenses in [from, to] by date bucket and category tree."""
    report = service.generate(date_from, date_to, interval=interval, base_currency=base_currency)
    return report_to_response(report)


@rates_router.get("", response_model=List[ExchangeRatesResponse])
def list_exchange_rates(
    date_from: date = Query(alias="from"),
    date_to: date = Query(alias="to"),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Exchange rates for [from, to], fetching days missing from the local store."""
    rates = service.get_rates(DateRange(date_from, date_to))
    return [rates_to_response(rate) for rate in rates]
