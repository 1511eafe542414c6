"""
Report aggregation engine.

Expenses arrive already joined with their category and that category's
ancestor chain. For every date bucket the engine rebuilds the part of the
category forest the bucket touches, hangs each expense on its own category
and sums totals bottom-up.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from expense_tracker.domain.category import Category
from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates, Interval
from expense_tracker.domain.expense import Expense
from expense_tracker.domain.money import GrandTotal

logger = logging.getLogger(__name__)


@dataclass
class CategoryExpenses:
    category: Category
    expenses: List[Expense] = field(default_factory=list)
    sub_categories: List["CategoryExpenses"] = field(default_factory=list)
    grand_total: GrandTotal = field(default_factory=GrandTotal)

    def calculate_total(self) -> GrandTotal:
        total = GrandTotal.of(expense.total_info for expense in self.expenses)
        for child in self.sub_categories:
            total = total.combine(child.calculate_total())
        self.grand_total = total
        return total


@dataclass
class DateExpenses:
    date: date
    sub_categories: List[CategoryExpenses] = field(default_factory=list)
    grand_total: GrandTotal = field(default_factory=GrandTotal)
    exchange_rates: Optional[ExchangeRates] = None

    def calculate_total(self) -> GrandTotal:
        total = GrandTotal()
        for root in self.sub_categories:
            total = total.combine(root.calculate_total())
        self.grand_total = total
        return total


@dataclass
class ReportByDate:
    dates: List[DateExpenses] = field(default_factory=list)
    grand_total: GrandTotal = field(default_factory=GrandTotal)

    def calculate_total(self) -> GrandTotal:
        total = GrandTotal()
        for date_expenses in self.dates:
            total = total.combine(date_expenses.calculate_total())
        self.grand_total = total
        return total


def _sort_key(node: CategoryExpenses):
    return (node.category.name.lower(), node.category.id)


class ReportGenerator:
    """
    Build a ReportByDate from joined expenses and the range's rate tables.

    Args:
        expenses: Expenses with ``category`` and ``category.parents`` attached
        date_range: The requested report range
        interval: Calendar bucket for report rows
        rates: Rate tables for days inside the range
        base_currency: Optional currency every rate table is rebased to
        lookback_days: How many preceding days (inside the range) may supply
            a rate when the expense's own day has none
    """

    def __init__(
        self,
        expenses: Iterable[Expense],
        date_range: DateRange,
        interval: Interval = Interval.DAY,
        rates: Iterable[ExchangeRates] = (),
        base_currency: Optional[str] = None,
        lookback_days: int = 0,
    ):
        self.expenses = list(expenses)
        self.date_range = date_range
        self.interval = interval
        self.lookback_days = max(lookback_days, 0)
        self.rates = self._index_rates(rates, base_currency)

    @staticmethod
    def _index_rates(rates: Iterable[ExchangeRates], base_currency: Optional[str]) -> Dict[date, ExchangeRates]:
        indexed: Dict[date, ExchangeRates] = {}
        for rate in rates:
            if base_currency and rate.supports(base_currency.upper()):
                rate = rate.change_base_currency(base_currency)
            indexed[rate.date] = rate
        return indexed

    def rate_for(self, day: date) -> Optional[ExchangeRates]:
        for offset in range(self.lookback_days + 1):
            candidate = day - timedelta(days=offset)
            if candidate not in self.date_range:
                break
            rate = self.rates.get(candidate)
            if rate is not None:
                return rate
        return None

    def generate(self) -> ReportByDate:
        buckets: Dict[date, List[Expense]] = {}
        for expense in self.expenses:
            if not self._has_complete_category(expense):
                logger.debug(f"[REPORT] Skipping expense {expense.id}: category chain is incomplete")
                continue
            expense.calculate_total(self.rate_for(expense.date))
            bucket = self.interval.truncate(expense.date)
            buckets.setdefault(bucket, []).append(expense)

        report = ReportByDate()
        for bucket in sorted(buckets):
            flat = self._build_flat_map(buckets[bucket])
            report.dates.append(
                DateExpenses(
                    date=bucket,
                    sub_categories=self._build_hierarchy(flat),
                    exchange_rates=self.rates.get(bucket),
                )
            )
        report.calculate_total()
        return report

    @staticmethod
    def _has_complete_category(expense: Expense) -> bool:
        category = expense.category
        if category is None:
            return False
        known = {parent.id for parent in category.parents}
        return all(ancestor_id in known for ancestor_id in category.ancestor_ids())

    @staticmethod
    def _build_flat_map(expenses: List[Expense]) -> Dict[str, CategoryExpenses]:
        flat: Dict[str, CategoryExpenses] = {}
        for expense in expenses:
            category = expense.category
            node = flat.get(category.id)
            if node is None:
                node = flat[category.id] = CategoryExpenses(category=category)
            node.expenses.append(expense)
            for parent in category.parents:
                if parent.id not in flat:
                    flat[parent.id] = CategoryExpenses(category=parent)
        return flat

    @staticmethod
    def _build_hierarchy(flat: Dict[str, CategoryExpenses]) -> List[CategoryExpenses]:
        roots: List[CategoryExpenses] = []
        for node in sorted(flat.values(), key=_sort_key):
            if node.category.is_root:
                roots.append(node)
                continue
            parent = flat.get(node.category.parent_id)
            if parent is None:
                # Only reachable when a stored path disagrees with parent_id.
                logger.warning(
                    f"[REPORT] Category {node.category.id} has no parent "
                    f"{node.category.parent_id} in its ancestor chain"
                )
                continue
            parent.sub_categories.append(node)
        return roots
