import logging
from dataclasses import replace
from typing import Dict, List, Set

from sqlalchemy.orm import Session

from expense_tracker import models
from expense_tracker.domain.category import Category
from expense_tracker.domain.exchange_rates import DateRange
from expense_tracker.domain.expense import Expense
from expense_tracker.errors import IncorrectInputError
from expense_tracker.repositories.base import ExpenseRepository, ReportRepository
from expense_tracker.repositories.categories import category_from_row
from expense_tracker.repositories.common import store_errors

logger = logging.getLogger(__name__)


def expense_from_row(row: models.Expense) -> Expense:
    return Expense(
        id=row.id,
        category_id=row.category_id,
        price=row.price,
        currency=row.currency,
        quantity=row.quantity,
        comment=row.comment,
        trip=row.trip,
        date=row.date,
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


class SqlExpenseRepository(ExpenseRepository):
    def __init__(self, db: Session):
        self.db = db

    def insert(self, expense: Expense) -> str:
        row = models.Expense(
            id=expense.id,
            category_id=expense.category_id,
            price=expense.price,
            currency=expense.currency,
            quantity=expense.quantity,
            comment=expense.comment,
            trip=expense.trip,
            date=expense.date,
            created_at=expense.created_at,
            created_by=expense.created_by,
        )
        with store_errors(self.db, "insert expense"):
            self.db.add(row)
            self.db.commit()
        return expense.id


class SqlReportRepository(ReportRepository):
    """
    Expenses joined with their category and ancestor chain.

    Runs as two batched lookups after the expense scan: the distinct
    categories, then every ancestor id parsed out of their paths.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, date_range: DateRange) -> List[Expense]:
        with store_errors(self.db, "find expenses for report"):
            rows = (
                self.db.query(models.Expense)
                .filter(
                    models.Expense.date >= date_range.start,
                    models.Expense.date <= date_range.end,
                )
                .order_by(models.Expense.date, models.Expense.created_at, models.Expense.id)
                .all()
            )
            expenses = self._readable(rows)

            category_ids = {expense.category_id for expense in expenses}
            categories = self._load_categories(category_ids)

            ancestor_ids: Set[str] = set()
            for category in categories.values():
                ancestor_ids.update(category.ancestor_ids())
            ancestors = self._load_categories(ancestor_ids - set(categories))
            ancestors.update(categories)

        for expense in expenses:
            category = categories.get(expense.category_id)
            if category is None:
                continue
            parents = sorted(
                (ancestors[a] for a in category.ancestor_ids() if a in ancestors),
                key=lambda parent: parent.level,
            )
            expense.category = replace(category, parents=parents)
        return expenses

    @staticmethod
    def _readable(rows: List[models.Expense]) -> List[Expense]:
        expenses = []
        for row in rows:
            try:
                expenses.append(expense_from_row(row))
            except IncorrectInputError as e:
                logger.warning(f"[REPORT] Skipping unreadable expense {row.id}: {e}")
        return expenses

    def _load_categories(self, ids: Set[str]) -> Dict[str, Category]:
        if not ids:
            return {}
        rows = self.db.query(models.Category).filter(models.Category.id.in_(list(ids))).all()
        return {row.id: category_from_row(row) for row in rows}
