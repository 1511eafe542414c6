"""
Repository contracts consumed by commands and queries.

SQLAlchemy implementations live in the sibling modules; tests may substitute
in-memory fakes.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional, Sequence

from expense_tracker.domain.category import Category, CategoryFilter
from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates
from expense_tracker.domain.expense import Expense
from expense_tracker.domain.user import User


class CategoryRepository(ABC):
    @abstractmethod
    def get(self, category_id: str) -> Optional[Category]:
        """Return the category or None."""

    @abstractmethod
    def get_all(self, category_filter: CategoryFilter) -> List[Category]:
        """Return categories selected by the filter, ordered by level then name."""

    @abstractmethod
    def insert(self, category: Category) -> str:
        """Persist a new category and return its id."""

    @abstractmethod
    def update(self, category: Category) -> int:
        """
        Overwrite a stored category with ``category``, structural fields included.
        Used by move rewrites.

        Returns the number of rows written (0 when the id is unknown).
        """

    @abstractmethod
    def rename(self, category: Category) -> int:
        """
        Write only the name, icon and audit fields of ``category``.

        Structural fields stay as stored. Returns the number of rows written.
        """

    @abstractmethod
    def delete_subtree(self, category: Category) -> int:
        """Delete ``category`` and every node whose path starts with its path."""


class ExpenseRepository(ABC):
    @abstractmethod
    def insert(self, expense: Expense) -> str:
        """Persist a new expense and return its id."""


class ReportRepository(ABC):
    @abstractmethod
    def get_all(self, date_range: DateRange) -> List[Expense]:
        """
        Return expenses in the range joined with their category and its ancestors.

        Expenses whose category no longer exists come back with
        ``category=None``.
        """


class ExchangeRateRepository(ABC):
    @abstractmethod
    def get_all(self, date_range: DateRange) -> List[ExchangeRates]:
        """Return stored rate tables dated inside the range."""

    @abstractmethod
    def upsert_all(self, rates: Sequence[ExchangeRates]) -> int:
        """Insert or replace rate tables keyed by date; returns rows written."""


class ExchangeRateFetcher(ABC):
    @abstractmethod
    def fetch(self, dates: Sequence[date]) -> List[ExchangeRates]:
        """Fetch rate tables for every date, one remote request per date."""


class UserRepository(ABC):
    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def insert(self, user: User) -> str:
        pass

    @abstractmethod
    def update(self, user: User) -> int:
        pass
