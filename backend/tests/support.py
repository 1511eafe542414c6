"""
Shared helpers for tests: in-memory database, settings and small fakes.
"""
import os
import sys
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expense_tracker.config import (  # noqa: E402
    DatabaseSettings,
    JwtSettings,
    SecuritySettings,
    Settings,
)
from expense_tracker.database import init_db  # noqa: E402
from expense_tracker.domain.exchange_rates import ExchangeRates  # noqa: E402
from expense_tracker.errors import DependencyError, ExchangeRateFetchError  # noqa: E402
from expense_tracker.repositories.base import ExchangeRateFetcher  # noqa: E402
from expense_tracker.repositories.categories import SqlCategoryRepository  # noqa: E402

TEST_SECRET = "test-secret-key"


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return sessionmaker(bind=engine, autoflush=False)


def make_settings(**overrides) -> Settings:
    values = {
        "database": DatabaseSettings(url="sqlite+pysqlite:///:memory:", auto_create_tables=False),
        "security": SecuritySettings(jwt=JwtSettings(secret_key=TEST_SECRET), bcrypt_rounds=4),
    }
    values.update(overrides)
    return Settings(**values)


class FakeFetcher(ExchangeRateFetcher):
    """Serves rate tables from a dict and records every requested day."""

    def __init__(self, tables: Optional[Dict[date, ExchangeRates]] = None, error: Optional[Exception] = None):
        self.tables = tables or {}
        self.error = error
        self.calls: List[date] = []

    def fetch(self, dates: Sequence[date]) -> List[ExchangeRates]:
        self.calls.extend(dates)
        if self.error is not None:
            raise self.error
        missing = [day for day in dates if day not in self.tables]
        if missing:
            raise ExchangeRateFetchError(f"no rates for {missing[0].isoformat()}")
        return [self.tables[day] for day in dates]


class FlakyCategoryRepository(SqlCategoryRepository):
    """Fails ``update`` for chosen ids a given number of times."""

    def __init__(self, db, failures: Dict[str, int], on_update: Optional[Callable[[str], None]] = None):
        super().__init__(db)
        self.failures = dict(failures)
        self.on_update = on_update
        self.attempts: List[str] = []

    def update(self, category) -> int:
        self.attempts.append(category.id)
        if self.on_update is not None:
            self.on_update(category.id)
        if self.failures.get(category.id, 0) > 0:
            self.failures[category.id] -= 1
            raise DependencyError("failed to update category")
        return super().update(category)
