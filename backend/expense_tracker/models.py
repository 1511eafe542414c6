"""
SQLAlchemy models for categories, expenses, exchange rates and users.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from expense_tracker.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Category(Base):
    """
    Category node. ``path`` is the materialized ancestor chain ``|root|...|id``.
    """
    __tablename__ = "categories"

    id = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    icon = Column(String(255), nullable=True)
    parent_id = Column(String(32), nullable=True)  # Absent for roots
    path = Column(String(2048), nullable=False)
    level = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(String(255), nullable=True)
    updated_at = Column(DateTime, nullable=True)
    updated_by = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_categories_path", "path"),
        Index("idx_categories_parent", "parent_id"),
    )


class Expense(Base):
    """
    Expense record. ``category_id`` is not a foreign key: expenses outlive a
    deleted category subtree and reports skip them.
    """
    __tablename__ = "expenses"

    id = Column(String(32), primary_key=True)
    category_id = Column(String(32), nullable=False)
    price = Column(Numeric(28, 10), nullable=False)
    currency = Column(String(8), nullable=False)
    quantity = Column(Numeric(28, 10), nullable=False)
    comment = Column(Text, nullable=True)
    trip = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(String(255), nullable=True)
    updated_at = Column(DateTime, nullable=True)
    updated_by = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_expenses_date_category", "date", "category_id"),
    )


class ExchangeRate(Base):
    """
    Rate table for one day. ``rates`` maps currency code to a decimal string
    meaning "1 base_currency = rate currency".
    """
    __tablename__ = "exchange_rates"

    date = Column(Date, primary_key=True)
    base_currency = Column(String(8), nullable=False)
    rates = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    username = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    token = Column(Text, nullable=False, default="")
    refresh_token = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("username", name="users_username_key"),
    )
