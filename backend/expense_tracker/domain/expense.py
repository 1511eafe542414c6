from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from expense_tracker.domain.category import Category
from expense_tracker.domain.exchange_rates import ExchangeRates, to_decimal, utc_day
from expense_tracker.domain.money import Total, TotalInfo
from expense_tracker.errors import IncorrectInputError

# Matches the Numeric(28, 10) columns amounts are stored in.
AMOUNT_SCALE = 10
AMOUNT_INTEGER_DIGITS = 18


def check_amount(value, label: str) -> Decimal:
    """Return ``value`` as a positive Decimal the expense columns can store exactly."""
    amount = to_decimal(value)
    if not amount.is_finite() or amount <= 0:
        raise IncorrectInputError(f"expense {label} should be positive")
    _, digits, exponent = amount.normalize().as_tuple()
    if exponent < -AMOUNT_SCALE:
        raise IncorrectInputError(
            f"expense {label} must have at most {AMOUNT_SCALE} decimal places"
        )
    if len(digits) + exponent > AMOUNT_INTEGER_DIGITS:
        raise IncorrectInputError(
            f"expense {label} must be below 10^{AMOUNT_INTEGER_DIGITS}"
        )
    return amount


@dataclass
class Expense:
    """A single spending record attached to a category."""

    id: str
    category_id: str
    price: Decimal
    currency: str
    quantity: Decimal
    date: date
    comment: Optional[str] = None
    trip: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    # Set by the report repository; carries its ancestor snapshot in ``parents``.
    category: Optional[Category] = field(default=None, compare=False, repr=False)
    total_info: TotalInfo = field(default_factory=TotalInfo, compare=False, repr=False)

    def __post_init__(self):
        if not self.category_id:
            raise IncorrectInputError("expense category should not be empty")
        self.price = check_amount(self.price, "price")
        self.quantity = check_amount(self.quantity, "quantity")
        self.currency = (self.currency or "").strip().upper()
        if not self.currency:
            raise IncorrectInputError("expense currency should not be empty")
        self.date = utc_day(self.date)
        self.comment = (self.comment or "").strip() or None
        self.trip = (self.trip or "").strip() or None

    @property
    def amount(self) -> Total:
        return Total(self.price * self.quantity, self.currency)

    def calculate_total(self, rates: Optional[ExchangeRates]) -> TotalInfo:
        """Build and remember this expense's TotalInfo against the given day's rates."""
        original = self.amount
        converted = rates.convert(original) if rates is not None else None
        if converted is None:
            self.total_info = TotalInfo(original=original)
        else:
            self.total_info = TotalInfo(original=original, converted=converted, rate=rates)
        return self.total_info
