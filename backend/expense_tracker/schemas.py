from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _day_string_to_timestamp(value):
    # Plain "YYYY-MM-DD" means midnight UTC.
    if isinstance(value, str) and len(value) == 10 and "T" not in value:
        return f"{value}T00:00:00+00:00"
    return value


# Error Schemas
class ErrorResponse(BaseModel):
    status: str
    error: str


class FieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    status: str
    errors: List[FieldError]


# User Schemas
class UserCredentials(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(
        min_length=1,
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
    )


class UserResponse(BaseModel):
    id: str
    username: str
    token: str
    refresh_token: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Category Schemas
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    parent_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("parent_id", "parentId"),
    )
    icon: Optional[str] = None
    level: Optional[int] = Field(default=None, ge=1)
    path: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: str = Field(min_length=1)
    icon: Optional[str] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    path: str
    level: int
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    parents: Optional[List["CategoryResponse"]] = None

    model_config = ConfigDict(from_attributes=True)


class CreatedResponse(BaseModel):
    id: str


class CountResponse(BaseModel):
    count: int


# Expense Schemas
class ExpenseCreate(BaseModel):
    category_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("category_id", "categoryId"),
    )
    price: Decimal = Field(gt=0)
    currency: str = Field(min_length=1, max_length=8)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    comment: Optional[str] = None
    trip: Optional[str] = None
    date: datetime

    @field_validator("date", mode="before")
    @classmethod
    def _accept_plain_day(cls, value):
        return _day_string_to_timestamp(value)


# Report Schemas
class TotalResponse(BaseModel):
    sum: str
    currency: str


class RateResponse(BaseModel):
    currency: str
    price: str


class ExchangeRatesResponse(BaseModel):
    date: date
    base_currency: str
    rates: List[RateResponse]


class TotalInfoResponse(BaseModel):
    original: TotalResponse
    converted: Optional[TotalResponse] = None
    rate: Optional[ExchangeRatesResponse] = None


class GrandTotalResponse(BaseModel):
    sub_totals: List[TotalInfoResponse]
    total: Optional[TotalResponse] = None


class ExpenseResponse(BaseModel):
    id: str
    category_id: str
    price: str
    currency: str
    quantity: str
    comment: Optional[str] = None
    trip: Optional[str] = None
    date: date
    total_info: TotalInfoResponse


class CategoryExpensesResponse(BaseModel):
    category: CategoryResponse
    expenses: Optional[List[ExpenseResponse]] = None
    sub_categories: Optional[List["CategoryExpensesResponse"]] = None
    grand_total: GrandTotalResponse


class DateReportResponse(BaseModel):
    date: date
    category_expenses: List[CategoryExpensesResponse]
    grand_total: GrandTotalResponse
    exchange_rates: Optional[ExchangeRatesResponse] = None


class ExpenseReportResponse(BaseModel):
    date_reports: List[DateReportResponse]
    grand_total: GrandTotalResponse
