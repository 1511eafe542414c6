"""
FastAPI dependencies wiring repositories and services per request.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from expense_tracker.config import Settings
from expense_tracker.database import get_db
from expense_tracker.repositories import (
    ExchangeRateFetcher,
    SqlCategoryRepository,
    SqlExchangeRateRepository,
    SqlExpenseRepository,
    SqlReportRepository,
    SqlUserRepository,
)
from expense_tracker.security.crypto import AppCrypto, TokenClaims
from expense_tracker.services.categories import CategoryService
from expense_tracker.services.exchange_rate_service import ExchangeRateService
from expense_tracker.services.expenses import ExpenseService, ReportService
from expense_tracker.services.users import UserService

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_crypto(request: Request) -> AppCrypto:
    return request.app.state.crypto


def get_rate_fetcher(request: Request) -> Optional[ExchangeRateFetcher]:
    return request.app.state.rate_fetcher


def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    crypto: AppCrypto = Depends(get_crypto),
) -> Optional[TokenClaims]:
    """Claims of the bearer token when one is sent; a bad token is rejected with 401."""
    if credentials is None:
        return None
    return crypto.validate_token(credentials.credentials)


def get_actor(principal: Optional[TokenClaims] = Depends(get_principal)) -> Optional[str]:
    return principal.username if principal else None


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(SqlCategoryRepository(db))


def get_expense_service(db: Session = Depends(get_db)) -> ExpenseService:
    return ExpenseService(SqlExpenseRepository(db), SqlCategoryRepository(db))


def get_exchange_rate_service(
    db: Session = Depends(get_db),
    fetcher: Optional[ExchangeRateFetcher] = Depends(get_rate_fetcher),
) -> ExchangeRateService:
    return ExchangeRateService(SqlExchangeRateRepository(db), fetcher)


def get_report_service(
    db: Session = Depends(get_db),
    rates: ExchangeRateService = Depends(get_exchange_rate_service),
    settings: Settings = Depends(get_app_settings),
) -> ReportService:
    return ReportService(
        SqlReportRepository(db),
        rates,
        rate_lookback_days=settings.exchange_rate_fetcher.rate_lookback_days,
    )


def get_user_service(
    db: Session = Depends(get_db),
    crypto: AppCrypto = Depends(get_crypto),
) -> UserService:
    return UserService(SqlUserRepository(db), crypto)
