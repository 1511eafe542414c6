from fastapi import APIRouter
from expense_tracker.routes import categories, expenses, report, users

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
api_router.include_router(report.router, prefix="/report", tags=["report"])
api_router.include_router(report.rates_router, prefix="/exchange-rates", tags=["exchange-rates"])
