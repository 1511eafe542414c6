from typing import Optional

from fastapi import APIRouter, Depends

from expense_tracker.domain.exchange_rates import utc_day
from expense_tracker.routes.dependencies import get_actor, get_expense_service
from expense_tracker.schemas import CreatedResponse, ExpenseCreate
from expense_tracker.services.expenses import ExpenseService

router = APIRouter()


@router.post("", response_model=CreatedResponse, status_code=201)
def create_expense(
    expense: ExpenseCreate,
    actor: Optional[str] = Depends(get_actor),
    service: ExpenseService = Depends(get_expense_service),
):
    """Record a new expense."""
    expense_id = service.create(
        category_id=expense.category_id,
        price=expense.price,
        currency=expense.currency,
        quantity=expense.quantity,
        date=utc_day(expense.date),
        comment=expense.comment,
        trip=expense.trip,
        created_by=actor,
    )
    return CreatedResponse(id=expense_id)
