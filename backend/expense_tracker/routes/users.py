import logging

from fastapi import APIRouter, Depends

from expense_tracker.errors import UnauthorizedError, UserNotFoundError, WrongPasswordError
from expense_tracker.routes.dependencies import get_user_service
from expense_tracker.schemas import RefreshRequest, UserCredentials, UserResponse
from expense_tracker.services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_FAILED_MESSAGE = "password or user is incorrect"


@router.post("/signup", response_model=UserResponse)
def signup(
    credentials: UserCredentials,
    service: UserService = Depends(get_user_service),
):
    """Register a user and issue its first token pair."""
    return service.signup(credentials.username, credentials.password)


@router.post("/login", response_model=UserResponse)
def login(
    credentials: UserCredentials,
    service: UserService = Depends(get_user_service),
):
    """Authenticate and issue a new token pair."""
    try:
        return service.login(credentials.username, credentials.password)
    except (UserNotFoundError, WrongPasswordError) as e:
        raise UnauthorizedError(LOGIN_FAILED_MESSAGE, cause=e)


@router.post("/refresh", response_model=UserResponse)
def refresh(
    request: RefreshRequest,
    service: UserService = Depends(get_user_service),
):
    """Exchange a refresh token for a new token pair."""
    return service.refresh(request.refresh_token)
